"""Paragraph style changes and style queries.

A paragraph style and a node's structural kind describe the same thing
twice, so they are kept in step: giving a node a ``Heading<N>`` style
makes it a level-N heading, and giving a heading any other style turns it
back into a paragraph.  The tree is not re-nested when that happens; moving
the node under a different heading is left to the caller.
"""
import re
from collections import Counter
from typing import Callable

from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import ParagraphFormatting

_HEADING_STYLE_RE = re.compile(r"^heading\s?([1-9])$", re.IGNORECASE)

NO_STYLE = "(no style)"

_UNSET = object()


def heading_level_for_style(style_id: str | None) -> int:
    """Return N for a ``Heading<N>`` style id (or ``Heading N`` name), else 0."""
    if not style_id:
        return 0
    match = _HEADING_STYLE_RE.match(style_id.strip())
    return int(match.group(1)) if match else 0


def _same_style(a: str | None, b: str | None) -> bool:
    return a is not None and b is not None and a.casefold() == b.casefold()


def get_style(node: DocumentNode) -> str | None:
    return node.paragraph_format.style_id if node.paragraph_format else None


def has_style(node: DocumentNode, style_id: str) -> bool:
    return _same_style(get_style(node), style_id)


def has_any_style(node: DocumentNode, *style_ids: str) -> bool:
    return any(has_style(node, s) for s in style_ids)


def change_style(node: DocumentNode, style_id: str | None) -> None:
    """Set the paragraph style of *node*, keeping kind and heading level in step.

    ``None`` clears the style, which also demotes a heading.
    """
    if node.paragraph_format is None:
        node.paragraph_format = ParagraphFormatting()
    node.paragraph_format.style_id = style_id
    node.invalidate_snapshot()

    level = heading_level_for_style(style_id)
    if level:
        node.heading_level = level
        node.kind = NodeKind.HEADING
    elif node.kind == NodeKind.HEADING:
        node.heading_level = 0
        node.kind = NodeKind.PARAGRAPH


def set_paragraph_format(node: DocumentNode, **changes) -> None:
    """Update paragraph formatting fields, e.g. ``alignment="center"``.

    ``style_id`` is routed through :func:`change_style`.  Unknown field
    names raise ``AttributeError`` before anything is changed.
    """
    fmt = node.paragraph_format or ParagraphFormatting()
    unknown = [key for key in changes if not hasattr(fmt, key)]
    if unknown:
        raise AttributeError(f"ParagraphFormatting has no field(s): {', '.join(unknown)}")

    style_id = changes.pop("style_id", _UNSET)
    for key, value in changes.items():
        setattr(fmt, key, value)
    node.paragraph_format = fmt
    node.invalidate_snapshot()
    if style_id is not _UNSET:
        change_style(node, style_id)


def find_by_style(root: DocumentNode, style_id: str) -> list[DocumentNode]:
    return [n for n in root.iter_nodes() if has_style(n, style_id)]


def find_by_styles(root: DocumentNode, *style_ids: str) -> list[DocumentNode]:
    wanted = {s.casefold() for s in style_ids}
    return [
        n for n in root.iter_nodes()
        if get_style(n) is not None and get_style(n).casefold() in wanted
    ]


def change_style_bulk(root: DocumentNode, from_style_id: str, to_style_id: str) -> int:
    nodes = find_by_style(root, from_style_id)
    for node in nodes:
        change_style(node, to_style_id)
    return len(nodes)


def change_style_where(
    root: DocumentNode, predicate: Callable[[DocumentNode], bool], to_style_id: str
) -> int:
    # Materialise first: the style change may alter what the predicate sees.
    nodes = [n for n in root.iter_nodes() if predicate(n)]
    for node in nodes:
        change_style(node, to_style_id)
    return len(nodes)


def style_distribution(root: DocumentNode) -> dict[str, int]:
    """Count paragraph-like nodes per style id."""
    counts: Counter[str] = Counter()
    for node in root.iter_nodes():
        if node.is_text_bearing:
            counts[get_style(node) or NO_STYLE] += 1
    return dict(counts)
