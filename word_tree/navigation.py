"""Queries over a document tree."""
from collections import Counter
from typing import Callable, Iterator

from word_tree.node import DocumentNode, NodeKind

Predicate = Callable[[DocumentNode], bool]


def find_all(root: DocumentNode, predicate: Predicate) -> Iterator[DocumentNode]:
    """Yield matching nodes depth-first, in document order, *root* included."""
    for node in root.iter_nodes():
        if predicate(node):
            yield node


def find_first(root: DocumentNode, predicate: Predicate) -> DocumentNode | None:
    return next(find_all(root, predicate), None)


def iter_with_cells(root: DocumentNode) -> Iterator[DocumentNode]:
    """Like :meth:`DocumentNode.iter_nodes`, also descending into table cells.

    A table's cell content (nested tables included) follows the table node.
    """
    for node in root.iter_nodes():
        yield node
        if node.table is not None:
            for row in node.table.rows:
                for cell in row.cells:
                    for content in cell.content:
                        yield from iter_with_cells(content)


def flatten(root: DocumentNode) -> list[DocumentNode]:
    return list(root.iter_nodes())


def get_path(node: DocumentNode) -> list[DocumentNode]:
    """Nodes from the root down to *node*."""
    path = []
    current = node
    while current is not None:
        path.append(current)
        current = current.parent
    path.reverse()
    return path


def heading_path(node: DocumentNode, separator: str = " > ") -> str:
    """Breadcrumb such as ``"report > Chapter 1 > Section 1.1"``."""
    titles = [
        n.get_text()
        for n in get_path(node)
        if n.kind in (NodeKind.HEADING, NodeKind.DOCUMENT) and n.get_text()
    ]
    return separator.join(titles)


def siblings(node: DocumentNode) -> list[DocumentNode]:
    parent = node.parent
    if parent is None:
        return []
    return [c for c in parent.children if c is not node]


def _sibling_at(node: DocumentNode, step: int) -> DocumentNode | None:
    parent = node.parent
    if parent is None:
        return None
    index = next(i for i, c in enumerate(parent.children) if c is node)
    target = index + step
    if 0 <= target < len(parent.children):
        return parent.children[target]
    return None


def next_sibling(node: DocumentNode) -> DocumentNode | None:
    return _sibling_at(node, 1)


def previous_sibling(node: DocumentNode) -> DocumentNode | None:
    return _sibling_at(node, -1)


def get_section(root: DocumentNode, heading_text: str) -> DocumentNode | None:
    """First heading whose text contains *heading_text*, ignoring case."""
    needle = heading_text.casefold()
    return find_first(
        root, lambda n: n.kind == NodeKind.HEADING and needle in n.get_text().casefold()
    )


def headings_at_level(root: DocumentNode, level: int) -> list[DocumentNode]:
    return [
        n for n in root.iter_nodes()
        if n.kind == NodeKind.HEADING and n.heading_level == level
    ]


def all_headings(root: DocumentNode) -> list[DocumentNode]:
    return [n for n in root.iter_nodes() if n.kind == NodeKind.HEADING]


def all_tables(root: DocumentNode) -> list[DocumentNode]:
    return [n for n in root.iter_nodes() if n.kind == NodeKind.TABLE]


def all_images(root: DocumentNode) -> list[DocumentNode]:
    return [n for n in root.iter_nodes() if n.kind == NodeKind.IMAGE]


def table_of_contents(root: DocumentNode) -> list[tuple[int, str, DocumentNode]]:
    return [(h.heading_level, h.get_text(), h) for h in all_headings(root)]


def all_text(node: DocumentNode) -> str:
    """Text of *node* and its descendants, one non-blank block per line."""
    texts = []
    if node.kind not in (NodeKind.TABLE, NodeKind.IMAGE):
        texts.append(node.get_text())
    for child in node.children:
        texts.append(all_text(child))
    return "\n".join(t for t in texts if t.strip())


def count_by_type(root: DocumentNode) -> dict[NodeKind, int]:
    return dict(Counter(n.kind for n in root.iter_nodes()))
