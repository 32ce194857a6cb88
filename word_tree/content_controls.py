"""Find, fill and unwrap content controls (``w:sdt``).

A control is *block level* when a node carries it in ``content_control``
(a paragraph wrapped in a control, or a ``ContentControl`` container of
several blocks), and *inline* when it wraps some of a paragraph's runs, in
which case those runs share one :class:`ContentControlProperties` object.

Lookups cover table cell content.  Setting a value or removing a control
clears the snapshot of every node it changes, like the run editor does.
"""
import logging
from typing import Callable, Iterator

from word_tree.navigation import iter_with_cells
from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import ContentControlProperties
from word_tree.runs import FormattedRun, linear_text

logger = logging.getLogger(__name__)

ControlPredicate = Callable[[ContentControlProperties], bool]


def inline_controls(node: DocumentNode) -> list[ContentControlProperties]:
    """Distinct inline controls of *node*, in run order."""
    seen: list[ContentControlProperties] = []
    for run in node.runs:
        props = run.content_control
        if props is not None and not any(props is s for s in seen):
            seen.append(props)
    return seen


def has_inline_controls(node: DocumentNode) -> bool:
    return any(run.content_control is not None for run in node.runs)


def controls_of(node: DocumentNode) -> list[ContentControlProperties]:
    """The node's block-level control (if any) followed by its inline ones."""
    controls = [node.content_control] if node.content_control is not None else []
    return controls + inline_controls(node)


def all_content_controls(root: DocumentNode) -> list[DocumentNode]:
    """Nodes carrying a block-level or inline control."""
    return [n for n in iter_with_cells(root) if controls_of(n)]


def content_controls_by_type(root: DocumentNode, control_type: str) -> list[DocumentNode]:
    return [
        n for n in iter_with_cells(root)
        if any(props.control_type == control_type for props in controls_of(n))
    ]


def _find(
    root: DocumentNode, predicate: ControlPredicate
) -> tuple[DocumentNode, ContentControlProperties] | None:
    for node in iter_with_cells(root):
        for props in controls_of(node):
            if predicate(props):
                return node, props
    return None


def find_by_tag(root: DocumentNode, tag: str) -> DocumentNode | None:
    found = _find(root, lambda props: props.tag == tag)
    return found[0] if found else None


def find_by_alias(root: DocumentNode, alias: str) -> DocumentNode | None:
    found = _find(root, lambda props: props.alias == alias)
    return found[0] if found else None


def find_by_id(root: DocumentNode, control_id: int) -> DocumentNode | None:
    found = _find(root, lambda props: props.id == control_id)
    return found[0] if found else None


def properties_by_tag(root: DocumentNode, tag: str) -> ContentControlProperties | None:
    found = _find(root, lambda props: props.tag == tag)
    return found[1] if found else None


def content_control_tags(root: DocumentNode) -> list[str]:
    return [
        props.tag
        for node in iter_with_cells(root)
        for props in controls_of(node)
        if props.tag
    ]


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

def _first_text_run(runs: list[FormattedRun]) -> FormattedRun | None:
    return next((run for run in runs if not run.is_marker), None)


def _value_run(template: FormattedRun | None, value: str) -> FormattedRun:
    run = FormattedRun(value)
    if template is not None:
        run.formatting = template.formatting.clone()
    return run


def _fill_paragraph(node: DocumentNode, value: str) -> None:
    run = _value_run(_first_text_run(node.runs), value)
    node.text = value
    node.replace_runs([run])


def _fill_container(node: DocumentNode, value: str) -> None:
    """Keep the first paragraph of a multi-block control, holding *value*."""
    target = next((c for c in node.children if c.is_text_bearing), None)
    for child in list(node.children):
        if child is not target:
            node.remove_child(child)
    if target is None:
        node.add_child(DocumentNode(NodeKind.PARAGRAPH, value))
    else:
        _fill_paragraph(target, value)
    node.text = value
    node.invalidate_snapshot()


def _fill_inline(node: DocumentNode, props: ContentControlProperties, value: str) -> None:
    """Replace the runs wrapped by *props* with one run holding *value*."""
    new_runs: list[FormattedRun] = []
    placed = False
    for run in node.runs:
        if run.content_control is not props:
            new_runs.append(run)
        elif not placed:
            filled = _value_run(_first_text_run(
                [r for r in node.runs if r.content_control is props]
            ), value)
            filled.content_control = props
            new_runs.append(filled)
            placed = True
    node.replace_runs(new_runs)
    node.text = linear_text(new_runs).strip()


def set_value(node: DocumentNode, props: ContentControlProperties, value: str) -> None:
    """Put *value* into the control *props* found on *node*."""
    if props is node.content_control:
        if node.kind == NodeKind.CONTENT_CONTROL:
            _fill_container(node, value)
        else:
            _fill_paragraph(node, value)
    else:
        _fill_inline(node, props, value)
    props.value = value
    props.showing_placeholder = False


def _set_value_where(root: DocumentNode, predicate: ControlPredicate, value: str) -> bool:
    found = _find(root, predicate)
    if found is None:
        return False
    set_value(*found, value)
    return True


def set_value_by_tag(root: DocumentNode, tag: str, value: str) -> bool:
    """Set the value of the first control tagged *tag*; ``False`` if none."""
    return _set_value_where(root, lambda props: props.tag == tag, value)


def set_value_by_alias(root: DocumentNode, alias: str, value: str) -> bool:
    return _set_value_where(root, lambda props: props.alias == alias, value)


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------

def _unwrap(node: DocumentNode, predicate: ControlPredicate) -> bool:
    removed = False
    if node.content_control is not None and predicate(node.content_control):
        node.content_control = None
        removed = True

    new_runs = []
    for run in node.runs:
        if run.content_control is not None and predicate(run.content_control):
            run = run.clone()
            run.content_control = None
            removed = True
        new_runs.append(run)

    if removed:
        node.replace_runs(new_runs)
        logger.debug("Removed content control(s) from %r", node)
    return removed


def remove_content_control(node: DocumentNode, control_id: int | None = None) -> bool:
    """Drop the control(s) on *node*, keeping their content.

    With *control_id*, only controls with that id are removed.
    """
    return _unwrap(node, lambda props: control_id is None or props.id == control_id)


def remove_all_content_controls(root: DocumentNode) -> int:
    """Unwrap every control under *root*; returns the number of nodes changed."""
    return sum(1 for node in list(iter_with_cells(root)) if remove_content_control(node))


def _remove_where(root: DocumentNode, predicate: ControlPredicate) -> bool:
    found = _find(root, predicate)
    if found is None:
        return False
    node, props = found
    return _unwrap(node, lambda candidate: candidate is props)


def remove_by_tag(root: DocumentNode, tag: str) -> bool:
    return _remove_where(root, lambda props: props.tag == tag)


def remove_by_alias(root: DocumentNode, alias: str) -> bool:
    return _remove_where(root, lambda props: props.alias == alias)


def iter_values(root: DocumentNode) -> Iterator[tuple[str, str | None]]:
    """``(identifier, value)`` for every control under *root*."""
    for node in iter_with_cells(root):
        for props in controls_of(node):
            yield props.identifier, props.value
