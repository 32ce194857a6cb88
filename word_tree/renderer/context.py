"""Per-call render state and snapshot emission."""
import logging
from dataclasses import dataclass, field

from docx.oxml.ns import qn
from docx.oxml.parser import parse_xml
from lxml import etree

from word_tree.node import DocumentNode, NodeKind

logger = logging.getLogger(__name__)

_R_PREFIX = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}"


@dataclass
class RenderContext:
    doc: object
    # True when the output reuses the source package, so relationship ids
    # inside snapshots still resolve.
    keep_relationships: bool = False
    # numId handed to generated list items; advanced once per List node.
    next_list_id: int = 1
    list_id: int | None = None
    styles: dict = field(default_factory=dict)
    snapshots_emitted: int = 0
    regenerated: int = 0

    def __post_init__(self):
        if not self.styles:
            for style in self.doc.styles:
                if style.style_id:
                    self.styles[style.style_id.casefold()] = style
                if style.name:
                    self.styles.setdefault(style.name.casefold(), style)

    def find_style(self, *candidates: str | None):
        for candidate in candidates:
            if candidate and candidate.casefold() in self.styles:
                return self.styles[candidate.casefold()]
        return None


def container_element(container):
    """The lxml element that block content of *container* is appended to."""
    tc = getattr(container, "_tc", None)
    if tc is not None:
        return tc
    return container.element.body


def append_block(parent_el, el) -> None:
    sectPr = parent_el.find(qn("w:sectPr"))
    if sectPr is not None:
        sectPr.addprevious(el)
    else:
        parent_el.append(el)


def _embedded_nodes(node: DocumentNode):
    if node.table is not None:
        for row in node.table.rows:
            for cell in row.cells:
                yield from cell.content
    if node.kind == NodeKind.CONTENT_CONTROL:
        yield from node.children


def snapshot_is_current(node: DocumentNode) -> bool:
    """True while *node* and every node its snapshot also covers are unedited.

    Image children are not checked: images carry no snapshot of their own.
    """
    if not node.has_valid_snapshot:
        return False
    return all(snapshot_is_current(inner) for inner in _embedded_nodes(node))


def _has_relationship_refs(el) -> bool:
    return any(
        name.startswith(_R_PREFIX)
        for e in el.iter()
        if isinstance(e.tag, str)
        for name in e.attrib
    )


def emit_snapshot(container, node: DocumentNode, ctx: RenderContext) -> bool:
    """Append *node*'s snapshot to *container* if it can be used verbatim."""
    if not snapshot_is_current(node):
        return False
    try:
        el = parse_xml(node.snapshot)
    except etree.XMLSyntaxError as exc:
        logger.warning("Unparseable snapshot on %r, regenerating: %s", node, exc)
        return False
    if not ctx.keep_relationships and _has_relationship_refs(el):
        logger.debug("Snapshot of %r references package relationships, regenerating", node)
        return False
    append_block(container_element(container), el)
    ctx.snapshots_emitted += 1
    return True
