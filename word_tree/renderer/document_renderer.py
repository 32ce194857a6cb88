import logging
from pathlib import Path

from docx import Document
from docx.oxml.ns import qn

from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import ContentControlProperties

from .context import RenderContext, container_element, emit_snapshot
from .paragraph_renderer import new_sdt, render_image, render_paragraph
from .table_renderer import render_table

logger = logging.getLogger(__name__)

_PARAGRAPH_KINDS = frozenset({
    NodeKind.PARAGRAPH,
    NodeKind.HEADING,
    NodeKind.LIST_ITEM,
    NodeKind.HYPERLINK_SPAN,
    NodeKind.TEXT_RUN,
})


def _set_compat_mode_15(doc):
    """Set ``compatibilityMode`` to 15 (Word 2013+).

    The default python-docx template ships with ``compatibilityMode`` 14
    (Word 2010), which causes modern Word to open the file in compatibility
    mode.
    """
    settings = doc.settings.element
    compat = settings.find(qn("w:compat"))
    if compat is None:
        return
    uri = "http://schemas.microsoft.com/office/word"
    for cs in compat.iterchildren(qn("w:compatSetting")):
        if (
            cs.get(qn("w:name")) == "compatibilityMode"
            and cs.get(qn("w:uri")) == uri
        ):
            cs.set(qn("w:val"), "15")
            return


def _clear_body(doc) -> None:
    """Drop every block of a template body, keeping the final section."""
    body = doc.element.body
    for child in list(body):
        if child.tag != qn("w:sectPr"):
            body.remove(child)


def _wrap_in_sdt(container, new_elements: list, props: ContentControlProperties) -> None:
    """Move freshly rendered blocks into a new ``<w:sdt>`` in their place."""
    if not new_elements:
        return
    sdt, sdtContent = new_sdt(props)
    new_elements[0].addprevious(sdt)
    for el in new_elements:
        sdtContent.append(el)


def _render_list(container, node: DocumentNode, ctx: RenderContext) -> None:
    outer = ctx.list_id
    ctx.list_id = ctx.next_list_id
    for child in node.children:
        render_node(container, child, ctx)
    ctx.next_list_id += 1
    ctx.list_id = outer


def _render_block(container, node: DocumentNode, ctx: RenderContext) -> bool:
    """Write one block node; return True when its snapshot was used."""
    if emit_snapshot(container, node, ctx):
        return True

    parent_el = container_element(container)
    before = set(parent_el)
    if node.kind in _PARAGRAPH_KINDS:
        render_paragraph(container, node, ctx)
    elif node.kind == NodeKind.TABLE:
        render_table(container, node, ctx)
    elif node.kind == NodeKind.IMAGE:
        if node.image is not None:
            render_image(container.add_paragraph(), node.image)
    elif node.kind == NodeKind.CONTENT_CONTROL:
        for child in node.children:
            render_node(container, child, ctx)
    else:
        logger.debug("No renderer for %r", node)

    if node.content_control is not None:
        new_elements = [el for el in parent_el if el not in before and el.tag != qn("w:sectPr")]
        _wrap_in_sdt(container, new_elements, node.content_control)
    return False


def render_node(container, node: DocumentNode, ctx: RenderContext) -> None:
    """Write *node* and its subtree into *container*, a document or a table cell."""
    if node.kind == NodeKind.DOCUMENT:
        for child in node.children:
            render_node(container, child, ctx)
        return
    if node.kind == NodeKind.LIST:
        _render_list(container, node, ctx)
        return

    _render_block(container, node, ctx)
    for child in node.children:
        # Inline images and content-control blocks were written with their parent.
        if child.kind == NodeKind.IMAGE and node.kind in _PARAGRAPH_KINDS:
            continue
        if node.kind == NodeKind.CONTENT_CONTROL:
            continue
        render_node(container, child, ctx)


def render_tree(root: DocumentNode, output: str | Path, template: str | Path | None = None):
    """Write *root* to *output* as a ``.docx``.

    With *template* (normally the file the tree was parsed from) the body is
    replaced but styles, numbering, media and relationships are reused, so
    every unedited node is written back byte-for-byte from its snapshot.
    Without one, a blank python-docx document is used and snapshots that
    point at package relationships are regenerated instead.
    """
    if template is not None:
        doc = Document(str(template))
        _clear_body(doc)
    else:
        doc = Document()
        _set_compat_mode_15(doc)

    ctx = RenderContext(doc, keep_relationships=template is not None)
    render_node(doc, root, ctx)
    logger.debug(
        "Rendered %s: %d snapshots emitted, %d blocks regenerated",
        output, ctx.snapshots_emitted, ctx.regenerated,
    )
    doc.save(str(output))
    return doc
