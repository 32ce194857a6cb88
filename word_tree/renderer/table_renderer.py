import copy
import logging

from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.oxml.parser import parse_xml
from lxml import etree

from word_tree.node import DocumentNode

from .context import RenderContext

logger = logging.getLogger(__name__)


def _parse_raw(raw: str, what: str):
    try:
        return parse_xml(raw)
    except etree.XMLSyntaxError as exc:
        logger.warning("Unparseable raw %s dropped: %s", what, exc)
        return None


def _apply_raw_tcPr(tc_element, raw_tcPr: str) -> None:
    new_tcPr = _parse_raw(raw_tcPr, "tcPr")
    if new_tcPr is None:
        return
    old_tcPr = tc_element.find(qn("w:tcPr"))
    if old_tcPr is not None:
        tc_element.remove(old_tcPr)
    tc_element.insert(0, new_tcPr)


def _apply_raw_tblPr(tbl_element, raw_tblPr: str) -> None:
    """Replace the table's <w:tblPr> with the round-tripped raw XML.

    tblStyle is removed from the incoming raw_tblPr so the style already set
    through python-docx wins; width, alignment, borders and the rest are
    preserved.
    """
    new_tblPr = _parse_raw(raw_tblPr, "tblPr")
    if new_tblPr is None:
        return
    tbl_style_el = new_tblPr.find(qn("w:tblStyle"))
    if tbl_style_el is not None:
        new_tblPr.remove(tbl_style_el)
    old_tblPr = tbl_element.find(qn("w:tblPr"))
    if old_tblPr is not None:
        existing_style = old_tblPr.find(qn("w:tblStyle"))
        if existing_style is not None:
            new_tblPr.insert(0, copy.deepcopy(existing_style))
        tbl_element.remove(old_tblPr)
    tbl_element.insert(0, new_tblPr)


def _apply_raw_trPr(tr_element, raw_trPr: str) -> None:
    new_trPr = _parse_raw(raw_trPr, "trPr")
    if new_trPr is None:
        return
    old_trPr = tr_element.find(qn("w:trPr"))
    if old_trPr is not None:
        tr_element.remove(old_trPr)
    # trPr follows tblPrEx when present.
    tblPrEx = tr_element.find(qn("w:tblPrEx"))
    tr_element.insert(1 if tblPrEx is not None else 0, new_trPr)


def _mark_header_row(tr_element) -> None:
    trPr = tr_element.get_or_add_trPr()
    if trPr.find(qn("w:tblHeader")) is None:
        trPr.append(OxmlElement("w:tblHeader"))


def _apply_table_style(table, style_id: str | None, ctx: RenderContext):
    style = ctx.find_style(style_id)
    if style is None:
        return
    try:
        table.style = style
    except ValueError:
        logger.debug("Style %r is not a table style", style_id)


def _render_cell_content(cell, content: list[DocumentNode], ctx: RenderContext) -> None:
    from .document_renderer import render_node

    tc = cell._tc
    # Remove default empty paragraph(s)
    for p_el in tc.findall(qn("w:p")):
        tc.remove(p_el)
    for node in content:
        render_node(cell, node, ctx)
    # A cell must end with a paragraph.
    if len(tc) == 0 or tc[-1].tag != qn("w:p"):
        tc.append(OxmlElement("w:p"))


def render_table(container, node: DocumentNode, ctx: RenderContext):
    """Regenerate a table from its :class:`~word_tree.payloads.TableData`."""
    data = node.table
    if data is None or not data.rows:
        logger.debug("Table %r has no rows, skipped", node)
        return None
    col_count = max(data.column_count, 1)
    table = container.add_table(rows=data.row_count, cols=col_count)
    _apply_table_style(table, data.style_id, ctx)
    # Raw properties go on after the style so tblStyle stays consistent.
    if data.raw_properties:
        _apply_raw_tblPr(table._tbl, data.raw_properties)

    last_row = data.row_count - 1
    for r_idx, row in enumerate(data.rows):
        tr_element = table.rows[r_idx]._tr
        if row.raw_properties:
            _apply_raw_trPr(tr_element, row.raw_properties)
        elif row.is_header:
            _mark_header_row(tr_element)
        for cell in row.cells:
            if cell.column_index >= col_count:
                continue
            target = table.cell(r_idx, cell.column_index)
            if cell.row_span > 1 or cell.col_span > 1:
                end = table.cell(
                    min(r_idx + cell.row_span - 1, last_row),
                    min(cell.column_index + cell.col_span - 1, col_count - 1),
                )
                target = target.merge(end)
            if cell.raw_properties:
                _apply_raw_tcPr(target._tc, cell.raw_properties)
            _render_cell_content(target, cell.content, ctx)
    ctx.regenerated += 1
    return table
