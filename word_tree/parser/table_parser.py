from docx.oxml.ns import qn
from docx.table import Table
from lxml import etree

from word_tree.builder import BlockItem
from word_tree.node import NodeKind
from word_tree.payloads import TableCell, TableData, TableRow


def _grid_span(tc) -> int:
    tc_pr = tc.tcPr
    if tc_pr is not None and tc_pr.gridSpan is not None and tc_pr.gridSpan.val is not None:
        return int(tc_pr.gridSpan.val)
    return 1


def _v_merge(tc) -> str | None:
    tc_pr = tc.tcPr
    if tc_pr is None or tc_pr.vMerge is None:
        return None
    return tc_pr.vMerge.val or "continue"


def _tc_at_column(tr, col_idx: int):
    cursor = 0
    for tc in tr.tc_lst:
        if cursor == col_idx:
            return tc
        cursor += _grid_span(tc)
    return None


def _raw(el) -> str | None:
    if el is None:
        return None
    return etree.tostring(el, encoding="unicode")


def _is_header_row(tr) -> bool:
    trPr = tr.find(qn("w:trPr"))
    if trPr is None:
        return False
    header = trPr.find(qn("w:tblHeader"))
    return header is not None and header.get(qn("w:val"), "true") not in ("0", "false", "off")


def _parse_cell_content(tc, table: Table, styles: dict | None) -> list:
    """Parse the paragraphs, nested tables and content controls of a cell."""
    from word_tree.parser.document_parser import parse_block_element

    nodes = []
    for child in tc.iterchildren(qn("w:p"), qn("w:tbl"), qn("w:sdt")):
        item = parse_block_element(child, table, styles or {})
        if item is not None:
            nodes.append(item.to_node())
    return nodes


def parse_table_block(table: Table, styles: dict | None = None) -> BlockItem:
    """Parse a table into a ``Table`` item carrying :class:`TableData`.

    Cell blocks (paragraphs, nested tables, content controls) become nodes
    inside the payload, not tree children, so headings inside a cell never
    take part in heading nesting.
    """
    tbl = table._tbl
    data = TableData(
        style_id=table.style.style_id if table.style else None,
        raw_properties=_raw(tbl.tblPr),
    )

    xml_rows = tbl.tr_lst
    for row_idx, tr in enumerate(xml_rows):
        row = TableRow(
            row_index=row_idx,
            is_header=_is_header_row(tr),
            raw_properties=_raw(tr.find(qn("w:trPr"))),
        )
        col_cursor = 0
        for tc in tr.tc_lst:
            col_span = _grid_span(tc)
            v_merge = _v_merge(tc)
            if v_merge == "continue":
                col_cursor += col_span
                continue

            row_span = 1
            if v_merge == "restart":
                for next_row_idx in range(row_idx + 1, len(xml_rows)):
                    next_tc = _tc_at_column(xml_rows[next_row_idx], col_cursor)
                    if next_tc is None:
                        break
                    if _v_merge(next_tc) != "continue" or _grid_span(next_tc) != col_span:
                        break
                    row_span += 1

            cell = TableCell(
                row_index=row_idx,
                column_index=col_cursor,
                row_span=row_span,
                col_span=col_span,
                raw_properties=_raw(tc.tcPr),
            )
            cell.content = _parse_cell_content(tc, table, styles)
            row.cells.append(cell)
            col_cursor += col_span
        data.column_count = max(data.column_count, col_cursor)
        data.rows.append(row)

    text = " ".join(cell.text for row in data.rows for cell in row.cells if cell.text)
    return BlockItem(
        NodeKind.TABLE,
        text,
        table=data,
        snapshot=etree.tostring(tbl, encoding="unicode"),
    )
