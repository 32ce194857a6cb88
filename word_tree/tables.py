"""Table queries and cell edits.

Cell content lives inside the table's :class:`~word_tree.payloads.TableData`,
not in the tree, so every edit here takes the table node and clears its
snapshot together with the snapshots of the cell nodes it touches.
"""
from typing import Iterator

from word_tree.navigation import iter_with_cells
from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import TableCell, TableData
from word_tree.runs import FormattedRun
from word_tree.styles import change_style


def find_all_tables(root: DocumentNode, include_nested: bool = True) -> list[DocumentNode]:
    """Table nodes under *root* in document order, optionally with tables in cells."""
    nodes = iter_with_cells(root) if include_nested else root.iter_nodes()
    return [n for n in nodes if n.kind == NodeKind.TABLE]


def nested_tables(data: TableData) -> Iterator[DocumentNode]:
    """Tables inside the cells of *data*, at any depth."""
    for row in data.rows:
        for cell in row.cells:
            for content in cell.content:
                if content.kind == NodeKind.TABLE:
                    yield content
                    if content.table is not None:
                        yield from nested_tables(content.table)


def table_dimensions(table_node: DocumentNode) -> tuple[int, int]:
    data = table_node.table
    if data is None:
        return 0, 0
    return data.row_count, data.column_count


def get_cell(table_node: DocumentNode, row: int, column: int) -> TableCell | None:
    if table_node.table is None:
        return None
    return table_node.table.cell(row, column)


def get_row_cells(table_node: DocumentNode, row: int) -> list[TableCell]:
    data = table_node.table
    if data is None or not 0 <= row < data.row_count:
        return []
    return list(data.rows[row].cells)


def get_column_cells(table_node: DocumentNode, column: int) -> list[TableCell]:
    """Cells that start in *column*; a cell spanning into it from the left is not included."""
    data = table_node.table
    if data is None:
        return []
    cells = (data.cell(r, column) for r in range(data.row_count))
    return [cell for cell in cells if cell is not None]


def iter_cells(table_node: DocumentNode) -> Iterator[tuple[int, int, TableCell]]:
    if table_node.table is None:
        return
    for row in table_node.table.rows:
        for cell in row.cells:
            yield cell.row_index, cell.column_index, cell


def get_cell_text(table_node: DocumentNode, row: int, column: int) -> str | None:
    cell = get_cell(table_node, row, column)
    return cell.text if cell is not None else None


def has_nested_table(cell: TableCell) -> bool:
    return any(node.kind == NodeKind.TABLE for node in cell.content)


def _text_node_in(cell: TableCell) -> DocumentNode | None:
    return next((node for node in cell.content if node.is_text_bearing), None)


def set_cell_text(table_node: DocumentNode, row: int, column: int, text: str) -> bool:
    """Replace the text of the cell's first paragraph.

    The new text takes the formatting of the paragraph's first text run.  A
    cell without a paragraph gets a new one in front of its other content.
    Returns ``False`` when there is no such cell.
    """
    cell = get_cell(table_node, row, column)
    if cell is None:
        return False
    node = _text_node_in(cell)
    if node is None:
        node = DocumentNode(NodeKind.PARAGRAPH, text)
        cell.content.insert(0, node)
    else:
        template = next((run for run in node.runs if not run.is_marker), None)
        new_run = FormattedRun(text)
        if template is not None:
            new_run.formatting = template.formatting.clone()
        node.text = text
        node.replace_runs([new_run])
    table_node.invalidate_snapshot()
    return True


def append_cell_text(table_node: DocumentNode, row: int, column: int, text: str) -> bool:
    """Add a paragraph holding *text* at the end of the cell."""
    cell = get_cell(table_node, row, column)
    if cell is None:
        return False
    cell.content.append(DocumentNode(NodeKind.PARAGRAPH, text))
    table_node.invalidate_snapshot()
    return True


def clear_cell(table_node: DocumentNode, row: int, column: int) -> bool:
    cell = get_cell(table_node, row, column)
    if cell is None:
        return False
    cell.content.clear()
    table_node.invalidate_snapshot()
    return True


def set_cell_style(table_node: DocumentNode, row: int, column: int, style_id: str) -> int:
    """Give every paragraph, heading and list item in the cell *style_id*.

    Returns the number of nodes restyled.
    """
    cell = get_cell(table_node, row, column)
    if cell is None:
        return 0
    count = 0
    for node in cell.content:
        if node.is_text_bearing:
            change_style(node, style_id)
            count += 1
    if count:
        table_node.invalidate_snapshot()
    return count
