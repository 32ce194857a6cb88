"""视图层：将文档树转换为 JSON 友好的字典。

View layer: converts a document tree into plain JSON-serializable dicts.

``to_dict()`` keeps each node's snapshot under the ``_raw_snapshot`` key (and
raw table/row/cell properties under ``_raw_*`` keys) so the export can be
stored alongside the source file.  ``to_view()`` returns the same structure
with every ``_raw_*`` key removed, for consumers that only need semantic
fields.
"""
import base64
import copy
from dataclasses import asdict

from word_tree.node import DocumentNode

_RAW_PREFIX = "_raw_"


def _run_to_dict(run) -> dict:
    item: dict = {"text": run.text}
    if run.is_tab:
        item["tab"] = True
    if run.is_break:
        item["break"] = run.break_type or True
    fmt = {k: v for k, v in asdict(run.formatting).items() if v not in (None, False)}
    if fmt:
        item["formatting"] = fmt
    if run.content_control is not None:
        item["content_control"] = {
            k: v for k, v in (
                ("id", run.content_control.id),
                ("tag", run.content_control.tag),
                ("alias", run.content_control.alias),
            ) if v is not None
        }
    if run.simple_field is not None:
        item["field"] = run.simple_field.instruction
    return item


def _control_to_dict(props) -> dict:
    data = {k: v for k, v in asdict(props).items() if k != "raw_properties"}
    if props.raw_properties:
        data["_raw_sdtPr"] = props.raw_properties
    return data


def _table_to_dict(table, include_snapshots: bool) -> dict:
    rows = []
    for row in table.rows:
        cells = []
        for cell in row.cells:
            cell_data = {
                "row": cell.row_index,
                "column": cell.column_index,
                "row_span": cell.row_span,
                "col_span": cell.col_span,
                "content": [to_dict(node, include_snapshots) for node in cell.content],
            }
            if cell.raw_properties:
                cell_data["_raw_tcPr"] = cell.raw_properties
            cells.append(cell_data)
        row_data: dict = {"cells": cells}
        if row.is_header:
            row_data["header"] = True
        if row.raw_properties:
            row_data["_raw_trPr"] = row.raw_properties
        rows.append(row_data)
    data: dict = {"style": table.style_id, "columns": table.column_count, "rows": rows}
    if table.raw_properties:
        data["_raw_tblPr"] = table.raw_properties
    return data


def to_dict(node: DocumentNode, include_snapshots: bool = True) -> dict:
    """Return *node* and its subtree as nested dicts.

    With ``include_snapshots=False`` the ``_raw_snapshot`` entries are left
    out, but raw table properties are kept.
    """
    data: dict = {"id": node.id, "type": node.kind.value}
    if node.heading_level:
        data["level"] = node.heading_level
    data["text"] = node.get_text()
    if node.runs:
        data["runs"] = [_run_to_dict(run) for run in node.runs]
    if node.paragraph_format is not None:
        fmt = {
            k: v for k, v in asdict(node.paragraph_format).items() if v not in (None, False)
        }
        if fmt:
            data["paragraph_format"] = fmt
    if node.table is not None:
        data["table"] = _table_to_dict(node.table, include_snapshots)
    if node.image is not None:
        image = asdict(node.image)
        if image.get("data") is not None:
            image["data"] = base64.b64encode(image["data"]).decode("ascii")
        data["image"] = image
    if node.list_info is not None:
        data["list"] = asdict(node.list_info)
    if node.hyperlinks:
        data["hyperlinks"] = [
            {k: v for k, v in asdict(link).items() if k != "runs" and v is not None}
            for link in node.hyperlinks
        ]
    if node.content_control is not None:
        data["content_control"] = _control_to_dict(node.content_control)
    if include_snapshots and node.has_valid_snapshot:
        data["_raw_snapshot"] = node.snapshot
    if node.children:
        data["children"] = [to_dict(child, include_snapshots) for child in node.children]
    return data


def to_view(node: DocumentNode) -> dict:
    """返回去掉所有 _raw_* 字段的精简字典。

    Returns the :func:`to_dict` export of *node* with every key starting
    with ``_raw_`` removed recursively.
    """
    return _strip_raw(to_dict(node))


def strip_raw(data: dict) -> dict:
    """Return a deep copy of an exported dict without ``_raw_*`` keys."""
    return _strip_raw(copy.deepcopy(data))


def _strip_raw(obj, prefix: str = _RAW_PREFIX):
    """递归删除导出结果中的原始 XML 字段。

    Drops snapshot and raw property keys from a node export in place.
    """
    if isinstance(obj, list):
        for item in obj:
            _strip_raw(item, prefix)
    elif isinstance(obj, dict):
        for key in [k for k in obj if k.startswith(prefix)]:
            obj.pop(key)
        for value in obj.values():
            _strip_raw(value, prefix)
    return obj
