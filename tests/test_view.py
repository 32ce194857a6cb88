import json

from word_tree.builder import BlockItem, build_tree
from word_tree.node import NodeKind
from word_tree.payloads import ContentControlProperties, ImageData, TableCell, TableData, TableRow
from word_tree.runs import FormattedRun, RunFormatting, SimpleField
from word_tree.view import strip_raw, to_dict, to_view


def _tree():
    table = TableData(
        rows=[TableRow(0, [TableCell(0, 0, raw_properties="<w:tcPr/>")])],
        column_count=1,
        raw_properties="<w:tblPr/>",
    )
    return build_tree([
        BlockItem(NodeKind.HEADING, "Intro", 1, snapshot="<w:p>h</w:p>"),
        BlockItem(
            NodeKind.PARAGRAPH,
            "Hi",
            runs=[FormattedRun("Hi", RunFormatting(bold=True))],
            snapshot="<w:p>p</w:p>",
        ),
        BlockItem(NodeKind.TABLE, "", table=table),
        BlockItem(NodeKind.IMAGE, "pic", image=ImageData(name="pic", data=b"\x89PNG")),
    ], title="doc")


def test_to_dict_is_json_serialisable():
    data = to_dict(_tree())
    json.dumps(data)

    intro = data["children"][0]
    assert intro["type"] == "Heading"
    assert intro["level"] == 1
    assert intro["_raw_snapshot"] == "<w:p>h</w:p>"
    para = intro["children"][0]
    assert para["runs"] == [{"text": "Hi", "formatting": {"bold": True}}]
    table = intro["children"][1]["table"]
    assert table["_raw_tblPr"] == "<w:tblPr/>"
    assert intro["children"][2]["image"]["data"] == "iVBORw=="


def test_to_view_drops_raw_keys():
    view = to_view(_tree())
    text = json.dumps(view)
    assert "_raw_" not in text
    assert view["children"][0]["children"][0]["text"] == "Hi"


def test_include_snapshots_false_keeps_table_properties():
    data = to_dict(_tree(), include_snapshots=False)
    intro = data["children"][0]
    assert "_raw_snapshot" not in intro
    assert intro["children"][1]["table"]["_raw_tblPr"] == "<w:tblPr/>"


def test_strip_raw_copies():
    data = to_dict(_tree())
    stripped = strip_raw(data)
    assert "_raw_snapshot" in data["children"][0]
    assert "_raw_snapshot" not in stripped["children"][0]


def test_edited_node_has_no_snapshot_in_export():
    root = _tree()
    root.children[0].invalidate_snapshot()
    assert "_raw_snapshot" not in to_dict(root)["children"][0]


def test_inline_wrappers_are_exported_on_runs():
    props = ContentControlProperties(
        id=3, tag="name", raw_properties='<w:sdtPr><w:tag w:val="name"/></w:sdtPr>'
    )
    node = build_tree([BlockItem(
        NodeKind.PARAGRAPH,
        "Dear Bob",
        runs=[
            FormattedRun("Dear "),
            FormattedRun("Bob", content_control=props),
            FormattedRun("1", simple_field=SimpleField(" PAGE ")),
        ],
    )]).children[0]

    runs = to_dict(node)["runs"]
    assert "content_control" not in runs[0]
    assert runs[1]["content_control"] == {"id": 3, "tag": "name"}
    assert runs[2]["field"] == " PAGE "


def test_block_control_raw_properties_are_stripped_in_view():
    node = build_tree([BlockItem(
        NodeKind.PARAGRAPH,
        "ACME",
        content_control=ContentControlProperties(tag="customer", raw_properties="<w:sdtPr/>"),
    )]).children[0]

    assert to_dict(node)["content_control"]["_raw_sdtPr"] == "<w:sdtPr/>"
    control = to_view(node)["content_control"]
    assert control["tag"] == "customer"
    assert "_raw_sdtPr" not in control
    assert "raw_properties" not in control
