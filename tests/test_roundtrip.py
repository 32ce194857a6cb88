import base64
import io
import logging
from pathlib import Path

from docx import Document
from docx.enum.text import WD_COLOR_INDEX, WD_UNDERLINE
from docx.oxml.ns import nsdecls, qn
from docx.oxml.parser import parse_xml
from docx.shared import Pt, RGBColor
from lxml import etree

from word_tree import parse_docx, render_tree
from word_tree.builder import BlockItem, build_tree
from word_tree.editing import apply_to_node, apply_to_substring, set_bold
from word_tree.navigation import find_first
from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import ListInfo
from word_tree.runs import FormattedRun, RunFormatting
from word_tree.styles import change_style

# Minimal 1×1 transparent PNG used in image round-trip tests
_PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8"
    "z8BQDwADhQGAWjR9awAAAABJRU5ErkJggg=="
)

_SDT_XML = (
    f'<w:sdt {nsdecls("w")}><w:sdtPr><w:alias w:val="Customer"/>'
    '<w:tag w:val="customer"/><w:id w:val="7"/></w:sdtPr>'
    '<w:sdtContent><w:p><w:r><w:t>ACME</w:t></w:r></w:p></w:sdtContent></w:sdt>'
)


def _body_blocks(path: Path) -> list:
    body = Document(str(path)).element.body
    return [child for child in body if child.tag != qn("w:sectPr")]


def _canonical(el) -> bytes:
    return etree.tostring(el, method="c14n", exclusive=True)


def _build_source(path: Path) -> None:
    doc = Document()
    doc.add_heading("Intro", 1)
    p = doc.add_paragraph("Hello ")
    p.add_run("World").italic = True
    table = doc.add_table(rows=2, cols=2)
    merged = table.cell(0, 0).merge(table.cell(0, 1))
    merged.text = "AB"
    table.cell(1, 0).text = "C"
    table.cell(1, 1).text = "D"
    doc.add_picture(io.BytesIO(_PNG_1X1))
    doc.element.body.sectPr.addprevious(parse_xml(_SDT_XML))
    doc.add_heading("Methods", 1)
    doc.add_paragraph("cat cat cat")
    doc.save(path)


def test_roundtrip_text_and_table(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"

    doc = Document()
    p = doc.add_paragraph()
    run = p.add_run("Hello")
    run.bold = True
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "A"
    table.cell(0, 1).text = "B"
    doc.save(src)

    root = parse_docx(src)
    assert [c.kind for c in root.children] == [NodeKind.PARAGRAPH, NodeKind.TABLE]

    render_tree(root, out)

    rebuilt = Document(out)
    assert rebuilt.paragraphs[0].text == "Hello"
    assert rebuilt.paragraphs[0].runs[0].bold is True
    assert rebuilt.tables[0].cell(0, 0).text == "A"
    assert rebuilt.tables[0].cell(0, 1).text == "B"


def test_unedited_tree_is_written_back_verbatim(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    _build_source(src)

    render_tree(parse_docx(src), out, template=src)

    before = [_canonical(el) for el in _body_blocks(src)]
    after = [_canonical(el) for el in _body_blocks(out)]
    assert after == before
    assert len(Document(out).inline_shapes) == 1


def test_edited_paragraph_is_regenerated(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    _build_source(src)

    root = parse_docx(src)
    cats = find_first(root, lambda n: n.get_text() == "cat cat cat")
    assert apply_to_substring(cats, "cat", set_bold(), all_occurrences=True) == 3

    render_tree(root, out, template=src)

    before = _body_blocks(src)
    after = _body_blocks(out)
    assert len(after) == len(before)
    # Everything except the last paragraph is untouched.
    assert [_canonical(el) for el in after[:-1]] == [_canonical(el) for el in before[:-1]]

    rebuilt = Document(out).paragraphs[-1]
    assert rebuilt.text == "cat cat cat"
    assert [(r.text, bool(r.bold)) for r in rebuilt.runs] == [
        ("cat", True), (" ", False), ("cat", True), (" ", False), ("cat", True),
    ]


def test_style_change_writes_heading_style(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    doc = Document()
    doc.add_paragraph("Results")
    doc.save(src)

    root = parse_docx(src)
    change_style(root.children[0], "Heading2")
    render_tree(root, out, template=src)

    rebuilt = Document(out).paragraphs[0]
    assert rebuilt.text == "Results"
    assert rebuilt.style.name == "Heading 2"


def test_heading_without_style_falls_back_to_heading_style(tmp_path: Path):
    out = tmp_path / "out.docx"
    root = build_tree([
        BlockItem(NodeKind.HEADING, "Title", 1),
        BlockItem(NodeKind.PARAGRAPH, "Body"),
        BlockItem(NodeKind.HEADING, "Deep", 3),
    ])

    render_tree(root, out)

    paragraphs = Document(out).paragraphs
    assert [p.text for p in paragraphs] == ["Title", "Body", "Deep"]
    assert paragraphs[0].style.name == "Heading 1"
    assert paragraphs[1].style.name == "Normal"
    assert paragraphs[2].style.name == "Heading 3"


def test_snapshot_with_relationships_is_regenerated_without_template(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    doc = Document()
    doc.add_picture(io.BytesIO(_PNG_1X1))
    doc.save(src)

    render_tree(parse_docx(src), out)

    rebuilt = Document(out)
    assert len(rebuilt.inline_shapes) == 1
    blob = rebuilt.inline_shapes[0]._inline.graphic.graphicData.pic.blipFill.blip.embed
    assert rebuilt.part.related_parts[blob].blob == _PNG_1X1


def test_run_formatting_is_regenerated(tmp_path: Path):
    out = tmp_path / "out.docx"
    fmt = RunFormatting(
        italic=True,
        underline=True,
        underline_style="double",
        font_ascii="Arial",
        font_family="Arial",
        font_east_asia="SimSun",
        size=28,
        color="FF0000",
        highlight="yellow",
    )
    node = DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("a", fmt),
        FormattedRun(is_tab=True),
        FormattedRun("b"),
        FormattedRun(is_break=True, break_type="textWrapping"),
        FormattedRun("c"),
    ])
    root = DocumentNode(NodeKind.DOCUMENT)
    root.add_child(node)

    render_tree(root, out)

    paragraph = Document(out).paragraphs[0]
    assert paragraph.text == "a\tb\nc"
    run = paragraph.runs[0]
    assert run.italic is True
    assert run.underline == WD_UNDERLINE.DOUBLE
    assert run.font.name == "Arial"
    assert run._r.rPr.rFonts.get(qn("w:eastAsia")) == "SimSun"
    assert run.font.size == Pt(14)
    assert run.font.color.rgb == RGBColor(0xFF, 0x00, 0x00)
    assert run.font.highlight_color == WD_COLOR_INDEX.YELLOW


def test_list_numbering_counter_advances_per_list(tmp_path: Path):
    out = tmp_path / "out.docx"
    root = DocumentNode(NodeKind.DOCUMENT)
    for items in (["one", "two"], ["three"]):
        lst = root.add_child(DocumentNode(NodeKind.LIST))
        for text in items:
            lst.add_child(DocumentNode(NodeKind.LIST_ITEM, text))
    explicit = root.add_child(DocumentNode(NodeKind.LIST_ITEM, "four"))
    explicit.list_info = ListInfo(level=1, numbering_id=9)

    render_tree(root, out)

    num_ids = [
        (p.text, p._p.pPr.numPr.numId.val, p._p.pPr.numPr.ilvl.val)
        for p in Document(out).paragraphs
    ]
    assert num_ids == [("one", 1, 0), ("two", 1, 0), ("three", 2, 0), ("four", 9, 1)]


def test_edited_table_cell_regenerates_table(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    _build_source(src)

    root = parse_docx(src)
    table_node = find_first(root, lambda n: n.kind == NodeKind.TABLE)
    cell_c = table_node.table.cell(1, 0).content[0]
    assert apply_to_node(cell_c, set_bold())

    render_tree(root, out, template=src)

    table = Document(out).tables[0]
    assert table.cell(0, 0).text == "AB"
    assert table.cell(0, 0)._tc.grid_span == 2
    assert table.cell(1, 0).paragraphs[0].runs[0].bold is True
    assert table.cell(1, 1).text == "D"


def test_edited_content_control_keeps_its_wrapper(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    _build_source(src)

    root = parse_docx(src)
    acme = find_first(root, lambda n: n.is_content_control)
    assert apply_to_node(acme, set_bold())

    render_tree(root, out, template=src)

    sdts = Document(out).element.body.findall(qn("w:sdt"))
    assert len(sdts) == 1
    tag = sdts[0].find(qn("w:sdtPr")).find(qn("w:tag"))
    assert tag.get(qn("w:val")) == "customer"
    run = sdts[0].find(qn("w:sdtContent")).find(qn("w:p")).find(qn("w:r"))
    assert run.find(qn("w:rPr")).find(qn("w:b")) is not None
    assert run.find(qn("w:t")).text == "ACME"


def test_unparseable_snapshot_falls_back_to_runs(tmp_path: Path, caplog):
    out = tmp_path / "out.docx"
    root = DocumentNode(NodeKind.DOCUMENT)
    root.add_child(DocumentNode(NodeKind.PARAGRAPH, "fallback", snapshot="<w:p"))

    with caplog.at_level(logging.WARNING, logger="word_tree"):
        render_tree(root, out)

    assert Document(out).paragraphs[0].text == "fallback"
    assert "Unparseable snapshot" in caplog.text


def test_render_without_template_sets_compat_mode(tmp_path: Path):
    out = tmp_path / "out.docx"
    render_tree(DocumentNode(NodeKind.DOCUMENT), out)

    compat = Document(out).settings.element.find(qn("w:compat"))
    modes = [
        cs.get(qn("w:val"))
        for cs in compat.iterchildren(qn("w:compatSetting"))
        if cs.get(qn("w:name")) == "compatibilityMode"
    ]
    assert modes == ["15"]


_INLINE_XML = (
    f'<w:p {nsdecls("w")}><w:r><w:t xml:space="preserve">Dear </w:t></w:r>'
    '<w:sdt><w:sdtPr><w:tag w:val="name"/><w:id w:val="3"/><w:showingPlcHdr/></w:sdtPr>'
    '<w:sdtContent><w:r><w:t>Bob</w:t></w:r></w:sdtContent></w:sdt>'
    '<w:r><w:t xml:space="preserve">, page </w:t></w:r>'
    '<w:fldSimple w:instr=" PAGE "><w:r><w:t>1</w:t></w:r></w:fldSimple></w:p>'
)


def _build_inline_source(path: Path) -> None:
    doc = Document()
    doc.element.body.sectPr.addprevious(parse_xml(_INLINE_XML))
    doc.save(path)


def _only_paragraph(path: Path):
    return Document(str(path)).element.body.find(qn("w:p"))


def test_nested_table_survives_cell_edit(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    doc = Document()
    cell = doc.add_table(rows=1, cols=1).cell(0, 0)
    cell.text = "outer"
    cell.add_table(rows=1, cols=1).cell(0, 0).text = "inner"
    doc.save(src)

    root = parse_docx(src)
    outer = root.children[0].table.cell(0, 0).content[0]
    assert apply_to_node(outer, set_bold())

    render_tree(root, out, template=src)

    rebuilt = Document(out).tables[0].cell(0, 0)
    assert rebuilt.paragraphs[0].runs[0].bold is True
    assert len(rebuilt.tables) == 1
    assert rebuilt.tables[0].cell(0, 0).text == "inner"
    assert rebuilt._tc[-1].tag == qn("w:p")


def test_edit_outside_inline_wrappers_keeps_them(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    _build_inline_source(src)

    root = parse_docx(src)
    para = root.children[0]
    assert apply_to_substring(para, "Dear", set_bold()) == 1

    render_tree(root, out, template=src)

    p = _only_paragraph(out)
    sdts = p.findall(qn("w:sdt"))
    assert len(sdts) == 1
    assert sdts[0].find(qn("w:sdtPr")).find(qn("w:tag")).get(qn("w:val")) == "name"
    assert "".join(sdts[0].itertext()) == "Bob"
    fields = p.findall(qn("w:fldSimple"))
    assert len(fields) == 1
    assert fields[0].get(qn("w:instr")) == " PAGE "
    assert "".join(fields[0].itertext()) == "1"
    first_run = p.find(qn("w:r"))
    assert first_run.find(qn("w:rPr")).find(qn("w:b")) is not None
    assert "".join(p.itertext()) == "Dear Bob, page 1"


def test_edit_inside_inline_control_keeps_one_wrapper(tmp_path: Path):
    src = tmp_path / "src.docx"
    out = tmp_path / "out.docx"
    _build_inline_source(src)

    root = parse_docx(src)
    para = root.children[0]
    assert apply_to_substring(para, "Bo", set_bold()) == 1

    render_tree(root, out, template=src)

    sdts = _only_paragraph(out).findall(qn("w:sdt"))
    assert len(sdts) == 1
    runs = sdts[0].find(qn("w:sdtContent")).findall(qn("w:r"))
    assert [r.find(qn("w:t")).text for r in runs] == ["Bo", "b"]
    assert runs[0].find(qn("w:rPr")).find(qn("w:b")) is not None
    # Formatting edits leave the placeholder state alone.
    assert sdts[0].find(qn("w:sdtPr")).find(qn("w:showingPlcHdr")) is not None
