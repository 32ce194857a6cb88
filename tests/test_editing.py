import pytest

from word_tree.builder import BlockItem, build_tree
from word_tree.editing import (
    all_fonts_used,
    apply_to_document,
    apply_to_node,
    apply_to_range,
    apply_to_substring,
    combine,
    find_occurrences,
    fonts_used,
    replace_attribute_value,
    replace_font,
    set_bold,
    set_color,
    set_document_font,
    set_font_for_text,
    set_font_where,
    set_italic,
    set_size,
    set_size_pt,
    set_underline,
    split_runs,
)
from word_tree.errors import RunSplitError
from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import TableCell, TableData, TableRow
from word_tree.runs import FormattedRun, RunFormatting, linear_text


def _paragraph(*texts: str, snapshot: str | None = "<w:p/>") -> DocumentNode:
    return DocumentNode(
        NodeKind.PARAGRAPH,
        "".join(texts),
        runs=[FormattedRun(t) for t in texts],
        snapshot=snapshot,
    )


def test_split_single_run_into_three_fragments():
    node = _paragraph("abcdefghij")
    assert apply_to_range(node, 3, 4, set_bold())

    assert [r.text for r in node.runs] == ["abc", "defg", "hij"]
    assert [r.formatting.bold for r in node.runs] == [False, True, False]
    assert node.get_text() == "abcdefghij"


def test_range_across_runs_preserves_text():
    node = _paragraph("Hello ", "big ", "world")
    assert apply_to_range(node, 4, 7, set_italic())

    assert node.get_text() == "Hello big world"
    italic = "".join(r.text for r in node.runs if r.formatting.italic)
    assert italic == "o big w"


@pytest.mark.parametrize("start,length", [(0, 1), (0, 15), (5, 1), (14, 1), (3, 9)])
def test_text_preserved_for_valid_ranges(start, length):
    node = _paragraph("Hello ", "big ", "world")
    before = node.get_text()
    assert apply_to_range(node, start, length, set_bold())
    assert node.get_text() == before


def test_fragments_are_independent_clones():
    original = FormattedRun("abcdef", RunFormatting(font_ascii="Arial"))
    node = DocumentNode(NodeKind.PARAGRAPH, runs=[original])
    apply_to_range(node, 2, 2, set_bold())

    node.runs[0].formatting.italic = True
    assert not node.runs[2].formatting.italic
    assert original.formatting.bold is False
    assert original.formatting.italic is False


def test_apply_same_setter_twice_is_idempotent():
    once = _paragraph("abc", "defg", "hij")
    twice = _paragraph("abc", "defg", "hij")
    setter = combine(set_bold(), set_color("#ff0000"))

    apply_to_range(once, 2, 5, setter)
    apply_to_range(twice, 2, 5, setter)
    apply_to_range(twice, 2, 5, setter)

    assert [(r.text, r.formatting) for r in once.runs] == [
        (r.text, r.formatting) for r in twice.runs
    ]


@pytest.mark.parametrize("start,length", [(-1, 2), (0, 0), (0, -3), (8, 3), (11, 1)])
def test_invalid_range_leaves_node_untouched(start, length):
    node = _paragraph("abcdefghij")
    runs_before = node.runs
    assert apply_to_range(node, start, length, set_bold()) is False
    assert node.runs is runs_before
    assert node.has_valid_snapshot


def test_successful_edit_clears_snapshot():
    node = _paragraph("abcdefghij")
    apply_to_range(node, 0, 1, set_bold())
    assert not node.has_valid_snapshot


def test_range_on_non_text_node_is_a_no_op():
    table = DocumentNode(NodeKind.TABLE, "cell text", snapshot="<w:tbl/>")
    assert apply_to_range(table, 0, 4, set_bold()) is False
    assert apply_to_node(table, set_bold()) is False
    assert apply_to_substring(table, "cell", set_bold()) == 0
    assert table.has_valid_snapshot


def test_fallback_text_is_synthesised_into_a_run():
    node = DocumentNode(NodeKind.HEADING, "Title text", 1, snapshot="<w:p/>")
    assert apply_to_range(node, 0, 5, set_bold())
    assert [r.text for r in node.runs] == ["Title", " text"]
    assert node.get_text() == "Title text"


def test_markers_count_as_one_character():
    node = DocumentNode(
        NodeKind.PARAGRAPH,
        runs=[FormattedRun("ab"), FormattedRun(is_tab=True), FormattedRun("cd")],
    )
    assert node.get_text() == "ab\tcd"
    assert apply_to_range(node, 1, 3, set_bold())

    assert node.get_text() == "ab\tcd"
    bold = [r for r in node.runs if r.formatting.bold]
    assert linear_text(bold) == "b\tc"
    assert any(r.is_tab for r in bold)


def test_split_runs_rejects_misaligned_boundaries():
    runs = [FormattedRun("ab"), FormattedRun(is_tab=True)]
    # No fragment can end at offset 5 of a three-character text.
    with pytest.raises(RunSplitError):
        split_runs(runs, 3, 5, set_bold())


def test_substring_all_occurrences():
    node = _paragraph("cat cat cat")
    assert apply_to_substring(node, "cat", set_bold(), all_occurrences=True) == 3
    assert node.get_text() == "cat cat cat"
    assert [r.text for r in node.runs if r.formatting.bold] == ["cat", "cat", "cat"]


def test_substring_first_occurrence_only():
    node = _paragraph("cat cat cat")
    assert apply_to_substring(node, "cat", set_bold()) == 1
    assert [r.text for r in node.runs] == ["cat", " cat cat"]


def test_substring_missing_or_empty_needle():
    node = _paragraph("cat cat cat")
    assert apply_to_substring(node, "dog", set_bold(), all_occurrences=True) == 0
    assert apply_to_substring(node, "", set_bold(), all_occurrences=True) == 0
    assert node.has_valid_snapshot


def test_find_occurrences_is_non_overlapping():
    assert find_occurrences("aaaa", "aa") == [0, 2]
    assert find_occurrences("aaaa", "aa", all_occurrences=False) == [0]
    assert find_occurrences("abc", "") == []


def test_apply_to_node_formats_every_run():
    node = _paragraph("one ", "two")
    assert apply_to_node(node, set_size(28))
    assert all(r.formatting.size == 28 for r in node.runs)
    assert all(r.formatting.size_complex_script == 28 for r in node.runs)
    assert not node.has_valid_snapshot


def test_apply_to_document_counts_text_nodes():
    root = build_tree([
        BlockItem(NodeKind.HEADING, "Intro", 1),
        BlockItem(NodeKind.PARAGRAPH, "a"),
        BlockItem(NodeKind.TABLE, "t"),
        BlockItem(NodeKind.LIST_ITEM, "item"),
        BlockItem(NodeKind.PARAGRAPH, ""),
    ])
    assert apply_to_document(root, set_underline()) == 3
    intro = root.children[0]
    assert intro.runs[0].formatting.underline is True
    assert intro.runs[0].formatting.underline_style == "single"


def test_set_color_normalises_hex():
    fmt = RunFormatting()
    set_color("#a1b2c3")(fmt)
    assert fmt.color == "A1B2C3"


def test_replace_font_is_case_insensitive():
    root = DocumentNode(NodeKind.DOCUMENT)
    a = root.add_child(DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("x", RunFormatting(font_ascii="Arial")),
        FormattedRun("y", RunFormatting(font_ascii="Calibri")),
    ], snapshot="<a/>"))
    b = root.add_child(DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("z", RunFormatting(font_family="arial")),
    ], snapshot="<b/>"))
    c = root.add_child(DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("w", RunFormatting(font_ascii="Calibri")),
    ], snapshot="<c/>"))

    assert replace_font(root, "ARIAL", "Georgia") == 2
    assert a.runs[0].formatting.font == "Georgia"
    assert a.runs[0].formatting.font_east_asia == "Georgia"
    assert a.runs[1].formatting.font == "Calibri"
    assert b.runs[0].formatting.font == "Georgia"
    assert not a.has_valid_snapshot
    assert c.has_valid_snapshot


def test_replace_attribute_value_by_field_name():
    root = DocumentNode(NodeKind.DOCUMENT)
    node = root.add_child(DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("x", RunFormatting(color="FF0000")),
        FormattedRun("y", RunFormatting(color="00FF00")),
    ]))
    assert replace_attribute_value(root, "color", "ff0000", "0000FF") == 1
    assert [r.formatting.color for r in node.runs] == ["0000FF", "00FF00"]


def test_replace_attribute_value_from_unset():
    root = DocumentNode(NodeKind.DOCUMENT)
    node = root.add_child(DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("plain"),
        FormattedRun("red", RunFormatting(color="FF0000")),
    ], snapshot="<w:p/>"))
    assert replace_attribute_value(root, "color", None, "0000FF") == 1
    assert [r.formatting.color for r in node.runs] == ["0000FF", "FF0000"]
    assert not node.has_valid_snapshot


def test_replace_attribute_value_unknown_attribute():
    with pytest.raises(AttributeError):
        replace_attribute_value(DocumentNode(NodeKind.DOCUMENT), "sparkle", 1, 2)


def test_font_helpers():
    node = _paragraph("Hello world")
    assert set_font_for_text(node, "world", "Courier New") == 1
    assert fonts_used(node) == {"Courier New"}

    count = set_font_where(node, lambda r: r.formatting.font is None, "Arial")
    assert count == 1
    assert fonts_used(node) == {"Arial", "Courier New"}


def test_set_document_font_and_all_fonts_used_with_tables():
    root = build_tree([BlockItem(NodeKind.PARAGRAPH, "body")])
    cell_node = DocumentNode(NodeKind.PARAGRAPH, runs=[
        FormattedRun("cell", RunFormatting(font_ascii="SimSun")),
    ])
    table = DocumentNode(NodeKind.TABLE)
    table.table = TableData(
        rows=[TableRow(0, [TableCell(0, 0, content=[cell_node])])], column_count=1
    )
    root.add_child(table)

    assert set_document_font(root, "Arial") == 1
    assert all_fonts_used(root) == {"Arial", "SimSun"}


def test_set_size_pt_converts_to_half_points():
    fmt = RunFormatting()
    set_size_pt(10.5)(fmt)
    assert fmt.size == 21
    assert fmt.size_complex_script == 21
