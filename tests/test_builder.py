from word_tree.builder import BlockItem, TreeBuilder, build_tree, clamp_heading_level
from word_tree.node import NodeKind
from word_tree.payloads import ImageData


def H(level: int, text: str) -> BlockItem:
    return BlockItem(NodeKind.HEADING, text, level)


def P(text: str) -> BlockItem:
    return BlockItem(NodeKind.PARAGRAPH, text)


def _texts(node):
    return [child.text for child in node.children]


def test_heading_nesting():
    root = build_tree(
        [H(1, "Intro"), P("a"), H(2, "Sub"), P("b"), H(1, "Methods"), P("c")],
        title="doc",
    )

    assert root.kind == NodeKind.DOCUMENT
    assert root.text == "doc"
    assert _texts(root) == ["Intro", "Methods"]
    intro, methods = root.children
    assert _texts(intro) == ["a", "Sub"]
    assert _texts(intro.children[1]) == ["b"]
    assert _texts(methods) == ["c"]


def test_level_gap_attaches_to_nearest_open_ancestor():
    root = build_tree([H(1, "A"), H(3, "C"), P("under C")])
    a = root.children[0]
    assert _texts(a) == ["C"]
    assert _texts(a.children[0]) == ["under C"]


def test_content_before_first_heading_goes_to_root():
    root = build_tree([P("preface"), H(2, "First")])
    assert _texts(root) == ["preface", "First"]


def test_levels_are_clamped():
    assert clamp_heading_level(-3) == 0
    assert clamp_heading_level(0) == 0
    assert clamp_heading_level(4) == 4
    assert clamp_heading_level(12) == 9

    root = build_tree([H(12, "deep"), P("x")])
    deep = root.children[0]
    assert deep.heading_level == 9
    assert _texts(deep) == ["x"]


def test_heading_with_level_zero_never_becomes_an_ancestor():
    root = build_tree([H(1, "A"), H(0, "not really"), P("p")])
    a = root.children[0]
    assert _texts(a) == ["not really", "p"]
    assert a.children[0].children == []


def test_lower_heading_after_deeper_one_becomes_sibling():
    root = build_tree([H(1, "A"), H(3, "C"), H(2, "B")])
    a = root.children[0]
    assert _texts(a) == ["C", "B"]


def test_every_node_has_a_path_to_root():
    items = [P("0"), H(2, "x"), P("1"), H(1, "y"), H(4, "z"), P("2"), H(2, "w")]
    root = build_tree(items)
    nodes = list(root.iter_nodes())
    assert len(nodes) == len(items) + 1
    for node in nodes[1:]:
        top = node
        while top.parent is not None:
            top = top.parent
        assert top is root


def test_nested_items_become_children():
    image = BlockItem(NodeKind.IMAGE, "pic", image=ImageData(name="pic"))
    para = BlockItem(NodeKind.PARAGRAPH, "with picture", children=[image])
    root = build_tree([H(1, "A"), para])

    node = root.children[0].children[0]
    assert node.children[0].kind == NodeKind.IMAGE
    assert node.children[0].image.name == "pic"


def test_to_node_copies_snapshot_and_payloads():
    item = BlockItem(NodeKind.PARAGRAPH, "x", snapshot="<w:p/>", metadata={"k": 1})
    node = item.to_node()
    assert node.snapshot == "<w:p/>"
    assert node.metadata == {"k": 1}
    assert node.metadata is not item.metadata


def test_builder_add_returns_node():
    builder = TreeBuilder("t")
    node = builder.add(H(1, "A"))
    assert node.parent is builder.root
