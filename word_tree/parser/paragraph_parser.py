import logging

from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph
from lxml import etree

from word_tree.builder import BlockItem
from word_tree.node import MAX_HEADING_LEVEL, NodeKind
from word_tree.payloads import (
    ContentControlProperties,
    HyperlinkData,
    ImageData,
    ListInfo,
    ParagraphFormatting,
)
from word_tree.runs import FormattedRun, RunFormatting, SimpleField, linear_text
from word_tree.styles import heading_level_for_style

from .sdt_parser import parse_content_control

logger = logging.getLogger(__name__)

_WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
_A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
_R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

_OFF_VALUES = frozenset({"0", "false", "off"})

HYPERLINK_STYLE_ID = "Hyperlink"


def _on(el) -> bool:
    """Read an OOXML on/off property: present and not explicitly switched off."""
    if el is None:
        return False
    return el.get(qn("w:val"), "true").lower() not in _OFF_VALUES


def _val(parent, tag: str, attr: str = "w:val") -> str | None:
    if parent is None:
        return None
    el = parent.find(qn(tag))
    if el is None:
        return None
    return el.get(qn(attr))


def _int_or_none(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_run_formatting(rPr) -> RunFormatting:
    """Build a :class:`RunFormatting` from a ``<w:rPr>`` element (or ``None``)."""
    fmt = RunFormatting()
    if rPr is None:
        return fmt

    fmt.bold = _on(rPr.find(qn("w:b")))
    fmt.italic = _on(rPr.find(qn("w:i")))
    fmt.strike = _on(rPr.find(qn("w:strike")))
    fmt.double_strike = _on(rPr.find(qn("w:dstrike")))
    fmt.small_caps = _on(rPr.find(qn("w:smallCaps")))
    fmt.all_caps = _on(rPr.find(qn("w:caps")))

    u = rPr.find(qn("w:u"))
    if u is not None:
        style = u.get(qn("w:val"), "single")
        fmt.underline = style != "none"
        fmt.underline_style = style

    r_fonts = rPr.find(qn("w:rFonts"))
    if r_fonts is not None:
        fmt.font_family = r_fonts.get(qn("w:hAnsi"))
        fmt.font_ascii = r_fonts.get(qn("w:ascii"))
        fmt.font_east_asia = r_fonts.get(qn("w:eastAsia"))
        fmt.font_complex_script = r_fonts.get(qn("w:cs"))

    fmt.size = _int_or_none(_val(rPr, "w:sz"))
    fmt.size_complex_script = _int_or_none(_val(rPr, "w:szCs"))
    color = _val(rPr, "w:color")
    if color and color.lower() != "auto":
        fmt.color = color.upper()
    fmt.highlight = _val(rPr, "w:highlight")
    fmt.shading = _val(rPr, "w:shd", "w:fill")
    fmt.style_id = _val(rPr, "w:rStyle")

    vert_align = _val(rPr, "w:vertAlign")
    fmt.superscript = vert_align == "superscript"
    fmt.subscript = vert_align == "subscript"
    return fmt


def _run_pieces(
    r_el,
    in_hyperlink: bool = False,
    content_control: ContentControlProperties | None = None,
    simple_field: SimpleField | None = None,
) -> list[FormattedRun]:
    """Split one ``<w:r>`` into text, tab and break runs sharing its formatting."""
    fmt = parse_run_formatting(r_el.find(qn("w:rPr")))
    if in_hyperlink and fmt.style_id is None:
        fmt.style_id = HYPERLINK_STYLE_ID

    pieces: list[FormattedRun] = []
    for child in r_el:
        if child.tag == qn("w:t"):
            pieces.append(FormattedRun(child.text or "", fmt.clone()))
        elif child.tag == qn("w:tab"):
            pieces.append(FormattedRun(formatting=fmt.clone(), is_tab=True))
        elif child.tag == qn("w:br"):
            pieces.append(FormattedRun(
                formatting=fmt.clone(),
                is_break=True,
                break_type=child.get(qn("w:type"), "textWrapping"),
            ))
        elif child.tag == qn("w:cr"):
            pieces.append(FormattedRun(
                formatting=fmt.clone(), is_break=True, break_type="CarriageReturn"
            ))
    for piece in pieces:
        piece.content_control = content_control
        piece.simple_field = simple_field
    return pieces


def _merge_runs(runs: list[FormattedRun]) -> list[FormattedRun]:
    """Merge consecutive text runs that share identical formatting."""
    if not runs:
        return runs
    merged: list[FormattedRun] = [runs[0]]
    for run in runs[1:]:
        prev = merged[-1]
        if (
            not prev.is_marker
            and not run.is_marker
            and prev.formatting == run.formatting
            and prev.content_control is run.content_control
            and prev.simple_field is run.simple_field
        ):
            prev.text += run.text
        else:
            merged.append(run)
    return merged


def _iter_runs(p_el):
    """Yield ``(r_element, in_hyperlink, content_control, simple_field)`` for
    all ``<w:r>`` in a paragraph, including those nested inside wrapper
    elements such as ``<w:hyperlink>``, ``<w:ins>``, ``<w:smartTag>``,
    ``<w:fldSimple>``, ``<w:sdt>``, and ``<w:customXml>``.

    python-docx ``paragraph.runs`` only returns direct ``<w:r>`` children,
    so the underlying lxml element is walked instead.  Deleted text
    (``<w:del>``) is not part of the paragraph's visible text and is skipped.
    Inline content controls and simple fields are reported with their runs
    so the writer can put the wrappers back.
    """
    _tag_r = qn("w:r")
    _wrapper_tags = frozenset({
        qn("w:ins"),
        qn("w:smartTag"),
        qn("w:customXml"),
    })
    _tag_hyperlink = qn("w:hyperlink")
    _tag_fld_simple = qn("w:fldSimple")
    _tag_sdt = qn("w:sdt")
    _tag_sdt_content = qn("w:sdtContent")
    for child in p_el:
        if child.tag == _tag_r:
            yield child, False, None, None
        elif child.tag == _tag_hyperlink:
            for r_el in child.findall(_tag_r):
                yield r_el, True, None, None
        elif child.tag == _tag_fld_simple:
            simple_field = SimpleField(child.get(qn("w:instr"), ""))
            for r_el in child.findall(_tag_r):
                yield r_el, False, None, simple_field
        elif child.tag in _wrapper_tags:
            for r_el in child.findall(_tag_r):
                yield r_el, False, None, None
        elif child.tag == _tag_sdt:
            sdt_content = child.find(_tag_sdt_content)
            if sdt_content is not None:
                props = parse_content_control(child)
                for r_el, in_hyperlink, _, simple_field in _iter_runs(sdt_content):
                    yield r_el, in_hyperlink, props, simple_field


def _parse_inline_image(r_el, paragraph: Paragraph) -> ImageData | None:
    """Return :class:`ImageData` if *r_el* contains a ``<w:drawing>`` with an
    inline or anchored picture, otherwise ``None``."""
    drawing = r_el.find(qn("w:drawing"))
    if drawing is None:
        return None
    container = drawing.find(f"{{{_WP_NS}}}inline")
    if container is None:
        container = drawing.find(f"{{{_WP_NS}}}anchor")
    if container is None:
        return None
    blip = container.find(f".//{{{_A_NS}}}blip")
    if blip is None:
        return None
    r_id = blip.get(f"{{{_R_NS}}}embed")
    if not r_id:
        return None

    image = ImageData(relationship_id=r_id)
    ext = container.find(f"{{{_WP_NS}}}extent")
    if ext is not None:
        image.width_emu = _int_or_none(ext.get("cx")) or 0
        image.height_emu = _int_or_none(ext.get("cy")) or 0
    doc_pr = container.find(f"{{{_WP_NS}}}docPr")
    if doc_pr is not None:
        image.name = doc_pr.get("name", "")
        image.alt_text = doc_pr.get("descr") or None
        image.description = doc_pr.get("title") or None
    try:
        image_part = paragraph.part.related_parts[r_id]
        image.data = image_part.blob
        image.content_type = image_part.content_type
    except (KeyError, AttributeError):
        logger.debug("Image relationship %s could not be resolved", r_id)
    return image


def parse_hyperlinks(paragraph: Paragraph) -> list[HyperlinkData]:
    links = []
    rels = paragraph.part.rels
    for link_el in paragraph._p.iter(qn("w:hyperlink")):
        runs: list[FormattedRun] = []
        for r_el in link_el.findall(qn("w:r")):
            runs.extend(_run_pieces(r_el))
        r_id = link_el.get(qn("r:id"))
        url = None
        if r_id and r_id in rels and rels[r_id].is_external:
            url = rels[r_id].target_ref
        links.append(HyperlinkData.from_runs(
            runs,
            relationship_id=r_id,
            url=url,
            anchor=link_el.get(qn("w:anchor")),
            tooltip=link_el.get(qn("w:tooltip")),
        ))
    return links


_ALIGNMENT_MAP = {0: "left", 1: "center", 2: "right", 3: "justify"}


def parse_paragraph_format(paragraph: Paragraph) -> ParagraphFormatting:
    """Extract paragraph-level formatting (style, alignment, indentation,
    spacing, pagination flags, shading, numbering)."""
    fmt = ParagraphFormatting()
    pPr = paragraph._p.pPr
    if pPr is None:
        return fmt
    pf = paragraph.paragraph_format

    fmt.style_id = _val(pPr, "w:pStyle")
    if pf.alignment is not None:
        fmt.alignment = _ALIGNMENT_MAP.get(int(pf.alignment), "left")

    if pf.left_indent is not None:
        fmt.indent_left = pf.left_indent.twips
    if pf.right_indent is not None:
        fmt.indent_right = pf.right_indent.twips
    if pf.first_line_indent is not None:
        # python-docx reports a hanging indent as a negative first-line indent.
        if pf.first_line_indent.twips < 0:
            fmt.indent_hanging = -pf.first_line_indent.twips
        else:
            fmt.indent_first_line = pf.first_line_indent.twips

    if pf.space_before is not None:
        fmt.space_before = pf.space_before.twips
    if pf.space_after is not None:
        fmt.space_after = pf.space_after.twips
    fmt.line_spacing = _int_or_none(_val(pPr, "w:spacing", "w:line"))
    fmt.line_spacing_rule = _val(pPr, "w:spacing", "w:lineRule")

    fmt.keep_next = _on(pPr.find(qn("w:keepNext")))
    fmt.keep_lines = _on(pPr.find(qn("w:keepLines")))
    fmt.page_break_before = _on(pPr.find(qn("w:pageBreakBefore")))
    fmt.widow_control = _on(pPr.find(qn("w:widowControl")))
    fmt.outline_level = _int_or_none(_val(pPr, "w:outlineLvl"))
    fmt.shading_fill = _val(pPr, "w:shd", "w:fill")
    fmt.shading_color = _val(pPr, "w:shd", "w:color")

    numPr = pPr.find(qn("w:numPr"))
    if numPr is not None:
        fmt.numbering_id = _int_or_none(_val(numPr, "w:numId"))
        fmt.numbering_level = _int_or_none(_val(numPr, "w:ilvl"))
    return fmt


def _outline_to_heading(outline_level: int | None) -> int:
    # outlineLvl 0-8 are heading levels 1-9; 9 means body text.
    if outline_level is None or not 0 <= outline_level < MAX_HEADING_LEVEL:
        return 0
    return outline_level + 1


def heading_level(paragraph: Paragraph, styles: dict | None = None) -> int:
    """Return the heading level (1-9) of *paragraph*, or 0.

    Checked in order: a ``Heading<N>`` style id, the style's outline level,
    a ``Heading<N>`` base style, a direct ``<w:outlineLvl>``.
    """
    pPr = paragraph._p.pPr
    style_id = _val(pPr, "w:pStyle")
    if style_id:
        level = heading_level_for_style(style_id)
        if level:
            return level
        style_def = (styles or {}).get(style_id)
        if style_def:
            level = _outline_to_heading(style_def.get("outline_level"))
            if level:
                return level
            level = heading_level_for_style(style_def.get("based_on"))
            if level:
                return level
    return _outline_to_heading(_int_or_none(_val(pPr, "w:outlineLvl")))


def _has_structural_content(p_el) -> bool:
    """Section breaks, fields and drawings keep an otherwise empty paragraph."""
    pPr = p_el.find(qn("w:pPr"))
    if pPr is not None and pPr.find(qn("w:sectPr")) is not None:
        return True
    for tag in ("w:fldChar", "w:instrText", "w:fldSimple", "w:drawing", "w:pict"):
        if next(p_el.iter(qn(tag)), None) is not None:
            return True
    return False


def _fill_inline_values(runs: list[FormattedRun]) -> None:
    """Set each inline content control's value to the text it wraps."""
    for run in runs:
        props = run.content_control
        if props is not None:
            props.value = (props.value or "") + run.linear_text()


def parse_paragraph_block(paragraph: Paragraph, styles: dict | None = None) -> BlockItem | None:
    """Classify one paragraph as a heading, list item or plain paragraph.

    Returns ``None`` for an empty paragraph that carries nothing worth
    keeping.
    """
    p_el = paragraph._p
    runs: list[FormattedRun] = []
    images: list[BlockItem] = []
    for r_el, in_hyperlink, control, simple_field in _iter_runs(p_el):
        image = _parse_inline_image(r_el, paragraph)
        if image is not None:
            images.append(BlockItem(NodeKind.IMAGE, image.name, image=image))
            continue
        runs.extend(_run_pieces(r_el, in_hyperlink, control, simple_field))
    runs = _merge_runs(runs)
    _fill_inline_values(runs)

    text = linear_text(runs).strip()
    level = heading_level(paragraph, styles)
    if not text and level == 0 and not runs and not images and not _has_structural_content(p_el):
        return None

    para_fmt = parse_paragraph_format(paragraph)
    if level > 0:
        item = BlockItem(NodeKind.HEADING, text, level)
    elif para_fmt.numbering_id is not None:
        item = BlockItem(NodeKind.LIST_ITEM, text)
        item.list_info = ListInfo(
            level=para_fmt.numbering_level or 0,
            numbering_id=para_fmt.numbering_id,
        )
    else:
        item = BlockItem(NodeKind.PARAGRAPH, text)

    item.runs = runs
    item.paragraph_format = para_fmt
    item.snapshot = etree.tostring(p_el, encoding="unicode")
    item.hyperlinks = parse_hyperlinks(paragraph)
    item.children = images
    return item
