import io
import logging
from itertools import groupby

from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK
from docx.image.exceptions import UnrecognizedImageError
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.oxml.parser import parse_xml
from docx.shared import Emu, Pt, RGBColor, Twips
from lxml import etree

from word_tree.node import DocumentNode, NodeKind
from word_tree.payloads import ContentControlProperties, ImageData, ParagraphFormatting
from word_tree.runs import FormattedRun, RunFormatting, SimpleField
from word_tree.utils.units import half_points_to_pt

from .context import RenderContext

logger = logging.getLogger(__name__)

_ALIGN_FROM_STR = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}

_BREAK_FROM_STR = {
    "page": WD_BREAK.PAGE,
    "column": WD_BREAK.COLUMN,
    "textWrapping": WD_BREAK.LINE,
}

# Schema order of the <w:pPr> / <w:rPr> children written by hand below.
_PPR_ORDER = (
    "w:pStyle", "w:keepNext", "w:keepLines", "w:pageBreakBefore", "w:framePr",
    "w:widowControl", "w:numPr", "w:suppressLineNumbers", "w:pBdr", "w:shd",
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap",
    "w:overflowPunct", "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN",
    "w:bidi", "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)
_RPR_ORDER = (
    "w:rStyle", "w:rFonts", "w:b", "w:bCs", "w:i", "w:iCs", "w:caps",
    "w:smallCaps", "w:strike", "w:dstrike", "w:outline", "w:shadow",
    "w:emboss", "w:imprint", "w:noProof", "w:snapToGrid", "w:vanish",
    "w:webHidden", "w:color", "w:spacing", "w:w", "w:kern", "w:position",
    "w:sz", "w:szCs", "w:highlight", "w:u", "w:effect", "w:bdr", "w:shd",
    "w:fitText", "w:vertAlign", "w:rtl", "w:cs", "w:em", "w:lang",
    "w:eastAsianLayout", "w:specVanish", "w:oMath", "w:rPrChange",
)


def _set_child(parent, tag: str, order: tuple, **attrs):
    """Replace *parent*'s ``tag`` child with a new one carrying ``w:`` attrs."""
    old = parent.find(qn(tag))
    if old is not None:
        parent.remove(old)
    el = OxmlElement(tag)
    for key, value in attrs.items():
        el.set(qn(f"w:{key}"), str(value))
    successors = order[order.index(tag) + 1:]
    parent.insert_element_before(el, *successors)
    return el


def _apply_paragraph_style(paragraph, node: DocumentNode, ctx: RenderContext) -> None:
    style_id = node.paragraph_format.style_id if node.paragraph_format else None
    candidates = [style_id]
    if node.kind == NodeKind.HEADING and node.heading_level:
        candidates += [f"Heading{node.heading_level}", f"Heading {node.heading_level}"]
    style = ctx.find_style(*candidates)
    if style is None:
        if style_id:
            logger.debug("Paragraph style %r not in output document", style_id)
        return
    try:
        paragraph.style = style
    except ValueError:
        logger.debug("Style %r is not a paragraph style", style.style_id)


def _apply_paragraph_format(paragraph, fmt: ParagraphFormatting | None) -> None:
    if fmt is None:
        return
    pf = paragraph.paragraph_format
    if fmt.alignment in _ALIGN_FROM_STR:
        pf.alignment = _ALIGN_FROM_STR[fmt.alignment]
    if fmt.indent_left is not None:
        pf.left_indent = Twips(fmt.indent_left)
    if fmt.indent_right is not None:
        pf.right_indent = Twips(fmt.indent_right)
    if fmt.indent_hanging is not None:
        pf.first_line_indent = Twips(-fmt.indent_hanging)
    elif fmt.indent_first_line is not None:
        pf.first_line_indent = Twips(fmt.indent_first_line)
    if fmt.space_before is not None:
        pf.space_before = Twips(fmt.space_before)
    if fmt.space_after is not None:
        pf.space_after = Twips(fmt.space_after)
    if fmt.keep_next:
        pf.keep_with_next = True
    if fmt.keep_lines:
        pf.keep_together = True
    if fmt.page_break_before:
        pf.page_break_before = True
    if fmt.widow_control:
        pf.widow_control = True

    if fmt.line_spacing is None and fmt.outline_level is None and not (
        fmt.shading_fill or fmt.shading_color
    ):
        return
    pPr = paragraph._p.get_or_add_pPr()
    if fmt.line_spacing is not None:
        spacing = pPr.get_or_add_spacing()
        spacing.set(qn("w:line"), str(fmt.line_spacing))
        spacing.set(qn("w:lineRule"), fmt.line_spacing_rule or "auto")
    if fmt.shading_fill or fmt.shading_color:
        attrs = {"val": "clear", "fill": fmt.shading_fill or "auto"}
        if fmt.shading_color:
            attrs["color"] = fmt.shading_color
        _set_child(pPr, "w:shd", _PPR_ORDER, **attrs)
    if fmt.outline_level is not None:
        _set_child(pPr, "w:outlineLvl", _PPR_ORDER, val=fmt.outline_level)


def _apply_numbering(paragraph, node: DocumentNode, ctx: RenderContext) -> None:
    if node.list_info is not None and node.list_info.numbering_id:
        num_id, level = node.list_info.numbering_id, node.list_info.level
    elif ctx.list_id is not None:
        num_id = ctx.list_id
        level = node.list_info.level if node.list_info else 0
    else:
        return
    numPr = paragraph._p.get_or_add_pPr().get_or_add_numPr()
    numPr.get_or_add_ilvl().val = level
    numPr.get_or_add_numId().val = num_id


def _apply_run_formatting(run, fmt: RunFormatting) -> None:
    """Write every set slot of *fmt* onto a python-docx run."""
    if fmt.style_id:
        run._r.get_or_add_rPr().style = fmt.style_id
    if fmt.bold:
        run.bold = True
    if fmt.italic:
        run.italic = True
    if fmt.underline:
        if fmt.underline_style in (None, "single"):
            run.underline = True
        else:
            _set_child(run._r.get_or_add_rPr(), "w:u", _RPR_ORDER, val=fmt.underline_style)
    font = run.font
    if fmt.strike:
        font.strike = True
    if fmt.double_strike:
        font.double_strike = True
    if fmt.superscript:
        font.superscript = True
    if fmt.subscript:
        font.subscript = True
    if fmt.small_caps:
        font.small_caps = True
    if fmt.all_caps:
        font.all_caps = True

    slots = {
        "w:ascii": fmt.font_ascii,
        "w:hAnsi": fmt.font_family,
        "w:eastAsia": fmt.font_east_asia,
        "w:cs": fmt.font_complex_script,
    }
    if any(slots.values()):
        rFonts = run._r.get_or_add_rPr().get_or_add_rFonts()
        for attr, value in slots.items():
            if value:
                rFonts.set(qn(attr), value)

    if fmt.size is not None:
        font.size = Pt(half_points_to_pt(fmt.size))
    if fmt.size_complex_script is not None:
        _set_child(run._r.get_or_add_rPr(), "w:szCs", _RPR_ORDER, val=fmt.size_complex_script)
    if fmt.color:
        try:
            font.color.rgb = RGBColor.from_string(fmt.color)
        except ValueError:
            _set_child(run._r.get_or_add_rPr(), "w:color", _RPR_ORDER, val=fmt.color)
    if fmt.highlight:
        _set_child(run._r.get_or_add_rPr(), "w:highlight", _RPR_ORDER, val=fmt.highlight)
    if fmt.shading:
        _set_child(run._r.get_or_add_rPr(), "w:shd", _RPR_ORDER, val="clear", fill=fmt.shading)


def render_run(paragraph, piece: FormattedRun):
    if piece.is_tab:
        run = paragraph.add_run()
        run.add_tab()
    elif piece.is_break:
        run = paragraph.add_run()
        if piece.break_type == "CarriageReturn":
            run._r.append(OxmlElement("w:cr"))
        else:
            run.add_break(_BREAK_FROM_STR.get(piece.break_type, WD_BREAK.LINE))
    else:
        run = paragraph.add_run(piece.text)
    _apply_run_formatting(run, piece.formatting)
    return run


def _sdt_properties(props: ContentControlProperties):
    if props.raw_properties:
        try:
            sdtPr = parse_xml(props.raw_properties)
        except etree.XMLSyntaxError as exc:
            logger.warning("Unparseable content control properties rebuilt: %s", exc)
        else:
            if not props.showing_placeholder:
                for flag in sdtPr.findall(qn("w:showingPlcHdr")):
                    sdtPr.remove(flag)
            return sdtPr
    sdtPr = OxmlElement("w:sdtPr")
    if props.alias:
        sdtPr.append(OxmlElement("w:alias", {qn("w:val"): props.alias}))
    if props.tag:
        sdtPr.append(OxmlElement("w:tag", {qn("w:val"): props.tag}))
    if props.id is not None:
        sdtPr.append(OxmlElement("w:id", {qn("w:val"): str(props.id)}))
    return sdtPr


def new_sdt(props: ContentControlProperties):
    """Build an empty ``<w:sdt>`` for *props*; return ``(sdt, sdtContent)``."""
    sdt = OxmlElement("w:sdt")
    sdt.append(_sdt_properties(props))
    content = OxmlElement("w:sdtContent")
    sdt.append(content)
    return sdt, content


def _new_fld_simple(simple_field: SimpleField):
    fld = OxmlElement("w:fldSimple", {qn("w:instr"): simple_field.instruction})
    return fld, fld


def _wrap_inline(placed: list, attr: str, make_wrapper) -> list:
    """Move consecutive ``(element, run)`` pairs sharing a wrapper into it.

    Runs are grouped by the identity of their *attr* object.  Returns the
    list with every wrapped group replaced by its wrapper element.
    """
    result = []
    for _, group in groupby(placed, key=lambda item: id(getattr(item[1], attr))):
        group = list(group)
        wrapped_by = getattr(group[0][1], attr)
        if wrapped_by is None:
            result.extend(group)
            continue
        wrapper, inner = make_wrapper(wrapped_by)
        group[0][0].addprevious(wrapper)
        for el, _ in group:
            inner.append(el)
        result.append((wrapper, group[0][1]))
    return result


def render_image(paragraph, image: ImageData) -> None:
    if not image.data:
        logger.debug("Image %r has no data, skipped", image.name)
        return
    run = paragraph.add_run()
    try:
        run.add_picture(
            io.BytesIO(image.data),
            width=Emu(image.width_emu) if image.width_emu else None,
            height=Emu(image.height_emu) if image.height_emu else None,
        )
    except UnrecognizedImageError:
        logger.warning("Image %r has an unrecognised format, skipped", image.name)
        run._r.getparent().remove(run._r)


def render_paragraph(container, node: DocumentNode, ctx: RenderContext):
    """Regenerate a paragraph-like node from its runs and formatting.

    Inline content controls and simple fields are rebuilt around the runs
    they covered.  Image children are written inline after the text.
    """
    paragraph = container.add_paragraph()
    _apply_paragraph_style(paragraph, node, ctx)
    _apply_paragraph_format(paragraph, node.paragraph_format)
    if node.kind == NodeKind.LIST_ITEM:
        _apply_numbering(paragraph, node, ctx)

    runs = node.runs
    if not runs and node.text:
        runs = [FormattedRun(node.text)]
    placed = [(render_run(paragraph, piece)._r, piece) for piece in runs]
    placed = _wrap_inline(placed, "simple_field", _new_fld_simple)
    _wrap_inline(placed, "content_control", new_sdt)

    if node.image is not None:
        render_image(paragraph, node.image)
    for child in node.children:
        if child.kind == NodeKind.IMAGE and child.image is not None:
            render_image(paragraph, child.image)
    ctx.regenerated += 1
    return paragraph
