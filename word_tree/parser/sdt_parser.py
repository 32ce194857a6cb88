from docx.oxml.ns import qn
from lxml import etree

from word_tree.payloads import ContentControlProperties

_W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"

# <w:sdtPr> child tag -> content control type
_SDT_TYPE_TAGS = (
    (qn("w:text"), "PlainText"),
    (qn("w:richText"), "RichText"),
    (qn("w:comboBox"), "ComboBox"),
    (qn("w:dropDownList"), "DropDownList"),
    (qn("w:date"), "Date"),
    (qn("w:picture"), "Picture"),
    (qn("w:docPartObj"), "BuildingBlockGallery"),
    (qn("w:group"), "Group"),
    (f"{{{_W14_NS}}}checkbox", "CheckBox"),
)


def _int_val(el) -> int | None:
    if el is None:
        return None
    try:
        return int(el.get(qn("w:val")))
    except (TypeError, ValueError):
        return None


def parse_content_control(sdt_el) -> ContentControlProperties:
    """Read id, tag, alias and control type from a ``<w:sdt>``'s ``<w:sdtPr>``."""
    props = ContentControlProperties()
    sdtPr = sdt_el.find(qn("w:sdtPr"))
    if sdtPr is None:
        return props
    props.raw_properties = etree.tostring(sdtPr, encoding="unicode")
    props.id = _int_val(sdtPr.find(qn("w:id")))
    tag = sdtPr.find(qn("w:tag"))
    if tag is not None:
        props.tag = tag.get(qn("w:val"))
    alias = sdtPr.find(qn("w:alias"))
    if alias is not None:
        props.alias = alias.get(qn("w:val"))
    props.showing_placeholder = sdtPr.find(qn("w:showingPlcHdr")) is not None
    for tag_name, control_type in _SDT_TYPE_TAGS:
        if sdtPr.find(tag_name) is not None:
            props.control_type = control_type
            break
    binding = sdtPr.find(qn("w:dataBinding"))
    if binding is not None:
        props.data_binding_xpath = binding.get(qn("w:xpath"))
        if props.data_binding_xpath:
            props.control_type = "DocumentProperty"
    return props
