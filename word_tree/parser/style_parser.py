from docx.oxml.ns import qn


def _child_val(parent, *path: str) -> str | None:
    el = parent
    for tag in path:
        if el is None:
            return None
        el = el.find(qn(tag))
    return None if el is None else el.get(qn("w:val"))


def _outline_level(style_el) -> int | None:
    value = _child_val(style_el, "w:pPr", "w:outlineLvl")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def parse_styles(doc) -> dict:
    """Map style id to name, type, base style and outline level.

    Reads ``<w:style>`` elements straight from the styles part, so the
    ``type`` value is the lowercase ``w:type`` attribute Word writes.
    """
    styles = {}
    for style_el in doc.styles.element.iterchildren(qn("w:style")):
        style_id = style_el.get(qn("w:styleId"))
        if not style_id:
            continue
        styles[style_id] = {
            "style_id": style_id,
            "name": _child_val(style_el, "w:name") or style_id,
            "type": style_el.get(qn("w:type"), "paragraph"),
            "based_on": _child_val(style_el, "w:basedOn"),
            "outline_level": _outline_level(style_el),
        }
    return styles
