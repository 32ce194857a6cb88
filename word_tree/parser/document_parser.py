import json
import logging
from pathlib import Path

from docx import Document
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph
from lxml import etree

from word_tree.builder import BlockItem, build_tree
from word_tree.node import DocumentNode, NodeKind
from word_tree.runs import linear_text

from .paragraph_parser import parse_paragraph_block
from .sdt_parser import parse_content_control
from .style_parser import parse_styles
from .table_parser import parse_table_block

logger = logging.getLogger(__name__)


def parse_block_element(child, doc, styles: dict) -> BlockItem | None:
    """Classify a body or cell element: ``w:p``, ``w:tbl`` or ``w:sdt``."""
    tag = child.tag
    if tag == qn("w:p"):
        return parse_paragraph_block(Paragraph(child, doc), styles)
    if tag == qn("w:tbl"):
        return parse_table_block(Table(child, doc), styles)
    if tag == qn("w:sdt"):
        return _parse_sdt_block(child, doc, styles)
    return None


def _parse_sdt_block(sdt_el, doc, styles: dict) -> BlockItem | None:
    """Parse a block content control.

    A control that wraps a single paragraph becomes that paragraph, tagged
    with the control's properties.  Anything larger becomes a
    ``ContentControl`` container holding its blocks.  Either way the
    snapshot is the whole ``<w:sdt>`` element.
    """
    sdt_content = sdt_el.find(qn("w:sdtContent"))
    if sdt_content is None:
        return None
    props = parse_content_control(sdt_el)
    snapshot = etree.tostring(sdt_el, encoding="unicode")

    paragraphs = sdt_content.findall(qn("w:p"))
    tables = sdt_content.findall(qn("w:tbl"))
    if len(paragraphs) == 1 and not tables:
        item = parse_paragraph_block(Paragraph(paragraphs[0], doc), styles)
        if item is None:
            return None
        props.value = linear_text(item.runs) or item.text
        item.snapshot = snapshot
        item.content_control = props
        return item

    children = [
        block for block in (
            parse_block_element(inner, doc, styles) for inner in sdt_content
        )
        if block is not None
    ]
    if not children:
        return None
    props.value = " ".join(c.text for c in children if c.text.strip())
    return BlockItem(
        NodeKind.CONTENT_CONTROL,
        props.value,
        snapshot=snapshot,
        content_control=props,
        children=children,
    )


def parse_blocks(doc) -> list[BlockItem]:
    """Classify every body element of *doc*, in document order."""
    styles = parse_styles(doc)
    items: list[BlockItem] = []
    skipped = 0
    for child in doc.element.body:
        if child.tag == qn("w:sectPr"):
            continue
        item = parse_block_element(child, doc, styles)
        if item is None:
            skipped += 1
            continue
        items.append(item)
    logger.debug("Parsed %d block items (%d empty or unsupported skipped)", len(items), skipped)
    return items


def parse_docx(input_path: str | Path, output_dir: str | Path | None = None) -> DocumentNode:
    """Parse *input_path* into a heading tree rooted at a ``Document`` node.

    When *output_dir* is given, the tree is also written there as
    ``<stem>.tree.json``.
    """
    input_path = Path(input_path)
    doc = Document(str(input_path))
    root = build_tree(parse_blocks(doc), title=input_path.stem)
    root.metadata["source"] = str(input_path)

    if output_dir:
        from word_tree.view import to_dict

        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        (out_dir / f"{input_path.stem}.tree.json").write_text(
            json.dumps(to_dict(root), ensure_ascii=False, indent=2), encoding="utf-8"
        )

    return root
