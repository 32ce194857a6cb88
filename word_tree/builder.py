"""Assemble a flat, ordered list of block items into a heading tree.

The reader classifies each body element (heading, paragraph, table, list
item, content control) and hands the builder a flat list.  The builder
folds that list left to right, keeping the most recently opened heading at
every level, and nests each item under the right ancestor.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from word_tree.node import MAX_HEADING_LEVEL, DocumentNode, NodeKind
from word_tree.payloads import (
    ContentControlProperties,
    HyperlinkData,
    ImageData,
    ListInfo,
    ParagraphFormatting,
    TableData,
)
from word_tree.runs import FormattedRun

logger = logging.getLogger(__name__)


@dataclass
class BlockItem:
    """One classified body element, prior to nesting."""

    kind: NodeKind
    text: str = ""
    heading_level: int = 0
    runs: list[FormattedRun] = field(default_factory=list)
    paragraph_format: ParagraphFormatting | None = None
    snapshot: str | None = None
    table: TableData | None = None
    image: ImageData | None = None
    list_info: ListInfo | None = None
    hyperlinks: list[HyperlinkData] = field(default_factory=list)
    content_control: ContentControlProperties | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    # Items that belong inside this one regardless of headings: images in a
    # paragraph, blocks in a multi-block content control.
    children: list["BlockItem"] = field(default_factory=list)

    def to_node(self) -> DocumentNode:
        node = DocumentNode(
            self.kind,
            self.text,
            self.heading_level,
            runs=self.runs,
            paragraph_format=self.paragraph_format,
            snapshot=self.snapshot,
        )
        node.table = self.table
        node.image = self.image
        node.list_info = self.list_info
        node.hyperlinks = list(self.hyperlinks)
        node.content_control = self.content_control
        node.metadata = dict(self.metadata)
        for child in self.children:
            node.add_child(child.to_node())
        return node


def clamp_heading_level(level: int) -> int:
    """Clamp *level* into 0..9; anything below 1 means "not a heading"."""
    if level <= 0:
        return 0
    return min(level, MAX_HEADING_LEVEL)


class TreeBuilder:
    def __init__(self, title: str = ""):
        self.root = DocumentNode(NodeKind.DOCUMENT, title)
        self._open: list[DocumentNode | None] = [None] * (MAX_HEADING_LEVEL + 1)
        self._open[0] = self.root
        self._current_level = 0

    def add(self, item: BlockItem | DocumentNode) -> DocumentNode:
        """Attach one item, in document order, and return its node."""
        node = item.to_node() if isinstance(item, BlockItem) else item
        level = clamp_heading_level(node.heading_level) if node.kind == NodeKind.HEADING else 0

        if level > 0:
            node.heading_level = level
            parent_level = min(self._current_level, level - 1)
            while parent_level > 0 and self._open[parent_level] is None:
                parent_level -= 1
            parent = self._open[parent_level] or self.root
            parent.add_child(node)
            self._open[level] = node
            self._current_level = level
        else:
            container = self._open[self._current_level] or self.root
            container.add_child(node)
        return node


def build_tree(items: Iterable[BlockItem | DocumentNode], title: str = "") -> DocumentNode:
    builder = TreeBuilder(title)
    count = 0
    for item in items:
        builder.add(item)
        count += 1
    logger.debug("Built tree %r from %d block items", title, count)
    return builder.root
