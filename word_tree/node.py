"""Document tree node.

Nodes form a hierarchy keyed by heading level: content sits under the
nearest preceding heading.  A parent owns its children through
``children``; the child's ``parent`` is a weak back-reference used for
navigation only.

A node parsed from a ``.docx`` carries a *snapshot*, the exact XML of the
element it came from.  The writer emits the snapshot verbatim while it is
valid.  Any change to the node's runs, paragraph formatting or style must
go through :meth:`DocumentNode.invalidate_snapshot` (directly or via
:meth:`DocumentNode.replace_runs`); a cleared snapshot is never restored.
"""
import weakref
from enum import Enum
from typing import Any, Iterator
from uuid import uuid4

from word_tree.errors import NodeOwnershipError
from word_tree.payloads import (
    ContentControlProperties,
    HyperlinkData,
    ImageData,
    ListInfo,
    ParagraphFormatting,
    TableData,
)
from word_tree.runs import FormattedRun, linear_text

MAX_HEADING_LEVEL = 9


class NodeKind(str, Enum):
    DOCUMENT = "Document"
    HEADING = "Heading"
    PARAGRAPH = "Paragraph"
    TABLE = "Table"
    IMAGE = "Image"
    LIST = "List"
    LIST_ITEM = "ListItem"
    HYPERLINK_SPAN = "HyperlinkSpan"
    TEXT_RUN = "TextRun"
    CONTENT_CONTROL = "ContentControl"


# Kinds whose runs can be edited.
TEXT_BEARING_KINDS = frozenset({NodeKind.PARAGRAPH, NodeKind.HEADING, NodeKind.LIST_ITEM})


class DocumentNode:
    def __init__(
        self,
        kind: NodeKind,
        text: str = "",
        heading_level: int = 0,
        *,
        runs: list[FormattedRun] | None = None,
        paragraph_format: ParagraphFormatting | None = None,
        snapshot: str | None = None,
        node_id: str | None = None,
    ):
        self.id = node_id or uuid4().hex
        self.kind = NodeKind(kind)
        self.heading_level = heading_level
        self.text = text
        self.runs: list[FormattedRun] = list(runs) if runs else []
        self.paragraph_format = paragraph_format
        self.children: list["DocumentNode"] = []
        self._parent_ref = None
        self._snapshot = snapshot or None

        self.table: TableData | None = None
        self.image: ImageData | None = None
        self.list_info: ListInfo | None = None
        self.hyperlinks: list[HyperlinkData] = []
        self.content_control: ContentControlProperties | None = None
        # Forward-compatible data with no typed slot.
        self.metadata: dict[str, Any] = {}

    # -- structure ---------------------------------------------------------

    @property
    def parent(self) -> "DocumentNode | None":
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def add_child(self, child: "DocumentNode") -> "DocumentNode":
        current = child.parent
        if current is not None:
            raise NodeOwnershipError(child, current)
        child._parent_ref = weakref.ref(self)
        self.children.append(child)
        return child

    def remove_child(self, child: "DocumentNode") -> None:
        self.children.remove(child)
        child._parent_ref = None

    @property
    def depth(self) -> int:
        depth = 0
        current = self.parent
        while current is not None:
            depth += 1
            current = current.parent
        return depth

    def iter_nodes(self) -> Iterator["DocumentNode"]:
        """Yield this node and every descendant, depth-first in document order."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    # -- text --------------------------------------------------------------

    @property
    def has_runs(self) -> bool:
        return len(self.runs) > 0

    @property
    def is_text_bearing(self) -> bool:
        return self.kind in TEXT_BEARING_KINDS

    @property
    def is_content_control(self) -> bool:
        """True for a block-level control; see ``word_tree.content_controls`` for inline ones."""
        return self.content_control is not None

    def get_text(self) -> str:
        """Return the linear text: the runs' text, or the fallback text."""
        if self.runs:
            return linear_text(self.runs)
        return self.text

    def replace_runs(self, runs: list[FormattedRun]) -> None:
        """Swap in a new run list wholesale and invalidate the snapshot."""
        self.runs = list(runs)
        self.invalidate_snapshot()

    # -- snapshot ----------------------------------------------------------

    @property
    def snapshot(self) -> str | None:
        return self._snapshot

    @property
    def has_valid_snapshot(self) -> bool:
        return self._snapshot is not None

    def invalidate_snapshot(self) -> None:
        self._snapshot = None

    # -- display -----------------------------------------------------------

    @property
    def label(self) -> str:
        if self.kind == NodeKind.HEADING:
            return f"H{self.heading_level}"
        return self.kind.value

    def tree_string(self, indent: int = 0) -> str:
        style = self.paragraph_format.style_id if self.paragraph_format else None
        text = self.get_text()
        if self.image is not None and self.image.width_emu:
            width, height = self.image.size_inches
            text = f"{text} ({width:.2f} x {height:.2f} in)".strip()
        if len(text) > 80:
            text = text[:77] + "..."
        line = f"{'  ' * indent}[{self.label}]"
        if style:
            line += f"[{style}]"
        line += f" {text}\n"
        return line + "".join(child.tree_string(indent + 1) for child in self.children)

    def __repr__(self) -> str:
        text = self.get_text()
        if len(text) > 30:
            text = text[:27] + "..."
        return f"<DocumentNode {self.label} {text!r}>"
