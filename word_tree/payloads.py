"""Typed side-channel data attached to document nodes.

Each known kind of payload has its own attribute on
:class:`~word_tree.node.DocumentNode` (``table``, ``image``, ``list_info``,
``hyperlinks``, ``content_control``) instead of living in an untyped map.
"""
from dataclasses import dataclass, field, replace
from typing import Any

from word_tree.runs import FormattedRun, linear_text
from word_tree.utils.units import emu_to_inches


@dataclass
class ParagraphFormatting:
    """Paragraph-level formatting.  Lengths are twips."""

    style_id: str | None = None
    alignment: str | None = None
    indent_left: int | None = None
    indent_right: int | None = None
    indent_first_line: int | None = None
    indent_hanging: int | None = None
    space_before: int | None = None
    space_after: int | None = None
    line_spacing: int | None = None
    line_spacing_rule: str | None = None
    keep_next: bool = False
    keep_lines: bool = False
    page_break_before: bool = False
    widow_control: bool = False
    outline_level: int | None = None
    shading_fill: str | None = None
    shading_color: str | None = None
    numbering_id: int | None = None
    numbering_level: int | None = None

    def has_formatting(self) -> bool:
        return any(
            value not in (None, False)
            for key, value in vars(self).items()
            if key not in ("widow_control", "numbering_id", "numbering_level")
        )

    def clone(self) -> "ParagraphFormatting":
        return replace(self)


@dataclass
class TableCell:
    row_index: int
    column_index: int
    row_span: int = 1
    col_span: int = 1
    content: list = field(default_factory=list)  # list[DocumentNode]
    raw_properties: str | None = None  # <w:tcPr> XML

    @property
    def text(self) -> str:
        return " ".join(node.get_text() for node in self.content)


@dataclass
class TableRow:
    row_index: int
    cells: list[TableCell] = field(default_factory=list)
    is_header: bool = False
    raw_properties: str | None = None  # <w:trPr> XML


@dataclass
class TableData:
    rows: list[TableRow] = field(default_factory=list)
    column_count: int = 0
    style_id: str | None = None
    raw_properties: str | None = None  # <w:tblPr> XML

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def cell(self, row: int, column: int) -> TableCell | None:
        if row < 0 or row >= len(self.rows):
            return None
        return next((c for c in self.rows[row].cells if c.column_index == column), None)

    def to_text_grid(self) -> list[list[str]]:
        grid = []
        for r in range(self.row_count):
            line = []
            for c in range(self.column_count):
                cell = self.cell(r, c)
                line.append(cell.text if cell is not None else "")
            grid.append(line)
        return grid


@dataclass
class ImageData:
    relationship_id: str = ""
    name: str = ""
    content_type: str = ""
    data: bytes | None = None
    width_emu: int = 0
    height_emu: int = 0
    alt_text: str | None = None
    description: str | None = None

    @property
    def size_inches(self) -> tuple[float, float]:
        return emu_to_inches(self.width_emu), emu_to_inches(self.height_emu)


@dataclass
class ListInfo:
    level: int = 0
    numbering_id: int = 0


@dataclass
class HyperlinkData:
    text: str = ""
    relationship_id: str | None = None
    url: str | None = None
    anchor: str | None = None
    tooltip: str | None = None
    runs: list[FormattedRun] = field(default_factory=list)

    @classmethod
    def from_runs(cls, runs: list[FormattedRun], **kwargs: Any) -> "HyperlinkData":
        return cls(text=linear_text(runs), runs=runs, **kwargs)


@dataclass
class ContentControlProperties:
    """Properties of a block or inline content control (``w:sdt``)."""

    id: int | None = None
    tag: str | None = None
    alias: str | None = None
    control_type: str = "RichText"
    data_binding_xpath: str | None = None
    value: str | None = None
    showing_placeholder: bool = False
    raw_properties: str | None = None  # <w:sdtPr> XML

    @property
    def identifier(self) -> str:
        if self.alias:
            return self.alias
        if self.tag:
            return self.tag
        return str(self.id) if self.id is not None else "unnamed"
