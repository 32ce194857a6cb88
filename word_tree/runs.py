"""Run model: a span of text that shares one formatting value.

A paragraph-like node owns an ordered list of :class:`FormattedRun`.  The
concatenation of every run's :meth:`FormattedRun.linear_text` is the node's
*linear text*; all character offsets used by the editor are offsets into it.
"""
from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from word_tree.payloads import ContentControlProperties

TAB_TEXT = "\t"
BREAK_TEXT = " "


@dataclass
class RunFormatting:
    """Character formatting of one run.

    Sizes are half-points (``24`` = 12pt), colours are hex without ``#``.
    ``font_family`` is the high-ANSI slot; the other three font slots map to
    ``w:ascii``, ``w:eastAsia`` and ``w:cs``.
    """

    bold: bool = False
    italic: bool = False
    underline: bool = False
    underline_style: str | None = None
    strike: bool = False
    double_strike: bool = False
    superscript: bool = False
    subscript: bool = False
    small_caps: bool = False
    all_caps: bool = False
    font_family: str | None = None
    font_ascii: str | None = None
    font_east_asia: str | None = None
    font_complex_script: str | None = None
    size: int | None = None
    size_complex_script: int | None = None
    color: str | None = None
    highlight: str | None = None
    shading: str | None = None
    style_id: str | None = None

    @property
    def font(self) -> str | None:
        """Effective font name: the ASCII slot, else the high-ANSI slot."""
        return self.font_ascii or self.font_family

    def has_formatting(self) -> bool:
        return any(getattr(self, f.name) not in (None, False) for f in fields(self))

    def clone(self) -> "RunFormatting":
        return replace(self)


@dataclass(eq=False)
class SimpleField:
    """A ``<w:fldSimple>`` around one or more runs; its runs share the instance."""

    instruction: str = ""


@dataclass
class FormattedRun:
    text: str = ""
    formatting: RunFormatting = field(default_factory=RunFormatting)
    is_tab: bool = False
    is_break: bool = False
    break_type: str | None = None
    # Inline wrappers.  Fragments split from one run keep the same objects,
    # so consecutive runs wrapped by one element are grouped by identity.
    content_control: "ContentControlProperties | None" = None
    simple_field: SimpleField | None = None

    def linear_text(self) -> str:
        """Return this run's contribution to the node's linear text."""
        if self.is_tab:
            return TAB_TEXT
        if self.is_break:
            return BREAK_TEXT
        return self.text

    @property
    def is_marker(self) -> bool:
        return self.is_tab or self.is_break

    def clone(self) -> "FormattedRun":
        return FormattedRun(
            text=self.text,
            formatting=self.formatting.clone(),
            is_tab=self.is_tab,
            is_break=self.is_break,
            break_type=self.break_type,
            content_control=self.content_control,
            simple_field=self.simple_field,
        )

    def with_text(self, text: str) -> "FormattedRun":
        """Clone this run with *text* in place of its own."""
        run = self.clone()
        run.text = text
        return run


def linear_text(runs) -> str:
    return "".join(run.linear_text() for run in runs)


def run_fields() -> tuple[str, ...]:
    """Names of every :class:`RunFormatting` attribute."""
    return tuple(f.name for f in fields(RunFormatting))
