"""Format-preserving edits to the runs of a node.

Every operation takes an *attribute setter*, a callable that mutates one
:class:`~word_tree.runs.RunFormatting` in place (see :func:`set_bold`,
:func:`set_font` and friends).  Setters overwrite values, so applying the
same setter twice is the same as applying it once.

Range edits work on the node's linear text.  Runs that straddle a range
boundary are split into independent clones, so that only the covered
characters pick up the new formatting.  The new run list is built in full
and swapped in at the end; a rejected edit never touches the node.

Rejected edits are reported by return value, never by exception:

- invalid range (negative start, non-positive length, past the end)
  returns ``False``;
- a node that is not a paragraph, heading or list item returns
  ``False``/``0``;
- an empty or absent search string returns ``0``.

Any edit that changes a node clears that node's snapshot.
"""
import logging
from typing import Callable, Iterable

from word_tree.errors import RunSplitError
from word_tree.navigation import iter_with_cells
from word_tree.node import DocumentNode
from word_tree.runs import FormattedRun, RunFormatting, linear_text, run_fields
from word_tree.utils.units import pt_to_half_points

logger = logging.getLogger(__name__)

AttributeSetter = Callable[[RunFormatting], None]


# ---------------------------------------------------------------------------
# Attribute setters
# ---------------------------------------------------------------------------

def _set_field(name: str, value) -> AttributeSetter:
    def setter(fmt: RunFormatting) -> None:
        setattr(fmt, name, value)

    return setter


def set_bold(value: bool = True) -> AttributeSetter:
    return _set_field("bold", value)


def set_italic(value: bool = True) -> AttributeSetter:
    return _set_field("italic", value)


def set_strike(value: bool = True) -> AttributeSetter:
    return _set_field("strike", value)


def set_underline(style: str | None = "single") -> AttributeSetter:
    """Underline with *style*; ``None`` removes the underline."""

    def setter(fmt: RunFormatting) -> None:
        fmt.underline = style is not None
        fmt.underline_style = style

    return setter


def set_font(name: str) -> AttributeSetter:
    """Use *name* for every script range (ASCII, high-ANSI, East Asian, complex)."""

    def setter(fmt: RunFormatting) -> None:
        fmt.font_family = name
        fmt.font_ascii = name
        fmt.font_east_asia = name
        fmt.font_complex_script = name

    return setter


def set_font_parts(
    ascii: str,
    high_ansi: str | None = None,
    east_asia: str | None = None,
    complex_script: str | None = None,
) -> AttributeSetter:
    def setter(fmt: RunFormatting) -> None:
        fmt.font_ascii = ascii
        fmt.font_family = high_ansi or ascii
        fmt.font_east_asia = east_asia
        fmt.font_complex_script = complex_script

    return setter


def set_size(half_points: int | None) -> AttributeSetter:
    def setter(fmt: RunFormatting) -> None:
        fmt.size = half_points
        fmt.size_complex_script = half_points

    return setter


def set_size_pt(points: float | None) -> AttributeSetter:
    return set_size(pt_to_half_points(points))


def set_color(color: str | None) -> AttributeSetter:
    return _set_field("color", color.lstrip("#").upper() if color else None)


def set_highlight(color: str | None) -> AttributeSetter:
    return _set_field("highlight", color)


def set_character_style(style_id: str | None) -> AttributeSetter:
    return _set_field("style_id", style_id)


def combine(*setters: AttributeSetter) -> AttributeSetter:
    def setter(fmt: RunFormatting) -> None:
        for s in setters:
            s(fmt)

    return setter


# ---------------------------------------------------------------------------
# Run splitting
# ---------------------------------------------------------------------------

def _styled(run: FormattedRun, setter: AttributeSetter, text: str | None = None) -> FormattedRun:
    new_run = run.clone() if text is None else run.with_text(text)
    setter(new_run.formatting)
    return new_run


def split_runs(
    runs: list[FormattedRun], start: int, end: int, setter: AttributeSetter
) -> list[FormattedRun]:
    """Return a new run list with *setter* applied to linear offsets ``[start, end)``.

    The input list and its runs are left untouched.  Raises
    :class:`RunSplitError` if the result does not reproduce the input text
    exactly, or if a fragment boundary misses *start* or *end*.
    """
    new_runs: list[FormattedRun] = []
    boundaries: set[int] = set()
    pos = 0
    for run in runs:
        run_start = pos
        run_end = pos + len(run.linear_text())
        pos = run_end

        if run_end <= start or run_start >= end:
            new_runs.append(run.clone())
        elif run_start >= start and run_end <= end:
            new_runs.append(_styled(run, setter))
        else:
            # Markers are one character wide and never straddle a boundary.
            overlap_start = max(start, run_start)
            overlap_end = min(end, run_end)
            head = overlap_start - run_start
            tail = overlap_end - run_start
            if run_start < overlap_start:
                new_runs.append(run.with_text(run.text[:head]))
            new_runs.append(_styled(run, setter, run.text[head:tail]))
            if run_end > overlap_end:
                new_runs.append(run.with_text(run.text[tail:]))

    offset = 0
    for run in new_runs:
        boundaries.add(offset)
        offset += len(run.linear_text())
    boundaries.add(offset)

    before = linear_text(runs)
    after = linear_text(new_runs)
    if before != after or start not in boundaries or end not in boundaries:
        raise RunSplitError(before, after, start, end)
    return new_runs


def _working_runs(node: DocumentNode) -> list[FormattedRun]:
    """The node's runs, or a single run synthesised from its fallback text."""
    if node.runs:
        return node.runs
    if node.text:
        return [FormattedRun(node.text)]
    return []


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------

def apply_to_range(node: DocumentNode, start: int, length: int, setter: AttributeSetter) -> bool:
    """Apply *setter* to ``length`` characters of the node's text from *start*.

    Returns ``False``, leaving the node untouched, when the node is not text
    bearing or the range is invalid.
    """
    if not node.is_text_bearing:
        logger.debug("Range edit skipped: %s node is not text bearing", node.kind.value)
        return False
    runs = _working_runs(node)
    text_length = len(linear_text(runs))
    if start < 0 or length <= 0 or start + length > text_length:
        logger.debug(
            "Range edit skipped: invalid range start=%d length=%d (text length %d)",
            start, length, text_length,
        )
        return False

    node.replace_runs(split_runs(runs, start, start + length, setter))
    return True


def find_occurrences(text: str, needle: str, all_occurrences: bool = True) -> list[int]:
    """Start offsets of non-overlapping ordinal matches, left to right."""
    if not needle:
        return []
    positions = []
    index = text.find(needle)
    while index >= 0:
        positions.append(index)
        if not all_occurrences:
            break
        index = text.find(needle, index + len(needle))
    return positions


def apply_to_substring(
    node: DocumentNode, needle: str, setter: AttributeSetter, all_occurrences: bool = False
) -> int:
    """Apply *setter* to the first (or every) occurrence of *needle*.

    Returns the number of occurrences modified.
    """
    if not node.is_text_bearing or not needle:
        return 0
    # Formatting does not change text length, so the offsets stay valid.
    positions = find_occurrences(node.get_text(), needle, all_occurrences)
    count = 0
    for index in positions:
        if apply_to_range(node, index, len(needle), setter):
            count += 1
    return count


def apply_to_node(node: DocumentNode, setter: AttributeSetter) -> bool:
    """Apply *setter* to every run of *node*."""
    if not node.is_text_bearing:
        return False
    runs = _working_runs(node)
    if not runs:
        return False
    node.replace_runs([_styled(run, setter) for run in runs])
    return True


def apply_to_document(root: DocumentNode, setter: AttributeSetter) -> int:
    """Apply *setter* to every paragraph, heading and list item under *root*.

    Returns the number of nodes modified.
    """
    count = 0
    for node in root.iter_nodes():
        if node.is_text_bearing and apply_to_node(node, setter):
            count += 1
    return count


def _font_value(fmt: RunFormatting):
    return fmt.font


# Pseudo-attributes: name -> (getter, setter factory).
_ATTRIBUTE_ACCESSORS = {
    "font": (_font_value, set_font),
}


def _matches(current, wanted) -> bool:
    if isinstance(current, str) and isinstance(wanted, str):
        return current.casefold() == wanted.casefold()
    return current == wanted


def replace_attribute_value(root: DocumentNode, attribute: str, from_value, to_value) -> int:
    """Set *attribute* to *to_value* on every run where it equals *from_value*.

    String comparisons ignore case.  *attribute* is a
    :class:`RunFormatting` field name, or ``"font"``.  A *from_value* of
    ``None`` matches runs where the attribute is unset.  Returns the number of
    runs changed.
    """
    if attribute in _ATTRIBUTE_ACCESSORS:
        getter, factory = _ATTRIBUTE_ACCESSORS[attribute]
    elif attribute in run_fields():
        getter = lambda fmt: getattr(fmt, attribute)  # noqa: E731
        factory = lambda value: _set_field(attribute, value)  # noqa: E731
    else:
        raise AttributeError(f"RunFormatting has no attribute {attribute!r}")
    setter = factory(to_value)

    count = 0
    for node in root.iter_nodes():
        if not node.runs:
            continue
        changed = 0
        new_runs = []
        for run in node.runs:
            current = getter(run.formatting)
            if _matches(current, from_value):
                new_runs.append(_styled(run, setter))
                changed += 1
            else:
                new_runs.append(run)
        if changed:
            node.replace_runs(new_runs)
            count += changed
    return count


# ---------------------------------------------------------------------------
# Font helpers
# ---------------------------------------------------------------------------

def set_font_for_range(node: DocumentNode, start: int, length: int, font_name: str) -> bool:
    return apply_to_range(node, start, length, set_font(font_name))


def set_font_for_text(
    node: DocumentNode, search_text: str, font_name: str, all_occurrences: bool = False
) -> int:
    return apply_to_substring(node, search_text, set_font(font_name), all_occurrences)


def set_paragraph_font(node: DocumentNode, font_name: str) -> bool:
    return apply_to_node(node, set_font(font_name))


def set_document_font(root: DocumentNode, font_name: str) -> int:
    return apply_to_document(root, set_font(font_name))


def set_font_where(
    node: DocumentNode, predicate: Callable[[FormattedRun], bool], font_name: str
) -> int:
    """Set the font of the runs matching *predicate*; returns the run count."""
    setter = set_font(font_name)
    count = 0
    new_runs = []
    for run in node.runs:
        if predicate(run):
            new_runs.append(_styled(run, setter))
            count += 1
        else:
            new_runs.append(run)
    if count:
        node.replace_runs(new_runs)
    return count


def replace_font(root: DocumentNode, from_font: str, to_font: str) -> int:
    return replace_attribute_value(root, "font", from_font, to_font)


def _collect_fonts(runs: Iterable[FormattedRun], into: dict[str, str]) -> None:
    for run in runs:
        font = run.formatting.font
        if font:
            into.setdefault(font.casefold(), font)


def fonts_used(node: DocumentNode) -> set[str]:
    """Distinct fonts of the node's runs (case-insensitive, first spelling wins)."""
    fonts: dict[str, str] = {}
    _collect_fonts(node.runs, fonts)
    return set(fonts.values())


def all_fonts_used(root: DocumentNode) -> set[str]:
    """Distinct fonts under *root*, table cell content included."""
    fonts: dict[str, str] = {}
    for node in iter_with_cells(root):
        _collect_fonts(node.runs, fonts)
    return set(fonts.values())
