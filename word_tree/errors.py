"""
Exception classes for the word_tree package.

Expected caller-input conditions (an out-of-range edit, a text edit on a
table, a style that is not present) are reported through return values.
The exceptions here signal programming faults.
"""


class WordTreeError(Exception):
    """Base exception for all word_tree errors."""

    pass


class RunSplitError(WordTreeError):
    """Raised when a run split would change a node's linear text.

    Attributes:
        before: Linear text of the run list before the split
        after: Linear text of the run list the split produced
        start: Start offset of the edited range
        end: End offset (exclusive) of the edited range
    """

    def __init__(self, before: str, after: str, start: int, end: int) -> None:
        self.before = before
        self.after = after
        self.start = start
        self.end = end
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return (
            f"Splitting runs at [{self.start}, {self.end}) changed the text: "
            f"{self.before!r} -> {self.after!r}"
        )


class NodeOwnershipError(WordTreeError):
    """Raised when a node that already has a parent is attached elsewhere."""

    def __init__(self, child, parent) -> None:
        self.child = child
        self.parent = parent
        super().__init__(f"{child!r} is already a child of {parent!r}")
