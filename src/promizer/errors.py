from __future__ import annotations

from typing import Optional, Sequence


class PromizerError(Exception):
    """Base class for everything this package raises."""


class ScanError(PromizerError):
    """A comment marker was found but is not followed by an argument list."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"line {line}: {message}")
        self.message = message
        self.line = line


class ParseError(PromizerError):
    """
    The argument list of a tag does not follow the literal grammar.

    `offset` is relative to the argument text; `line` is filled in once the
    error is tied back to the tag it came from.
    """

    def __init__(self, message: str, offset: int, line: Optional[int] = None) -> None:
        super().__init__(f"{message} (offset {offset})")
        self.message = message
        self.offset = offset
        self.line = line


class ValidationError(PromizerError):
    def __init__(self, issues: Sequence) -> None:
        self.issues = list(issues)
        super().__init__(f"{len(self.issues)} validation error(s)")
