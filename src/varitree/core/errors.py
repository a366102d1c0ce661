"""Exceptions raised by the tree engine and its collaborators."""

from __future__ import annotations


class VaritreeError(Exception):
    """Base class for all library errors."""


class IllegalMoveError(VaritreeError, ValueError):
    """The rule engine rejected a move for the given board state."""

    def __init__(self, message: str, *, fen: str | None = None) -> None:
        super().__init__(message)
        self.fen = fen


class UnparseableBoardError(VaritreeError, ValueError):
    """A board state could not be interpreted at all."""

    def __init__(self, message: str, *, fen: str | None = None) -> None:
        super().__init__(message)
        self.fen = fen


class ParseError(VaritreeError, ValueError):
    """PGN text is malformed or contains a move that cannot be played.

    ``offset`` is the character offset into the parsed text; ``line`` and
    ``column`` are 1-based and derived from it.
    """

    def __init__(
        self,
        message: str,
        *,
        token: str = "",
        offset: int = 0,
        line: int = 1,
        column: int = 1,
    ) -> None:
        location = f"line {line}, column {column}"
        detail = f"{message} at {location}"
        if token:
            detail = f"{message}: {token!r} at {location}"
        super().__init__(detail)
        self.reason = message
        self.token = token
        self.offset = offset
        self.line = line
        self.column = column

    @classmethod
    def at(cls, text: str, offset: int, message: str, token: str = "") -> ParseError:
        """Build an error for *offset* inside *text*, computing line/column."""
        line = text.count("\n", 0, offset) + 1
        line_start = text.rfind("\n", 0, offset) + 1
        return cls(
            message,
            token=token,
            offset=offset,
            line=line,
            column=offset - line_start + 1,
        )
