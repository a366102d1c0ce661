"""Shared enums for the game layer."""

from __future__ import annotations

from enum import IntEnum, auto


class EditMode(IntEnum):
    """How the analysis board applies moves.

    ``NORMAL`` moves are validated by the rule engine and grow the tree.
    ``RAW_EDIT`` moves bypass the rules and always restart the tree from the
    edited position.
    """

    NORMAL = auto()
    RAW_EDIT = auto()
