"""Shared notation-layer data models."""

from __future__ import annotations

from dataclasses import dataclass

from varitree.core.tree import VariationTree

RESULT_TOKENS = frozenset({"1-0", "0-1", "1/2-1/2", "*"})

# Move-quality glyphs are NAGs 1-6; every other NAG is written as ``$n``.
NAG_BY_GLYPH: dict[str, int] = {
    "!": 1,
    "?": 2,
    "!!": 3,
    "??": 4,
    "!?": 5,
    "?!": 6,
}
GLYPH_BY_NAG: dict[int, str] = {nag: glyph for glyph, nag in NAG_BY_GLYPH.items()}


def is_move_quality_nag(nag: int) -> bool:
    return nag in GLYPH_BY_NAG


@dataclass(slots=True, frozen=True)
class PgnOptions:
    """What to include when writing PGN.

    ``symbols`` covers move-quality glyphs (``!``, ``?!`` ...);
    ``special_symbols`` covers the remaining NAGs (``$14`` ...).
    """

    headers: bool = True
    comments: bool = True
    symbols: bool = True
    special_symbols: bool = True

    @classmethod
    def moves_only(cls) -> PgnOptions:
        """Bare movetext, as handed to analysis tools."""
        return cls(headers=False, comments=False, symbols=False, special_symbols=False)


@dataclass(slots=True)
class ParsedGame:
    """Headers plus the variation tree built from one PGN game."""

    headers: dict[str, str]
    tree: VariationTree

    @property
    def result(self) -> str:
        return self.headers.get("Result", "*")
