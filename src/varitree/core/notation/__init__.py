"""Notation package: PGN parsing and serialization of variation trees."""

from varitree.core.notation.models import (
    GLYPH_BY_NAG,
    NAG_BY_GLYPH,
    RESULT_TOKENS,
    ParsedGame,
    PgnOptions,
)
from varitree.core.notation.pgn import parse_pgn, write_pgn

__all__ = [
    "GLYPH_BY_NAG",
    "NAG_BY_GLYPH",
    "RESULT_TOKENS",
    "ParsedGame",
    "PgnOptions",
    "parse_pgn",
    "write_pgn",
]
