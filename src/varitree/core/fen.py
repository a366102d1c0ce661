"""FEN helpers that do not need a full board."""

from __future__ import annotations

import chess

STARTING_FEN = chess.STARTING_FEN


def fen_turn(fen: str) -> chess.Color:
    """Return the side to move encoded in *fen* (white when absent)."""
    parts = fen.split()
    return chess.BLACK if len(parts) > 1 and parts[1] == "b" else chess.WHITE


def fen_fullmove_number(fen: str) -> int:
    """Return the fullmove counter of *fen* (1 when absent or malformed)."""
    parts = fen.split()
    if len(parts) < 6 or not parts[5].isdigit():
        return 1
    return max(1, int(parts[5]))


def is_starting_fen(fen: str) -> bool:
    return fen.split()[:4] == STARTING_FEN.split()[:4] and fen_fullmove_number(fen) == 1
