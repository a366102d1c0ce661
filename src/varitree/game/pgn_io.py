"""PGN file import/export for an analysis board."""

from __future__ import annotations

import logging
from pathlib import Path

from varitree.core.notation import ParsedGame, PgnOptions
from varitree.game.controller import AnalysisBoard

_LOGGER = logging.getLogger(__name__)

PGN_SUFFIX = ".pgn"
PGN_FILE_FILTER = "PGN (*.pgn)"


def load_pgn_file(board: AnalysisBoard, file_path: Path) -> ParsedGame:
    """Replace the board's tree with the game stored in *file_path*."""
    pgn_text = file_path.read_text(encoding="utf-8")
    game = board.load_pgn(pgn_text)
    _LOGGER.info("Loaded %s (%d positions)", file_path, len(game.tree))
    return game


def save_pgn_file(
    board: AnalysisBoard,
    file_path: Path,
    options: PgnOptions | None = None,
) -> Path:
    """Write the whole tree (from the root) to *file_path*.

    The ``.pgn`` extension is enforced; the written path is returned.
    """
    save_path = file_path
    if save_path.suffix.lower() != PGN_SUFFIX:
        save_path = save_path.with_suffix(PGN_SUFFIX)

    save_path.write_text(board.pgn(options or PgnOptions()), encoding="utf-8")
    _LOGGER.info("Saved %s", save_path)
    return save_path
