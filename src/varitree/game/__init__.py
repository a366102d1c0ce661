"""Game layer: analysis board, persistence and tabs.

Quick start::

    from varitree.game import AnalysisBoard, BoardSession, MemorySessionStore

    board = AnalysisBoard()
    session = BoardSession(MemorySessionStore(), "tab-1", board)
    board.make_moves(["e4", "e5", "Nf3"])
    board.undo_move()
    board.make_move("g1", "f3")  # reuses the existing branch
"""

from varitree.game.controller import AnalysisBoard, BoardEvents
from varitree.game.interfaces import EditMode
from varitree.game.pgn_io import PGN_FILE_FILTER, load_pgn_file, save_pgn_file
from varitree.game.session import (
    BoardSession,
    MemorySessionStore,
    QSettingsSessionStore,
    SessionRecord,
    SessionStore,
)
from varitree.game.tabs import BoardTab, BoardTabs

__all__ = [
    # Board
    "AnalysisBoard",
    "BoardEvents",
    "EditMode",
    # Files
    "PGN_FILE_FILTER",
    "load_pgn_file",
    "save_pgn_file",
    # Sessions
    "BoardSession",
    "MemorySessionStore",
    "QSettingsSessionStore",
    "SessionRecord",
    "SessionStore",
    "BoardTab",
    "BoardTabs",
]
