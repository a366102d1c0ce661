"""Qt bridge to run rule-engine requests in a worker thread."""

from __future__ import annotations

import chess
from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from varitree.core.errors import VaritreeError
from varitree.core.rules import ChessRuleEngine, IRuleEngine


class RuleEngineWorker(QObject):
    """Thread-affine worker that validates and plays moves on demand."""

    move_ready = pyqtSignal(int, object)
    move_rejected = pyqtSignal(int, str)

    __slots__ = ("_rules",)

    def __init__(self, rules: IRuleEngine | None = None) -> None:
        super().__init__()
        self._rules = rules or ChessRuleEngine()

    @pyqtSlot(str, object, int)
    def request_move(self, fen: str, move_obj: object, request_id: int) -> None:
        """Play *move_obj* on *fen* and emit the resulting :class:`PlayedMove`."""
        if not isinstance(move_obj, chess.Move):
            self.move_rejected.emit(request_id, "Rule engine received invalid move")
            return

        try:
            played = self._rules.play(fen, move_obj)
        except VaritreeError as exc:
            self.move_rejected.emit(request_id, str(exc))
            return

        self.move_ready.emit(request_id, played)
