"""Tests for the Qt rule-engine worker."""

from __future__ import annotations

import chess
from PyQt6.QtTest import QSignalSpy

from varitree.core.errors import UnparseableBoardError
from varitree.core.fen import STARTING_FEN
from varitree.core.rules import ChessRuleEngine, PlayedMove
from varitree.engine.qt_bridge import RuleEngineWorker


class _BrokenRules(ChessRuleEngine):
    def play(self, fen: str, move: chess.Move) -> PlayedMove:
        raise UnparseableBoardError("board is on fire", fen=fen)


class TestRuleEngineWorker:
    def test_emits_played_move(self, qapp: object) -> None:
        del qapp
        worker = RuleEngineWorker()
        results: list[tuple[int, object]] = []
        worker.move_ready.connect(lambda rid, played: results.append((rid, played)))
        rejected = QSignalSpy(worker.move_rejected)

        worker.request_move(STARTING_FEN, chess.Move.from_uci("e2e4"), 3)

        assert len(rejected) == 0
        assert len(results) == 1
        request_id, played = results[0]
        assert request_id == 3
        assert isinstance(played, PlayedMove)
        assert played.fen_before == STARTING_FEN
        assert played.move.san == "e4"

    def test_rejects_illegal_move(self, qapp: object) -> None:
        del qapp
        worker = RuleEngineWorker()
        ready = QSignalSpy(worker.move_ready)
        rejected = QSignalSpy(worker.move_rejected)

        worker.request_move(STARTING_FEN, chess.Move.from_uci("e2e5"), 7)

        assert len(ready) == 0
        assert len(rejected) == 1
        assert rejected[0][0] == 7
        assert "Illegal move" in rejected[0][1]

    def test_rejects_invalid_payload(self, qapp: object) -> None:
        del qapp
        worker = RuleEngineWorker()
        rejected = QSignalSpy(worker.move_rejected)

        worker.request_move(STARTING_FEN, "e2e4", 1)

        assert len(rejected) == 1
        assert rejected[0][1] == "Rule engine received invalid move"

    def test_engine_errors_are_forwarded(self, qapp: object) -> None:
        del qapp
        worker = RuleEngineWorker(_BrokenRules())
        rejected = QSignalSpy(worker.move_rejected)

        worker.request_move(STARTING_FEN, chess.Move.from_uci("e2e4"), 11)

        assert len(rejected) == 1
        assert rejected[0][0] == 11
        assert "on fire" in rejected[0][1]
