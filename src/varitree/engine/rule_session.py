"""Move validation session orchestration for the main UI thread."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

from varitree.core.errors import IllegalMoveError
from varitree.core.rules import IRuleEngine, PlayedMove, parse_move
from varitree.engine.qt_bridge import RuleEngineWorker
from varitree.game.controller import AnalysisBoard
from varitree.game.interfaces import EditMode

_LOGGER = logging.getLogger(__name__)


class MoveRequestSignal(Protocol):
    """Minimal signal interface used by :class:`RuleEngineSession`."""

    def connect(self, slot: Callable[..., object]) -> object: ...

    def emit(self, fen: str, move_obj: object, request_id: int) -> object: ...


class _RuleEngineBus(QObject):
    """Signal bridge between the UI thread and the worker thread.

    Worker results are delivered through slots of this object, which lives
    in the UI thread, so they are always handled there.
    """

    move_requested = pyqtSignal(str, object, int)

    def __init__(
        self,
        on_move_ready: Callable[[int, object], None],
        on_move_rejected: Callable[[int, str], None],
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._on_move_ready = on_move_ready
        self._on_move_rejected = on_move_rejected

    @pyqtSlot(int, object)
    def deliver_move(self, request_id: int, played_obj: object) -> None:
        self._on_move_ready(request_id, played_obj)

    @pyqtSlot(int, str)
    def deliver_rejection(self, request_id: int, message: str) -> None:
        self._on_move_rejected(request_id, message)


class RuleEngineSession:
    """Owns the rule-engine worker thread and hands results to the board.

    Only the newest request counts.  A result is applied if its request id
    is still pending and the board still shows the position the request was
    made from; anything else is dropped.
    """

    __slots__ = (
        "__weakref__",
        "_board",
        "_move_request",
        "_on_rejected",
        "_bus",
        "_rule_thread",
        "_rule_worker",
        "_request_id",
        "_pending_request",
        "_pending_fen",
        "_is_shutting_down",
        "_is_started",
    )

    def __init__(
        self,
        *,
        board: AnalysisBoard,
        move_request: MoveRequestSignal | None = None,
        on_rejected: Callable[[str], None] | None = None,
        rules: IRuleEngine | None = None,
        parent: QObject | None = None,
    ) -> None:
        self._board = board
        self._on_rejected = on_rejected
        self._bus = _RuleEngineBus(
            self._on_move_ready, self._on_move_rejected, parent
        )
        self._move_request: MoveRequestSignal = (
            move_request or self._bus.move_requested
        )

        self._rule_thread = QThread(parent)
        self._rule_worker = RuleEngineWorker(rules or board.rules)
        self._request_id = 0
        self._pending_request: int | None = None
        self._pending_fen: str | None = None
        self._is_shutting_down = False
        self._is_started = False

    @property
    def board(self) -> AnalysisBoard:
        return self._board

    @property
    def has_pending_request(self) -> bool:
        return self._pending_request is not None

    def setup(self) -> None:
        """Start the worker in a dedicated thread and connect callbacks."""
        if self._is_started:
            return
        self._is_shutting_down = False
        self._rule_worker.moveToThread(self._rule_thread)
        self._move_request.connect(self._rule_worker.request_move)
        self._rule_worker.move_ready.connect(self._bus.deliver_move)
        self._rule_worker.move_rejected.connect(self._bus.deliver_rejection)
        self._rule_thread.start()
        self._is_started = True

    def shutdown(self) -> None:
        """Forget pending work and shut down the worker thread."""
        if not self._is_started:
            return
        self._is_shutting_down = True
        self._clear_pending_request()
        self._rule_thread.quit()
        self._rule_thread.wait(2000)
        self._is_started = False

    def request_move(
        self, from_square: str, to_square: str, promotion: str | None = None
    ) -> bool:
        """Ask for a move from the board's cursor.

        Raw edits never reach the worker: they are applied right away.
        Returns False if the move could not even be submitted.
        """
        board = self._board
        if board.mode == EditMode.RAW_EDIT or not board.rules.can_parse(board.fen):
            self._clear_pending_request()
            return board.make_move(from_square, to_square, promotion)

        if not self._is_started or self._is_shutting_down:
            return False

        try:
            move = parse_move(from_square, to_square, promotion)
        except IllegalMoveError as exc:
            self._report_rejection(str(exc))
            return False

        self._request_id += 1
        self._pending_request = self._request_id
        self._pending_fen = board.fen
        self._move_request.emit(board.fen, move, self._request_id)
        return True

    def cancel(self) -> None:
        """Drop the pending request; its result will be ignored."""
        self._clear_pending_request()

    # ── Worker callbacks ─────────────────────────────────────────────────

    def _on_move_ready(self, request_id: int, played_obj: object) -> None:
        if self._is_shutting_down:
            return
        if request_id != self._pending_request:
            _LOGGER.debug("Ignoring stale rule-engine result %d", request_id)
            return
        if not isinstance(played_obj, PlayedMove):
            return

        pending_fen = self._pending_fen
        self._clear_pending_request()
        if pending_fen != self._board.fen:
            _LOGGER.debug("Board moved on; dropping %s", played_obj.move.san)
            return
        self._board.apply_played_move(played_obj)

    def _on_move_rejected(self, request_id: int, message: str) -> None:
        if self._is_shutting_down:
            return
        if request_id != self._pending_request:
            return
        self._clear_pending_request()
        self._report_rejection(message)

    # ── Internal helpers ─────────────────────────────────────────────────

    def _report_rejection(self, message: str) -> None:
        _LOGGER.debug("Move rejected: %s", message)
        if self._on_rejected is not None:
            self._on_rejected(message)

    def _clear_pending_request(self) -> None:
        self._pending_request = None
        self._pending_fen = None
