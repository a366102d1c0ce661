"""Session persistence: a board saved as PGN text plus a cursor path.

Node ids do not survive a reload, so the cursor is stored as a position
path and re-walked on the freshly parsed tree.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from PyQt6.QtCore import QSettings

from varitree.core.notation import parse_pgn
from varitree.game.controller import AnalysisBoard

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SessionRecord:
    """What gets persisted for one board."""

    notation_text: str
    position_path: tuple[int, ...] = ()

    @classmethod
    def capture(cls, board: AnalysisBoard) -> SessionRecord:
        return cls(board.pgn(), tuple(board.position_path))

    def to_json(self) -> str:
        return json.dumps(
            {
                "notation_text": self.notation_text,
                "position_path": list(self.position_path),
            }
        )

    @classmethod
    def from_json(cls, payload: str) -> SessionRecord:
        """Decode a record; raise ``ValueError`` on anything malformed."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(f"SessionRecord: invalid JSON ({exc})") from exc
        if not isinstance(data, dict):
            raise ValueError("SessionRecord: expected a JSON object")

        text = data.get("notation_text")
        if not isinstance(text, str):
            raise ValueError("SessionRecord.notation_text: expected str")
        path = data.get("position_path", [])
        if not isinstance(path, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in path
        ):
            raise ValueError("SessionRecord.position_path: expected list[int]")
        return cls(notation_text=text, position_path=tuple(path))


# ── Stores ───────────────────────────────────────────────────────────────────


class SessionStore(ABC):
    """Keyed storage for session records."""

    @abstractmethod
    def load(self, key: str) -> SessionRecord | None:
        """Return the record saved under *key*, or None."""

    @abstractmethod
    def save(self, key: str, record: SessionRecord) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.load(key) is not None


def _decode(key: str, payload: str) -> SessionRecord | None:
    try:
        return SessionRecord.from_json(payload)
    except ValueError as exc:
        _LOGGER.warning("Ignoring corrupt session %r: %s", key, exc)
        return None


class MemorySessionStore(SessionStore):
    """Per-process store; records are kept serialized like on disk."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, key: str) -> SessionRecord | None:
        payload = self._data.get(key)
        if payload is None:
            return None
        return _decode(key, payload)

    def save(self, key: str, record: SessionRecord) -> None:
        self._data[key] = record.to_json()

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class QSettingsSessionStore(SessionStore):
    """Store backed by ``QSettings``; one JSON value per key."""

    _GROUP = "sessions"

    __slots__ = ("_settings",)

    def __init__(self, settings: QSettings) -> None:
        self._settings = settings

    @classmethod
    def from_path(cls, path: str | Path) -> QSettingsSessionStore:
        """INI-file store at *path*."""
        return cls(QSettings(str(path), QSettings.Format.IniFormat))

    @classmethod
    def native(cls, organization: str, application: str) -> QSettingsSessionStore:
        """Store in the platform's native settings location."""
        return cls(QSettings(organization, application))

    def load(self, key: str) -> SessionRecord | None:
        payload = self._settings.value(self._path(key), None)
        if payload is None:
            return None
        return _decode(key, str(payload))

    def save(self, key: str, record: SessionRecord) -> None:
        self._settings.setValue(self._path(key), record.to_json())
        self._settings.sync()

    def delete(self, key: str) -> None:
        self._settings.remove(self._path(key))
        self._settings.sync()

    def keys(self) -> list[str]:
        self._settings.beginGroup(self._GROUP)
        try:
            return list(self._settings.childKeys())
        finally:
            self._settings.endGroup()

    def _path(self, key: str) -> str:
        return f"{self._GROUP}/{key}"


# ── Board session ────────────────────────────────────────────────────────────


class BoardSession:
    """Keeps one board checkpointed under one key of a store.

    Every tree edit and cursor move is saved immediately.  :meth:`close`
    tears the session down and forgets the record.
    """

    __slots__ = ("_store", "_key", "_board", "_is_open")

    def __init__(
        self, store: SessionStore, key: str, board: AnalysisBoard | None = None
    ) -> None:
        self._store = store
        self._key = key
        self._board = board or AnalysisBoard()
        self._is_open = True
        events = self._board.events
        events.on_tree_replaced.append(self._on_board_changed)
        events.on_tree_changed.append(self._on_board_changed)
        events.on_cursor_moved.append(self._on_board_changed)

    @property
    def key(self) -> str:
        return self._key

    @property
    def board(self) -> AnalysisBoard:
        return self._board

    @property
    def is_open(self) -> bool:
        return self._is_open

    def restore(self) -> bool:
        """Rebuild the board from the stored record, if there is one.

        Raises ``ParseError`` if the stored notation is invalid; the board
        is left as it was in that case.
        """
        record = self._store.load(self._key)
        if record is None:
            return False
        game = parse_pgn(record.notation_text, self._board.rules)
        self._board.load_game(game, record.position_path)
        _LOGGER.info("Restored session %r at %s", self._key, list(record.position_path))
        return True

    def checkpoint(self) -> SessionRecord:
        record = SessionRecord.capture(self._board)
        self._store.save(self._key, record)
        return record

    def detach(self) -> None:
        """Stop checkpointing; the stored record is kept."""
        if not self._is_open:
            return
        events = self._board.events
        events.on_tree_replaced.remove(self._on_board_changed)
        events.on_tree_changed.remove(self._on_board_changed)
        events.on_cursor_moved.remove(self._on_board_changed)
        self._is_open = False

    def close(self) -> None:
        if not self._is_open:
            return
        self.detach()
        self._store.delete(self._key)

    def _on_board_changed(self, *_args: object) -> None:
        self.checkpoint()
