"""Open analysis boards, one persisted session per tab."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass

from varitree.core.errors import ParseError
from varitree.game.controller import AnalysisBoard
from varitree.game.session import BoardSession, SessionStore

_LOGGER = logging.getLogger(__name__)

BoardFactory = Callable[[], AnalysisBoard]


def gen_id() -> str:
    """Short random tab id (8 hex digits)."""
    return secrets.token_hex(4)


@dataclass(slots=True)
class BoardTab:
    name: str
    session: BoardSession

    @property
    def key(self) -> str:
        return self.session.key

    @property
    def board(self) -> AnalysisBoard:
        return self.session.board


class BoardTabs:
    """Ordered tabs with one active tab."""

    __slots__ = ("_store", "_board_factory", "_tabs", "_active")

    def __init__(
        self, store: SessionStore, *, board_factory: BoardFactory = AnalysisBoard
    ) -> None:
        self._store = store
        self._board_factory = board_factory
        self._tabs: list[BoardTab] = []
        self._active: str | None = None

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def tabs(self) -> tuple[BoardTab, ...]:
        return tuple(self._tabs)

    @property
    def active_key(self) -> str | None:
        return self._active

    @property
    def active(self) -> BoardTab | None:
        if self._active is None:
            return None
        return self._tabs[self._index(self._active)]

    def tab(self, key: str) -> BoardTab:
        return self._tabs[self._index(key)]

    def __len__(self) -> int:
        return len(self._tabs)

    # ── Tab lifecycle ────────────────────────────────────────────────────

    def create_tab(self, name: str = "New tab") -> BoardTab:
        tab = self._add(gen_id(), name)
        tab.session.checkpoint()
        return tab

    def open_tab(self, key: str, name: str = "New tab") -> BoardTab:
        """Reopen a tab whose session is already in the store."""
        return self._add(key, name)

    def close_tab(self, key: str) -> None:
        index = self._index(key)
        if key == self._active:
            if len(self._tabs) == 1:
                self._active = None
            elif index == len(self._tabs) - 1:
                self._active = self._tabs[index - 1].key
            else:
                self._active = self._tabs[index + 1].key
        tab = self._tabs.pop(index)
        tab.session.close()

    def duplicate_tab(self, key: str) -> BoardTab:
        """Copy a tab, persisted tree and cursor included."""
        source = self.tab(key)
        new_key = gen_id()
        record = self._store.load(key)
        if record is not None:
            self._store.save(new_key, record)
        return self._add(new_key, source.name)

    def rename_tab(self, key: str, name: str) -> None:
        self.tab(key).name = name

    # ── Selection ────────────────────────────────────────────────────────

    def select_tab(self, index: int) -> None:
        """Activate the tab at *index*, clamped to the last tab."""
        if not self._tabs:
            return
        self._active = self._tabs[max(0, min(index, len(self._tabs) - 1))].key

    def cycle_tabs(self, reverse: bool = False) -> None:
        if not self._tabs:
            return
        if self._active is None:
            self._active = self._tabs[-1 if reverse else 0].key
            return
        index = self._index(self._active)
        step = -1 if reverse else 1
        self._active = self._tabs[(index + step) % len(self._tabs)].key

    # ── Internal helpers ─────────────────────────────────────────────────

    def _add(self, key: str, name: str) -> BoardTab:
        session = BoardSession(self._store, key, self._board_factory())
        try:
            session.restore()
        except ParseError:
            session.detach()
            raise
        tab = BoardTab(name=name, session=session)
        self._tabs.append(tab)
        self._active = key
        _LOGGER.debug("Opened tab %r (%s)", name, key)
        return tab

    def _index(self, key: str) -> int:
        for index, tab in enumerate(self._tabs):
            if tab.key == key:
                return index
        raise KeyError(f"Unknown tab: {key}")
