"""User-configurable settings and the factories that depend on them."""

from __future__ import annotations

from dataclasses import dataclass, field

from varitree.core.notation import PgnOptions
from varitree.game.controller import AnalysisBoard
from varitree.game.session import (
    MemorySessionStore,
    QSettingsSessionStore,
    SessionStore,
)


def _default_headers() -> dict[str, str]:
    return {"Event": "Analysis", "Site": "Varitree", "Result": "*"}


@dataclass
class AppSettings:
    """All user-configurable settings."""

    # Export
    export_comments: bool = True
    export_symbols: bool = True
    export_special_symbols: bool = True

    # Sessions
    session_backend: str = "memory"  # "memory" | "qsettings"
    settings_organization: str = "Varitree"
    settings_application: str = "Varitree"
    settings_path: str | None = None  # INI file; native location when unset

    # New boards
    default_headers: dict[str, str] = field(default_factory=_default_headers)

    def pgn_options(self) -> PgnOptions:
        return PgnOptions(
            headers=True,
            comments=self.export_comments,
            symbols=self.export_symbols,
            special_symbols=self.export_special_symbols,
        )


def create_session_store(settings: AppSettings) -> SessionStore:
    if settings.session_backend == "memory":
        return MemorySessionStore()
    if settings.session_backend == "qsettings":
        if settings.settings_path:
            return QSettingsSessionStore.from_path(settings.settings_path)
        return QSettingsSessionStore.native(
            settings.settings_organization, settings.settings_application
        )
    raise ValueError(f"Unknown session backend: {settings.session_backend!r}")


def create_board(settings: AppSettings) -> AnalysisBoard:
    """New board at the starting position with the default headers."""
    return AnalysisBoard(headers=settings.default_headers)
