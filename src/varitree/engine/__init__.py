"""Asynchronous rule-engine access for the UI thread."""

from varitree.engine.qt_bridge import RuleEngineWorker
from varitree.engine.rule_session import RuleEngineSession

__all__ = ["RuleEngineSession", "RuleEngineWorker"]
