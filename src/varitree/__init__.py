"""Varitree: a branching variation tree for chess analysis boards."""

__version__ = "0.1.0"
