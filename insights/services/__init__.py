"""
Core services for the application.

This package contains the pattern engine and the rules it runs
over a normalised episode history.
"""

from .history import EpisodeHistory, EpisodeRecord
from .pattern_engine import PatternEngine, analyse
from .rules import CORE_RULES, EXTENDED_RULES, PatternRule

__all__ = [
    "CORE_RULES",
    "EXTENDED_RULES",
    "EpisodeHistory",
    "EpisodeRecord",
    "PatternEngine",
    "PatternRule",
    "analyse",
]
