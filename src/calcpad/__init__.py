"""
calcpad - a live notepad calculator engine.

Evaluates free-form lines of arithmetic, percentages, units, money, dates
and durations, re-running only the lines an edit can affect.
"""

from __future__ import annotations

from ._version import get_version
from .core.errors import CalcpadError, ErrorKind
from .core.sheet import RenderedResult, Sheet

__version__ = get_version()

__all__ = [
    "__version__",
    "CalcpadError",
    "ErrorKind",
    "RenderedResult",
    "Sheet",
]
