"""Core calcpad functionality: line language, rates, configuration and the sheet scheduler."""

from . import ir
from .clock import Clock, FixedClock, SystemClock
from .config import CalcpadConfig, load_config, make_rate_source
from .errors import (
    CalcpadError,
    ConfigError,
    ErrorKind,
    EvalError,
    LexError,
    ParseError,
)
from .rates import (
    FALLBACK_RATES,
    FileRateSource,
    RateSnapshot,
    RateSource,
    StaticRateSource,
)
from .sheet import RenderedResult, Sheet

__all__ = [
    "ir",
    "Clock",
    "FixedClock",
    "SystemClock",
    "CalcpadConfig",
    "load_config",
    "make_rate_source",
    "CalcpadError",
    "ConfigError",
    "ErrorKind",
    "EvalError",
    "LexError",
    "ParseError",
    "FALLBACK_RATES",
    "FileRateSource",
    "RateSnapshot",
    "RateSource",
    "StaticRateSource",
    "RenderedResult",
    "Sheet",
]
