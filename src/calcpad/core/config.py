"""
Configuration for calcpad.

Settings are read from the ``[calcpad]`` table of ``calcpad.toml``:

    [calcpad]
    precision = 2
    base_currency = "EUR"
    rates_file = "rates.json"
    use_fallback_rates = true
    currency_symbols = true

A missing file or table gives the defaults.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .expression_lang.units import lookup_currency
from .rates import FALLBACK_RATES, FileRateSource, RateSource, StaticRateSource

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "calcpad.toml"


class CalcpadConfig(BaseModel):
    """Display and rate settings for a calcpad sheet."""

    precision: int = Field(default=4, ge=0, le=20, description="Display decimal places")
    base_currency: str = Field(default="USD", description="Currency rates are expressed against")
    rates_file: Path | None = Field(default=None, description="JSON rate snapshot file")
    use_fallback_rates: bool = Field(
        default=True, description="Use built-in offline rates when no rates file is set"
    )
    currency_symbols: bool = Field(default=True, description="Show $10 rather than 10 USD")

    @field_validator("base_currency")
    @classmethod
    def _known_currency(cls, value: str) -> str:
        unit = lookup_currency(value)
        if unit is None:
            raise ValueError(f"Unknown currency: {value}")
        return unit.name


def load_config(toml_path: Path) -> CalcpadConfig:
    """
    Load configuration from calcpad.toml.

    Args:
        toml_path: Path to calcpad.toml

    Returns:
        CalcpadConfig with values from file or defaults

    Raises:
        ConfigError: If the file is not valid TOML or holds invalid settings
    """
    if not toml_path.exists():
        return CalcpadConfig()

    try:
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {toml_path}: {e}") from e

    section = data.get("calcpad", {})
    if not section:
        return CalcpadConfig()

    config = _parse_config(section, source=str(toml_path))

    # Relative rate files are relative to the config file
    if config.rates_file is not None and not config.rates_file.is_absolute():
        config = config.model_copy(update={"rates_file": toml_path.parent / config.rates_file})
    return config


def _parse_config(data: dict[str, Any], source: str) -> CalcpadConfig:
    """Parse the [calcpad] table into CalcpadConfig."""
    unknown = sorted(set(data) - set(CalcpadConfig.model_fields))
    if unknown:
        logger.warning(f"{source}: ignoring unknown settings: {', '.join(unknown)}")
        data = {k: v for k, v in data.items() if k in CalcpadConfig.model_fields}

    try:
        return CalcpadConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{source}: invalid [calcpad] settings: {e}") from e


def make_rate_source(config: CalcpadConfig) -> RateSource:
    """Build the rate source a config asks for.

    A rates file wins; otherwise the built-in fallback rates, unless those
    are disabled, in which case currency conversion is unavailable.
    """
    if config.rates_file is not None:
        return FileRateSource(config.rates_file, base=config.base_currency)
    if config.use_fallback_rates:
        return StaticRateSource(FALLBACK_RATES.rebased(config.base_currency))
    return StaticRateSource(None)
