"""
Exchange-rate snapshots for calcpad.

The evaluator never fetches rates itself. It reads the latest snapshot from a
``RateSource`` once per evaluation pass. A source that has never produced a
snapshot returns ``None`` and currency conversions fail with
``RatesUnavailable``.

Rate files use the open.er-api.com response shape::

    {"base_code": "USD", "time_last_update_unix": 1700000000,
     "rates": {"USD": 1, "EUR": 0.92, ...}}

A plain ``{"base": "USD", "rates": {...}}`` object is accepted as well.

Usage:
    from calcpad.core.rates import FileRateSource

    source = FileRateSource(Path("rates.json"))
    snapshot = source.rates_snapshot()
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)


class RateSnapshot(BaseModel):
    """
    Read-only table of exchange rates.

    Attributes:
        base: Currency code every rate is relative to
        rates: Units of each currency per one unit of ``base``
        fetched_at: When the snapshot was produced, if known
    """

    base: str = Field(default="USD", min_length=3, max_length=3)
    rates: dict[str, Decimal] = Field(default_factory=dict)
    fetched_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("base")
    @classmethod
    def _upper_base(cls, value: str) -> str:
        return value.upper()

    @field_validator("rates")
    @classmethod
    def _positive_rates(cls, value: dict[str, Decimal]) -> dict[str, Decimal]:
        rates: dict[str, Decimal] = {}
        for code, rate in value.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive, got {rate}")
            rates[code.upper()] = rate
        return rates

    def rate(self, code: str) -> Decimal | None:
        """Rate for a currency code, or None if the snapshot lacks it."""
        if code == self.base:
            return Decimal(1)
        return self.rates.get(code)

    def rebased(self, base: str) -> RateSnapshot:
        """Express the same rates relative to another currency.

        Raises:
            ConfigError: If the snapshot has no rate for ``base``.
        """
        base = base.upper()
        if base == self.base:
            return self
        pivot = self.rate(base)
        if pivot is None:
            raise ConfigError(f"Cannot rebase rates onto {base}: no rate for {base}")
        rates = {code: rate / pivot for code, rate in self.rates.items()}
        rates[self.base] = Decimal(1) / pivot
        rates[base] = Decimal(1)
        return RateSnapshot(base=base, rates=rates, fetched_at=self.fetched_at)


class RateSource(Protocol):
    """Collaborator that supplies the latest rate snapshot."""

    def rates_snapshot(self) -> RateSnapshot | None: ...


class StaticRateSource:
    """A rate source that always returns the same snapshot (or none)."""

    def __init__(self, snapshot: RateSnapshot | None = None) -> None:
        self._snapshot = snapshot

    def rates_snapshot(self) -> RateSnapshot | None:
        return self._snapshot

    def update(self, snapshot: RateSnapshot | None) -> None:
        """Replace the snapshot, as a background refresh would."""
        self._snapshot = snapshot


class FileRateSource:
    """
    Rate source backed by a JSON file.

    The file is re-read when its modification time changes. A file that
    cannot be read keeps the last good snapshot. With ``base`` set, loaded
    rates are re-expressed relative to that currency.
    """

    def __init__(self, path: Path, base: str | None = None) -> None:
        self.path = path
        self.base = base
        self._snapshot: RateSnapshot | None = None
        self._mtime: float | None = None

    def rates_snapshot(self) -> RateSnapshot | None:
        try:
            mtime = self.path.stat().st_mtime
        except OSError as e:
            logger.warning(f"Rate file {self.path} is not readable: {e}")
            return self._snapshot

        if mtime != self._mtime:
            try:
                snapshot = load_rate_snapshot(self.path)
                self._snapshot = snapshot.rebased(self.base) if self.base else snapshot
                self._mtime = mtime
                logger.debug(f"Loaded {len(self._snapshot.rates)} rates from {self.path}")
            except ConfigError as e:
                logger.warning(f"Keeping previous rates: {e.message}")
        return self._snapshot


def load_rate_snapshot(path: Path) -> RateSnapshot:
    """
    Load a rate snapshot from a JSON file.

    Args:
        path: Path to the rate file

    Returns:
        Parsed RateSnapshot

    Raises:
        ConfigError: If the file is missing, not JSON, or has invalid rates
    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read rate file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Rate file {path} must contain a JSON object")

    return parse_rate_payload(data, source=str(path))


def parse_rate_payload(data: dict[str, Any], source: str = "payload") -> RateSnapshot:
    """Build a snapshot from an open.er-api style or plain rates object."""
    base = data.get("base_code") or data.get("base") or "USD"
    raw_rates = data.get("rates")
    if not isinstance(raw_rates, dict):
        raise ConfigError(f"{source}: missing 'rates' object")

    rates: dict[str, Decimal] = {}
    for code, raw in raw_rates.items():
        try:
            # str() first so JSON floats do not carry binary noise
            rates[str(code)] = Decimal(str(raw))
        except InvalidOperation as e:
            raise ConfigError(f"{source}: rate for {code} is not a number: {raw!r}") from e

    fetched_at = None
    if isinstance(data.get("time_last_update_unix"), int | float):
        fetched_at = datetime.fromtimestamp(data["time_last_update_unix"], tz=UTC)

    try:
        return RateSnapshot(base=base, rates=rates, fetched_at=fetched_at)
    except ValidationError as e:
        raise ConfigError(f"{source}: invalid rates: {e}") from e


# Offline rates, USD based. Used when no rate file is configured.
FALLBACK_RATES = RateSnapshot(
    base="USD",
    rates={
        "USD": Decimal("1"),
        "EUR": Decimal("0.85"),
        "GBP": Decimal("0.72"),
        "CAD": Decimal("1.25"),
        "JPY": Decimal("115"),
        "AUD": Decimal("1.35"),
        "CNY": Decimal("6.45"),
        "INR": Decimal("75"),
    },
)
