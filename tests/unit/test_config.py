"""Tests for calcpad.toml loading and rate-source selection."""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path

import pytest

from calcpad.core.config import CalcpadConfig, load_config, make_rate_source
from calcpad.core.errors import ConfigError, ErrorKind
from calcpad.core.rates import FileRateSource


def _write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "calcpad.toml"
    path.write_text(body)
    return path


class TestLoadConfig:
    """Reading the [calcpad] table."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "calcpad.toml")
        assert config == CalcpadConfig()
        assert config.precision == 4
        assert config.base_currency == "USD"
        assert config.rates_file is None
        assert config.use_fallback_rates is True
        assert config.currency_symbols is True

    def test_missing_table_gives_defaults(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "[other]\nkey = 1\n")
        assert load_config(path) == CalcpadConfig()

    def test_values(self, tmp_path: Path) -> None:
        path = _write_config(
            tmp_path,
            '[calcpad]\nprecision = 2\nbase_currency = "eur"\ncurrency_symbols = false\n',
        )
        config = load_config(path)
        assert config.precision == 2
        assert config.base_currency == "EUR"
        assert config.currency_symbols is False

    def test_relative_rates_file(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, '[calcpad]\nrates_file = "rates.json"\n')
        assert load_config(path).rates_file == tmp_path / "rates.json"

    def test_precision_out_of_range(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "[calcpad]\nprecision = 50\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG

    def test_unknown_currency(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, '[calcpad]\nbase_currency = "XYZ"\n')
        with pytest.raises(ConfigError, match="Unknown currency"):
            load_config(path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, "[calcpad\nprecision = ")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(path)

    def test_unknown_keys_are_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = _write_config(tmp_path, "[calcpad]\nprecision = 3\ncolour = 1\n")
        with caplog.at_level(logging.WARNING, logger="calcpad.core.config"):
            config = load_config(path)
        assert config.precision == 3
        assert "colour" in caplog.text


class TestMakeRateSource:
    """Choosing where rates come from."""

    def test_fallback_rates(self) -> None:
        snapshot = make_rate_source(CalcpadConfig()).rates_snapshot()
        assert snapshot is not None
        assert snapshot.rate("EUR") == Decimal("0.85")

    def test_fallback_rebased(self) -> None:
        snapshot = make_rate_source(CalcpadConfig(base_currency="EUR")).rates_snapshot()
        assert snapshot is not None
        assert snapshot.base == "EUR"
        assert snapshot.rate("EUR") == 1

    def test_fallback_disabled(self) -> None:
        source = make_rate_source(CalcpadConfig(use_fallback_rates=False))
        assert source.rates_snapshot() is None

    def test_rates_file(self, tmp_path: Path) -> None:
        source = make_rate_source(CalcpadConfig(rates_file=tmp_path / "rates.json"))
        assert isinstance(source, FileRateSource)

    def test_fallback_cannot_rebase_onto_missing_currency(self) -> None:
        with pytest.raises(ConfigError):
            make_rate_source(CalcpadConfig(base_currency="CHF"))
