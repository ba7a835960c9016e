"""
calcpad CLI.

Evaluates a file of calcpad lines and prints each line beside its result,
the way the editor panel would show them.

    calcpad eval budget.txt --today 2024-01-03 --precision 2
    echo "2 + 3 * 4" | calcpad eval -
"""

from __future__ import annotations

import logging
import platform
import sys
from datetime import date
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from calcpad._version import get_version
from calcpad.core.clock import Clock, FixedClock, SystemClock
from calcpad.core.config import CONFIG_FILENAME, CalcpadConfig, load_config
from calcpad.core.errors import ConfigError
from calcpad.core.sheet import Sheet

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

app = typer.Typer(
    help="calcpad - notepad calculator for numbers, units, money and dates",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        typer.echo(f"calcpad version {get_version()}")
        typer.echo(f"Python {platform.python_implementation()} {platform.python_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
) -> None:
    """calcpad CLI main callback for global options."""
    pass


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("calcpad").setLevel(level)


def _load_settings(
    config_path: Path | None,
    precision: int | None,
    rates: Path | None,
) -> CalcpadConfig:
    """Merge calcpad.toml with command-line overrides."""
    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    config = load_config(config_path or Path.cwd() / CONFIG_FILENAME)

    overrides: dict[str, object] = {}
    if precision is not None:
        overrides["precision"] = precision
    if rates is not None:
        if not rates.exists():
            raise ConfigError(f"Rate file not found: {rates}")
        overrides["rates_file"] = rates
    if not overrides:
        return config
    try:
        return CalcpadConfig.model_validate({**config.model_dump(), **overrides})
    except ValueError as e:
        raise ConfigError(f"Invalid option: {e}") from e


def _parse_today(value: str | None) -> Clock:
    if value is None:
        return SystemClock()
    try:
        return FixedClock(date.fromisoformat(value))
    except ValueError as e:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}", param_hint="--today") from e


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(code=1)
    return path.read_text()


@app.command("eval")
def eval_command(
    source: str = typer.Argument(..., help="File of calcpad lines, or - for stdin"),
    today: str | None = typer.Option(
        None, "--today", help="Evaluate date expressions as of this day (YYYY-MM-DD)"
    ),
    precision: int | None = typer.Option(
        None, "--precision", "-p", help="Display decimal places (0-20)"
    ),
    rates: Path | None = typer.Option(None, "--rates", help="JSON exchange-rate file"),
    config: Path | None = typer.Option(
        None, "--config", "-c", help=f"Config file (default: ./{CONFIG_FILENAME})"
    ),
    plain: bool = typer.Option(False, "--plain", help="Print one result per line, no table"),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 1 if any line fails"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Evaluate every line of a file and print the results."""
    _configure_logging(verbose)
    clock = _parse_today(today)

    try:
        settings = _load_settings(config, precision, rates)
        sheet = Sheet.from_config(settings, clock=clock)
    except ConfigError as e:
        err_console.print(Text(f"✗ {e.message}", style="bold red"))
        raise typer.Exit(code=2)

    sheet.load(_read_source(source).splitlines())
    results = sheet.current_results()

    if plain:
        for result in results:
            typer.echo(result.text)
    else:
        table = Table(box=box.SIMPLE, show_header=False, pad_edge=False)
        table.add_column("#", style="bright_black", justify="right")
        table.add_column("Line", overflow="fold")
        table.add_column("Result", justify="right", overflow="fold")
        for number, (text, result) in enumerate(zip(sheet.lines, results, strict=True), start=1):
            style = "red" if result.is_error else "bold cyan"
            table.add_row(str(number), Text(text), Text(result.text, style=style))
        console.print(table)

    failures = sum(1 for result in results if result.is_error)
    if failures and strict:
        err_console.print(Text(f"✗ {failures} line(s) failed", style="bold red"))
        raise typer.Exit(code=1)


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


if __name__ == "__main__":
    main(sys.argv[1:])
