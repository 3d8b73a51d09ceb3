"""Command-line interface for gridcalc."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml

from gridcalc import __version__
from gridcalc.config import get_display_precision, get_max_depth, load_config
from gridcalc.formulas.dispatch import dispatch_order
from gridcalc.formulas.evaluator import evaluate_formula
from gridcalc.formulas.refs import column_index_to_label, label_to_column_index
from gridcalc.formulas.values import ErrorValue, EvaluationResult, Number, display_value
from gridcalc.logging.events import EventType, emit_error, get_sink, set_log_dir
from gridcalc.recalc import Recalculator
from gridcalc.sheet import Sheet


@click.group()
@click.version_option(version=__version__, prog_name="gridcalc")
def main() -> None:
    """gridcalc -- spreadsheet formula evaluation engine."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _fail(message: str, **context: Any) -> click.ClickException:
    emit_error(EventType.cli_error, message, context)
    return click.ClickException(message)


def load_sheet(path: Path) -> Sheet:
    """Read a YAML sheet file of the form ``{name: ..., cells: {A1: "5"}}``."""
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except OSError as e:
        raise _fail(f"Cannot read {path}: {e}", path=str(path))
    except yaml.YAMLError as e:
        raise _fail(f"Invalid YAML in {path}: {e}", path=str(path))

    if not isinstance(data, dict) or not isinstance(data.get("cells", {}), dict):
        raise _fail(f"{path}: expected a mapping with a 'cells' mapping", path=str(path))

    try:
        return Sheet.from_dict(data.get("cells") or {}, name=str(data.get("name", "Sheet1")))
    except ValueError as e:
        raise _fail(f"{path}: {e}", path=str(path))


def _load_config(config_path: str | None, default_dir: Path) -> dict[str, Any]:
    try:
        return load_config(Path(config_path) if config_path else default_dir)
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")


def _configure_logging(cfg: dict[str, Any], log_dir: str | None) -> None:
    target = log_dir or cfg.get("log_dir")
    if target:
        set_log_dir(Path(target), fsync=bool(cfg.get("logging_fsync", False)))


def _result_json(result: EvaluationResult, precision: int) -> dict[str, Any]:
    if isinstance(result, Number):
        kind = "number"
    elif isinstance(result, ErrorValue):
        kind = "error"
    else:
        kind = "text"
    return {"type": kind, "display": display_value(result, precision)}


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--sheet", "sheet_path", default=None, type=click.Path(exists=True, dir_okay=False), help="YAML sheet file to resolve references against.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Config file or directory containing gridcalc.yaml.")
@click.option("--log-dir", default=None, type=click.Path(file_okay=False), help="Directory for NDJSON event logs.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def eval_cmd(formula: str, sheet_path: str | None, config_path: str | None, log_dir: str | None, as_json: bool) -> None:
    """Evaluate FORMULA and print its display value."""
    default_dir = Path(sheet_path).parent if sheet_path else Path(".")
    cfg = _load_config(config_path, default_dir)
    _configure_logging(cfg, log_dir)

    sheet = load_sheet(Path(sheet_path)) if sheet_path else Sheet()
    store = Recalculator(sheet, cfg)
    precision = get_display_precision(cfg)
    result = evaluate_formula(formula, store, max_depth=get_max_depth(cfg))

    if as_json:
        click.echo(json.dumps(_result_json(result, precision), indent=2))
    else:
        click.echo(display_value(result, precision))


# ---------------------------------------------------------------------------
# Recalc
# ---------------------------------------------------------------------------


@main.command()
@click.argument("sheet_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Config file or directory containing gridcalc.yaml.")
@click.option("--log-dir", default=None, type=click.Path(file_okay=False), help="Directory for NDJSON event logs.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def recalc(sheet_path: str, config_path: str | None, log_dir: str | None, as_json: bool) -> None:
    """Recalculate every formula cell in SHEET_PATH."""
    path = Path(sheet_path)
    cfg = _load_config(config_path, path.parent)
    _configure_logging(cfg, log_dir)

    rc = Recalculator(load_sheet(path), cfg)
    results = rc.evaluate_all()
    precision = get_display_precision(cfg)

    if as_json:
        payload = {
            "sheet": rc.sheet.name,
            "recalc_id": rc.recalc_id,
            "cells": {addr: _result_json(r, precision) for addr, r in results.items()},
            "errors": rc.get_errors(),
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for addr, result in results.items():
        click.echo(f"{addr}\t{display_value(result, precision)}")
    errors = rc.get_errors()
    if errors:
        click.echo(f"{len(errors)} cell(s) with errors", err=True)


# ---------------------------------------------------------------------------
# Functions / column
# ---------------------------------------------------------------------------


@main.command()
def functions() -> None:
    """List built-in functions in dispatch order."""
    for name in dispatch_order():
        click.echo(name)


@main.command()
@click.argument("value")
def column(value: str) -> None:
    """Convert a column label to its zero-based index, or an index to its label."""
    if value.isdigit():
        click.echo(column_index_to_label(int(value)))
        return
    try:
        click.echo(str(label_to_column_index(value)))
    except ValueError as e:
        raise click.ClickException(str(e))


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command()
@click.option("--log-dir", required=True, type=click.Path(exists=True, file_okay=False), help="Directory holding events.ndjson.")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--address", default=None, help="Filter by cell address.")
@click.option("--limit", default=50, show_default=True, help="Maximum number of events.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def events(log_dir: str, level: str | None, event_type: str | None, address: str | None, limit: int, as_json: bool) -> None:
    """Show recorded events, most recent first."""
    set_log_dir(Path(log_dir))
    rows = get_sink().read_events(
        level=level,
        event_type=event_type,
        address=address.upper() if address else None,
        limit=limit,
    )
    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("No events.")
        return
    for e in rows:
        click.echo(f"{e.get('ts', '')}  {e.get('level', ''):7s}  {e.get('event_type', ''):18s}  {e.get('message', '')}")
