"""CLI entry point for the deployment version compliance checker."""

import asyncio
import dataclasses
import logging
import sys

import click
import uvicorn

from versiongate.engine import ComplianceMonitor, CycleFailedError, run_cycle_sync
from versiongate.environments import normalize_environment
from versiongate.history import (
    append_record,
    create_record,
    detect_version_changes,
    read_records,
)
from versiongate.loader import InventoryValidationError, load_inventory
from versiongate.report import render_text, report_to_json
from versiongate.server import create_app
from versiongate.versions import compare_versions

EXIT_VIOLATIONS = 2


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose):
    """Version compliance checks across the dev, uat, oat and prod pipeline."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(inventory_path, timeout_ms=None, interval=None):
    try:
        inventory = load_inventory(inventory_path)
    except InventoryValidationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    overrides = {}
    if timeout_ms is not None:
        overrides["timeout_ms"] = timeout_ms
    if interval is not None:
        overrides["poll_interval_s"] = interval
    if overrides:
        inventory.settings = dataclasses.replace(inventory.settings, **overrides)
    return inventory


@main.command()
@click.option(
    "--inventory",
    required=True,
    type=click.Path(exists=True),
    help="Path to an inventory file (YAML or JSON).",
)
@click.option(
    "--out",
    default=None,
    type=click.Path(),
    help="Optional output path for the JSON report.",
)
@click.option(
    "--log",
    "log_path",
    default=None,
    type=click.Path(),
    help="Optional path to the cycle history log (JSONL). Appends an entry when provided.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format for stdout.",
)
@click.option(
    "--timeout-ms",
    default=None,
    type=click.IntRange(min=1),
    help="Per-probe timeout, overriding the inventory settings.",
)
def check(inventory, out, log_path, fmt, timeout_ms):
    """Run one compliance cycle against every tracked API."""
    inv = _load(inventory, timeout_ms=timeout_ms)

    try:
        report = run_cycle_sync(inv)
    except CycleFailedError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    report_json = report_to_json(report)
    if fmt == "json":
        click.echo(report_json)
    else:
        click.echo(render_text(report))

    if out:
        with open(out, "w") as f:
            f.write(report_json + "\n")
        click.echo(f"Report written to {out}", err=True)

    if log_path:
        previous = read_records(log_path)
        record = create_record(report)
        if previous:
            for change in detect_version_changes(previous[-1].versions, record.versions):
                click.echo(
                    f"Version change: {change.service_key} {change.environment} "
                    f"{change.previous} -> {change.current} ({change.change_type})",
                    err=True,
                )
        append_record(record, log_path)
        click.echo(f"Cycle logged to {log_path}", err=True)

    if report.violations:
        sys.exit(EXIT_VIOLATIONS)


@main.command()
@click.option(
    "--inventory",
    required=True,
    type=click.Path(exists=True),
    help="Path to an inventory file (YAML or JSON).",
)
@click.option(
    "--interval",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between cycles, overriding the inventory settings.",
)
@click.option(
    "--cycles",
    default=None,
    type=click.IntRange(min=1),
    help="Stop after this many cycles (runs until interrupted by default).",
)
def watch(inventory, interval, cycles):
    """Re-run the compliance cycle on a fixed polling interval."""
    inv = _load(inventory, interval=interval)
    monitor = ComplianceMonitor(inv)

    def show(report):
        s = report.summary
        click.echo(
            f"[{s.timestamp}] score {s.compliance_score}% "
            f"({s.critical_violations} critical, {s.warning_violations} warning)"
        )

    try:
        asyncio.run(monitor.watch(cycles=cycles, on_report=show))
    except KeyboardInterrupt:
        click.echo("Stopped.", err=True)


@main.command()
@click.argument("a")
@click.argument("b")
def compare(a, b):
    """Compare two version strings."""
    result = compare_versions(a, b)
    symbol = ">" if result > 0 else ("<" if result < 0 else "=")
    click.echo(f"{a} {symbol} {b}")


@main.command()
@click.argument("label")
def normalize(label):
    """Print the canonical environment tier for LABEL."""
    click.echo(normalize_environment(label))


@main.command()
@click.option(
    "--log",
    "log_path",
    required=True,
    type=click.Path(),
    help="Path to the cycle history log (JSONL).",
)
def history(log_path):
    """List recorded compliance cycles."""
    records = read_records(log_path)
    if not records:
        click.echo("No cycles recorded.")
        return
    for r in records:
        click.echo(
            f"{r.ts}  score {r.compliance_score:>3}%  services {r.total_services}  "
            f"critical {r.critical_violations}  warning {r.warning_violations}"
        )


@main.command()
@click.option(
    "--inventory",
    default=None,
    type=click.Path(exists=True),
    help="Inventory served by /api/compliance.",
)
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
def serve(inventory, host, port):
    """Serve the compliance HTTP API."""
    inv = _load(inventory) if inventory else None
    uvicorn.run(create_app(inv), host=host, port=port)


if __name__ == "__main__":
    main()
