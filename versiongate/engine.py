"""Compliance cycles: probe, group, evaluate and score, keeping the last good report."""

import asyncio
import logging
from typing import Optional, Sequence

import httpx

from versiongate.grouper import group_observations
from versiongate.history import detect_version_changes
from versiongate.models import ComplianceReport, Inventory, ProbeResult
from versiongate.prober import probe_all
from versiongate.rules import evaluate_all
from versiongate.scoring import summarize

logger = logging.getLogger(__name__)


class CycleFailedError(Exception):
    """Raised when every probe in a non-empty cycle failed."""


def evaluate_observations(results: Sequence[ProbeResult], inventory: Inventory) -> ComplianceReport:
    """Group, evaluate and score already-probed results.

    Args:
        results: One probe result per ``inventory.apis`` entry, in order.
        inventory: Inventory the results were gathered for.

    Returns:
        The ComplianceReport for the cycle.
    """
    buckets = group_observations(inventory.apis, results, inventory)
    violations = evaluate_all(buckets.values())
    summary = summarize(list(buckets.values()), violations)
    return ComplianceReport(
        summary=summary,
        violations=violations,
        services=buckets,
        probes=list(results),
    )


async def run_cycle(
    inventory: Inventory,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ComplianceReport:
    """Probe every tracked API and evaluate compliance.

    Individual probe failures become offline observations. The cycle only fails
    as a whole when at least one API was probed and every probe failed.

    Raises:
        CycleFailedError: If all probes failed.
    """
    results = await probe_all(inventory.apis, inventory.settings, transport)

    if results and all(r.failed for r in results):
        raise CycleFailedError("All API checks failed (network/CORS/timeout).")

    report = evaluate_observations(results, inventory)
    s = report.summary
    logger.info(
        f"Compliance cycle: {s.total_services} services, score {s.compliance_score}%, "
        f"{s.critical_violations} critical, {s.warning_violations} warning"
    )
    return report


def run_cycle_sync(
    inventory: Inventory,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ComplianceReport:
    return asyncio.run(run_cycle(inventory, transport))


class ComplianceMonitor:
    """Holds the latest successful report and serializes refreshes.

    ``latest`` is replaced only after a cycle completes successfully, so readers
    never see a partially built report. A failed cycle leaves it untouched.
    """

    def __init__(self, inventory: Inventory, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.inventory = inventory
        self.transport = transport
        self.cycles = 0
        self.last_error: Optional[str] = None
        self._latest: Optional[ComplianceReport] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def latest(self) -> Optional[ComplianceReport]:
        return self._latest

    async def refresh(self) -> ComplianceReport:
        """Run one cycle; concurrent callers wait for the one in flight."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            try:
                report = await run_cycle(self.inventory, self.transport)
            except CycleFailedError as e:
                self.last_error = str(e)
                raise

            previous = self._latest
            if previous is not None:
                changes = detect_version_changes(
                    previous.versions_by_service(), report.versions_by_service()
                )
                for change in changes:
                    logger.info(
                        f"Version change detected: {change.service_key} {change.environment} "
                        f"{change.previous} -> {change.current} ({change.change_type})"
                    )

            self._latest = report
            self.last_error = None
            self.cycles += 1
            return report

    async def watch(self, cycles: Optional[int] = None, on_report=None) -> None:
        """Refresh every ``poll_interval_s`` seconds.

        Failed cycles are logged and the loop keeps going.

        Args:
            cycles: Stop after this many attempts; run forever when None.
            on_report: Optional callback invoked with each successful report.
        """
        interval = self.inventory.settings.poll_interval_s
        attempt = 0
        while cycles is None or attempt < cycles:
            attempt += 1
            try:
                report = await self.refresh()
            except CycleFailedError as e:
                logger.warning(f"Compliance cycle {attempt} failed: {e}")
            else:
                if on_report is not None:
                    on_report(report)
            if cycles is None or attempt < cycles:
                await asyncio.sleep(interval)
