"""Roll evaluated violations up into a compliance summary."""

from datetime import datetime, timezone
from typing import Optional, Sequence

from versiongate.models import ComplianceSummary, ServiceBucket, Violation


def summarize(
    buckets: Sequence[ServiceBucket],
    violations: Sequence[Violation],
    now: Optional[datetime] = None,
) -> ComplianceSummary:
    """Compute the compliance summary for one cycle.

    A service counts as violating when its ``service-projectName`` identity is
    the source of at least one violation. The score is 100 when there are no
    services at all.

    Args:
        buckets: Every bucket evaluated in the cycle.
        violations: Violations produced for those buckets.
        now: Timestamp to stamp on the summary; defaults to the current UTC time.

    Returns:
        A ComplianceSummary.
    """
    total = len(buckets)
    violating = len({v.identity for v in violations})
    compliant = max(total - violating, 0)
    critical = sum(1 for v in violations if v.severity == "critical")
    warning = sum(1 for v in violations if v.severity == "warning")
    score = _round_half_up(100 * compliant / total) if total > 0 else 100

    ts = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")
    return ComplianceSummary(
        total_services=total,
        compliant_services=compliant,
        violating_services=violating,
        total_violations=len(violations),
        critical_violations=critical,
        warning_violations=warning,
        compliance_score=score,
        timestamp=ts,
    )


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; 62.5 must give 63
    return int(value + 0.5)
