"""Evaluate per-service environment buckets against the version-ordering rules."""

from dataclasses import dataclass
from typing import List, Optional

from versiongate.models import (
    TIERS,
    UNKNOWN_PROJECT,
    ProbeObservation,
    ServiceBucket,
    TierVersions,
    Violation,
)
from versiongate.versions import compare_versions


@dataclass(frozen=True)
class Rule:
    id: str
    severity: str
    higher: str  # tier that must not be ahead
    lower: str  # tier it is compared against
    template: str
    # "ahead": fire when higher > lower; "missing": fire when lower is absent
    kind: str = "ahead"


RULES = (
    Rule(
        id="A1",
        severity="critical",
        higher="prod",
        lower="oat",
        template=(
            "CRITICAL: PROD version ({higher}) is higher than OAT version ({lower}). "
            "PROD version can’t be higher than OAT or UAT."
        ),
    ),
    Rule(
        id="A2",
        severity="critical",
        higher="prod",
        lower="uat",
        template=(
            "CRITICAL: PROD version ({higher}) is higher than UAT version ({lower}). "
            "PROD version can’t be higher than OAT or UAT."
        ),
    ),
    Rule(
        id="B",
        severity="warning",
        higher="oat",
        lower="uat",
        template=(
            "WARNING: OAT version ({higher}) is higher than UAT version ({lower}). "
            "OAT version can’t be higher than UAT."
        ),
    ),
    Rule(
        id="C",
        severity="warning",
        higher="prod",
        lower="uat",
        template="WARNING: PROD exists ({higher}) but UAT environment is missing.",
        kind="missing",
    ),
)


def evaluate_bucket(bucket: ServiceBucket, rules=RULES) -> List[Violation]:
    """Apply every rule to one service bucket.

    Only the dev, uat, oat and prod slots take part; other environment labels
    in the bucket are ignored. dev is reported in the snapshot but never
    compared.

    Args:
        bucket: Observations for one service and project.
        rules: Rule table to apply, in order.

    Returns:
        Violations in rule order; empty when no tier slot is filled.
    """
    present = {tier: bucket.get(tier) for tier in TIERS}
    source = _first_present(present)
    if source is None:
        return []

    snapshot = TierVersions(**{tier: obs.version if obs else None for tier, obs in present.items()})
    project_name = source.project_name or UNKNOWN_PROJECT

    violations = []
    for rule in rules:
        message = _check(rule, present)
        if message is None:
            continue
        violations.append(Violation(
            service=source.service,
            project_name=project_name,
            message=message,
            severity=rule.severity,
            rule=rule.id,
            environments=snapshot,
        ))
    return violations


def evaluate_all(buckets, rules=RULES) -> List[Violation]:
    violations = []
    for bucket in buckets:
        violations.extend(evaluate_bucket(bucket, rules))
    return violations


# -- internal helpers ---------------------------------------------------------


def _first_present(present: dict) -> Optional[ProbeObservation]:
    for tier in TIERS:
        if present[tier] is not None:
            return present[tier]
    return None


def _check(rule: Rule, present: dict) -> Optional[str]:
    higher = present[rule.higher]
    lower = present[rule.lower]
    if higher is None:
        return None

    if rule.kind == "missing":
        if lower is None:
            return rule.template.format(higher=higher.version)
        return None

    if lower is not None and compare_versions(higher.version, lower.version) > 0:
        return rule.template.format(higher=higher.version, lower=lower.version)
    return None
