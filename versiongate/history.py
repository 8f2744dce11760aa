"""Append-only compliance cycle history in JSONL format."""

import json
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from versiongate.models import ComplianceReport, CycleRecord, VersionChange
from versiongate.versions import classify_change


def create_record(report: ComplianceReport) -> CycleRecord:
    """Build a CycleRecord for a report with the current UTC timestamp.

    Args:
        report: The report of a completed cycle.

    Returns:
        A populated CycleRecord.
    """
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    summary = report.summary
    return CycleRecord(
        ts=ts,
        total_services=summary.total_services,
        compliance_score=summary.compliance_score,
        critical_violations=summary.critical_violations,
        warning_violations=summary.warning_violations,
        versions=report.versions_by_service(),
    )


def append_record(record: CycleRecord, log_path: str) -> None:
    """Append a single cycle record as a JSONL line.

    Creates the file (and parent directories) if it does not exist.
    Never overwrites existing entries.

    Args:
        record: The record to log.
        log_path: Filesystem path to the JSONL history log.
    """
    parent = os.path.dirname(log_path)
    if parent and not os.path.isdir(parent):
        os.makedirs(parent, exist_ok=True)

    line = json.dumps({
        "ts": record.ts,
        "total_services": record.total_services,
        "compliance_score": record.compliance_score,
        "critical_violations": record.critical_violations,
        "warning_violations": record.warning_violations,
        "versions": record.versions,
    }, sort_keys=True)

    with open(log_path, "a") as f:
        f.write(line + "\n")


def read_records(log_path: str) -> List[CycleRecord]:
    """Read all records from a JSONL history log.

    Args:
        log_path: Path to the history log.

    Returns:
        List of CycleRecord instances. Lines that are not JSON, or whose fields
        have the wrong types, are skipped.
    """
    if not os.path.isfile(log_path):
        return []

    records = []
    with open(log_path, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                continue
            record = _record_from_raw(raw)
            if record is not None:
                records.append(record)
    return records


def detect_version_changes(
    previous: Dict[str, Dict[str, str]],
    current: Dict[str, Dict[str, str]],
) -> List[VersionChange]:
    """List the tier versions in ``current`` that differ from ``previous``.

    Both arguments map a service key to ``{environment: version}``. Services or
    environments that disappeared are not reported.
    """
    changes = []
    for key in sorted(current):
        before = previous.get(key, {})
        for env in sorted(current[key]):
            version = current[key][env]
            old = before.get(env)
            if old == version:
                continue
            changes.append(VersionChange(
                service_key=key,
                environment=env,
                previous=old,
                current=version,
                change_type=classify_change(old, version),
            ))
    return changes


def _record_from_raw(raw) -> Optional[CycleRecord]:
    """Build a CycleRecord from a decoded line, or None when its shape is wrong."""
    if not isinstance(raw, dict):
        return None

    counters = {
        "total_services": raw.get("total_services", 0),
        "compliance_score": raw.get("compliance_score", 100),
        "critical_violations": raw.get("critical_violations", 0),
        "warning_violations": raw.get("warning_violations", 0),
    }
    for value in counters.values():
        if not isinstance(value, int) or isinstance(value, bool):
            return None

    ts = raw.get("ts", "")
    versions = raw.get("versions", {})
    if not isinstance(ts, str) or not isinstance(versions, dict):
        return None
    for tiers in versions.values():
        if not isinstance(tiers, dict):
            return None
        if not all(isinstance(env, str) and isinstance(v, str) for env, v in tiers.items()):
            return None

    return CycleRecord(ts=ts, versions=versions, **counters)
