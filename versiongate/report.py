"""Serialize compliance reports for the dashboard and render CLI narratives."""

import json
from typing import List

from versiongate.models import (
    ComplianceReport,
    ComplianceSummary,
    ProbeObservation,
    ProbeResult,
    Violation,
)


def summary_to_dict(summary: ComplianceSummary) -> dict:
    return {
        "totalServices": summary.total_services,
        "compliantServices": summary.compliant_services,
        "violatingServices": summary.violating_services,
        "totalViolations": summary.total_violations,
        "criticalViolations": summary.critical_violations,
        "warningViolations": summary.warning_violations,
        "complianceScore": summary.compliance_score,
        "timestamp": summary.timestamp,
    }


def violation_to_dict(violation: Violation) -> dict:
    return {
        "service": violation.service,
        "projectName": violation.project_name,
        "violation": violation.message,
        "severity": violation.severity,
        "rule": violation.rule,
        "environments": violation.environments.to_dict(),
    }


def observation_to_dict(observation: ProbeObservation) -> dict:
    return {
        "service": observation.service,
        "version": observation.version,
        "url": observation.url,
        "status": observation.status,
        "environment": observation.environment,
        "region": observation.region,
        "responseTime": observation.response_time_ms,
        "projectId": observation.project_id,
        "projectName": observation.project_name,
    }


def probe_to_dict(result: ProbeResult) -> dict:
    body = result.body or {}
    version = body.get("version")
    service = body.get("service")
    return {
        "apiId": result.api_id,
        "url": result.url,
        "status": result.status,
        "httpStatus": result.http_status,
        "responseTime": result.response_time_ms,
        "version": version if isinstance(version, str) else None,
        "service": service if isinstance(service, str) else None,
        "error": result.error,
    }


def report_to_dict(report: ComplianceReport) -> dict:
    """Convert a report into the JSON shape consumed by the dashboard."""
    out = summary_to_dict(report.summary)
    out["violations"] = [violation_to_dict(v) for v in report.violations]
    out["services"] = {
        key: {env: observation_to_dict(obs) for env, obs in bucket.tiers.items()}
        for key, bucket in report.services.items()
    }
    return out


def report_to_json(report: ComplianceReport) -> str:
    """Serialize a report to a deterministic JSON string."""
    return json.dumps(report_to_dict(report), indent=2, sort_keys=True)


def render_text(report: ComplianceReport) -> str:
    """Render a human-readable narrative of a report."""
    s = report.summary
    lines = []
    if not report.violations:
        lines.append("All services are compliant.")
    else:
        lines.append(
            f"COMPLIANCE VIOLATION: {s.violating_services} of {s.total_services} service(s) "
            f"affected ({s.critical_violations} critical, {s.warning_violations} warning)."
        )

    lines.append(
        f"Compliance score: {s.compliance_score}% "
        f"({s.compliant_services}/{s.total_services} compliant)"
    )

    if report.violations:
        lines.append("Violations:")
        for v in report.violations:
            lines.append(f"  - [{v.severity}] {v.service} ({v.project_name}): {v.message}")

    offline = _offline_endpoints(report)
    if offline:
        lines.append("Offline endpoints:")
        for url in offline:
            lines.append(f"  - {url}")

    lines.append(f"Checked at {s.timestamp}")
    return "\n".join(lines)


def _offline_endpoints(report: ComplianceReport) -> List[str]:
    return [p.url for p in report.probes if p.status == "offline"]
