"""Group probe results into per-service, per-environment buckets."""

import logging
from typing import Dict, Sequence
from urllib.parse import urlsplit

from versiongate.environments import normalize_environment
from versiongate.models import (
    ApiEntry,
    Inventory,
    ProbeObservation,
    ProbeResult,
    ServiceBucket,
)
from versiongate.versions import MISSING_VERSION

logger = logging.getLogger(__name__)

UNKNOWN_SERVICE = "unknown-service"


def extract_service_from_url(url: str) -> str:
    """Return the first DNS label of the URL's host, or ``"unknown-service"``."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return UNKNOWN_SERVICE
    if not hostname:
        return UNKNOWN_SERVICE
    return hostname.split(".")[0] or UNKNOWN_SERVICE


def build_observation(entry: ApiEntry, result: ProbeResult, project_name: str) -> ProbeObservation:
    """Turn one probe result into an observation for its entry.

    The payload is only partially trusted: ``service`` and ``version`` are used
    when they are non-empty strings, otherwise the URL host and the ``0.0.0``
    sentinel stand in.
    """
    body = result.body or {}

    service = body.get("service")
    if not isinstance(service, str) or not service:
        service = extract_service_from_url(entry.url)

    version = body.get("version")
    if not isinstance(version, str) or not version.strip():
        version = MISSING_VERSION

    return ProbeObservation(
        service=service,
        version=version,
        url=entry.url,
        status=result.status,
        environment=normalize_environment(entry.environment),
        region=entry.region or "unknown",
        project_id=entry.project_id,
        project_name=project_name,
        response_time_ms=result.response_time_ms,
    )


def group_observations(
    entries: Sequence[ApiEntry],
    results: Sequence[ProbeResult],
    inventory: Inventory,
) -> Dict[str, ServiceBucket]:
    """Bucket observations by ``"<service>-<projectId>"`` and environment tier.

    Args:
        entries: The probed API entries.
        results: One probe result per entry, in the same order.
        inventory: Source of project names.

    Returns:
        Buckets in first-seen order. When several regions land on the same
        service, project and tier, the later entry wins.

    Raises:
        ValueError: If ``entries`` and ``results`` differ in length.
    """
    if len(entries) != len(results):
        raise ValueError(
            f"expected one probe result per entry, got {len(results)} for {len(entries)} entries"
        )

    buckets: Dict[str, ServiceBucket] = {}
    for entry, result in zip(entries, results):
        observation = build_observation(entry, result, inventory.project_name(entry.project_id))
        bucket = ServiceBucket(service=observation.service, project_id=entry.project_id)
        bucket = buckets.setdefault(bucket.key, bucket)

        previous = bucket.tiers.get(observation.environment)
        if previous is not None:
            logger.warning(
                f"{bucket.key}: {observation.environment} reported by regions "
                f"{previous.region} and {observation.region}; keeping {observation.region}"
            )
        bucket.tiers[observation.environment] = observation
    return buckets
