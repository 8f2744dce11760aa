"""Concurrent, timeout-bounded HTTP probes of tracked API endpoints."""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

import httpx

from versiongate.models import ApiEntry, ProbeResult, Settings

logger = logging.getLogger(__name__)

USER_AGENT = "versiongate-prober/1.0"


def build_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Create the shared async client used for one probing cycle."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_ms / 1000.0),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        follow_redirects=True,
        transport=transport,
    )


async def probe_entry(client: httpx.AsyncClient, entry: ApiEntry, timeout_ms: int) -> ProbeResult:
    """Probe a single endpoint and capture any failure as an offline result.

    The request is cancelled once ``timeout_ms`` elapses. A response whose
    body is not a JSON object is treated as a failed probe. A non-2xx response
    with a JSON object body is offline but not failed: its payload still counts.

    Args:
        client: Shared async HTTP client.
        entry: The API entry to probe.
        timeout_ms: Upper bound for the whole request.

    Returns:
        A ProbeResult; never raises for network, timeout, or payload errors.
    """
    start = time.perf_counter()
    try:
        response = await asyncio.wait_for(client.get(entry.url), timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError:
        logger.debug(f"Probe of {entry.url} timed out after {timeout_ms} ms")
        return _offline(entry, f"timeout after {timeout_ms} ms")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug(f"Probe of {entry.url} failed: {type(e).__name__}")
        return _offline(entry, f"{type(e).__name__}: {e}")

    elapsed = int((time.perf_counter() - start) * 1000)

    try:
        body = response.json()
    except ValueError:
        logger.debug(f"Probe of {entry.url} returned a non-JSON body")
        return _offline(entry, "response body is not JSON", response.status_code, elapsed)

    if not isinstance(body, dict):
        logger.debug(f"Probe of {entry.url} returned JSON that is not an object")
        return _offline(entry, "response body is not a JSON object", response.status_code, elapsed)

    if not response.is_success:
        return ProbeResult(
            api_id=entry.id,
            url=entry.url,
            status="offline",
            http_status=response.status_code,
            response_time_ms=elapsed,
            body=body,
            error=f"HTTP {response.status_code}",
        )

    logger.debug(f"Probe of {entry.url} succeeded in {elapsed} ms")
    return ProbeResult(
        api_id=entry.id,
        url=entry.url,
        status="online",
        http_status=response.status_code,
        response_time_ms=elapsed,
        body=body,
    )


async def probe_all(
    entries: Sequence[ApiEntry],
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ProbeResult]:
    """Probe every entry concurrently, bounded by ``settings.max_concurrency``.

    Results are returned in the same order as ``entries``; a probe that raises
    an unexpected error is still reported as an offline result.
    """
    if not entries:
        return []

    semaphore = asyncio.Semaphore(settings.max_concurrency)

    async with build_client(settings, transport) as client:

        async def bounded(entry: ApiEntry) -> ProbeResult:
            async with semaphore:
                return await probe_entry(client, entry, settings.timeout_ms)

        outcomes = await asyncio.gather(*(bounded(e) for e in entries), return_exceptions=True)

    results = []
    for entry, outcome in zip(entries, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error(f"Probe of {entry.url} raised {type(outcome).__name__}: {outcome}")
            results.append(_offline(entry, f"{type(outcome).__name__}: {outcome}"))
        else:
            results.append(outcome)
    return results


def _offline(
    entry: ApiEntry,
    error: str,
    http_status: int = 0,
    response_time_ms: Optional[int] = None,
) -> ProbeResult:
    return ProbeResult(
        api_id=entry.id,
        url=entry.url,
        status="offline",
        http_status=http_status,
        response_time_ms=response_time_ms,
        error=error,
        failed=True,
    )
