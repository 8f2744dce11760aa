"""FastAPI service for single probes, ad-hoc compliance checks and the monitored inventory."""

import logging
from typing import List, Optional

import httpx
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from versiongate.engine import ComplianceMonitor, CycleFailedError, run_cycle
from versiongate.models import ApiEntry, Inventory, Project, Settings
from versiongate.prober import build_client, probe_entry
from versiongate.report import probe_to_dict, report_to_dict

logger = logging.getLogger(__name__)


class CheckRequest(BaseModel):
    url: Optional[str] = None
    environment: Optional[str] = None
    region: Optional[str] = None
    apiId: Optional[int] = None


class ComplianceCheckRequest(BaseModel):
    urls: Optional[List[str]] = None
    environments: Optional[List[str]] = None
    regions: Optional[List[str]] = None
    projectId: int = 0
    projectName: Optional[str] = None


def _error(message: str, code: int) -> JSONResponse:
    return JSONResponse(status_code=code, content={"error": message})


def create_app(
    inventory: Optional[Inventory] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the service.

    Args:
        inventory: Tracked APIs served by ``/api/compliance``; that endpoint
            answers 404 when omitted.
        transport: Optional httpx transport for outbound probes.
        settings: Probe settings for ad-hoc checks; defaults to the
            inventory's settings.
    """
    app = FastAPI(title="versiongate")
    settings = settings or (inventory.settings if inventory else Settings())
    monitor = ComplianceMonitor(inventory, transport) if inventory is not None else None
    app.state.monitor = monitor

    @app.post("/api/check")
    async def check(req: CheckRequest):
        if not req.url or not req.url.strip():
            return _error(
                "Missing required property 'url'. Send: {\"url\":\"https://service/health\"}",
                status.HTTP_400_BAD_REQUEST,
            )
        entry = ApiEntry(
            id=req.apiId or 0,
            project_id=0,
            url=req.url,
            environment=req.environment or "",
            region=req.region or "unknown",
        )
        async with build_client(settings, transport) as client:
            result = await probe_entry(client, entry, settings.timeout_ms)

        out = probe_to_dict(result)
        out["apiId"] = req.apiId
        out["environment"] = req.environment
        out["region"] = entry.region
        return out

    @app.post("/api/compliance-check")
    async def compliance_check(req: ComplianceCheckRequest):
        if req.urls is None or req.environments is None or len(req.urls) != len(req.environments):
            return _error(
                "URLs and environments arrays must be provided and have the same length",
                status.HTTP_400_BAD_REQUEST,
            )
        if req.regions is not None and len(req.regions) != len(req.urls):
            return _error("regions must have the same length as urls", status.HTTP_400_BAD_REQUEST)

        regions = req.regions or ["unknown"] * len(req.urls)
        adhoc = Inventory(
            projects=[Project(id=req.projectId, name=req.projectName)] if req.projectName else [],
            apis=[
                ApiEntry(id=i + 1, project_id=req.projectId, url=url, environment=env, region=region)
                for i, (url, env, region) in enumerate(zip(req.urls, req.environments, regions))
            ],
            settings=settings,
        )
        try:
            report = await run_cycle(adhoc, transport)
        except CycleFailedError as e:
            return _error(str(e), status.HTTP_502_BAD_GATEWAY)
        return report_to_dict(report)

    @app.get("/api/compliance")
    async def latest_compliance():
        if monitor is None:
            return _error("no inventory configured", status.HTTP_404_NOT_FOUND)
        if monitor.latest is None:
            return _error("no compliance cycle has completed yet", status.HTTP_404_NOT_FOUND)
        out = report_to_dict(monitor.latest)
        out["lastError"] = monitor.last_error
        return out

    @app.post("/api/compliance/refresh")
    async def refresh_compliance():
        if monitor is None:
            return _error("no inventory configured", status.HTTP_404_NOT_FOUND)
        try:
            report = await monitor.refresh()
        except CycleFailedError as e:
            logger.warning(f"Manual compliance refresh failed: {e}")
            return _error(str(e), status.HTTP_502_BAD_GATEWAY)
        return report_to_dict(report)

    return app
