"""Data models for inventories, probe results, violations, and compliance reports."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

TIERS = ("dev", "uat", "oat", "prod")

UNKNOWN_PROJECT = "Unknown Project"


@dataclass
class Project:
    id: int
    name: str


@dataclass
class ApiEntry:
    id: int
    project_id: int
    url: str
    environment: str
    region: str = "unknown"


@dataclass
class Settings:
    timeout_ms: int = 8000
    poll_interval_s: float = 30.0
    max_concurrency: int = 16


@dataclass
class Inventory:
    projects: List[Project] = field(default_factory=list)
    apis: List[ApiEntry] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)

    def project_name(self, project_id: int) -> str:
        for project in self.projects:
            if project.id == project_id:
                return project.name
        return UNKNOWN_PROJECT


@dataclass(frozen=True)
class ProbeResult:
    api_id: int
    url: str
    status: str  # "online", "offline"
    http_status: int = 0
    response_time_ms: Optional[int] = None
    body: dict = field(default_factory=dict)
    error: Optional[str] = None
    # no usable payload: network error, timeout or a body that is not a JSON object
    failed: bool = False


@dataclass(frozen=True)
class ProbeObservation:
    service: str
    version: str
    url: str
    status: str  # "online", "offline"
    environment: str
    region: str
    project_id: int
    project_name: str
    response_time_ms: Optional[int] = None


@dataclass
class ServiceBucket:
    service: str
    project_id: int
    tiers: Dict[str, ProbeObservation] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.service}-{self.project_id}"

    def get(self, tier: str) -> Optional[ProbeObservation]:
        return self.tiers.get(tier)


@dataclass(frozen=True)
class TierVersions:
    dev: Optional[str] = None
    uat: Optional[str] = None
    oat: Optional[str] = None
    prod: Optional[str] = None

    def to_dict(self) -> dict:
        return {tier: getattr(self, tier) for tier in TIERS if getattr(self, tier) is not None}


@dataclass(frozen=True)
class Violation:
    service: str
    project_name: str
    message: str
    severity: str  # "critical", "warning", "info"
    rule: str
    environments: TierVersions = field(default_factory=TierVersions)

    @property
    def identity(self) -> str:
        return f"{self.service}-{self.project_name}"


@dataclass(frozen=True)
class ComplianceSummary:
    total_services: int
    compliant_services: int
    violating_services: int
    total_violations: int
    critical_violations: int
    warning_violations: int
    compliance_score: int
    timestamp: str


@dataclass(frozen=True)
class ComplianceReport:
    summary: ComplianceSummary
    violations: List[Violation] = field(default_factory=list)
    services: Dict[str, ServiceBucket] = field(default_factory=dict)
    probes: List[ProbeResult] = field(default_factory=list)

    def versions_by_service(self) -> Dict[str, Dict[str, str]]:
        return {
            key: {tier: obs.version for tier, obs in bucket.tiers.items()}
            for key, bucket in self.services.items()
        }


@dataclass(frozen=True)
class VersionChange:
    service_key: str
    environment: str
    previous: Optional[str]
    current: str
    change_type: str  # "initial", "major", "minor", "patch", "unknown"


@dataclass
class CycleRecord:
    ts: str
    total_services: int
    compliance_score: int
    critical_violations: int = 0
    warning_violations: int = 0
    versions: Dict[str, Dict[str, str]] = field(default_factory=dict)
