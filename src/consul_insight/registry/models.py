"""Data models for registry records, health rollups, and inferred connections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")

PASSING = "passing"
WARNING = "warning"
CRITICAL = "critical"
UNKNOWN = "unknown"

HEALTH_STATUSES = (PASSING, WARNING, CRITICAL, UNKNOWN)
FAILING_CHECK_STATUSES = frozenset({WARNING, CRITICAL})

# Connection statuses that count as a problem for analysis and filtering.
FAILING_CONNECTION_STATUSES = frozenset({"degraded", "failing", "blocked"})


def rollup_status(statuses: Iterable[str]) -> str:
    """Worst-case rollup: critical beats warning beats passing. Unknown never escalates."""
    seen = set(statuses)
    if CRITICAL in seen:
        return CRITICAL
    if WARNING in seen:
        return WARNING
    return PASSING


@dataclass
class FetchResult(Generic[T]):
    """Outcome of a gateway read: the value, or a default plus the error that replaced it."""

    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class HealthCheck:
    """A single health check as reported by the registry."""

    id: str
    name: str
    status: str
    output: str = ""
    notes: str = ""
    service_id: Optional[str] = None
    service_name: Optional[str] = None

    @property
    def is_failing(self) -> bool:
        return self.status in FAILING_CHECK_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "output": self.output,
            "notes": self.notes,
            "service_id": self.service_id,
            "service_name": self.service_name,
        }


@dataclass
class ServiceHealth:
    """Rolled-up health of one service instance."""

    status: str = UNKNOWN
    checks: list[HealthCheck] = field(default_factory=list)

    @classmethod
    def from_checks(cls, checks: list[HealthCheck]) -> ServiceHealth:
        return cls(status=rollup_status(c.status for c in checks), checks=list(checks))

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "checks": [c.to_dict() for c in self.checks]}


@dataclass
class Service:
    """A registered service instance. Unique by id; names repeat across nodes."""

    id: str
    name: str
    address: str = ""
    port: int = 0
    node: str = ""
    tags: frozenset[str] = field(default_factory=frozenset)
    meta: dict[str, str] = field(default_factory=dict)
    health: ServiceHealth = field(default_factory=ServiceHealth)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "port": self.port,
            "node": self.node,
            "tags": sorted(self.tags),
            "meta": dict(self.meta),
            "health": self.health.to_dict(),
        }


@dataclass
class Intention:
    """A mesh authorization policy between two services."""

    source: str
    destination: str
    action: str


@dataclass
class Connection:
    """A directed edge between two services, either authoritative or inferred."""

    source: str
    destination: str
    status: str
    protocol: str = "http"
    uses_service_mesh: bool = False
    intention_action: Optional[str] = None
    latency: Optional[int] = None
    error_rate: Optional[float] = None
    request_volume: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def is_failing(self) -> bool:
        return self.status in FAILING_CONNECTION_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "status": self.status,
            "protocol": self.protocol,
            "uses_service_mesh": self.uses_service_mesh,
            "intention_action": self.intention_action,
            "latency": self.latency,
            "error_rate": self.error_rate,
            "request_volume": self.request_volume,
            "error_message": self.error_message,
        }


@dataclass
class ServiceDetails:
    """A service together with the connections that touch it."""

    service: Service
    incoming: list[Connection] = field(default_factory=list)
    outgoing: list[Connection] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.service.name

    @property
    def has_failing_connections(self) -> bool:
        return any(c.is_failing for c in self.incoming) or any(c.is_failing for c in self.outgoing)

    @property
    def has_failing_health_checks(self) -> bool:
        return any(c.is_failing for c in self.service.health.checks)

    @property
    def failing_checks(self) -> list[HealthCheck]:
        return [c for c in self.service.health.checks if c.is_failing]

    def summary(self) -> dict[str, Any]:
        return {
            "health_status": self.service.health.status,
            "check_count": len(self.service.health.checks),
            "incoming_connection_count": len(self.incoming),
            "outgoing_connection_count": len(self.outgoing),
            "has_failing_connections": self.has_failing_connections,
            "has_failing_health_checks": self.has_failing_health_checks,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.service.to_dict()
        data["connections"] = {
            "incoming": [c.to_dict() for c in self.incoming],
            "outgoing": [c.to_dict() for c in self.outgoing],
        }
        data["summary"] = self.summary()
        return data


@dataclass
class ServiceDependencies:
    """What a service calls and what calls it."""

    service_name: str
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "dependencies": list(self.dependencies),
            "dependents": list(self.dependents),
            "connections": [c.to_dict() for c in self.connections],
        }


@dataclass
class CpuUsage:
    usage: float
    cores: int


@dataclass
class MemoryUsage:
    used: int  # MB
    total: int  # MB

    @property
    def ratio(self) -> float:
        return self.used / self.total if self.total else 0.0


@dataclass
class NetworkCounters:
    rx_bytes: int
    tx_bytes: int


@dataclass
class ResponseTimes:
    p50: int
    p90: int
    p99: int


@dataclass
class ServiceMetrics:
    """Per-service performance figures. The default source simulates them."""

    service_name: str
    cpu: CpuUsage
    memory: MemoryUsage
    network: NetworkCounters
    request_rate: int  # requests per minute
    error_rate: float
    response_time: ResponseTimes

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "cpu": {"usage": self.cpu.usage, "cores": self.cpu.cores},
            "memory": {"used": self.memory.used, "total": self.memory.total},
            "network": {"rx_bytes": self.network.rx_bytes, "tx_bytes": self.network.tx_bytes},
            "request_rate": self.request_rate,
            "error_rate": self.error_rate,
            "response_time": {
                "p50": self.response_time.p50,
                "p90": self.response_time.p90,
                "p99": self.response_time.p99,
            },
        }


@dataclass
class ServiceCheckCount:
    service_name: str
    count: int


@dataclass
class HealthSummary:
    """Check counts per status across the whole registry."""

    total: int = 0
    passing: int = 0
    warning: int = 0
    critical: int = 0
    unknown: int = 0
    overall_status: str = PASSING
    failing_checks_by_service: list[ServiceCheckCount] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passing": self.passing,
            "warning": self.warning,
            "critical": self.critical,
            "unknown": self.unknown,
            "overall_status": self.overall_status,
            "failing_checks_by_service": [
                {"service_name": c.service_name, "count": c.count} for c in self.failing_checks_by_service
            ],
        }


@dataclass
class PatternReport:
    """One failure signature found across failing checks."""

    type: str
    count: int
    affected_services: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "count": self.count, "affected_services": list(self.affected_services)}


@dataclass
class HealthAnalysis:
    patterns: list[PatternReport] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "recommendations": list(self.recommendations),
        }


@dataclass
class CheckDiagnosis:
    possible_issues: list[str]
    remediation: list[str]
    severity: str  # "high" | "medium" | "low"

    def to_dict(self) -> dict[str, Any]:
        return {
            "possible_issues": list(self.possible_issues),
            "remediation": list(self.remediation),
            "severity": self.severity,
        }


@dataclass
class DiagnosedCheck:
    check: HealthCheck
    diagnosis: CheckDiagnosis

    def to_dict(self) -> dict[str, Any]:
        data = self.check.to_dict()
        data["analysis"] = self.diagnosis.to_dict()
        return data
