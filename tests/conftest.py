"""Shared fixtures for consul-insight tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
import yaml

from consul_insight.config.models import InsightConfig
from consul_insight.errors import BackendUnavailable, MetricsUnavailable
from consul_insight.registry.models import (
    CpuUsage,
    HealthCheck,
    Intention,
    MemoryUsage,
    NetworkCounters,
    ResponseTimes,
    Service,
    ServiceMetrics,
)

SAMPLE_CONFIG: Dict[str, Any] = {
    "consul": {
        "address": "http://consul.test:8500",
        "token": "",
        "datacenter": "",
        "timeout": 2,
    },
    "inference": {
        "metadata_dependencies": True,
        "upstream_meta_key": "upstream_services",
        "naming_convention": True,
        "naming_rules": [
            {"source": "web", "target": "api"},
            {"source": "service", "target": "db"},
        ],
    },
    "auth": {"api_key": ""},
}


@dataclass
class FakeGateway:
    """In-memory RegistryGateway. Set a ``fail_*`` flag to make that read raise."""

    services: list[Service] = field(default_factory=list)
    checks: list[HealthCheck] = field(default_factory=list)
    intentions: list[Intention] = field(default_factory=list)
    leader_address: str = "10.0.0.1:8300"
    fail_services: bool = False
    fail_checks: bool = False
    fail_intentions: bool = False
    fail_leader: bool = False

    async def list_services(self) -> list[Service]:
        if self.fail_services:
            raise BackendUnavailable("catalog down")
        return list(self.services)

    async def health_checks_for(self, service_id: str) -> list[HealthCheck]:
        if self.fail_checks:
            raise BackendUnavailable("agent down")
        return [c for c in self.checks if c.service_id == service_id]

    async def all_health_checks(self) -> list[HealthCheck]:
        if self.fail_checks:
            raise BackendUnavailable("agent down")
        return list(self.checks)

    async def list_intentions(self) -> list[Intention]:
        if self.fail_intentions:
            raise BackendUnavailable("connect disabled")
        return list(self.intentions)

    async def leader(self) -> str:
        if self.fail_leader:
            raise BackendUnavailable("no leader")
        return self.leader_address


class FixedMetricsSource:
    """MetricsSource returning the same figures for every service, or raising if none are set."""

    def __init__(self, metrics: Optional[ServiceMetrics] = None) -> None:
        self._metrics = metrics

    async def metrics(self, service_name: str) -> ServiceMetrics:
        if self._metrics is None:
            raise MetricsUnavailable(f"no metrics for {service_name}")
        return self._metrics


def make_metrics(
    service_name: str = "svc",
    cpu: float = 0.2,
    memory_used: int = 256,
    error_rate: float = 0.01,
    p99: int = 250,
) -> ServiceMetrics:
    return ServiceMetrics(
        service_name=service_name,
        cpu=CpuUsage(usage=cpu, cores=2),
        memory=MemoryUsage(used=memory_used, total=1024),
        network=NetworkCounters(rx_bytes=1000, tx_bytes=2000),
        request_rate=120,
        error_rate=error_rate,
        response_time=ResponseTimes(p50=40, p90=120, p99=p99),
    )


def make_service(name: str, sid: Optional[str] = None, **meta: str) -> Service:
    return Service(
        id=sid or f"{name}-1",
        name=name,
        address="10.0.0.10",
        port=8080,
        node="node-1",
        meta=dict(meta),
    )


@pytest.fixture()
def sample_config() -> InsightConfig:
    """Return a parsed InsightConfig from sample data."""
    return InsightConfig(**SAMPLE_CONFIG)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write sample config to a temp .consul-insight.yaml and return the path."""
    path = tmp_path / ".consul-insight.yaml"
    with path.open("w") as fh:
        yaml.dump(SAMPLE_CONFIG, fh)
    return path


@pytest.fixture()
def mesh_gateway() -> FakeGateway:
    """Five services without intentions: web calls api by name, api declares db and cache, batch is alone."""
    return FakeGateway(
        services=[
            make_service("web"),
            make_service("api", upstream_services="db, cache", protocol="grpc"),
            make_service("db"),
            make_service("cache"),
            make_service("batch"),
        ],
        checks=[
            HealthCheck(
                id="service:api-1",
                name="API HTTP",
                status="critical",
                output="HTTP GET http://10.0.0.10:8080/health: 503 Service Unavailable",
                service_id="api-1",
                service_name="api",
            ),
            HealthCheck(
                id="service:db-1",
                name="DB disk",
                status="warning",
                output="disk usage at 92%",
                service_id="db-1",
                service_name="db",
            ),
            HealthCheck(
                id="service:web-1",
                name="Web HTTP",
                status="passing",
                output="HTTP GET http://10.0.0.10:8080/health: 200 OK",
                service_id="web-1",
                service_name="web",
            ),
            HealthCheck(
                id="service:cache-1",
                name="Cache TCP",
                status="passing",
                output="TCP connect 10.0.0.10:6379: Success",
                service_id="cache-1",
                service_name="cache",
            ),
        ],
    )


@pytest.fixture()
def intention_gateway() -> FakeGateway:
    """A hub with three denied callees, one extra denied edge, and a lonely service."""
    return FakeGateway(
        services=[make_service(n) for n in ("hub", "a", "b", "c", "lonely")],
        intentions=[
            Intention(source="hub", destination="a", action="deny"),
            Intention(source="hub", destination="b", action="deny"),
            Intention(source="hub", destination="c", action="deny"),
            Intention(source="a", destination="b", action="deny"),
        ],
    )
