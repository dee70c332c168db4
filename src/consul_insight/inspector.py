"""MeshInspector: wires the gateway, builder, classifier, analyzer and renderer together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from consul_insight.analysis.analyzer import IssueAnalyzer, MeshAnalysis, ServiceAnalysis
from consul_insight.config.models import InsightConfig
from consul_insight.diagram.renderer import DiagramOptions, DiagramRenderer
from consul_insight.errors import MetricsUnavailable, ServiceNotFound
from consul_insight.registry.gateway import ConsulGateway, RegistryGateway, guarded
from consul_insight.registry.health import HealthClassifier
from consul_insight.registry.models import (
    Connection,
    DiagnosedCheck,
    FetchResult,
    HealthAnalysis,
    HealthSummary,
    ServiceDependencies,
    ServiceDetails,
    ServiceMetrics,
)
from consul_insight.topology.builder import TopologyBuilder
from consul_insight.topology.inference import strategies_from_settings
from consul_insight.topology.synthetic import MetricsSource

logger = logging.getLogger(__name__)


@dataclass
class ServiceReport:
    """Everything known about one service: details, metrics (if any) and analysis."""

    details: ServiceDetails
    analysis: ServiceAnalysis
    metrics: Optional[ServiceMetrics] = None

    def to_dict(self) -> dict[str, Any]:
        service = self.details.to_dict()
        service["metrics"] = self.metrics.to_dict() if self.metrics else None
        return {"service": service, "analysis": self.analysis.to_dict()}


class MeshInspector:
    """Read-only view of a Consul mesh. Every call reads the registry afresh."""

    def __init__(
        self,
        config: InsightConfig,
        gateway: Optional[RegistryGateway] = None,
        metrics_source: Optional[MetricsSource] = None,
    ) -> None:
        self._config = config
        self.gateway: RegistryGateway = gateway or ConsulGateway(config.consul)
        self.builder = TopologyBuilder(
            self.gateway,
            strategies=strategies_from_settings(config.inference),
            metrics_source=metrics_source,
        )
        self.classifier = HealthClassifier(self.gateway)
        self.analyzer = IssueAnalyzer(self.builder, self.classifier)
        self.renderer = DiagramRenderer()

    async def ping(self) -> FetchResult[str]:
        """Current Raft leader, or the error that prevented reading it."""
        return await guarded(self.gateway.leader(), "", "leader")

    async def services(self, failing_only: bool = False) -> list[ServiceDetails]:
        if failing_only:
            return await self.builder.failing_services()
        return await self.builder.service_details()

    async def _metrics_or_none(self, service_name: str) -> Optional[ServiceMetrics]:
        try:
            return await self.builder.metrics(service_name)
        except MetricsUnavailable:
            return None

    async def service(self, service_name: str) -> ServiceReport:
        details = await self.builder.service_by_name(service_name)
        if details is None:
            raise ServiceNotFound(service_name)
        analysis = await self.analyzer.analyze_details(details)
        return ServiceReport(details=details, analysis=analysis, metrics=await self._metrics_or_none(service_name))

    async def analyze_service(self, service_name: str) -> ServiceAnalysis:
        return await self.analyzer.analyze_service(service_name)

    async def connections(self, failing_only: bool = False) -> list[Connection]:
        return await self.builder.list_connections(failing_only=failing_only)

    async def health_checks(self, failing_only: bool = False) -> list[DiagnosedCheck]:
        return await self.classifier.checks(failing_only=failing_only)

    async def health_summary(self) -> HealthSummary:
        return await self.classifier.summary()

    async def health_analysis(self) -> HealthAnalysis:
        return await self.classifier.classify()

    async def metrics(self, service_name: str) -> ServiceMetrics:
        return await self.builder.metrics(service_name)

    async def dependencies(self, service_name: str) -> ServiceDependencies:
        return await self.builder.dependencies(service_name)

    async def diagram(self, include_health: bool = False, include_metrics: bool = False) -> str:
        services = await self.builder.list_services()
        connections = await self.builder.list_connections(services=services)
        options = DiagramOptions(include_health=include_health, include_metrics=include_metrics)
        return self.renderer.render(services, connections, options)

    async def mesh_analysis(self) -> MeshAnalysis:
        return await self.analyzer.analyze_service_mesh()

    async def snapshot(self) -> dict[str, Any]:
        """Aggregate bundle for serialization: services, health, connections and mesh analysis."""
        services = await self.builder.list_services()
        connections = await self.builder.list_connections(services=services)
        summary, mesh = await asyncio.gather(self.classifier.summary(), self.analyzer.analyze_service_mesh())
        return {
            "services": [self.builder.enrich(s, connections).to_dict() for s in services],
            "health_summary": summary.to_dict(),
            "connections": [c.to_dict() for c in connections],
            "mesh_analysis": mesh.to_dict(),
        }
