"""Topology builder: services with rolled-up health, inferred connections, metrics."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import Optional

from consul_insight.config.models import InferenceSettings
from consul_insight.errors import MetricsUnavailable
from consul_insight.registry.gateway import RegistryGateway, guarded
from consul_insight.registry.models import (
    FAILING_CHECK_STATUSES,
    Connection,
    FetchResult,
    Service,
    ServiceDependencies,
    ServiceDetails,
    ServiceHealth,
    ServiceMetrics,
)
from consul_insight.topology.inference import (
    InferenceStrategy,
    connections_from_intentions,
    strategies_from_settings,
)
from consul_insight.topology.synthetic import MetricsSource, SyntheticMetricsSource, score_connection

logger = logging.getLogger(__name__)


class TopologyBuilder:
    """Turns raw registry reads into services, connections and metrics.

    Nothing is cached: each call reads the gateway again, so two calls can see
    different registry states.
    """

    def __init__(
        self,
        gateway: RegistryGateway,
        strategies: Optional[Sequence[InferenceStrategy]] = None,
        metrics_source: Optional[MetricsSource] = None,
    ) -> None:
        self._gateway = gateway
        if strategies is None:
            strategies = strategies_from_settings(InferenceSettings())
        self._strategies = list(strategies)
        self._metrics_source: MetricsSource = metrics_source or SyntheticMetricsSource()

    # ─── services ───

    async def fetch_services(self) -> FetchResult[list[Service]]:
        """Service list without health attached."""
        return await guarded(self._gateway.list_services(), [], "service list")

    async def _with_health(self, service: Service) -> Service:
        result = await guarded(self._gateway.health_checks_for(service.id), [], f"checks for {service.id}")
        health = ServiceHealth.from_checks(result.value) if result.ok else ServiceHealth()
        return replace(service, health=health)

    async def list_services(self) -> list[Service]:
        """All services, each with its checks fetched concurrently and rolled up."""
        fetched = await self.fetch_services()
        return list(await asyncio.gather(*(self._with_health(s) for s in fetched.value)))

    # ─── connections ───

    async def _infer(self, services: Optional[Sequence[Service]]) -> list[Connection]:
        intentions = await guarded(self._gateway.list_intentions(), [], "intentions")
        connections = connections_from_intentions(intentions.value)
        if connections:
            logger.debug("Using %d connections from mesh intentions", len(connections))
            return connections

        if services is None:
            services = (await self.fetch_services()).value
        for strategy in self._strategies:
            connections.extend(strategy.infer(services))
        logger.debug("Inferred %d connections from %d services", len(connections), len(services))
        return connections

    async def list_connections(
        self,
        failing_only: bool = False,
        services: Optional[Sequence[Service]] = None,
    ) -> list[Connection]:
        """Connections with synthetic metrics. Pass *services* to reuse an earlier service read."""
        connections = [score_connection(c) for c in await self._infer(services)]
        if failing_only:
            return [c for c in connections if c.is_failing]
        return connections

    # ─── derived views ───

    @staticmethod
    def enrich(service: Service, connections: Sequence[Connection]) -> ServiceDetails:
        return ServiceDetails(
            service=service,
            incoming=[c for c in connections if c.destination == service.name],
            outgoing=[c for c in connections if c.source == service.name],
        )

    async def service_details(self) -> list[ServiceDetails]:
        services = await self.list_services()
        connections = await self.list_connections(services=services)
        return [self.enrich(s, connections) for s in services]

    async def service_by_name(self, name: str) -> Optional[ServiceDetails]:
        """First service instance named *name*, or None."""
        services = await self.list_services()
        service = next((s for s in services if s.name == name), None)
        if service is None:
            return None
        connections = await self.list_connections(services=services)
        return self.enrich(service, connections)

    async def failing_services(self) -> list[ServiceDetails]:
        return [d for d in await self.service_details() if d.service.health.status in FAILING_CHECK_STATUSES]

    async def dependencies(self, name: str) -> ServiceDependencies:
        connections = [c for c in await self.list_connections() if name in (c.source, c.destination)]
        return ServiceDependencies(
            service_name=name,
            dependencies=list(dict.fromkeys(c.destination for c in connections if c.source == name)),
            dependents=list(dict.fromkeys(c.source for c in connections if c.destination == name)),
            connections=connections,
        )

    async def metrics(self, service_name: str) -> ServiceMetrics:
        """Metrics from the configured source. Any source failure surfaces as MetricsUnavailable."""
        try:
            return await self._metrics_source.metrics(service_name)
        except MetricsUnavailable:
            raise
        except Exception as exc:
            logger.warning("Metrics source failed for %s: %s", service_name, exc)
            raise MetricsUnavailable(f"Metrics for {service_name} unavailable: {exc}") from exc
