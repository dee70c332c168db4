"""Issue and recommendation analysis for single services and the whole mesh."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from consul_insight.errors import MetricsUnavailable, ServiceNotFound
from consul_insight.registry.health import HTTP_ERROR_PATTERN, HealthClassifier
from consul_insight.registry.models import UNKNOWN, Connection, ServiceDetails
from consul_insight.topology.builder import TopologyBuilder

logger = logging.getLogger(__name__)

HIGH_ERROR_RATE = 0.05
HIGH_CPU_USAGE = 0.8
HIGH_MEMORY_RATIO = 0.9
SLOW_P99_MS = 500

MOST_CONNECTED_LIMIT = 3
MOST_CONNECTED_MIN_DEGREE = 2
LISTED_PAIRS_LIMIT = 3

# Independent of the per-check diagnosis table in registry.health; wording differs.
CHECK_OUTPUT_RECOMMENDATIONS: list[tuple[Callable[[str], bool], str]] = [
    (lambda out: "timeout" in out.lower(), "Check for slow response times or overloaded resources"),
    (
        lambda out: "connection refused" in out.lower(),
        "Verify the service is running and accepting connections",
    ),
    (
        lambda out: "disk" in out.lower() or "storage" in out.lower(),
        "Increase available disk space or clean up logs/temporary files",
    ),
    (lambda out: HTTP_ERROR_PATTERN.search(out) is not None, "Investigate HTTP errors in service logs"),
]


@dataclass
class ServiceAnalysis:
    service_name: str
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
        }


@dataclass
class MeshAnalysis:
    summary: str
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    isolated_services: list[str] = field(default_factory=list)
    most_connected: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "isolated_services": list(self.isolated_services),
            "most_connected": list(self.most_connected),
        }


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def build_adjacency(service_names: Iterable[str], connections: Iterable[Connection]) -> dict[str, dict[str, None]]:
    """Outgoing destinations per known service, insertion-ordered.

    Every service gets an entry even without connections; edges from unknown sources are dropped.
    """
    adjacency: dict[str, dict[str, None]] = {name: {} for name in service_names}
    for conn in connections:
        outgoing = adjacency.get(conn.source)
        if outgoing is not None:
            outgoing[conn.destination] = None
    return adjacency


def isolated_services(adjacency: dict[str, dict[str, None]]) -> list[str]:
    """Services that neither call anything nor are called by anything."""
    targets = {dest for outgoing in adjacency.values() for dest in outgoing}
    return [name for name, outgoing in adjacency.items() if not outgoing and name not in targets]


def most_connected(
    adjacency: dict[str, dict[str, None]],
    limit: int = MOST_CONNECTED_LIMIT,
    min_degree: int = MOST_CONNECTED_MIN_DEGREE,
) -> list[str]:
    """Top services by out-degree plus in-degree; ties keep discovery order."""
    degree: dict[str, int] = {}
    for name, outgoing in adjacency.items():
        degree[name] = degree.get(name, 0) + len(outgoing)
        for target in outgoing:
            degree[target] = degree.get(target, 0) + 1
    ranked = sorted(degree.items(), key=lambda item: -item[1])[:limit]
    return [name for name, count in ranked if count > min_degree]


class IssueAnalyzer:
    """Turns topology and health data into issue and recommendation text."""

    def __init__(self, builder: TopologyBuilder, classifier: HealthClassifier) -> None:
        self._builder = builder
        self._classifier = classifier

    async def analyze_service(self, service_name: str) -> ServiceAnalysis:
        """Analyze one service by name. Raises ServiceNotFound if no instance has that name."""
        details = await self._builder.service_by_name(service_name)
        if details is None:
            raise ServiceNotFound(service_name)
        return await self.analyze_details(details)

    async def analyze_details(self, details: ServiceDetails) -> ServiceAnalysis:
        issues: list[str] = []
        recommendations: list[str] = []

        failing_checks = details.failing_checks
        for check in failing_checks:
            issues.append(f'Health check "{check.name}" is {check.status}: {check.output}')
        outputs = [c.output or "" for c in failing_checks]
        for matches, recommendation in CHECK_OUTPUT_RECOMMENDATIONS:
            if any(matches(out) for out in outputs):
                recommendations.append(recommendation)

        failing_incoming = [c for c in details.incoming if c.is_failing]
        if failing_incoming:
            issues.append(f"{len(failing_incoming)} incoming connections are experiencing issues")
            sources = _unique(c.source for c in failing_incoming)
            recommendations.append(f"Check connectivity from services: {', '.join(sources)}")

        failing_outgoing = [c for c in details.outgoing if c.is_failing]
        if failing_outgoing:
            issues.append(f"{len(failing_outgoing)} outgoing connections are experiencing issues")
            destinations = _unique(c.destination for c in failing_outgoing)
            recommendations.append(f"Check connectivity to services: {', '.join(destinations)}")

        blocked = [c for c in details.incoming + details.outgoing if c.uses_service_mesh and c.status == "blocked"]
        if blocked:
            issues.append(f"{len(blocked)} connections are blocked by service mesh intentions")
            recommendations.append("Review service mesh intentions to ensure they match expected traffic patterns")

        try:
            metrics = await self._builder.metrics(details.name)
        except MetricsUnavailable:
            logger.debug("No metrics for %s, skipping threshold checks", details.name)
        else:
            if metrics.error_rate > HIGH_ERROR_RATE:
                issues.append(f"High error rate: {metrics.error_rate * 100:.1f}%")
                recommendations.append("Investigate application logs for errors")
            if metrics.cpu.usage > HIGH_CPU_USAGE:
                issues.append(f"High CPU usage: {metrics.cpu.usage * 100:.1f}%")
                recommendations.append("Consider scaling horizontally or optimizing resource usage")
            if metrics.memory.ratio > HIGH_MEMORY_RATIO:
                issues.append(f"High memory usage: {metrics.memory.used}/{metrics.memory.total} MB")
                recommendations.append("Check for memory leaks or increase memory allocation")
            if metrics.response_time.p99 > SLOW_P99_MS:
                issues.append(f"Slow response times (p99): {metrics.response_time.p99}ms")
                recommendations.append("Optimize critical paths or add caching")

        if not issues:
            issues.append("No issues detected")
            recommendations.append("Continue monitoring service health")

        return ServiceAnalysis(service_name=details.name, issues=issues, recommendations=_unique(recommendations))

    async def analyze_service_mesh(self) -> MeshAnalysis:
        services = (await self._builder.fetch_services()).value
        connections = await self._builder.list_connections(services=services)
        health = await self._classifier.summary()

        issues: list[str] = []
        recommendations: list[str] = []

        if health.critical > 0:
            issues.append(f"{health.critical} services have critical health checks")
        if health.warning > 0:
            issues.append(f"{health.warning} services have warning health checks")
        if health.overall_status == UNKNOWN:
            issues.append("Health check data is unavailable")
            recommendations.append("Verify that the Consul agent is reachable and re-run the analysis")

        failing = [c for c in connections if c.is_failing]
        if failing:
            issues.append(f"{len(failing)} connections are experiencing issues")
            pairs = _unique(f"{c.source} → {c.destination}" for c in failing)
            if len(pairs) > LISTED_PAIRS_LIMIT:
                issues.append(f"Key problematic connections: {', '.join(pairs[:LISTED_PAIRS_LIMIT])} and others")
            else:
                issues.append(f"Problematic connections: {', '.join(pairs)}")

        adjacency = build_adjacency((s.name for s in services), connections)

        isolated = isolated_services(adjacency)
        if isolated:
            issues.append(f"{len(isolated)} services appear to be isolated: {', '.join(isolated)}")
            recommendations.append("Review isolated services to determine if they should be connected to the mesh")

        hubs = most_connected(adjacency)
        if hubs:
            recommendations.append(
                f"Critical path services with most connections: {', '.join(hubs)}. Consider monitoring these closely."
            )

        summary = f"Service mesh has {len(services)} services with {len(connections)} connections. "
        if health.critical > 0 or health.warning > 0:
            summary += f"There are {health.critical} critical and {health.warning} warning health issues. "
        elif health.overall_status == UNKNOWN:
            summary += "Health status could not be determined. "
        else:
            summary += "All services have passing health checks. "
        if failing:
            summary += f"{len(failing)} connections are experiencing issues."
        else:
            summary += "All connections are healthy."

        if not issues:
            issues.append("No issues detected in the service mesh")
            recommendations.append("Continue monitoring service health and connections")

        return MeshAnalysis(
            summary=summary,
            issues=issues,
            recommendations=_unique(recommendations),
            isolated_services=isolated,
            most_connected=hubs,
        )

