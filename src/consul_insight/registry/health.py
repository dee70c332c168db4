"""Health summaries, failure-pattern classification, and per-check diagnosis."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from consul_insight.registry.gateway import RegistryGateway, guarded
from consul_insight.registry.models import (
    CRITICAL,
    PASSING,
    UNKNOWN,
    WARNING,
    CheckDiagnosis,
    DiagnosedCheck,
    FetchResult,
    HealthAnalysis,
    HealthCheck,
    HealthSummary,
    PatternReport,
    ServiceCheckCount,
    rollup_status,
)

HTTP_ERROR_PATTERN = re.compile(r"HTTP.*([45]\d\d)", re.IGNORECASE)

# Aggregate signatures, scanned independently: one check can match several.
PATTERN_SIGNATURES: dict[str, tuple[Callable[[str], bool], str]] = {
    "timeout": (
        lambda out: "timeout" in out.lower(),
        "Several services are experiencing timeouts. Consider checking network connectivity "
        "and service response times.",
    ),
    "connection_refused": (
        lambda out: "connection refused" in out.lower() or "connect" in out.lower(),
        "Connection refused errors detected. Verify that all services are running and accepting connections.",
    ),
    "disk_space": (
        lambda out: "disk" in out.lower() or "storage" in out.lower(),
        "Disk space issues detected. Consider cleaning up logs or adding more storage.",
    ),
    "http_error": (
        lambda out: HTTP_ERROR_PATTERN.search(out) is not None,
        "HTTP errors detected. Review service logs for error details and check for recent "
        "deployments or configuration changes.",
    ),
}

MISCELLANEOUS_RECOMMENDATION = (
    "Investigate each failing service individually to determine the cause of health check failures."
)

SEVERITY = {CRITICAL: "high", WARNING: "medium"}


def _affected(checks: Sequence[HealthCheck]) -> list[str]:
    return list(dict.fromkeys(c.service_name for c in checks if c.service_name))


def summarize(checks: Sequence[HealthCheck]) -> HealthSummary:
    """Count checks per status and rank services by their number of failing checks."""
    counts = {status: 0 for status in (PASSING, WARNING, CRITICAL, UNKNOWN)}
    failing_by_service: dict[str, int] = {}
    for check in checks:
        if check.status in counts:
            counts[check.status] += 1
        if check.is_failing and check.service_name:
            failing_by_service[check.service_name] = failing_by_service.get(check.service_name, 0) + 1

    ranked = sorted(failing_by_service.items(), key=lambda item: -item[1])
    return HealthSummary(
        total=len(checks),
        passing=counts[PASSING],
        warning=counts[WARNING],
        critical=counts[CRITICAL],
        unknown=counts[UNKNOWN],
        overall_status=rollup_status(c.status for c in checks),
        failing_checks_by_service=[ServiceCheckCount(service_name=n, count=c) for n, c in ranked],
    )


def classify_checks(checks: Sequence[HealthCheck]) -> HealthAnalysis:
    """Group failing checks by output signature, each with a fixed recommendation."""
    failing = [c for c in checks if c.is_failing]
    analysis = HealthAnalysis()
    for pattern_type, (matches, recommendation) in PATTERN_SIGNATURES.items():
        matched = [c for c in failing if matches(c.output or "")]
        if matched:
            analysis.patterns.append(
                PatternReport(type=pattern_type, count=len(matched), affected_services=_affected(matched))
            )
            analysis.recommendations.append(recommendation)

    if not analysis.patterns and failing:
        analysis.patterns.append(
            PatternReport(type="miscellaneous", count=len(failing), affected_services=_affected(failing))
        )
        analysis.recommendations.append(MISCELLANEOUS_RECOMMENDATION)
    return analysis


def diagnose_check(check: HealthCheck) -> CheckDiagnosis:
    """Likely causes and remediation for a single check, from its status and output."""
    issues: list[str] = []
    remediation: list[str] = []

    if check.status == CRITICAL:
        issues.append("Service may be down or unreachable")
        remediation.append("Check if the service is running")
        remediation.append("Verify network connectivity to the service")
    elif check.status == WARNING:
        issues.append("Service is degraded but still functional")
        remediation.append("Monitor the service for further degradation")

    output = (check.output or "").lower()

    if "timeout" in output:
        issues.append("Request timeout")
        remediation.append("Check if the service is overloaded")
        remediation.append("Consider increasing the timeout threshold")

    if "connection refused" in output:
        issues.append("Service is not accepting connections")
        remediation.append("Ensure the service is running")
        remediation.append("Check if firewall rules are blocking connections")

    if "disk" in output or "storage" in output:
        issues.append("Disk space or storage issue")
        remediation.append("Clean up logs or temporary files")
        remediation.append("Add additional storage if needed")

    match = HTTP_ERROR_PATTERN.search(check.output or "")
    if match:
        status_code = match.group(1)
        issues.append(f"HTTP {status_code} error")
        if status_code.startswith("4"):
            remediation.append("Check service configuration and request parameters")
        else:
            remediation.append("Check service logs for internal errors")
            remediation.append("Verify that dependencies are available")

    return CheckDiagnosis(
        possible_issues=issues or ["Unknown issue"],
        remediation=remediation or ["Investigate service logs"],
        severity=SEVERITY.get(check.status, "low"),
    )


class HealthClassifier:
    """Health views over every check the registry reports."""

    def __init__(self, gateway: RegistryGateway) -> None:
        self._gateway = gateway

    async def fetch_checks(self) -> FetchResult[list[HealthCheck]]:
        return await guarded(self._gateway.all_health_checks(), [], "health checks")

    async def checks(self, failing_only: bool = False) -> list[DiagnosedCheck]:
        checks = (await self.fetch_checks()).value
        if failing_only:
            checks = [c for c in checks if c.is_failing]
        return [DiagnosedCheck(check=c, diagnosis=diagnose_check(c)) for c in checks]

    async def summary(self) -> HealthSummary:
        result = await self.fetch_checks()
        if not result.ok:
            return HealthSummary(overall_status=UNKNOWN)
        return summarize(result.value)

    async def classify(self) -> HealthAnalysis:
        return classify_checks((await self.fetch_checks()).value)

    def diagnose_check(self, check: HealthCheck) -> CheckDiagnosis:
        return diagnose_check(check)
