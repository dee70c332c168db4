"""Tests for registry data models."""

from __future__ import annotations

from consul_insight.registry.models import (
    CheckDiagnosis,
    Connection,
    DiagnosedCheck,
    FetchResult,
    HealthCheck,
    MemoryUsage,
    Service,
    ServiceDetails,
    ServiceHealth,
    rollup_status,
)

# ─── Health rollup tests ───


class TestRollupStatus:
    def test_critical_wins(self):
        assert rollup_status(["passing", "warning", "critical"]) == "critical"

    def test_warning_beats_passing(self):
        assert rollup_status(["passing", "warning"]) == "warning"

    def test_all_passing(self):
        assert rollup_status(["passing", "passing"]) == "passing"

    def test_unknown_never_escalates(self):
        assert rollup_status(["unknown", "passing"]) == "passing"

    def test_empty_is_passing(self):
        assert rollup_status([]) == "passing"


class TestServiceHealth:
    def test_default_is_unknown(self):
        assert ServiceHealth().status == "unknown"

    def test_from_checks(self):
        checks = [
            HealthCheck(id="1", name="a", status="passing"),
            HealthCheck(id="2", name="b", status="warning"),
        ]
        health = ServiceHealth.from_checks(checks)
        assert health.status == "warning"
        assert len(health.checks) == 2


class TestFetchResult:
    def test_ok(self):
        assert FetchResult(value=[1]).ok

    def test_error(self):
        result = FetchResult(value=[], error="down")
        assert not result.ok
        assert result.value == []


# ─── Connection and details tests ───


class TestConnection:
    def test_failing_statuses(self):
        for status in ("degraded", "failing", "blocked"):
            assert Connection(source="a", destination="b", status=status).is_failing

    def test_non_failing_statuses(self):
        for status in ("healthy", "warning", "allowed", "inferred"):
            assert not Connection(source="a", destination="b", status=status).is_failing

    def test_to_dict_defaults(self):
        data = Connection(source="a", destination="b", status="inferred").to_dict()
        assert data["protocol"] == "http"
        assert data["uses_service_mesh"] is False
        assert data["latency"] is None


class TestServiceDetails:
    def _details(self) -> ServiceDetails:
        checks = [
            HealthCheck(id="1", name="http", status="critical", output="down"),
            HealthCheck(id="2", name="tcp", status="passing"),
        ]
        service = Service(id="api-1", name="api", health=ServiceHealth.from_checks(checks))
        return ServiceDetails(
            service=service,
            incoming=[Connection(source="web", destination="api", status="blocked")],
            outgoing=[Connection(source="api", destination="db", status="healthy")],
        )

    def test_flags(self):
        details = self._details()
        assert details.name == "api"
        assert details.has_failing_connections
        assert details.has_failing_health_checks
        assert [c.name for c in details.failing_checks] == ["http"]

    def test_summary(self):
        summary = self._details().summary()
        assert summary == {
            "health_status": "critical",
            "check_count": 2,
            "incoming_connection_count": 1,
            "outgoing_connection_count": 1,
            "has_failing_connections": True,
            "has_failing_health_checks": True,
        }

    def test_to_dict(self):
        data = self._details().to_dict()
        assert data["name"] == "api"
        assert data["connections"]["incoming"][0]["source"] == "web"
        assert data["summary"]["check_count"] == 2


class TestDiagnosedCheck:
    def test_to_dict_embeds_analysis(self):
        check = HealthCheck(id="1", name="http", status="warning")
        diagnosis = CheckDiagnosis(possible_issues=["x"], remediation=["y"], severity="medium")
        data = DiagnosedCheck(check=check, diagnosis=diagnosis).to_dict()
        assert data["name"] == "http"
        assert data["analysis"] == {"possible_issues": ["x"], "remediation": ["y"], "severity": "medium"}


class TestMemoryUsage:
    def test_ratio(self):
        assert MemoryUsage(used=512, total=1024).ratio == 0.5

    def test_zero_total(self):
        assert MemoryUsage(used=512, total=0).ratio == 0.0
