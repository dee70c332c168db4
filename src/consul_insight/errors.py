"""Exceptions raised by consul-insight."""


class InsightError(Exception):
    """Base exception for consul-insight."""


class BackendUnavailable(InsightError):
    """Raised by a gateway when the registry backend cannot be reached or answers badly."""


class ServiceNotFound(InsightError):
    """Raised when analysis is requested for a service name the registry does not know."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Service {name} not found")
        self.name = name


class MetricsUnavailable(InsightError):
    """Raised by a metrics source that cannot produce metrics for a service."""
