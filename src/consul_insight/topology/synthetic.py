"""Deterministic pseudo-metrics for connections and services.

Consul carries no traffic telemetry, so latency, error rates and resource
usage are simulated. Every figure is drawn from a ``random.Random`` seeded by
a stable hash of the connection endpoints or the service name, so the same
input always produces the same numbers, across calls and across processes.
"""

from __future__ import annotations

import hashlib
import random
from dataclasses import replace
from typing import Protocol

from consul_insight.registry.models import (
    Connection,
    CpuUsage,
    MemoryUsage,
    NetworkCounters,
    ResponseTimes,
    ServiceMetrics,
)

DEGRADED_ERROR_RATE = 0.05

CONNECTION_ERRORS = (
    "Connection timeout",
    "Service unavailable",
    "Internal server error",
    "Bad gateway",
    "Too many requests",
    "Connection refused",
    "DNS resolution failed",
    "TLS handshake failed",
)


def stable_hash(text: str) -> int:
    """64-bit hash of *text* that does not change between interpreter runs."""
    return int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")


def seeded_random(key: str) -> random.Random:
    return random.Random(stable_hash(key))


def score_connection(connection: Connection) -> Connection:
    """Attach simulated latency, error rate and volume, re-deriving the status.

    Blocked connections carry no traffic and come back unchanged.
    """
    if connection.status == "blocked":
        return connection

    rng = seeded_random(f"{connection.source}-{connection.destination}")
    latency = int(rng.random() * 450) + 50
    error_rate = rng.random() * 0.1
    request_volume = int(rng.random() * 990) + 10

    status = connection.status
    error_message = None
    if error_rate > DEGRADED_ERROR_RATE:
        status = "degraded"
        error_message = CONNECTION_ERRORS[int(rng.random() * len(CONNECTION_ERRORS))]
    elif error_rate > 0:
        status = "warning"
    elif connection.status == "inferred":
        status = "healthy"

    return replace(
        connection,
        status=status,
        latency=latency,
        error_rate=error_rate,
        request_volume=request_volume,
        error_message=error_message,
    )


class MetricsSource(Protocol):
    """Anything that can report per-service metrics; raises MetricsUnavailable on failure."""

    async def metrics(self, service_name: str) -> ServiceMetrics: ...


class SyntheticMetricsSource:
    """Simulated per-service metrics. Illustrative only; not read from any telemetry system."""

    MEMORY_TOTAL_MB = 1024

    async def metrics(self, service_name: str) -> ServiceMetrics:
        return self.generate(service_name)

    def generate(self, service_name: str) -> ServiceMetrics:
        rng = seeded_random(service_name)
        cpu = CpuUsage(usage=rng.random() * 0.8, cores=int(rng.random() * 4) + 1)
        memory = MemoryUsage(used=int(rng.random() * 900) + 100, total=self.MEMORY_TOTAL_MB)
        network = NetworkCounters(rx_bytes=int(rng.random() * 100000), tx_bytes=int(rng.random() * 100000))
        request_rate = int(rng.random() * 1000)
        error_rate = rng.random() * 0.1
        response_time = ResponseTimes(
            p50=int(rng.random() * 100) + 20,
            p90=int(rng.random() * 200) + 100,
            p99=int(rng.random() * 500) + 200,
        )
        return ServiceMetrics(
            service_name=service_name,
            cpu=cpu,
            memory=memory,
            network=network,
            request_rate=request_rate,
            error_rate=error_rate,
            response_time=response_time,
        )
