"""Topology building: services, inferred connections, synthetic metrics."""

from __future__ import annotations

from consul_insight.topology.builder import TopologyBuilder
from consul_insight.topology.inference import (
    InferenceStrategy,
    MetadataDependencies,
    NamingConvention,
    connections_from_intentions,
    strategies_from_settings,
)
from consul_insight.topology.synthetic import MetricsSource, SyntheticMetricsSource, score_connection

__all__ = [
    "InferenceStrategy",
    "MetadataDependencies",
    "MetricsSource",
    "NamingConvention",
    "SyntheticMetricsSource",
    "TopologyBuilder",
    "connections_from_intentions",
    "score_connection",
    "strategies_from_settings",
]
