"""Issue and recommendation analysis."""

from __future__ import annotations

from consul_insight.analysis.analyzer import (
    IssueAnalyzer,
    MeshAnalysis,
    ServiceAnalysis,
    build_adjacency,
    isolated_services,
    most_connected,
)

__all__ = [
    "IssueAnalyzer",
    "MeshAnalysis",
    "ServiceAnalysis",
    "build_adjacency",
    "isolated_services",
    "most_connected",
]
