"""Mermaid flowchart rendering of services and their connections."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from consul_insight.registry.models import Connection, Service

_INVALID_ID_CHARS = re.compile(r"[^A-Za-z0-9]")

DEFAULT_HEALTH_CLASSES: dict[str, str] = {
    "critical": "critical",
    "warning": "warning",
    "passing": "healthy",
}

DEFAULT_CONNECTION_CLASSES: dict[str, str] = {
    "degraded": "failingConn",
    "failing": "failingConn",
    "warning": "warningConn",
    "blocked": "failingConn",
}

LEGEND_NODES = (
    'healthy["Healthy Service"]:::healthy',
    'warning["Warning Service"]:::warning',
    'critical["Critical Service"]:::critical',
    'healthy_conn["Healthy Connection"];',
    'warning_conn["Warning Connection"]:::warningConn;',
    'failing_conn["Failing Connection"]:::failingConn;',
)
LEGEND_IDS = ("healthy", "warning", "critical", "healthy_conn", "warning_conn", "failing_conn")

CLASS_DEFS = (
    "classDef healthy fill:#baffc9,stroke:#00ae11,color:#000",
    "classDef warning fill:#ffffba,stroke:#ffae00,color:#000",
    "classDef critical fill:#ffb3ba,stroke:#ff0000,color:#000",
    "classDef warningConn stroke:#ffae00,stroke-width:2px",
    "classDef failingConn stroke:#ff0000,stroke-width:2px,stroke-dasharray: 5 5",
)


def sanitize_id(name: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore."""
    return _INVALID_ID_CHARS.sub("_", name)


def _label(text: str) -> str:
    return text.replace('"', "#quot;")


@dataclass
class DiagramOptions:
    include_health: bool = False
    include_metrics: bool = False


class NodeIdAllocator:
    """Stable node ids for one diagram.

    Names that sanitize to the same id are told apart by order of first use:
    the first keeps the plain id, later ones get ``_2``, ``_3`` and so on.
    """

    def __init__(self, reserved: Sequence[str] = ()) -> None:
        self._by_name: dict[str, str] = {}
        self._taken: set[str] = set(reserved)

    def __call__(self, name: str) -> str:
        node_id = self._by_name.get(name)
        if node_id is not None:
            return node_id
        base = sanitize_id(name)
        node_id, suffix = base, 1
        while node_id in self._taken:
            suffix += 1
            node_id = f"{base}_{suffix}"
        self._taken.add(node_id)
        self._by_name[name] = node_id
        return node_id


class DiagramRenderer:
    """Renders a service topology as a Mermaid ``flowchart TD``.

    Each instance owns its status-to-class tables; the class definitions and
    legend are fixed.
    """

    title = "Consul Service Mesh"

    def __init__(
        self,
        health_classes: Optional[Mapping[str, str]] = None,
        connection_classes: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.health_classes = dict(DEFAULT_HEALTH_CLASSES if health_classes is None else health_classes)
        self.connection_classes = dict(
            DEFAULT_CONNECTION_CLASSES if connection_classes is None else connection_classes
        )

    def _health_style(self, status: str) -> str:
        css = self.health_classes.get(status)
        return f":::{css}" if css else ""

    def _connection_style(self, status: str) -> str:
        css = self.connection_classes.get(status)
        return f":::{css}" if css else ""

    def render(
        self,
        services: Sequence[Service],
        connections: Sequence[Connection],
        options: Optional[DiagramOptions] = None,
    ) -> str:
        options = options or DiagramOptions()
        node_id = NodeIdAllocator(reserved=LEGEND_IDS)
        lines = ["flowchart TD", f'  subgraph "{self.title}"']

        for service in services:
            style = self._health_style(service.health.status) if options.include_health else ""
            lines.append(f'    {node_id(service.name)}["{_label(service.name)}"]{style}')
        lines.append("  end")
        lines.append("")

        for conn in connections:
            edge = f"  {node_id(conn.source)} -->"
            if options.include_metrics and conn.latency:
                edge += f' |"{conn.latency}ms"|'
            edge += f" {node_id(conn.destination)}{self._connection_style(conn.status)}"
            lines.append(edge)

        lines.append("")
        lines.append("  %% Legend")
        lines.append('  subgraph "Legend"')
        lines.extend(f"    {node}" for node in LEGEND_NODES)
        lines.append("  end")
        lines.append("")
        lines.append("  %% Styles")
        lines.extend(f"  {class_def}" for class_def in CLASS_DEFS)
        return "\n".join(lines) + "\n"
