"""Connection inference: mesh intentions first, heuristics when there are none."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from consul_insight.config.models import InferenceSettings, NamingRule
from consul_insight.registry.models import Connection, Intention, Service


def connections_from_intentions(intentions: Iterable[Intention]) -> list[Connection]:
    """Authoritative edges: allow -> allowed, deny (or any non-allow action) -> blocked."""
    return [
        Connection(
            source=intention.source,
            destination=intention.destination,
            status="allowed" if intention.action == "allow" else "blocked",
            protocol="tcp",
            uses_service_mesh=True,
            intention_action=intention.action,
        )
        for intention in intentions
    ]


class InferenceStrategy(Protocol):
    """A heuristic that guesses edges from registry data alone."""

    name: str

    def infer(self, services: Sequence[Service]) -> list[Connection]: ...


class MetadataDependencies:
    """Edges declared by a service in its metadata, e.g. ``upstream_services: "db, cache"``."""

    name = "metadata"

    def __init__(self, meta_key: str = "upstream_services") -> None:
        self.meta_key = meta_key

    def infer(self, services: Sequence[Service]) -> list[Connection]:
        connections: list[Connection] = []
        for source in services:
            declared = [n.strip() for n in source.meta.get(self.meta_key, "").split(",")]
            protocol = source.meta.get("protocol") or "http"
            for upstream in filter(None, declared):
                for target in services:
                    if target.name == upstream:
                        connections.append(
                            Connection(
                                source=source.name,
                                destination=target.name,
                                status="inferred",
                                protocol=protocol,
                            )
                        )
        return connections


class NamingConvention:
    """Edges guessed from service names: (source substring, target substring) rules.

    Every matching rule adds its own edge, so a pair matched by two rules yields two edges.
    """

    name = "naming"

    def __init__(self, rules: Sequence[NamingRule]) -> None:
        self.rules = list(rules)

    def infer(self, services: Sequence[Service]) -> list[Connection]:
        connections: list[Connection] = []
        for source in services:
            for target in services:
                if source.id == target.id:
                    continue
                for rule in self.rules:
                    if rule.source in source.name and rule.target in target.name:
                        connections.append(
                            Connection(source=source.name, destination=target.name, status="inferred")
                        )
        return connections


def strategies_from_settings(settings: InferenceSettings) -> list[InferenceStrategy]:
    strategies: list[InferenceStrategy] = []
    if settings.metadata_dependencies:
        strategies.append(MetadataDependencies(settings.upstream_meta_key))
    if settings.naming_convention and settings.naming_rules:
        strategies.append(NamingConvention(settings.naming_rules))
    return strategies
