"""Pydantic models for consul-insight configuration."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_CONSUL_HTTP_ADDR = "http://localhost:8500"


class ConsulSettings(BaseModel):
    """Connection settings for the Consul HTTP API."""

    address: str = Field(default_factory=lambda: os.environ.get("CONSUL_HTTP_ADDR", DEFAULT_CONSUL_HTTP_ADDR))
    token: str = Field(default_factory=lambda: os.environ.get("CONSUL_HTTP_TOKEN", ""))
    datacenter: str = ""
    timeout: float = 5.0


class NamingRule(BaseModel):
    """Infer source -> target when both names contain the given substrings."""

    source: str
    target: str


DEFAULT_NAMING_RULES: list[tuple[str, str]] = [
    ("api", "service"),
    ("web", "api"),
    ("service", "db"),
    ("frontend", "api"),
    ("api", "auth"),
    ("api", "payment"),
]


class InferenceSettings(BaseModel):
    """Fallback connection inference used when the mesh has no intentions."""

    metadata_dependencies: bool = True
    upstream_meta_key: str = "upstream_services"
    naming_convention: bool = True
    naming_rules: list[NamingRule] = Field(
        default_factory=lambda: [NamingRule(source=s, target=t) for s, t in DEFAULT_NAMING_RULES]
    )


class AuthConfig(BaseModel):
    """Authentication configuration for the HTTP API."""

    api_key: str = ""  # empty = auth disabled


class InsightConfig(BaseModel):
    """Root configuration model for .consul-insight.yaml."""

    consul: ConsulSettings = Field(default_factory=ConsulSettings)
    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    auth: AuthConfig = Field(default_factory=AuthConfig)
