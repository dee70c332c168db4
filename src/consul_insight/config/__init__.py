"""consul-insight configuration system."""

from consul_insight.config.loader import find_config_file, load_config, load_config_or_default
from consul_insight.config.models import (
    AuthConfig,
    ConsulSettings,
    InferenceSettings,
    InsightConfig,
    NamingRule,
)

__all__ = [
    "AuthConfig",
    "ConsulSettings",
    "InferenceSettings",
    "InsightConfig",
    "NamingRule",
    "load_config",
    "load_config_or_default",
    "find_config_file",
]
