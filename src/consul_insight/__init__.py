"""consul-insight: topology inference and diagnostics over a Consul registry."""

__version__ = "0.1.0"
