"""Topology diagram rendering."""

from __future__ import annotations

from consul_insight.diagram.renderer import DiagramOptions, DiagramRenderer, NodeIdAllocator, sanitize_id

__all__ = ["DiagramOptions", "DiagramRenderer", "NodeIdAllocator", "sanitize_id"]
