"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from consul_insight.inspector import MeshInspector


def get_inspector(request: Request) -> MeshInspector:
    inspector: MeshInspector = request.app.state.inspector
    return inspector
