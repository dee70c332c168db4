"""Connection, diagram and mesh-wide endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from consul_insight.api.deps import get_inspector
from consul_insight.inspector import MeshInspector

router = APIRouter(tags=["topology"])


@router.get("/connections")
async def list_connections(
    failing_only: bool = False,
    inspector: MeshInspector = Depends(get_inspector),
) -> Dict[str, Any]:
    conns = await inspector.connections(failing_only=failing_only)
    return {"connections": [c.to_dict() for c in conns]}


@router.get("/diagram")
async def diagram(
    include_health: bool = False,
    include_metrics: bool = False,
    inspector: MeshInspector = Depends(get_inspector),
) -> Dict[str, str]:
    text = await inspector.diagram(include_health=include_health, include_metrics=include_metrics)
    return {"diagram": text, "format": "mermaid"}


@router.get("/mesh/analysis")
async def mesh_analysis(inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    analysis = await inspector.mesh_analysis()
    return analysis.to_dict()


@router.get("/snapshot")
async def snapshot(inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    return await inspector.snapshot()
