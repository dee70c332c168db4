"""Service listing, per-service analysis, metrics and dependency endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from consul_insight.api.deps import get_inspector
from consul_insight.errors import MetricsUnavailable, ServiceNotFound
from consul_insight.inspector import MeshInspector

router = APIRouter(tags=["services"])


@router.get("/services")
async def list_services(
    failing_only: bool = False,
    inspector: MeshInspector = Depends(get_inspector),
) -> Dict[str, List[Dict[str, Any]]]:
    details = await inspector.services(failing_only=failing_only)
    return {"services": [d.to_dict() for d in details]}


@router.get("/services/{name}")
async def analyze_service(name: str, inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    try:
        report = await inspector.service(name)
    except ServiceNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return report.to_dict()


@router.get("/services/{name}/metrics")
async def service_metrics(name: str, inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    try:
        metrics = await inspector.metrics(name)
    except MetricsUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"metrics": metrics.to_dict()}


@router.get("/services/{name}/dependencies")
async def service_dependencies(name: str, inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    deps = await inspector.dependencies(name)
    return deps.to_dict()
