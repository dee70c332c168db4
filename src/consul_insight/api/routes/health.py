"""Health check endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from consul_insight.api.deps import get_inspector
from consul_insight.inspector import MeshInspector

router = APIRouter(tags=["health"])


@router.get("/health-checks")
async def health_checks(
    failing_only: bool = False,
    inspector: MeshInspector = Depends(get_inspector),
) -> Dict[str, Any]:
    checks = await inspector.health_checks(failing_only=failing_only)
    return {"health_checks": [c.to_dict() for c in checks]}


@router.get("/health/summary")
async def health_summary(inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    summary = await inspector.health_summary()
    return summary.to_dict()


@router.get("/health/analysis")
async def health_analysis(inspector: MeshInspector = Depends(get_inspector)) -> Dict[str, Any]:
    analysis = await inspector.health_analysis()
    return analysis.to_dict()
