"""FastAPI application factory for consul-insight."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from consul_insight import __version__
from consul_insight.api.auth import require_api_key
from consul_insight.api.routes import health, services, topology
from consul_insight.config.loader import load_config_or_default
from consul_insight.config.models import InsightConfig
from consul_insight.inspector import MeshInspector
from consul_insight.registry.gateway import RegistryGateway


def create_app(
    config: Optional[InsightConfig] = None,
    gateway: Optional[RegistryGateway] = None,
) -> FastAPI:
    app = FastAPI(
        title="consul-insight",
        version=__version__,
        description="Topology and health diagnostics for a Consul service mesh",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    if config is None:
        try:
            config = load_config_or_default()
        except ValueError:
            # Fallback for an unreadable config file
            config = InsightConfig()

    app.state.config = config
    app.state.inspector = MeshInspector(config, gateway=gateway)

    @app.get("/health", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    protected = [Depends(require_api_key)]
    app.include_router(services.router, prefix="/api", dependencies=protected)
    app.include_router(health.router, prefix="/api", dependencies=protected)
    app.include_router(topology.router, prefix="/api", dependencies=protected)

    return app


app = create_app()
