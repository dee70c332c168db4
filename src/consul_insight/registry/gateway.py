"""Registry gateway protocol and the Consul HTTP API implementation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

import httpx

from consul_insight.config.models import ConsulSettings
from consul_insight.errors import BackendUnavailable
from consul_insight.registry.models import FetchResult, HealthCheck, Intention, Service, UNKNOWN

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Consul registers itself as a service; it is never part of the application topology.
_INTERNAL_SERVICES = frozenset({"consul"})


class RegistryGateway(Protocol):
    """Raw read access to the coordination backend."""

    async def list_services(self) -> list[Service]: ...

    async def health_checks_for(self, service_id: str) -> list[HealthCheck]: ...

    async def all_health_checks(self) -> list[HealthCheck]: ...

    async def list_intentions(self) -> list[Intention]: ...

    async def leader(self) -> str: ...


async def guarded(call: Awaitable[T], default: T, what: str) -> FetchResult[T]:
    """Await a gateway call, turning any failure into *default* plus the error text."""
    try:
        return FetchResult(value=await call)
    except Exception as exc:
        logger.warning("Registry read failed (%s): %s", what, exc)
        return FetchResult(value=default, error=str(exc) or exc.__class__.__name__)


def parse_service(raw: dict[str, Any]) -> Service:
    """Build a Service (health not yet attached) from a /v1/catalog/service entry."""
    port = raw.get("ServicePort") or 0
    return Service(
        id=raw.get("ServiceID") or raw.get("ServiceName", ""),
        name=raw.get("ServiceName", ""),
        address=raw.get("ServiceAddress") or raw.get("Address", ""),
        port=int(port),
        node=raw.get("Node", ""),
        tags=frozenset(raw.get("ServiceTags") or []),
        meta=dict(raw.get("ServiceMeta") or {}),
    )


def parse_check(check_id: str, raw: dict[str, Any]) -> HealthCheck:
    """Build a HealthCheck from one value of the /v1/agent/checks mapping."""
    return HealthCheck(
        id=raw.get("CheckID") or check_id,
        name=raw.get("Name", ""),
        status=raw.get("Status") or UNKNOWN,
        output=raw.get("Output") or "",
        notes=raw.get("Notes") or "",
        service_id=raw.get("ServiceID") or None,
        service_name=raw.get("ServiceName") or None,
    )


def parse_intention(raw: dict[str, Any]) -> Intention:
    return Intention(
        source=raw.get("SourceName", ""),
        destination=raw.get("DestinationName", ""),
        action=(raw.get("Action") or "").lower(),
    )


class ConsulGateway:
    """RegistryGateway backed by the Consul HTTP API."""

    def __init__(self, settings: ConsulSettings) -> None:
        self._settings = settings
        self.base_url = settings.address.rstrip("/")
        if "://" not in self.base_url:
            self.base_url = f"http://{self.base_url}"

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._settings.token:
            headers["X-Consul-Token"] = self._settings.token
        return headers

    def _params(self) -> dict[str, str]:
        return {"dc": self._settings.datacenter} if self._settings.datacenter else {}

    async def _get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._settings.timeout) as client:
                resp = await client.get(url, headers=self._headers(), params=self._params())
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise BackendUnavailable(f"GET {path} returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise BackendUnavailable(f"GET {path} failed: {exc}") from exc
        except ValueError as exc:
            raise BackendUnavailable(f"GET {path} returned invalid JSON") from exc

    async def list_services(self) -> list[Service]:
        names = await self._get("/v1/catalog/services")
        if not isinstance(names, dict):
            return []
        wanted = [name for name in names if name not in _INTERNAL_SERVICES]
        instances = await asyncio.gather(*(self._get(f"/v1/catalog/service/{name}") for name in wanted))
        services: list[Service] = []
        for entries in instances:
            if isinstance(entries, list):
                services.extend(parse_service(entry) for entry in entries)
        return services

    async def all_health_checks(self) -> list[HealthCheck]:
        checks = await self._get("/v1/agent/checks")
        if not isinstance(checks, dict):
            return []
        return [parse_check(check_id, raw) for check_id, raw in checks.items()]

    async def health_checks_for(self, service_id: str) -> list[HealthCheck]:
        return [c for c in await self.all_health_checks() if c.service_id == service_id]

    async def list_intentions(self) -> list[Intention]:
        intentions = await self._get("/v1/connect/intentions")
        if not isinstance(intentions, list):
            return []
        return [parse_intention(raw) for raw in intentions]

    async def leader(self) -> str:
        leader = await self._get("/v1/status/leader")
        return leader if isinstance(leader, str) else ""
