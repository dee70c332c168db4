"""API key authentication dependency for FastAPI."""

from __future__ import annotations

from fastapi import HTTPException, Request


async def require_api_key(request: Request) -> None:
    """FastAPI dependency guarding every ``/api`` route with the X-API-Key header.

    An empty ``auth.api_key`` leaves the API open.
    """
    expected = request.app.state.config.auth.api_key
    if not expected:
        return
    if request.headers.get("X-API-Key", "") != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
