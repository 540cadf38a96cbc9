from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from courtpulse.api.deps import get_accounts_repository, get_app_settings
from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.domain.exceptions import UpstreamUnavailableError
from courtpulse.shared.config import Settings


router = APIRouter()

_STARTED_AT = time.monotonic()


def _get_health_port() -> AuthPort | None:
    try:
        return get_accounts_repository()
    except HTTPException:
        return None


@router.get("/health")
def health(
    settings: Settings = Depends(get_app_settings),
    health_port: AuthPort | None = Depends(_get_health_port),
):
    payload: dict = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "environment": settings.app_env,
    }

    if health_port is None:
        payload["status"] = "degraded"
        payload["database"] = {"status": "disconnected", "error": "POSTGRES_DSN is required."}
    else:
        try:
            probe = health_port.ping()
            payload["database"] = {
                "status": "connected",
                "serverTime": probe["server_time"].isoformat(),
                "version": probe["version"],
            }
        except UpstreamUnavailableError as exc:
            payload["status"] = "degraded"
            payload["database"] = {"status": "disconnected", "error": str(exc)}

    status_code = 200 if payload["status"] == "ok" else 503
    return JSONResponse(status_code=status_code, content=payload)
