"""Endpoints de health check (liveness e readiness)."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from utils.errors import AuthenticationError, InfrastructureError

logger = logging.getLogger(__name__)

router = APIRouter()

SINK_CHECK_TIMEOUT_SECONDS = 5.0


class HealthResponse(BaseModel):
    """Resposta do health check."""

    status: str
    service: str
    timestamp: str
    version: str = "1.0.0"


@dataclass(frozen=True, slots=True)
class DependencyCheck:
    """Resultado de checagem de dependência."""

    status: Literal["ok", "failed"]
    latency_ms: float | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe — verifica se o serviço está rodando."""
    return HealthResponse(
        status="healthy",
        service="webhook-relay",
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe: settings do sink válidas e conector autenticando."""
    settings_check = _check_sink_settings(getattr(request.app.state, "sink_settings", None))
    if settings_check.status == "ok":
        sink_check = await _check_sink_connection(
            getattr(request.app.state, "sink_connector", None)
        )
    else:
        sink_check = DependencyCheck(status="failed", error="skipped")

    ready = settings_check.status == "ok" and sink_check.status == "ok"
    payload = {
        "status": "ready" if ready else "not_ready",
        "checks": {
            "sink_settings": settings_check.as_dict(),
            "sink": sink_check.as_dict(),
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return JSONResponse(content=payload, status_code=200 if ready else 503)


def _check_sink_settings(settings: Any | None) -> DependencyCheck:
    if settings is None:
        return DependencyCheck(status="failed", error="not_configured")
    errors = settings.validate()
    if errors:
        return DependencyCheck(status="failed", error=f"invalid_settings ({len(errors)})")
    return DependencyCheck(status="ok")


async def _check_sink_connection(connector: Any | None) -> DependencyCheck:
    if connector is None:
        return DependencyCheck(status="failed", error="not_configured")
    started_at = time.perf_counter()
    try:
        await asyncio.wait_for(connector.ensure_connected(), timeout=SINK_CHECK_TIMEOUT_SECONDS)
    except TimeoutError:
        return DependencyCheck(status="failed", error="timeout")
    except (AuthenticationError, InfrastructureError) as exc:
        logger.warning("readiness_sink_check_failed", extra={"error_type": type(exc).__name__})
        return DependencyCheck(status="failed", error=type(exc).__name__)
    latency_ms = (time.perf_counter() - started_at) * 1000
    return DependencyCheck(status="ok", latency_ms=round(latency_ms, 2))
