"""Testes dos endpoints de health e readiness."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.requests import Request

from api.routes.health.router import health_check, readiness_check
from config.settings import SalesforceSettings
from utils.errors import AuthenticationError

VALID_SETTINGS = SalesforceSettings(
    username="relay@acme.com",
    password="pw",
    client_id="cid",
    client_secret="secret",
)


def _build_request_with_state(state: SimpleNamespace) -> Request:
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/ready",
        "raw_path": b"/ready",
        "query_string": b"",
        "headers": [],
        "app": SimpleNamespace(state=state),
    }

    async def _receive() -> dict[str, object]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, _receive)


@pytest.mark.asyncio
async def test_health_returns_healthy() -> None:
    response = await health_check()
    assert response.status == "healthy"
    assert response.service == "webhook-relay"


@pytest.mark.asyncio
async def test_readiness_not_ready_without_dependencies() -> None:
    request = _build_request_with_state(SimpleNamespace())

    response = await readiness_check(request)
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 503
    assert payload["status"] == "not_ready"
    assert payload["checks"]["sink_settings"]["error"] == "not_configured"
    assert payload["checks"]["sink"]["status"] == "failed"


@pytest.mark.asyncio
async def test_readiness_invalid_settings_skips_connection() -> None:
    connector = MagicMock()
    connector.ensure_connected = AsyncMock()
    request = _build_request_with_state(
        SimpleNamespace(sink_settings=SalesforceSettings(), sink_connector=connector)
    )

    response = await readiness_check(request)
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 503
    assert payload["checks"]["sink"]["error"] == "skipped"
    connector.ensure_connected.assert_not_awaited()


@pytest.mark.asyncio
async def test_readiness_ready_when_connector_authenticates() -> None:
    connector = MagicMock()
    connector.ensure_connected = AsyncMock(return_value=object())
    request = _build_request_with_state(
        SimpleNamespace(sink_settings=VALID_SETTINGS, sink_connector=connector)
    )

    response = await readiness_check(request)
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 200
    assert payload["status"] == "ready"
    assert payload["checks"]["sink"]["status"] == "ok"


@pytest.mark.asyncio
async def test_readiness_not_ready_when_authentication_fails() -> None:
    connector = MagicMock()
    connector.ensure_connected = AsyncMock(side_effect=AuthenticationError("rejected"))
    request = _build_request_with_state(
        SimpleNamespace(sink_settings=VALID_SETTINGS, sink_connector=connector)
    )

    response = await readiness_check(request)
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 503
    assert payload["checks"]["sink"]["error"] == "AuthenticationError"
