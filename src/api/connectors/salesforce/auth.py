"""Autenticação OAuth 2.0 (username-password) no Salesforce.

Produz a SalesforceSession usada por todas as operações do conector.
Tokens nunca são logados.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx

from utils.errors import AuthenticationError, SinkUnavailableError

if TYPE_CHECKING:
    from config.settings import SalesforceSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SalesforceSession:
    """Sessão autenticada (a "conexão" compartilhada do conector).

    Attributes:
        access_token: Bearer token da sessão
        instance_url: URL da instância (ex: https://acme.my.salesforce.com)
        issued_at: Momento de emissão
    """

    access_token: str = field(repr=False)
    instance_url: str
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def instance_host(self) -> str:
        """Host da instância (seguro para logs)."""
        return urlparse(self.instance_url).netloc

    def auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }


async def request_session(
    client: httpx.AsyncClient,
    settings: SalesforceSettings,
) -> SalesforceSession:
    """Executa o fluxo OAuth e retorna uma nova sessão.

    Raises:
        AuthenticationError: Credenciais ausentes, inválidas ou rejeitadas
        SinkUnavailableError: Falha de transporte ou erro 5xx no login
    """
    if not settings.username or not settings.password or not settings.client_id:
        raise AuthenticationError("salesforce_credentials_missing")

    form = {
        "grant_type": "password",
        "client_id": settings.client_id,
        "client_secret": settings.client_secret,
        "username": settings.username,
        "password": f"{settings.password}{settings.security_token}",
    }
    try:
        response = await client.post(
            settings.token_endpoint,
            data=form,
            headers={"Accept": "application/json"},
            timeout=settings.request_timeout_seconds,
        )
    except httpx.HTTPError as exc:
        raise SinkUnavailableError("salesforce_login_transport_error") from exc

    if response.status_code >= 500:
        raise SinkUnavailableError(f"salesforce_login_server_error {response.status_code}")

    try:
        body = response.json()
    except ValueError:
        body = {}

    if response.status_code >= 400 or not isinstance(body, dict):
        error_code = body.get("error", "unknown") if isinstance(body, dict) else "unknown"
        logger.error(
            "salesforce_login_rejected",
            extra={"status_code": response.status_code, "error_code": error_code},
        )
        raise AuthenticationError(f"salesforce_login_rejected: {error_code}")

    access_token = body.get("access_token")
    instance_url = body.get("instance_url")
    if not access_token or not instance_url:
        raise AuthenticationError("salesforce_login_incomplete_response")

    return SalesforceSession(access_token=access_token, instance_url=instance_url.rstrip("/"))
