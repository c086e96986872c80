"""Settings do sink Salesforce.

Credenciais OAuth (fluxo username-password), endpoint de login e
parâmetros de transporte do conector REST.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

# Constantes da REST API
SALESFORCE_API_VERSION: str = "v62.0"
SALESFORCE_LOGIN_URL: str = "https://login.salesforce.com"
CUSTOM_SUFFIX: str = "__c"


@dataclass(frozen=True)
class SalesforceSettings:
    """Configurações do conector Salesforce.

    Attributes:
        username: Usuário de integração
        password: Senha do usuário
        security_token: Security token concatenado à senha no login
        client_id: Consumer key da Connected App
        client_secret: Consumer secret da Connected App
        login_url: URL de login (login/test/My Domain)
        api_version: Versão da REST API (ex: v62.0)
        request_timeout_seconds: Timeout para requisições HTTP
        custom_suffix: Sufixo de objetos/campos customizados
        integration_object: Nome genérico do objeto de destino
    """

    # Credenciais (carregadas de env)
    username: str = ""
    password: str = ""
    security_token: str = ""
    client_id: str = ""
    client_secret: str = ""

    # API
    login_url: str = SALESFORCE_LOGIN_URL
    api_version: str = SALESFORCE_API_VERSION

    # Transporte
    request_timeout_seconds: float = 30.0

    # Mapeamento de nomes
    custom_suffix: str = CUSTOM_SUFFIX
    integration_object: str = "Integration"

    @property
    def token_endpoint(self) -> str:
        """URL do endpoint OAuth de emissão de token."""
        return f"{self.login_url.rstrip('/')}/services/oauth2/token"

    def data_path(self) -> str:
        """Prefixo da REST API de dados (relativo à instance_url)."""
        return f"/services/data/{self.api_version}"

    def validate(self) -> list[str]:
        """Valida configurações mínimas do sink.

        Returns:
            Lista de erros de validação (vazia = tudo OK).
        """
        errors: list[str] = []

        if not self.username:
            errors.append("SF_USERNAME não configurado")

        if not self.password:
            errors.append("SF_PASSWORD não configurado")

        if not self.client_id or not self.client_secret:
            errors.append("SF_CLIENT_ID/SF_CLIENT_SECRET não configurados")

        if not self.login_url.startswith("https://"):
            errors.append("SF_LOGIN_URL deve usar https")

        if not self.api_version.startswith("v"):
            errors.append("SF_API_VERSION deve ter formato vNN.N")

        if self.request_timeout_seconds <= 0:
            errors.append("SF_REQUEST_TIMEOUT_SECONDS deve ser > 0")

        return errors


def _load_from_env() -> SalesforceSettings:
    """Carrega SalesforceSettings a partir de variáveis de ambiente."""
    return SalesforceSettings(
        username=os.getenv("SF_USERNAME", ""),
        password=os.getenv("SF_PASSWORD", ""),
        security_token=os.getenv("SF_SECURITY_TOKEN", ""),
        client_id=os.getenv("SF_CLIENT_ID", ""),
        client_secret=os.getenv("SF_CLIENT_SECRET", ""),
        login_url=os.getenv("SF_LOGIN_URL", SALESFORCE_LOGIN_URL),
        api_version=os.getenv("SF_API_VERSION", SALESFORCE_API_VERSION),
        request_timeout_seconds=float(os.getenv("SF_REQUEST_TIMEOUT_SECONDS", "30")),
        custom_suffix=os.getenv("SF_CUSTOM_SUFFIX", CUSTOM_SUFFIX),
        integration_object=os.getenv("SF_INTEGRATION_OBJECT", "Integration"),
    )


@lru_cache(maxsize=1)
def get_salesforce_settings() -> SalesforceSettings:
    """Retorna instância cacheada de SalesforceSettings."""
    return _load_from_env()
