"""Bootstrap da aplicação — inicialização e wiring.

Este módulo é o composition root: configura logging, valida settings e
conecta o conector do sink, as integrações e o dispatcher.

Uso:
    from app.bootstrap import initialize_app, get_dispatcher

    # Na inicialização do serviço
    initialize_app()

    # Dispatcher compartilhado pelas rotas
    dispatcher = get_dispatcher()
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from app.observability import get_correlation_id, get_webhook_source
from config.logging import configure_logging
from config.settings import (
    get_base_settings,
    get_salesforce_settings,
    get_webhook_settings,
)

if TYPE_CHECKING:
    from api.connectors.salesforce import SalesforceConnector
    from app.coordinators.webhooks import Dispatcher
    from app.domain.events import Source
    from app.integrations import IntegrationProtocol

# Nome do serviço para logs e métricas
SERVICE_NAME = "webhook_relay"

STRICT_VALIDATION_ENVS = {"staging", "production"}

logger = logging.getLogger(__name__)


def initialize_app() -> None:
    """Inicializa a aplicação com todas as configurações necessárias.

    Deve ser chamada uma vez no início do serviço.

    Configura:
    - Logging estruturado JSON com correlation_id e fonte do webhook
    """
    configure_logging(
        level=get_base_settings().log_level,
        service_name=SERVICE_NAME,
        correlation_id_getter=get_correlation_id,
        source_getter=get_webhook_source,
    )


def initialize_test_app() -> None:
    """Inicializa a aplicação para testes (nível DEBUG)."""
    configure_logging(
        level="DEBUG",
        service_name=f"{SERVICE_NAME}_test",
        correlation_id_getter=get_correlation_id,
        source_getter=get_webhook_source,
    )


def validate_runtime_settings() -> None:
    """Valida settings obrigatórias no startup.

    Em `staging`/`production` falha rápido para impedir boot inválido.
    Em `development` mantém alerta sem bloquear execução local.
    """
    base = get_base_settings()
    environment = base.environment
    strict_mode = environment in STRICT_VALIDATION_ENVS
    errors: list[str] = []

    errors.extend(f"base: {error}" for error in base.validate())
    errors.extend(f"salesforce: {error}" for error in get_salesforce_settings().validate())
    errors.extend(f"webhooks: {error}" for error in get_webhook_settings().validate(environment))

    if not errors:
        logger.info(
            "settings_validated",
            extra={"component": "bootstrap", "result": "ok", "environment": environment},
        )
        return

    logger.warning(
        "settings_validation_failed",
        extra={
            "component": "bootstrap",
            "result": "failed",
            "environment": environment,
            "error_count": len(errors),
            "errors": errors,
        },
    )
    if strict_mode:
        details = "\n".join(f"- {error}" for error in errors)
        raise RuntimeError(f"Configuração inválida para {environment}:\n{details}")


# ──────────────────────────────────────────────────────────────────────────────
# Getters (lazy initialization com cache)
# ──────────────────────────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_sink_connector() -> SalesforceConnector:
    """Obtém o conector do sink (singleton, conecta no primeiro uso)."""
    from api.connectors.salesforce import create_salesforce_connector

    return create_salesforce_connector(get_salesforce_settings())


@lru_cache(maxsize=1)
def get_integrations() -> dict[Source, IntegrationProtocol]:
    """Obtém as integrações por fonte (singleton)."""
    from app.integrations import build_integrations

    return build_integrations(get_sink_connector(), get_webhook_settings())


@lru_cache(maxsize=1)
def get_dispatcher() -> Dispatcher:
    """Obtém o dispatcher compartilhado pelas rotas (singleton)."""
    from api.routes.webhooks.runtime_tasks import schedule_processing_task
    from app.coordinators.webhooks import Dispatcher

    return Dispatcher(get_integrations(), scheduler=schedule_processing_task)


def reset_dependencies() -> None:
    """Descarta singletons (testes e reconfiguração)."""
    get_dispatcher.cache_clear()
    get_integrations.cache_clear()
    get_sink_connector.cache_clear()
