"""Entrypoint do relay de webhooks.

Este módulo é o ponto de entrada principal do serviço.
Inicializa o bootstrap e expõe a aplicação ASGI (FastAPI).

Uso (produção):
    uvicorn app.app:app --host 0.0.0.0 --port 8080

Uso (desenvolvimento):
    uvicorn app.app:app --reload --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from api.routes import create_api_router
from api.routes.webhooks.runtime_tasks import drain_processing_tasks
from app.bootstrap import get_sink_connector, initialize_app, validate_runtime_settings
from config.logging import get_logger
from config.settings import get_base_settings, get_salesforce_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

# Inicializar logging ANTES de qualquer import que use logger
initialize_app()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gerencia ciclo de vida da aplicação.

    Startup:
    - Valida configurações
    - Registra conector do sink (conexão lazy no primeiro uso)

    Shutdown:
    - Aguarda tasks de processamento pendentes (cancela após timeout)
    - Fecha o cliente HTTP do sink
    """
    base_settings = get_base_settings()
    logger.info("app_starting", extra={"environment": base_settings.environment})
    validate_runtime_settings()
    app.state.sink_settings = get_salesforce_settings()
    app.state.sink_connector = get_sink_connector()

    yield

    logger.info("app_shutting_down")
    await drain_processing_tasks(timeout_seconds=base_settings.shutdown_drain_seconds)
    await app.state.sink_connector.aclose()


def create_app() -> FastAPI:
    """Cria e configura a aplicação FastAPI.

    Returns:
        Aplicação FastAPI configurada.
    """
    fastapi_app = FastAPI(
        title="Webhook Relay",
        description="Relay de webhooks (GitHub, SendGrid, Stripe) para o Salesforce",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Registra todas as rotas
    fastapi_app.include_router(create_api_router())

    logger.info("app_configured")

    return fastapi_app


# Aplicação ASGI exposta para uvicorn
app = create_app()


def main() -> None:
    """Entrypoint para execução direta (desenvolvimento)."""
    import uvicorn

    logger.info("Starting webhook relay in development mode")
    uvicorn.run(
        "app.app:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
    )


if __name__ == "__main__":
    main()
