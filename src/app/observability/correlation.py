"""Gerenciamento de contexto de rastreamento (correlation_id e fonte).

O correlation_id é propagado do request HTTP para a task de processamento
em background e injetado em logs. Usa ContextVar para ser async-safe:
`asyncio.create_task` copia o contexto no momento do agendamento.

Uso:
    from app.observability import get_correlation_id, set_correlation_id

    token = set_correlation_id(request.headers.get("x-correlation-id"))
    try:
        # processar request
    finally:
        reset_correlation_id(token)
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_webhook_source: ContextVar[str] = ContextVar("webhook_source", default="")


def get_correlation_id() -> str:
    """Retorna o correlation_id do contexto atual (ou string vazia)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> Token[str]:
    """Define o correlation_id no contexto atual.

    Args:
        correlation_id: ID a definir. Se None, gera um novo UUID.

    Returns:
        Token para reset posterior via reset_correlation_id().
    """
    value = correlation_id or str(uuid.uuid4())
    return _correlation_id.set(value)


def reset_correlation_id(token: Token[str]) -> None:
    """Restaura o correlation_id ao valor anterior."""
    _correlation_id.reset(token)


def get_webhook_source() -> str:
    """Retorna a fonte do webhook em processamento no contexto atual."""
    return _webhook_source.get()


def set_webhook_source(source: str) -> Token[str]:
    """Define a fonte do webhook no contexto atual."""
    return _webhook_source.set(source)


def reset_webhook_source(token: Token[str]) -> None:
    _webhook_source.reset(token)


def generate_correlation_id() -> str:
    """Gera um novo correlation_id (UUID v4)."""
    return str(uuid.uuid4())
