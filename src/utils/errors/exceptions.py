"""Exceções compartilhadas do relay: webhook, sink e infraestrutura."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping


class WebhookRequestError(ValueError):
    """Erro base para falhas de request de webhook."""


class VerificationFailedError(WebhookRequestError):
    """Assinatura ausente ou inválida (responde 401, sem retry)."""


class MalformedPayloadError(WebhookRequestError):
    """Body fora da forma aceita pela fonte (JSON inválido, raiz errada,
    lote vazio ou grande demais para uma UnitOfWork)."""


class SinkError(Exception):
    """Base para erros reportados pelo sink (Salesforce)."""


class AuthenticationError(SinkError):
    """Credenciais do sink inválidas ou rejeitadas.

    Fatal até a configuração mudar; não há retry além da reconexão única.
    """


class RemoteRejectedError(SinkError):
    """Sink rejeitou o registro por validação.

    Attributes:
        errors: Mensagens de erro por campo retornadas pelo sink.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class UnitOfWorkFailedError(SinkError):
    """Commit atômico rejeitado; nenhuma operação foi aplicada.

    Attributes:
        results: Resultado por reference_id, incluindo os erros parciais.
    """

    def __init__(self, message: str, results: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.results = dict(results or {})

    @property
    def errors(self) -> list[str]:
        """Erros de todas as operações que falharam."""
        collected: list[str] = []
        for result in self.results.values():
            collected.extend(getattr(result, "errors", []))
        return collected


class InfrastructureError(RuntimeError):
    """Base para falhas de infraestrutura transitórias."""


class TransientConnectionError(InfrastructureError):
    """Sessão do sink expirada/inválida; reconectável uma vez."""


class SinkUnavailableError(InfrastructureError):
    """Falha de transporte (timeout/conexão) ao acessar o sink."""
