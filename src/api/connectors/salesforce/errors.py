"""Erros e helpers de parsing para a REST API do Salesforce."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from utils.errors import (
    RemoteRejectedError,
    SinkUnavailableError,
    TransientConnectionError,
)

SESSION_ERROR_CODES = frozenset({"INVALID_SESSION_ID", "INVALID_AUTH_HEADER"})


@dataclass(frozen=True)
class SalesforceApiError:
    """Erro retornado pela API Salesforce."""

    error_code: str
    message: str
    fields: tuple[str, ...] = field(default_factory=tuple)

    def describe(self) -> str:
        """Mensagem no formato `CODE: message [campos]`."""
        suffix = f" [{', '.join(self.fields)}]" if self.fields else ""
        return f"{self.error_code}: {self.message}{suffix}"


def parse_salesforce_errors(response_data: Any) -> list[SalesforceApiError]:
    """Extrai erros do corpo de resposta do Salesforce.

    A API responde com lista de objetos `{message, errorCode, fields}` ou,
    em respostas de sucesso parcial, um objeto com `errors`.

    Returns:
        Lista de SalesforceApiError (vazia se não houver erros).
    """
    if isinstance(response_data, dict):
        items = response_data.get("errors") or []
    elif isinstance(response_data, list):
        items = response_data
    else:
        return []

    errors: list[SalesforceApiError] = []
    for item in items:
        if isinstance(item, str):
            errors.append(SalesforceApiError(error_code="UNKNOWN", message=item))
            continue
        if not isinstance(item, dict):
            continue
        errors.append(
            SalesforceApiError(
                error_code=str(item.get("errorCode") or item.get("statusCode") or "UNKNOWN"),
                message=str(item.get("message", "Erro desconhecido")),
                fields=tuple(str(f) for f in item.get("fields") or ()),
            )
        )
    return errors


def is_session_error(status_code: int, errors: list[SalesforceApiError]) -> bool:
    """Sessão expirada/inválida: único caso reconectável."""
    if status_code == 401:
        return True
    return any(err.error_code in SESSION_ERROR_CODES for err in errors)


def raise_for_salesforce_error(status_code: int, response_data: Any, operation: str) -> None:
    """Converte resposta de erro em exceção da taxonomia do relay.

    Raises:
        TransientConnectionError: Sessão expirada (401 / INVALID_SESSION_ID)
        SinkUnavailableError: Erro 5xx do Salesforce
        RemoteRejectedError: Erro de validação (4xx)
    """
    if status_code < 400:
        return

    errors = parse_salesforce_errors(response_data)
    if is_session_error(status_code, errors):
        raise TransientConnectionError(f"salesforce_session_invalid ({operation})")

    if status_code >= 500:
        raise SinkUnavailableError(f"salesforce_server_error {status_code} ({operation})")

    messages = [err.describe() for err in errors] or [f"HTTP {status_code}"]
    raise RemoteRejectedError(f"salesforce_rejected ({operation})", errors=messages)
