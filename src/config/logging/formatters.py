"""Formatter JSON do relay.

Todo log sai como um objeto JSON com os campos de REQUIRED_LOG_FIELDS, em
ordem fixa, renomeados por FIELD_RENAME_MAP. Campos extras cujo nome indica
segredo ou corpo de webhook (REDACTED_FIELDS) são mascarados antes da
serialização: o relay nunca escreve payload bruto nem credenciais do sink.
"""

from __future__ import annotations

from typing import Any

from pythonjsonlogger.json import JsonFormatter

# Campos obrigatórios em todo log estruturado
REQUIRED_LOG_FIELDS = frozenset(
    {
        "asctime",
        "levelname",
        "name",
        "message",
        "correlation_id",
        "service",
        "webhook_source",
    }
)

# Ordem de saída dos campos obrigatórios
_FIELD_ORDER = (
    "asctime",
    "levelname",
    "name",
    "message",
    "correlation_id",
    "webhook_source",
    "service",
)

FIELD_RENAME_MAP = {
    "levelname": "level",
    "name": "logger",
}

REDACTED_FIELDS = frozenset(
    {
        "access_token",
        "authorization",
        "client_secret",
        "password",
        "payload",
        "raw_body",
        "secret",
        "security_token",
        "signature",
    }
)
REDACTED_VALUE = "[redacted]"


class RelayJsonFormatter(JsonFormatter):
    """JsonFormatter que mascara extras sensíveis."""

    def add_fields(
        self,
        log_data: dict[str, Any],
        record: Any,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_data, record, message_dict)
        for key in list(log_data):
            if key.lower() in REDACTED_FIELDS:
                log_data[key] = REDACTED_VALUE


def create_json_formatter() -> RelayJsonFormatter:
    """Cria o formatter usado pelo handler raiz.

    Exemplo (entrega rejeitada pelo Salesforce):
        {"asctime": "...", "level": "ERROR",
         "logger": "app.coordinators.webhooks.dispatcher",
         "message": "webhook_processing_failed", "correlation_id": "c-42",
         "webhook_source": "sendgrid", "service": "webhook_relay",
         "error_category": "validation"}
    """
    format_string = " ".join(f"%({name})s" for name in _FIELD_ORDER)
    return RelayJsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)
