"""Capacidades compartilhadas pelas integrações de webhook.

Cada integração (GitHub, SendGrid, Stripe) implementa o mesmo conjunto de
capacidades (IntegrationProtocol) compondo os helpers deste módulo:
- verify_with_policy: verificação de assinatura respeitando a política da fonte
- base_fields: campos comuns a todo registro de Integration
- check_batch_size: lote inteiro cabe em uma UnitOfWork
- deliver: envio ao sink (create único ou UnitOfWork atômica)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Protocol

from app.domain.unit_of_work import MAX_OPERATIONS
from app.infra.crypto import check_signature
from utils.errors import MalformedPayloadError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from app.domain.events import InboundEvent, Source
    from app.domain.records import RecordResult, SinkRecord
    from app.protocols.sink import SinkConnectorProtocol
    from config.settings import SourceWebhookSettings

logger = logging.getLogger(__name__)

INTEGRATION_RECORD_TYPE = "Integration"
STATUS_RECEIVED = "Received"

# Moedas sem casas decimais no Stripe (valor já está na unidade principal)
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)


@dataclass(frozen=True)
class ProcessResult:
    """Resultado da entrega de um InboundEvent ao sink."""

    source: Source
    results: tuple[RecordResult, ...]

    @property
    def record_ids(self) -> list[str]:
        return [result.id for result in self.results if result.id]

    @property
    def record_count(self) -> int:
        return len(self.results)


class IntegrationProtocol(Protocol):
    """Conjunto de capacidades de toda integração de fonte."""

    source: Source

    def verify_request(self, raw_payload: bytes, headers: Mapping[str, str]) -> bool: ...

    def validate_payload(self, event: InboundEvent) -> None: ...

    def transform(self, event: InboundEvent) -> SinkRecord: ...

    def transform_all(self, event: InboundEvent) -> list[SinkRecord]: ...

    async def process(self, event: InboundEvent) -> ProcessResult: ...


# ──────────────────────────────────────────────────────────────────────────────
# Verificação
# ──────────────────────────────────────────────────────────────────────────────


def verify_with_policy(
    source: Source,
    raw_payload: bytes,
    headers: Mapping[str, str],
    settings: SourceWebhookSettings,
    *,
    stripe_tolerance_seconds: int = 300,
) -> bool:
    """Verifica assinatura da fonte, ou aceita quando a política é `disabled`.

    Nunca levanta exceção; falhas são logadas sem dados sensíveis.
    """
    if not settings.verification_enabled:
        logger.warning(
            "webhook_signature_skipped",
            extra={"webhook_source": source.value, "signature_policy": "disabled"},
        )
        return True

    result = check_signature(
        source,
        raw_payload,
        headers,
        settings.secret,
        stripe_tolerance_seconds=stripe_tolerance_seconds,
    )
    if not result.valid:
        event_name = (
            "webhook_signature_missing"
            if result.error == "missing_signature"
            else "webhook_signature_invalid"
        )
        logger.warning(
            event_name,
            extra={"webhook_source": source.value, "reason": result.error},
        )
    return result.valid


# ──────────────────────────────────────────────────────────────────────────────
# Transformação
# ──────────────────────────────────────────────────────────────────────────────


def require_object(payload: Any) -> dict[str, Any]:
    """Exige objeto JSON no nível raiz."""
    if not isinstance(payload, dict):
        raise MalformedPayloadError("payload_not_object")
    return payload


def check_batch_size(count: int) -> None:
    """Lote precisa caber em uma única UnitOfWork (1..MAX_OPERATIONS)."""
    if count == 0:
        raise MalformedPayloadError("no_records")
    if count > MAX_OPERATIONS:
        raise MalformedPayloadError(f"batch_too_large: max {MAX_OPERATIONS} eventos")


def nested(data: Any, *path: str) -> Any:
    """Lê campo aninhado; retorna None se qualquer nível faltar ou não for objeto."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def epoch_to_iso(value: Any) -> str | None:
    """Converte epoch em segundos para ISO-8601 UTC (None se ausente/inválido)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
        return datetime.fromtimestamp(seconds, UTC).isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def minor_to_major(amount: Any, currency: str | None = None) -> float | None:
    """Converte valor em unidades menores (centavos) para a unidade principal.

    2550 → 25.5; moedas sem decimais (ex: JPY) são mantidas.
    """
    if amount is None or isinstance(amount, bool):
        return None
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    if currency and currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return float(value)
    return float(value / Decimal(100))


def base_fields(
    source: Source,
    event: InboundEvent,
    raw_data: str | None = None,
) -> dict[str, Any]:
    """Campos comuns a todo registro de Integration.

    Name é derivado da fonte e do momento de recebimento (determinístico).
    """
    return {
        "Name": f"{source.display_name} Integration {event.received_at.isoformat()}",
        "Source": source.display_name,
        "Raw_Data": event.raw_text() if raw_data is None else raw_data,
        "Status": STATUS_RECEIVED,
    }


# ──────────────────────────────────────────────────────────────────────────────
# Entrega
# ──────────────────────────────────────────────────────────────────────────────


async def deliver(
    connector: SinkConnectorProtocol,
    source: Source,
    records: Sequence[SinkRecord],
) -> ProcessResult:
    """Entrega registros ao sink.

    Um registro → `create`. Vários → uma única UnitOfWork (tudo ou nada).
    Erros do sink sobem inalterados.
    """
    check_batch_size(len(records))

    if len(records) == 1:
        result = await connector.create(records[0])
        return ProcessResult(source=source, results=(result,))

    uow = connector.new_unit_of_work()
    for record in records:
        uow.register_create(record)
    results = await connector.commit_unit_of_work(uow)
    return ProcessResult(source=source, results=tuple(results.values()))
