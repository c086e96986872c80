"""Integração SendGrid: Event Webhook (delivered, open, bounce, ...).

O SendGrid envia eventos em lote (array JSON). Cada evento vira um registro;
o lote é entregue atomicamente via UnitOfWork.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from app.domain.events import Source
from app.domain.records import SinkRecord
from app.integrations.base import (
    INTEGRATION_RECORD_TYPE,
    ProcessResult,
    base_fields,
    check_batch_size,
    deliver,
    epoch_to_iso,
    verify_with_policy,
)
from utils.errors import MalformedPayloadError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from app.domain.events import InboundEvent
    from app.protocols.sink import SinkConnectorProtocol
    from config.settings import SourceWebhookSettings

logger = logging.getLogger(__name__)


class SendGridIntegration:
    """Webhooks do SendGrid assinados com ECDSA (Signed Event Webhook)."""

    source = Source.SENDGRID

    def __init__(
        self,
        connector: SinkConnectorProtocol,
        settings: SourceWebhookSettings,
    ) -> None:
        self._connector = connector
        self._settings = settings

    def verify_request(self, raw_payload: bytes, headers: Mapping[str, str]) -> bool:
        return verify_with_policy(self.source, raw_payload, headers, self._settings)

    def validate_payload(self, event: InboundEvent) -> None:
        """Lote precisa ter ao menos um evento objeto e caber em uma UnitOfWork."""
        payload = event.payload()
        if isinstance(payload, dict):
            return
        items, _ = _batch_items(payload)
        check_batch_size(len(items))

    def transform(self, event: InboundEvent) -> SinkRecord:
        """Mapeia o primeiro evento do lote para registro Integration."""
        return self.transform_all(event)[0]

    def transform_all(self, event: InboundEvent) -> list[SinkRecord]:
        """Um registro por evento do lote.

        Corpo objeto único mantém Raw_Data verbatim; em lotes, Raw_Data
        guarda o JSON do próprio evento.
        """
        payload = event.payload()
        if isinstance(payload, dict):
            return [self._record(event, payload, raw_data=None)]

        items, skipped = _batch_items(payload)
        if skipped:
            logger.warning(
                "sendgrid_batch_items_skipped",
                extra={"webhook_source": self.source.value, "skipped": skipped},
            )

        return [
            self._record(event, item, raw_data=json.dumps(item, separators=(",", ":")))
            for item in items
        ]

    def _record(
        self,
        event: InboundEvent,
        item: dict[str, Any],
        raw_data: str | None,
    ) -> SinkRecord:
        fields = base_fields(self.source, event, raw_data=raw_data)
        fields.update(
            {
                "Event_Type": item.get("event"),
                "Email": item.get("email"),
                "Message_Id": item.get("sg_message_id"),
                "Timestamp": epoch_to_iso(item.get("timestamp")),
            }
        )
        return SinkRecord(type=INTEGRATION_RECORD_TYPE, fields=fields)

    async def process(self, event: InboundEvent) -> ProcessResult:
        records = self.transform_all(event)
        logger.info(
            "integration_processing",
            extra={
                "webhook_source": self.source.value,
                "event_type": records[0].fields.get("Event_Type") or "unknown",
                "record_count": len(records),
            },
        )
        return await deliver(self._connector, self.source, records)


def _batch_items(payload: list[Any]) -> tuple[list[dict[str, Any]], int]:
    """Eventos objeto do lote e quantos itens foram descartados."""
    items = [item for item in payload if isinstance(item, dict)]
    if not items:
        raise MalformedPayloadError("empty_batch")
    return items, len(payload) - len(items)
