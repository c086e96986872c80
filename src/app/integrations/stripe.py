"""Integração Stripe: eventos de pagamento (payment_intent, charge, invoice, ...)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.domain.events import Source
from app.domain.records import SinkRecord
from app.integrations.base import (
    INTEGRATION_RECORD_TYPE,
    ProcessResult,
    base_fields,
    deliver,
    epoch_to_iso,
    minor_to_major,
    nested,
    require_object,
    verify_with_policy,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from app.domain.events import InboundEvent
    from app.protocols.sink import SinkConnectorProtocol
    from config.settings import SourceWebhookSettings

logger = logging.getLogger(__name__)


class StripeIntegration:
    """Webhooks do Stripe assinados no esquema v1 (Stripe-Signature)."""

    source = Source.STRIPE

    def __init__(
        self,
        connector: SinkConnectorProtocol,
        settings: SourceWebhookSettings,
        tolerance_seconds: int = 300,
    ) -> None:
        self._connector = connector
        self._settings = settings
        self._tolerance_seconds = tolerance_seconds

    def verify_request(self, raw_payload: bytes, headers: Mapping[str, str]) -> bool:
        return verify_with_policy(
            self.source,
            raw_payload,
            headers,
            self._settings,
            stripe_tolerance_seconds=self._tolerance_seconds,
        )

    def validate_payload(self, event: InboundEvent) -> None:
        require_object(event.payload())

    def transform(self, event: InboundEvent) -> SinkRecord:
        """Mapeia evento Stripe para registro Integration.

        Valores monetários chegam em unidades menores (2550 → 25.5).
        """
        payload = require_object(event.payload())
        obj = nested(payload, "data", "object")

        currency = nested(obj, "currency")
        currency = currency if isinstance(currency, str) else None
        amount = nested(obj, "amount")
        if amount is None:
            # checkout.session usa amount_total
            amount = nested(obj, "amount_total")

        fields = base_fields(self.source, event)
        fields.update(
            {
                "Event_Type": payload.get("type"),
                "Event_Id": payload.get("id"),
                "Customer_Id": nested(obj, "customer"),
                "Amount": minor_to_major(amount, currency),
                "Currency": currency.upper() if currency else None,
                "Created": epoch_to_iso(payload.get("created")),
            }
        )
        return SinkRecord(type=INTEGRATION_RECORD_TYPE, fields=fields)

    def transform_all(self, event: InboundEvent) -> list[SinkRecord]:
        return [self.transform(event)]

    async def process(self, event: InboundEvent) -> ProcessResult:
        records = self.transform_all(event)
        logger.info(
            "integration_processing",
            extra={
                "webhook_source": self.source.value,
                "event_type": records[0].fields.get("Event_Type") or "unknown",
            },
        )
        return await deliver(self._connector, self.source, records)
