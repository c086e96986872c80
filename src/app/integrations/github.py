"""Integração GitHub: eventos de repositório (push, pull_request, ...)."""

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

EVENT_HEADER = "x-github-event"
DELIVERY_HEADER = "x-github-delivery"


class GitHubIntegration:
    """Webhooks do GitHub assinados com HMAC-SHA256 (X-Hub-Signature-256)."""

    source = Source.GITHUB

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
        """Corpo precisa ser um objeto JSON."""
        require_object(event.payload())

    def transform(self, event: InboundEvent) -> SinkRecord:
        """Mapeia evento GitHub para registro Integration.

        O tipo do evento vem do header X-GitHub-Event, não do corpo.
        """
        payload = require_object(event.payload())
        fields = base_fields(self.source, event)
        fields.update(
            {
                "Event_Type": event.header(EVENT_HEADER),
                "Delivery_Id": event.header(DELIVERY_HEADER),
                "Action": payload.get("action"),
                "Repository": nested(payload, "repository", "full_name"),
                "Sender": nested(payload, "sender", "login"),
            }
        )
        return SinkRecord(type=INTEGRATION_RECORD_TYPE, fields=fields)

    def transform_all(self, event: InboundEvent) -> list[SinkRecord]:
        return [self.transform(event)]

    async def process(self, event: InboundEvent) -> ProcessResult:
        logger.info(
            "integration_processing",
            extra={
                "webhook_source": self.source.value,
                "event_type": event.header(EVENT_HEADER) or "unknown",
            },
        )
        return await deliver(self._connector, self.source, self.transform_all(event))
