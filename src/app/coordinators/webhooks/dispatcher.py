"""Dispatcher de webhooks: máquina de estados por request.

Estados:
    received → verifying → rejected (401)
                         → malformed (400)
                         → acknowledged (202) → processing → completed | failed

O 202 é devolvido antes de qualquer chamada ao sink: o processamento roda
como task destacada via scheduler injetado e nunca é aguardado no caminho
da resposta. Falhas após o ack só aparecem em logs.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from app.domain.events import InboundEvent, Source
from app.observability import (
    get_correlation_id,
    record_delivery,
    record_latency,
    reset_webhook_source,
    set_webhook_source,
)
from utils.errors import (
    AuthenticationError,
    InfrastructureError,
    MalformedPayloadError,
    RemoteRejectedError,
    UnitOfWorkFailedError,
    VerificationFailedError,
    WebhookRequestError,
)

if TYPE_CHECKING:
    from collections.abc import Coroutine, Mapping

    from app.integrations import IntegrationProtocol

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    """Estados do ciclo de vida de um webhook."""

    RECEIVED = "received"
    VERIFYING = "verifying"
    REJECTED = "rejected"
    MALFORMED = "malformed"
    ACKNOWLEDGED = "acknowledged"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingScheduler(Protocol):
    def __call__(
        self,
        *,
        correlation_id: str,
        coroutine: Coroutine[Any, Any, Any],
        source: str = ...,
    ) -> Any: ...


@dataclass(frozen=True)
class DispatchResult:
    """Resposta síncrona ao request (antes do processamento)."""

    state: DispatchState
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


_UNKNOWN_SOURCE = DispatchResult(DispatchState.REJECTED, 404, {"error": "Unknown source"})
_INVALID_SIGNATURE = DispatchResult(DispatchState.REJECTED, 401, {"error": "Invalid signature"})


def classify_processing_error(exc: BaseException) -> str:
    """Classifica falha pós-ack: validation | infrastructure | unexpected."""
    if isinstance(exc, (WebhookRequestError, RemoteRejectedError, UnitOfWorkFailedError)):
        return "validation"
    if isinstance(exc, (InfrastructureError, AuthenticationError)):
        return "infrastructure"
    return "unexpected"


class Dispatcher:
    """Roteia webhooks para a integração da fonte e agenda o processamento."""

    def __init__(
        self,
        integrations: Mapping[Source, IntegrationProtocol],
        scheduler: ProcessingScheduler,
    ) -> None:
        self._integrations = dict(integrations)
        self._schedule = scheduler

    @property
    def sources(self) -> list[str]:
        return sorted(source.value for source in self._integrations)

    def integration_for(self, source: str) -> IntegrationProtocol | None:
        try:
            return self._integrations.get(Source(source))
        except ValueError:
            return None

    async def dispatch(
        self,
        source: str,
        raw_body: bytes,
        headers: Mapping[str, str],
    ) -> DispatchResult:
        """Verifica, valida o corpo e agenda o processamento.

        Exceções levantadas pela verificação propagam (erro 5xx do framework).
        """
        integration = self.integration_for(source)
        if integration is None:
            logger.warning("webhook_source_unknown", extra={"webhook_source": source})
            return _UNKNOWN_SOURCE

        token = set_webhook_source(integration.source.value)
        try:
            return self._dispatch(integration, raw_body, headers)
        finally:
            reset_webhook_source(token)

    def _dispatch(
        self,
        integration: IntegrationProtocol,
        raw_body: bytes,
        headers: Mapping[str, str],
    ) -> DispatchResult:
        event = InboundEvent(source=integration.source, raw_body=raw_body, headers=headers)
        source = integration.source.value
        logger.info(
            "webhook_received",
            extra={
                "webhook_source": source,
                "state": DispatchState.VERIFYING.value,
                "payload_size": len(raw_body),
            },
        )

        try:
            self._admit(integration, event)
        except VerificationFailedError:
            logger.warning(
                "webhook_rejected",
                extra={"webhook_source": source, "state": DispatchState.REJECTED.value},
            )
            return _INVALID_SIGNATURE
        except MalformedPayloadError as exc:
            logger.warning(
                "webhook_payload_malformed",
                extra={
                    "webhook_source": source,
                    "state": DispatchState.MALFORMED.value,
                    "reason": str(exc),
                },
            )
            return DispatchResult(DispatchState.MALFORMED, 400, {"error": "Malformed payload"})

        correlation_id = get_correlation_id()
        self._schedule(
            correlation_id=correlation_id,
            coroutine=self.process(integration, event),
            source=source,
        )
        logger.info(
            "webhook_acknowledged",
            extra={"webhook_source": source, "state": DispatchState.ACKNOWLEDGED.value},
        )
        return DispatchResult(
            DispatchState.ACKNOWLEDGED,
            202,
            {"status": "processing", "correlation_id": correlation_id},
        )

    @staticmethod
    def _admit(integration: IntegrationProtocol, event: InboundEvent) -> None:
        """Verifica assinatura e forma do corpo, sem tocar no sink.

        Raises:
            VerificationFailedError: Assinatura ausente ou inválida
            MalformedPayloadError: Corpo fora da forma aceita pela fonte
        """
        if not integration.verify_request(event.raw_body, event.headers):
            raise VerificationFailedError("invalid_signature")
        integration.validate_payload(event)

    async def process(self, integration: IntegrationProtocol, event: InboundEvent) -> DispatchState:
        """Entrega o evento ao sink; roda destacado do request.

        Nunca propaga falhas de entrega: classifica, loga e retorna `failed`.
        """
        source = integration.source.value
        token = set_webhook_source(source)
        started_at = time.perf_counter()
        logger.info(
            "webhook_processing_started",
            extra={"webhook_source": source, "state": DispatchState.PROCESSING.value},
        )
        try:
            result = await integration.process(event)
        except Exception as exc:
            category = classify_processing_error(exc)
            extra = {
                "webhook_source": source,
                "state": DispatchState.FAILED.value,
                "error_category": category,
                "error_type": type(exc).__name__,
                "error": str(exc),
            }
            errors = getattr(exc, "errors", None)
            if errors:
                extra["sink_errors"] = list(errors)
            if category == "unexpected":
                logger.exception("webhook_processing_failed", extra=extra)
            else:
                logger.error("webhook_processing_failed", extra=extra)
            record_delivery(source, "failed", error_type=type(exc).__name__)
            return DispatchState.FAILED
        else:
            logger.info(
                "webhook_processing_completed",
                extra={
                    "webhook_source": source,
                    "state": DispatchState.COMPLETED.value,
                    "record_count": result.record_count,
                },
            )
            record_delivery(source, "completed", record_count=result.record_count)
            return DispatchState.COMPLETED
        finally:
            record_latency(
                "dispatcher",
                f"process_{source}",
                (time.perf_counter() - started_at) * 1000,
                correlation_id=get_correlation_id() or None,
            )
            reset_webhook_source(token)
