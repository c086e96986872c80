"""Coordenação do ciclo de vida de um webhook (verificação → ack → entrega)."""

from app.coordinators.webhooks.dispatcher import (
    DispatchResult,
    DispatchState,
    Dispatcher,
    classify_processing_error,
)

__all__ = [
    "DispatchResult",
    "DispatchState",
    "Dispatcher",
    "classify_processing_error",
]
