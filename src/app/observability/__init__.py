"""Observabilidade — contexto de rastreamento e métricas em logs.

Uso:
    from app.observability import get_correlation_id, set_correlation_id
    from app.observability import record_latency, record_delivery
"""

from app.observability.correlation import (
    generate_correlation_id,
    get_correlation_id,
    get_webhook_source,
    reset_correlation_id,
    reset_webhook_source,
    set_correlation_id,
    set_webhook_source,
)
from app.observability.metrics import (
    record_delivery,
    record_latency,
    record_reconnect,
)

__all__ = [
    "generate_correlation_id",
    "get_correlation_id",
    "get_webhook_source",
    "record_delivery",
    "record_latency",
    "record_reconnect",
    "reset_correlation_id",
    "reset_webhook_source",
    "set_correlation_id",
    "set_webhook_source",
]
