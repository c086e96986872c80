"""Registro de métricas via structured logging.

As métricas são registradas como logs estruturados e podem ser agregadas
posteriormente (Cloud Logging, BigQuery, CloudWatch Insights, etc.).

Métricas suportadas:
- Latência: tempo de execução por componente/operação
- Entrega: resultado final da entrega de um webhook ao sink
- Reconexão: sessões do sink reestabelecidas

Uso:
    start = time.perf_counter()
    # ... operação ...
    record_latency("salesforce", "create", (time.perf_counter() - start) * 1000)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def record_latency(
    component: str,
    operation: str,
    latency_ms: float,
    correlation_id: str | None = None,
) -> None:
    """Registra latência de operação.

    Args:
        component: Nome do componente (ex: "salesforce", "dispatcher")
        operation: Nome da operação (ex: "create", "commit_unit_of_work")
        latency_ms: Latência em milissegundos
        correlation_id: ID de correlação para rastreamento
    """
    extra: dict[str, object] = {
        "metric_type": "latency",
        "component": component,
        "operation": operation,
        "latency_ms": round(latency_ms, 2),
    }
    if correlation_id:
        extra["correlation_id"] = correlation_id
    logger.info("metric_latency", extra=extra)


def record_delivery(
    source: str,
    outcome: str,
    record_count: int = 0,
    error_type: str | None = None,
) -> None:
    """Registra resultado final da entrega de um webhook.

    Args:
        source: Fonte do webhook (github|sendgrid|stripe)
        outcome: completed | failed
        record_count: Quantidade de registros entregues ao sink
        error_type: Nome da exceção quando outcome=failed
    """
    extra: dict[str, object] = {
        "metric_type": "delivery",
        "webhook_source": source,
        "outcome": outcome,
        "record_count": record_count,
    }
    if error_type:
        extra["error_type"] = error_type
    logger.info("metric_delivery", extra=extra)


def record_reconnect(component: str, reason: str) -> None:
    """Registra reconexão de sessão com dependência externa."""
    logger.info(
        "metric_reconnect",
        extra={
            "metric_type": "reconnect",
            "component": component,
            "reason": reason,
        },
    )
