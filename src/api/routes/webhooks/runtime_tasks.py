"""Controle de tasks assíncronas de processamento de webhooks.

Sem semáforo nem fila: o trabalho pendente é limitado apenas pelos recursos
do processo. O conjunto `_active_tasks` mantém referência forte às tasks
(evita coleta pelo GC) e permite o dreno no shutdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Coroutine

logger = logging.getLogger(__name__)

_active_tasks: set[asyncio.Task[Any]] = set()


def schedule_processing_task(
    *,
    correlation_id: str,
    coroutine: Coroutine[Any, Any, Any],
    source: str = "unknown",
) -> asyncio.Task[Any]:
    """Agenda task destacada do request (contexto atual é copiado)."""
    task = asyncio.create_task(coroutine)
    _active_tasks.add(task)
    task.add_done_callback(_on_processing_task_done)
    logger.info(
        "webhook_processing_scheduled",
        extra={
            "webhook_source": source,
            "correlation_id": correlation_id,
            "active_tasks": len(_active_tasks),
        },
    )
    return task


def active_task_count() -> int:
    return len(_active_tasks)


def _on_processing_task_done(task: asyncio.Task[Any]) -> None:
    _active_tasks.discard(task)
    with contextlib.suppress(asyncio.CancelledError):
        exc = task.exception()
        if exc is not None:
            logger.error(
                "webhook_processing_task_failed",
                extra={
                    "error_type": type(exc).__name__,
                    "active_tasks": len(_active_tasks),
                },
                exc_info=(type(exc), exc, exc.__traceback__),
            )


async def drain_processing_tasks(timeout_seconds: float = 30.0) -> int:
    """Aguarda tasks pendentes durante shutdown; cancela as restantes.

    Returns:
        Quantidade de tasks canceladas.
    """
    if not _active_tasks:
        return 0

    pending_now = list(_active_tasks)
    logger.info(
        "webhook_processing_shutdown_wait",
        extra={
            "pending_tasks": len(pending_now),
            "timeout_seconds": timeout_seconds,
        },
    )
    _, pending = await asyncio.wait(pending_now, timeout=timeout_seconds)
    if not pending:
        return 0

    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    logger.warning(
        "webhook_processing_shutdown_cancelled",
        extra={"cancelled_tasks": len(pending)},
    )
    return len(pending)
