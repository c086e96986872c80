"""Endpoints de recebimento de webhooks por fonte.

Endpoints:
- POST /webhooks/{source}: github | sendgrid | stripe

Fluxo:
1. Lê corpo bruto e headers (a assinatura cobre o corpo exato)
2. Dispatcher verifica assinatura e formato
3. Responde 202 imediatamente; entrega ao sink roda em background

Respostas:
- 202 {"status": "processing", "correlation_id": ...}
- 401 assinatura inválida/ausente
- 400 corpo malformado
- 404 fonte desconhecida
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from app.observability import get_correlation_id, reset_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_dispatcher():
    """Obtém o dispatcher do composition root (lazy-loading)."""
    from app.bootstrap import get_dispatcher

    return get_dispatcher()


@router.post("/{source}", response_model=None)
async def receive_webhook(source: str, request: Request) -> Response:
    """Recebe evento de uma fonte e confirma antes de processar."""
    correlation_id = request.headers.get("x-correlation-id")
    token = set_correlation_id(correlation_id)

    try:
        raw_body = await request.body()
        headers = dict(request.headers)

        result = await _get_dispatcher().dispatch(source, raw_body, headers)

        logger.info(
            "webhook_response",
            extra={
                "webhook_source": source,
                "correlation_id": get_correlation_id(),
                "status_code": result.status_code,
                "state": result.state.value,
            },
        )
        return JSONResponse(content=result.body, status_code=result.status_code)
    finally:
        reset_correlation_id(token)
