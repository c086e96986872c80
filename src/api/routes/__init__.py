"""Rotas HTTP da API — adapters de entrada.

Responsabilidades:
- Definir endpoints HTTP (webhooks, health)
- Leitura do corpo bruto e headers
- Delegação para o Dispatcher
- Respostas HTTP apropriadas

Estrutura:
- routes/webhooks/: POST /webhooks/{source} e runtime de tasks
- routes/health/: health checks e readiness

Agregação:
- router.py: registra todos os routers no app principal
"""

from __future__ import annotations

from api.routes.router import create_api_router

__all__ = ["create_api_router"]
