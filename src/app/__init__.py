"""App — coração do relay: domínio, integrações e orquestração.

Subpastas:
- bootstrap/: composition root (inicialização e wiring)
- coordinators/: ciclo de vida do webhook (Dispatcher)
- integrations/: verificação e transformação por fonte
- domain/: InboundEvent, SinkRecord, UnitOfWork
- infra/: implementações concretas (verificação de assinatura)
- protocols/: contratos/interfaces (sink)
- observability/: contexto de rastreamento e métricas em logs

Padrão: app executa; api adapta; config configura; utils apoia.
"""
