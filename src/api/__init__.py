"""API — camada de borda: rotas HTTP e conectores externos.

Responsabilidades:
- Receber webhooks das fontes externas (corpo bruto + headers)
- Responder rapidamente (ack) e delegar ao Dispatcher
- Falar com o sink (Salesforce REST)

Subpastas:
- connectors/: adapters HTTP para APIs externas (sink)
- routes/: endpoints HTTP (webhooks, health)

NÃO PODE conter: transformação de eventos nem regras de integração.
"""
