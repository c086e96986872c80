"""Connectors — adapters de borda para APIs externas.

Estrutura:
- salesforce/: REST API do Salesforce (sink de registros)

Cada sink tem seu próprio connector, garantindo SRP e isolamento de falhas.
"""

__all__: list[str] = []
