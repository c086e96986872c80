"""Conector Salesforce - adapter de saída para o sink de registros.

Este módulo é o único ponto de IO com o Salesforce.
Responsabilidades:
- Autenticação OAuth e sessão compartilhada (reconexão única)
- CRUD de registros via REST (sobjects)
- Query SOQL paginada explicitamente
- Unit of work atômica via Composite API
- Tradução de nomes genéricos para nomes da API (`__c`)
"""

from .auth import SalesforceSession, request_session
from .connector import SalesforceConnector, create_salesforce_connector
from .errors import SalesforceApiError, parse_salesforce_errors

__all__ = [
    "SalesforceApiError",
    "SalesforceConnector",
    "SalesforceSession",
    "create_salesforce_connector",
    "parse_salesforce_errors",
    "request_session",
]
