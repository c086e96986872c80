"""Protocolo do conector de sink (registro CRM).

Integrações dependem deste contrato; a implementação concreta
(Salesforce REST) é conectada pelo bootstrap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from app.domain.records import QueryResult, RecordResult, SinkRecord
    from app.domain.unit_of_work import UnitOfWork


class SinkConnectorProtocol(Protocol):
    """Contrato mínimo do conector de sink.

    Toda operação garante conexão antes de executar e reconecta uma única vez
    se a sessão expirar. Erros de validação nunca são retentados.
    """

    async def ensure_connected(self) -> Any: ...

    async def create(self, record: SinkRecord) -> RecordResult: ...

    async def update(
        self,
        record_type: str,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> RecordResult: ...

    async def delete(self, record_type: str, record_id: str) -> RecordResult: ...

    async def query(self, soql: str) -> QueryResult: ...

    def new_unit_of_work(self) -> UnitOfWork: ...

    async def commit_unit_of_work(self, uow: UnitOfWork) -> dict[str, RecordResult]: ...
