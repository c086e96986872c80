"""Modelos de domínio do relay: eventos de entrada e registros do sink."""

from app.domain.events import InboundEvent, Source, parse_structured_body
from app.domain.records import QueryResult, RecordResult, SinkRecord
from app.domain.unit_of_work import (
    MAX_OPERATIONS,
    PendingOperation,
    Reference,
    UnitOfWork,
)

__all__ = [
    "MAX_OPERATIONS",
    "InboundEvent",
    "PendingOperation",
    "QueryResult",
    "RecordResult",
    "Reference",
    "SinkRecord",
    "Source",
    "UnitOfWork",
    "parse_structured_body",
]
