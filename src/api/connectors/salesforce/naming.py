"""Tradução de nomes genéricos do SinkRecord para nomes da API Salesforce.

Objetos customizados e seus campos recebem o sufixo configurado (`__c`):
`Integration` → `Integration__c`, `Event_Type` → `Event_Type__c`.
Campos padrão (Id, Name, ...) e nomes já qualificados são mantidos.
Objetos padrão (Account, Contact, ...) não têm campos traduzidos.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

STANDARD_FIELDS = frozenset(
    {
        "Id",
        "Name",
        "OwnerId",
        "RecordTypeId",
        "CreatedById",
        "CreatedDate",
        "LastModifiedById",
        "LastModifiedDate",
        "IsDeleted",
        "SystemModstamp",
    }
)

STANDARD_OBJECTS = frozenset(
    {
        "Account",
        "Case",
        "Contact",
        "Event",
        "Lead",
        "Opportunity",
        "Task",
        "User",
    }
)


def _is_qualified(name: str) -> bool:
    # `__c`, `__r`, `ns__Field__c`, ...
    return "__" in name


def object_api_name(record_type: str, suffix: str) -> str:
    if record_type in STANDARD_OBJECTS or _is_qualified(record_type) or not suffix:
        return record_type
    return f"{record_type}{suffix}"


def field_api_name(field_name: str, suffix: str) -> str:
    if field_name in STANDARD_FIELDS or _is_qualified(field_name) or not suffix:
        return field_name
    return f"{field_name}{suffix}"


def fields_to_api(
    record_type: str,
    fields: Mapping[str, Any],
    suffix: str,
) -> dict[str, Any]:
    """Traduz nomes de campos preservando os valores."""
    if record_type in STANDARD_OBJECTS:
        return dict(fields)
    return {field_api_name(name, suffix): value for name, value in fields.items()}
