"""Tradução UnitOfWork ↔ Composite Graph API.

A unidade inteira vira um único grafo (`/composite/graph`): o Salesforce
aplica todos os nós ou nenhum, em uma transação, até MAX_OPERATIONS nós.
Cada operação pendente vira um nó com seu referenceId; placeholders
`@{refN.id}` são resolvidos pelo próprio Salesforce dentro do grafo.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from api.connectors.salesforce.errors import parse_salesforce_errors
from api.connectors.salesforce.naming import fields_to_api, object_api_name
from app.domain.records import RecordResult

if TYPE_CHECKING:
    from app.domain.unit_of_work import PendingOperation, UnitOfWork

GRAPH_ID = "relay"

_METHODS = {"create": "POST", "update": "PATCH", "delete": "DELETE"}
_ID_PLACEHOLDER = re.compile(r"^@\{([A-Za-z][A-Za-z0-9_]*)\.id\}$")


def _subrequest(op: PendingOperation, data_path: str, suffix: str) -> dict[str, Any]:
    api_type = object_api_name(op.record_type, suffix)
    url = f"{data_path}/sobjects/{api_type}"
    if op.kind != "create":
        url = f"{url}/{op.record_id}"

    subrequest: dict[str, Any] = {
        "method": _METHODS[op.kind],
        "url": url,
        "referenceId": op.reference_id,
    }
    if op.kind != "delete":
        subrequest["body"] = fields_to_api(op.record_type, op.fields, suffix)
    return subrequest


def build_composite_request(uow: UnitOfWork, data_path: str, suffix: str) -> dict[str, Any]:
    """Monta o corpo do POST /composite/graph (um grafo por unidade)."""
    return {
        "graphs": [
            {
                "graphId": GRAPH_ID,
                "compositeRequest": [_subrequest(op, data_path, suffix) for op in uow],
            }
        ]
    }


def _graph_entries(response_data: Any) -> dict[str, dict[str, Any]]:
    entries: dict[str, dict[str, Any]] = {}
    if not isinstance(response_data, dict):
        return entries
    for graph in response_data.get("graphs") or []:
        if not isinstance(graph, dict) or graph.get("graphId") != GRAPH_ID:
            continue
        graph_response = graph.get("graphResponse") or {}
        for entry in graph_response.get("compositeResponse") or []:
            if isinstance(entry, dict) and entry.get("referenceId"):
                entries[entry["referenceId"]] = entry
    return entries


def parse_composite_response(
    uow: UnitOfWork,
    response_data: Any,
) -> dict[str, RecordResult]:
    """Converte a resposta do grafo em RecordResult por referenceId.

    Operações sem resposta correspondente são marcadas como falha.
    """
    entries = _graph_entries(response_data)

    results: dict[str, RecordResult] = {}
    for op in uow:
        entry = entries.get(op.reference_id)
        if entry is None:
            results[op.reference_id] = RecordResult(
                reference_id=op.reference_id,
                success=False,
                errors=["MISSING_RESPONSE: subrequest sem resposta"],
            )
            continue
        results[op.reference_id] = _entry_result(op, entry, results)
    return results


def _entry_result(
    op: PendingOperation,
    entry: dict[str, Any],
    earlier: dict[str, RecordResult],
) -> RecordResult:
    status = int(entry.get("httpStatusCode") or 0)
    body = entry.get("body")
    if status >= 400 or (isinstance(body, dict) and body.get("success") is False):
        return RecordResult(
            reference_id=op.reference_id,
            success=False,
            errors=[err.describe() for err in parse_salesforce_errors(body)],
        )

    if op.kind == "create":
        record_id = body.get("id") if isinstance(body, dict) else None
    else:
        record_id = _resolve_record_id(op.record_id, earlier)
    return RecordResult(reference_id=op.reference_id, id=record_id, success=True)


def _resolve_record_id(record_id: str | None, earlier: dict[str, RecordResult]) -> str | None:
    if record_id is None:
        return None
    match = _ID_PLACEHOLDER.match(record_id)
    if not match:
        return record_id
    previous = earlier.get(match.group(1))
    return previous.id if previous else None
