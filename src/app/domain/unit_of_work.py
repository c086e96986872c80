"""UnitOfWork: lote ordenado de operações aplicadas atomicamente no sink.

Cada operação registrada recebe um ReferenceId no momento do registro. O
placeholder `@{<referenceId>.id}` pode ser usado como valor de campo (ou como
id alvo de update/delete) em operações registradas depois, antes de qualquer
envio. O sink aplica tudo ou nada no commit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal

from app.domain.records import SinkRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

OperationKind = Literal["create", "update", "delete"]

# Limite de nós de um grafo da Composite Graph API
MAX_OPERATIONS = 500

_REFERENCE_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,79}$")
_PLACEHOLDER_PATTERN = re.compile(r"@\{([A-Za-z][A-Za-z0-9_]*)\.[A-Za-z0-9_.\[\]]+\}")


@dataclass(frozen=True)
class Reference:
    """ReferenceId de uma operação pendente."""

    reference_id: str

    @property
    def id_ref(self) -> str:
        """Placeholder que resolve para o id criado pela operação."""
        return f"@{{{self.reference_id}.id}}"

    def __str__(self) -> str:
        return self.id_ref


@dataclass(frozen=True)
class PendingOperation:
    """Operação registrada e ainda não enviada."""

    reference_id: str
    kind: OperationKind
    record_type: str
    record_id: str | None = None
    fields: Mapping[str, Any] = field(default_factory=dict)


class UnitOfWork:
    """Coleção ordenada de operações create/update/delete pendentes.

    Invariante: toda referência usada deve apontar para uma operação
    registrada antes, na mesma unidade. Violações levantam ValueError
    no registro (síncrono), nunca no commit.
    """

    def __init__(self) -> None:
        self._operations: list[PendingOperation] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self):
        return iter(self._operations)

    @property
    def operations(self) -> tuple[PendingOperation, ...]:
        return tuple(self._operations)

    @property
    def reference_ids(self) -> list[str]:
        return [op.reference_id for op in self._operations]

    @property
    def committed(self) -> bool:
        return self._committed

    def register_create(
        self,
        record: SinkRecord,
        reference_id: str | None = None,
    ) -> Reference:
        """Registra criação de registro; retorna sua referência."""
        return self._register(
            kind="create",
            record_type=record.type,
            record_id=None,
            fields=record.fields,
            reference_id=reference_id,
        )

    def register_update(
        self,
        record_type: str,
        record_id: str | Reference,
        fields: Mapping[str, Any],
        reference_id: str | None = None,
    ) -> Reference:
        """Registra atualização de registro existente (ou criado antes na unidade)."""
        return self._register(
            kind="update",
            record_type=record_type,
            record_id=record_id,
            fields=fields,
            reference_id=reference_id,
        )

    def register_delete(
        self,
        record_type: str,
        record_id: str | Reference,
        reference_id: str | None = None,
    ) -> Reference:
        """Registra exclusão de registro."""
        return self._register(
            kind="delete",
            record_type=record_type,
            record_id=record_id,
            fields={},
            reference_id=reference_id,
        )

    def check_committable(self) -> None:
        """Levanta ValueError se a unidade estiver vazia ou já commitada."""
        if self._committed:
            raise ValueError("unit_of_work_already_committed")
        if not self._operations:
            raise ValueError("unit_of_work_empty")

    def mark_committed(self) -> None:
        """Marca a unidade como respondida pelo sink; só pode ser feito uma vez."""
        self.check_committable()
        self._committed = True

    def _register(
        self,
        *,
        kind: OperationKind,
        record_type: str,
        record_id: str | Reference | None,
        fields: Mapping[str, Any],
        reference_id: str | None,
    ) -> Reference:
        if self._committed:
            raise ValueError("unit_of_work_already_committed")
        if len(self._operations) >= MAX_OPERATIONS:
            raise ValueError(f"unit_of_work_limit_exceeded: max {MAX_OPERATIONS} operações")
        if not record_type:
            raise ValueError("record_type é obrigatório")
        if kind != "create" and not record_id:
            raise ValueError(f"record_id é obrigatório para {kind}")

        ref_id = self._claim_reference_id(reference_id)
        resolved_id = self._resolve_value(record_id) if record_id is not None else None
        resolved_fields = {name: self._resolve_value(value) for name, value in fields.items()}

        self._operations.append(
            PendingOperation(
                reference_id=ref_id,
                kind=kind,
                record_type=record_type,
                record_id=resolved_id,
                fields=MappingProxyType(resolved_fields),
            )
        )
        return Reference(ref_id)

    def _claim_reference_id(self, reference_id: str | None) -> str:
        taken = set(self.reference_ids)
        if reference_id is None:
            counter = len(self._operations) + 1
            while f"ref{counter}" in taken:
                counter += 1
            return f"ref{counter}"
        if not _REFERENCE_ID_PATTERN.match(reference_id):
            raise ValueError(f"reference_id inválido: {reference_id!r}")
        if reference_id in taken:
            raise ValueError(f"reference_id duplicado: {reference_id!r}")
        return reference_id

    def _resolve_value(self, value: Any) -> Any:
        if isinstance(value, Reference):
            self._require_registered(value.reference_id)
            return value.id_ref
        if isinstance(value, str):
            for match in _PLACEHOLDER_PATTERN.finditer(value):
                self._require_registered(match.group(1))
        return value

    def _require_registered(self, reference_id: str) -> None:
        if reference_id not in self.reference_ids:
            raise ValueError(
                f"referência {reference_id!r} não aponta para operação registrada antes"
            )


__all__ = [
    "MAX_OPERATIONS",
    "OperationKind",
    "PendingOperation",
    "Reference",
    "UnitOfWork",
]
