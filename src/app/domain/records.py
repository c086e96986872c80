"""Registros do sink: SinkRecord (entrada) e resultados (saída).

SinkRecord é genérico (tipo + campos); o conector traduz para os nomes
da API do Salesforce. Os resultados espelham o contrato de resposta do sink.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class SinkRecord:
    """Registro a ser criado no sink.

    Attributes:
        type: Nome da entidade de destino (ex: Integration)
        fields: Campos do registro (somente leitura após criação)
    """

    type: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.type:
            raise ValueError("SinkRecord.type é obrigatório")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.type, "fields": dict(self.fields)}


class RecordResult(BaseModel):
    """Resultado de uma operação no sink."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = Field(default=None, description="Identificador atribuído pelo sink.")
    success: bool = Field(default=True, description="Operação aplicada com sucesso.")
    errors: list[str] = Field(default_factory=list, description="Mensagens de erro.")
    reference_id: str | None = Field(
        default=None,
        description="ReferenceId da operação quando parte de uma UnitOfWork.",
    )


class QueryResult(BaseModel):
    """Página de resultado de uma query SOQL."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    records: list[dict[str, Any]] = Field(default_factory=list)
    done: bool = Field(default=True, description="False indica mais páginas.")
    total_size: int = Field(default=0, alias="totalSize")
    next_records_url: str | None = Field(default=None, alias="nextRecordsUrl")


__all__ = ["QueryResult", "RecordResult", "SinkRecord"]
