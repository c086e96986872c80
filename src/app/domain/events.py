"""Evento de webhook recebido (InboundEvent) e fontes suportadas.

O InboundEvent é imutável: criado na borda HTTP, consumido uma única vez
por uma integração e descartado após o processamento (sem persistência).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from utils.errors import MalformedPayloadError

if TYPE_CHECKING:
    from collections.abc import Mapping


class Source(str, Enum):
    """Fontes externas de webhook."""

    GITHUB = "github"
    SENDGRID = "sendgrid"
    STRIPE = "stripe"

    @property
    def display_name(self) -> str:
        """Nome usado nos registros do sink (ex: GitHub)."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    Source.GITHUB: "GitHub",
    Source.SENDGRID: "SendGrid",
    Source.STRIPE: "Stripe",
}


def _freeze_headers(headers: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({str(k).lower(): str(v) for k, v in headers.items()})


@dataclass(frozen=True)
class InboundEvent:
    """Request de webhook capturado na borda.

    Attributes:
        source: Fonte do webhook
        raw_body: Corpo bruto (usado na verificação e em Raw_Data)
        headers: Headers com chaves em minúsculas (somente leitura)
        received_at: Momento de recebimento (UTC)
    """

    source: Source
    raw_body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", Source(self.source))
        object.__setattr__(self, "headers", _freeze_headers(self.headers))

    def header(self, name: str) -> str | None:
        """Retorna header (case-insensitive) ou None."""
        return self.headers.get(name.lower())

    def payload(self) -> dict[str, Any] | list[Any]:
        """Parseia raw_body como JSON estruturado.

        Raises:
            MalformedPayloadError: Se não for JSON válido ou não for objeto/lista.
        """
        return parse_structured_body(self.raw_body)

    def raw_text(self) -> str:
        """Corpo bruto decodificado (bytes inválidos substituídos)."""
        return self.raw_body.decode("utf-8", errors="replace")


def parse_structured_body(raw_body: bytes) -> dict[str, Any] | list[Any]:
    """Parseia corpo de webhook exigindo objeto ou lista JSON no nível raiz.

    Raises:
        MalformedPayloadError: invalid_json | payload_not_structured
    """
    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayloadError("invalid_json") from exc

    if not isinstance(payload, (dict, list)):
        raise MalformedPayloadError("payload_not_structured")

    return payload


__all__ = ["InboundEvent", "Source", "parse_structured_body"]
