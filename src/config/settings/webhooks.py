"""Settings dos webhooks de entrada (por fonte).

Cada fonte tem seu secret e sua política de assinatura. A política
`disabled` aceita requests sem verificação e só é permitida fora de produção.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

SignaturePolicy = Literal["required", "disabled"]

STRIPE_TIMESTAMP_TOLERANCE_SECONDS: int = 300


@dataclass(frozen=True)
class SourceWebhookSettings:
    """Configuração de verificação de uma fonte.

    Attributes:
        secret: Secret HMAC (GitHub/Stripe) ou chave pública (SendGrid)
        signature_policy: required (padrão) ou disabled (sem verificação)
    """

    secret: str = ""
    signature_policy: SignaturePolicy = "required"

    @property
    def verification_enabled(self) -> bool:
        return self.signature_policy != "disabled"


@dataclass(frozen=True)
class WebhookSettings:
    """Configurações de todas as fontes de webhook."""

    github: SourceWebhookSettings = field(default_factory=SourceWebhookSettings)
    sendgrid: SourceWebhookSettings = field(default_factory=SourceWebhookSettings)
    stripe: SourceWebhookSettings = field(default_factory=SourceWebhookSettings)
    stripe_tolerance_seconds: int = STRIPE_TIMESTAMP_TOLERANCE_SECONDS

    def for_source(self, source: str) -> SourceWebhookSettings:
        """Retorna a configuração da fonte (github|sendgrid|stripe)."""
        return getattr(self, source)

    def validate(self, environment: str = "development") -> list[str]:
        """Valida secrets e políticas.

        Args:
            environment: Ambiente atual; `disabled` é erro em produção.

        Returns:
            Lista de erros de validação (vazia = tudo OK).
        """
        errors: list[str] = []
        for name in ("github", "sendgrid", "stripe"):
            source = self.for_source(name)
            env_prefix = name.upper()
            if source.signature_policy not in ("required", "disabled"):
                errors.append(f"{env_prefix}_SIGNATURE_POLICY inválida")
                continue
            if not source.verification_enabled:
                if environment == "production":
                    errors.append(f"{env_prefix}_SIGNATURE_POLICY=disabled proibido em produção")
                continue
            if not source.secret:
                errors.append(f"{env_prefix}_WEBHOOK_SECRET não configurado")

        if self.stripe_tolerance_seconds <= 0:
            errors.append("STRIPE_TIMESTAMP_TOLERANCE_SECONDS deve ser > 0")

        return errors


def _parse_policy(value: str) -> SignaturePolicy:
    return "disabled" if value.strip().lower() == "disabled" else "required"


def _load_source(env_prefix: str) -> SourceWebhookSettings:
    return SourceWebhookSettings(
        secret=os.getenv(f"{env_prefix}_WEBHOOK_SECRET", ""),
        signature_policy=_parse_policy(os.getenv(f"{env_prefix}_SIGNATURE_POLICY", "required")),
    )


def _load_from_env() -> WebhookSettings:
    """Carrega WebhookSettings a partir de variáveis de ambiente."""
    return WebhookSettings(
        github=_load_source("GITHUB"),
        sendgrid=_load_source("SENDGRID"),
        stripe=_load_source("STRIPE"),
        stripe_tolerance_seconds=int(
            os.getenv(
                "STRIPE_TIMESTAMP_TOLERANCE_SECONDS",
                str(STRIPE_TIMESTAMP_TOLERANCE_SECONDS),
            )
        ),
    )


@lru_cache(maxsize=1)
def get_webhook_settings() -> WebhookSettings:
    """Retorna instância cacheada de WebhookSettings."""
    return _load_from_env()
