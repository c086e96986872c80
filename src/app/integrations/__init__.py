"""Integrações de webhook por fonte (GitHub, SendGrid, Stripe).

Uso:
    from app.integrations import build_integrations

    integrations = build_integrations(connector, get_webhook_settings())
    integration = integrations[Source.GITHUB]
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.domain.events import Source
from app.integrations.base import (
    INTEGRATION_RECORD_TYPE,
    STATUS_RECEIVED,
    IntegrationProtocol,
    ProcessResult,
    base_fields,
    deliver,
    verify_with_policy,
)
from app.integrations.github import GitHubIntegration
from app.integrations.sendgrid import SendGridIntegration
from app.integrations.stripe import StripeIntegration

if TYPE_CHECKING:
    from app.protocols.sink import SinkConnectorProtocol
    from config.settings import WebhookSettings


def build_integrations(
    connector: SinkConnectorProtocol,
    webhook_settings: WebhookSettings,
) -> dict[Source, IntegrationProtocol]:
    """Cria uma integração por fonte, todas compartilhando o mesmo conector."""
    return {
        Source.GITHUB: GitHubIntegration(connector, webhook_settings.github),
        Source.SENDGRID: SendGridIntegration(connector, webhook_settings.sendgrid),
        Source.STRIPE: StripeIntegration(
            connector,
            webhook_settings.stripe,
            tolerance_seconds=webhook_settings.stripe_tolerance_seconds,
        ),
    }


__all__ = [
    "INTEGRATION_RECORD_TYPE",
    "STATUS_RECEIVED",
    "GitHubIntegration",
    "IntegrationProtocol",
    "ProcessResult",
    "SendGridIntegration",
    "StripeIntegration",
    "base_fields",
    "build_integrations",
    "deliver",
    "verify_with_policy",
]
