"""Agregador de settings do relay de webhooks.

Re-exporta todas as settings e funções de cada módulo.
Organização por domínio para isolamento de mudanças.
"""

from __future__ import annotations

# Base settings
from config.settings.base import (
    BaseSettings,
    Environment,
    get_base_settings,
)

# Sink settings
from config.settings.salesforce import (
    CUSTOM_SUFFIX,
    SALESFORCE_API_VERSION,
    SALESFORCE_LOGIN_URL,
    SalesforceSettings,
    get_salesforce_settings,
)

# Webhook sources
from config.settings.webhooks import (
    STRIPE_TIMESTAMP_TOLERANCE_SECONDS,
    SignaturePolicy,
    SourceWebhookSettings,
    WebhookSettings,
    get_webhook_settings,
)

__all__ = [
    # Constants
    "CUSTOM_SUFFIX",
    "SALESFORCE_API_VERSION",
    "SALESFORCE_LOGIN_URL",
    "STRIPE_TIMESTAMP_TOLERANCE_SECONDS",
    # Base
    "BaseSettings",
    "Environment",
    # Sink
    "SalesforceSettings",
    # Webhooks
    "SignaturePolicy",
    "SourceWebhookSettings",
    "WebhookSettings",
    "get_base_settings",
    "get_salesforce_settings",
    "get_webhook_settings",
]
