"""Exceções utilitárias compartilhadas."""

from .exceptions import (
    AuthenticationError,
    InfrastructureError,
    MalformedPayloadError,
    RemoteRejectedError,
    SinkError,
    SinkUnavailableError,
    TransientConnectionError,
    UnitOfWorkFailedError,
    VerificationFailedError,
    WebhookRequestError,
)

__all__ = [
    "AuthenticationError",
    "InfrastructureError",
    "MalformedPayloadError",
    "RemoteRejectedError",
    "SinkError",
    "SinkUnavailableError",
    "TransientConnectionError",
    "UnitOfWorkFailedError",
    "VerificationFailedError",
    "WebhookRequestError",
]
