"""Protocolos e contratos do core da aplicação."""

from .sink import SinkConnectorProtocol

__all__ = [
    "SinkConnectorProtocol",
]
