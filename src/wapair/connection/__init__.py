"""WhatsApp connection supervision."""

from wapair.connection.events import CloseReason, Closed, ConnectionEvent, Opened, QrIssued
from wapair.connection.provider import (
    ConnectionHandle,
    ConnectionProvider,
    ProviderConfig,
    PyaileysProvider,
)
from wapair.connection.qr_renderer import QrRenderer
from wapair.connection.reducer import ReconnectPolicy
from wapair.connection.state import ConnectionState, ConnectionStatus
from wapair.connection.supervisor import ConnectionSupervisor
from wapair.connection.timer import ReconnectTimer

__all__ = [
    "CloseReason",
    "Closed",
    "ConnectionEvent",
    "ConnectionHandle",
    "ConnectionProvider",
    "ConnectionState",
    "ConnectionStatus",
    "ConnectionSupervisor",
    "Opened",
    "ProviderConfig",
    "PyaileysProvider",
    "QrIssued",
    "QrRenderer",
    "ReconnectPolicy",
    "ReconnectTimer",
]
