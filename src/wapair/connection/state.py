"""Connection state owned by the supervisor."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from wapair.formatting import to_iso


class ConnectionStatus(Enum):
    """Connection states. Values are the wire strings used by the HTTP API."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    QR_READY = "qr_ready"
    ONLINE = "online"


STATUS_TEXT = {
    ConnectionStatus.ONLINE: "✅ ONLINE - Ready for Pairing",
    ConnectionStatus.QR_READY: "📱 QR READY - Scan to Connect",
    ConnectionStatus.CONNECTING: "🔄 CONNECTING...",
    ConnectionStatus.DISCONNECTED: "❌ DISCONNECTED - Retrying...",
}

STATUS_COLOR = {
    ConnectionStatus.ONLINE: "#28a745",
    ConnectionStatus.QR_READY: "#ffc107",
    ConnectionStatus.CONNECTING: "#17a2b8",
    ConnectionStatus.DISCONNECTED: "#dc3545",
}


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of the single WhatsApp connection.

    Attributes:
        status: Current status.
        current_qr_payload: Latest QR payload; only set while QR_READY.
        qr_image: Rendered data URL for the payload, None if rendering failed.
        qr_attempt_count: QR payloads seen since the last ONLINE.
        connecting_since: Start of the in-flight attempt, None when idle.
        last_status_change_at: Time of the last transition.
        generation: Identifier of the current connection attempt.
        is_connecting: True while an attempt is in flight.
        account_id: Account id reported on open.
    """

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    current_qr_payload: Optional[str] = None
    qr_image: Optional[str] = None
    qr_attempt_count: int = 0
    connecting_since: Optional[float] = None
    last_status_change_at: float = field(default_factory=time.time)
    generation: int = 0
    is_connecting: bool = False
    account_id: Optional[str] = None

    @property
    def is_qr_ready(self) -> bool:
        return self.status is ConnectionStatus.QR_READY

    @property
    def is_online(self) -> bool:
        return self.status is ConnectionStatus.ONLINE

    @property
    def status_text(self) -> str:
        return STATUS_TEXT[self.status]

    @property
    def status_color(self) -> str:
        return STATUS_COLOR[self.status]

    def max_attempts_reached(self, max_attempts: int) -> bool:
        return self.qr_attempt_count >= max_attempts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "statusText": self.status_text,
            "statusColor": self.status_color,
            "qrAttempts": self.qr_attempt_count,
            "qrReady": self.is_qr_ready,
            "online": self.is_online,
            "generation": self.generation,
            "lastConnectionUpdate": to_iso(self.last_status_change_at),
        }
