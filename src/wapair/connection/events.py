"""Provider events and supervisor effects.

Events are what the connection provider reports; effects are what the
reducer asks the supervisor to do in response.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class CloseReason:
    """Why the provider closed the connection."""

    status_code: Optional[int] = None
    is_logged_out: bool = False


@dataclass(frozen=True)
class QrIssued:
    payload: str


@dataclass(frozen=True)
class Opened:
    account_id: Optional[str] = None


@dataclass(frozen=True)
class Closed:
    reason: CloseReason = CloseReason()


ConnectionEvent = Union[QrIssued, Opened, Closed]


@dataclass(frozen=True)
class RenderQr:
    payload: str


@dataclass(frozen=True)
class MaxQrAttemptsReached:
    attempts: int
    max_attempts: int


@dataclass(frozen=True)
class ScheduleReconnect:
    delay: float
    reset_credentials: bool = False


@dataclass(frozen=True)
class CancelReconnect:
    pass


Effect = Union[RenderQr, MaxQrAttemptsReached, ScheduleReconnect, CancelReconnect]
