"""Pure state transitions for the connection supervisor.

Every function takes the current state and returns ``(new_state, effects)``
without performing I/O, so the whole state machine can be exercised in
tests without a network connection.

    DISCONNECTED --start--> CONNECTING --qr--> QR_READY --qr--> QR_READY
         ^                      |                  |
         |                      +------open--------+--> ONLINE
         +-------------close (any state but DISCONNECTED)----+
"""

from dataclasses import dataclass, replace
from typing import List, Tuple

from wapair.config import ConnectionConfig
from wapair.connection.events import (
    CancelReconnect,
    Closed,
    ConnectionEvent,
    Effect,
    MaxQrAttemptsReached,
    Opened,
    QrIssued,
    RenderQr,
    ScheduleReconnect,
)
from wapair.connection.state import ConnectionState, ConnectionStatus

Transition = Tuple[ConnectionState, List[Effect]]

_ATTEMPT_STATES = (ConnectionStatus.CONNECTING, ConnectionStatus.QR_READY)


@dataclass(frozen=True)
class ReconnectPolicy:
    """Reconnect delays (seconds) and QR attempt limit."""

    short_delay: float = 5.0
    long_delay: float = 10.0
    init_failure_delay: float = 10.0
    max_qr_attempts: int = 5

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> "ReconnectPolicy":
        return cls(
            short_delay=config.short_reconnect_delay,
            long_delay=config.long_reconnect_delay,
            init_failure_delay=config.init_failure_delay,
            max_qr_attempts=config.max_qr_attempts,
        )


def begin_attempt(state: ConnectionState, now: float) -> Transition:
    """Enter CONNECTING with a fresh generation.

    Returns the state unchanged if an attempt is already in flight.
    """
    if state.is_connecting:
        return state, []
    new_state = replace(
        state,
        status=ConnectionStatus.CONNECTING,
        is_connecting=True,
        generation=state.generation + 1,
        connecting_since=now,
        current_qr_payload=None,
        qr_image=None,
        last_status_change_at=now,
    )
    return new_state, []


def attempt_failed(state: ConnectionState, policy: ReconnectPolicy, now: float) -> Transition:
    """Provider ``connect`` raised before any event arrived."""
    new_state = _disconnected(state, now)
    return new_state, [ScheduleReconnect(delay=policy.init_failure_delay)]


def reduce(
    state: ConnectionState,
    event: ConnectionEvent,
    policy: ReconnectPolicy,
    now: float,
) -> Transition:
    """Apply a provider event.

    Events that make no sense in the current status (a QR after the
    connection closed, a second open) leave the state untouched.
    """
    if isinstance(event, QrIssued):
        if state.status not in _ATTEMPT_STATES:
            return state, []
        attempts = state.qr_attempt_count + 1
        new_state = replace(
            state,
            status=ConnectionStatus.QR_READY,
            current_qr_payload=event.payload,
            qr_image=None,
            qr_attempt_count=attempts,
            last_status_change_at=now,
        )
        effects: List[Effect] = [RenderQr(event.payload)]
        if attempts >= policy.max_qr_attempts:
            effects.append(MaxQrAttemptsReached(attempts, policy.max_qr_attempts))
        return new_state, effects

    if isinstance(event, Opened):
        if state.status not in _ATTEMPT_STATES:
            return state, []
        new_state = replace(
            state,
            status=ConnectionStatus.ONLINE,
            is_connecting=False,
            qr_attempt_count=0,
            current_qr_payload=None,
            qr_image=None,
            connecting_since=None,
            account_id=event.account_id,
            last_status_change_at=now,
        )
        return new_state, [CancelReconnect()]

    if isinstance(event, Closed):
        if state.status is ConnectionStatus.DISCONNECTED:
            return state, []
        if event.reason.is_logged_out:
            delay = policy.long_delay
        else:
            delay = policy.short_delay
        return _disconnected(state, now), [
            ScheduleReconnect(delay=delay, reset_credentials=event.reason.is_logged_out)
        ]

    raise TypeError(f"Unknown connection event: {event!r}")


def _disconnected(state: ConnectionState, now: float) -> ConnectionState:
    return replace(
        state,
        status=ConnectionStatus.DISCONNECTED,
        is_connecting=False,
        current_qr_payload=None,
        qr_image=None,
        connecting_since=None,
        last_status_change_at=now,
    )
