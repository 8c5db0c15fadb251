"""Connection provider interface and the pyaileys-backed implementation.

The provider owns everything protocol-related: the Noise handshake,
multi-device encryption and the multi-file credential store. The
supervisor only sees three events (QR issued, opened, closed) and a
handle it can close.
"""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from wapair.config import Config
from wapair.connection.events import CloseReason, Closed, ConnectionEvent, Opened, QrIssued
from wapair.errors import ProviderError

logger = logging.getLogger(__name__)

# Status code WhatsApp uses when the linked device was removed from the phone.
LOGGED_OUT_STATUS = 401

EventCallback = Callable[[ConnectionEvent], None]


@dataclass
class ProviderConfig:
    """Settings passed to the provider on every connection attempt."""

    auth_dir: Path
    client_name: str = "wapair"
    version: Optional[list[int]] = None
    connect_timeout: float = 30.0

    @classmethod
    def from_config(cls, config: Config) -> "ProviderConfig":
        return cls(
            auth_dir=Path(config.auth_dir).expanduser(),
            client_name=config.connection.client_name,
            version=config.connection.version,
            connect_timeout=config.connection.connect_timeout,
        )


class ConnectionHandle(Protocol):
    """An established (or establishing) provider connection."""

    async def close(self) -> None:
        """Close the connection gracefully."""
        ...


class ConnectionProvider(Protocol):
    """Protocol for the external WhatsApp client library."""

    async def connect(self, config: ProviderConfig, on_event: EventCallback) -> ConnectionHandle:
        """Start a connection attempt.

        Events for this attempt are delivered through ``on_event`` on the
        event loop thread. Credentials must be persisted under
        ``config.auth_dir`` whenever the provider reports a change.
        """
        ...

    async def reset_credentials(self, config: ProviderConfig) -> None:
        """Discard stored credentials so the next attempt starts fresh."""
        ...


def disconnect_status_code(error: Optional[BaseException]) -> Optional[int]:
    """Extract a numeric status code from a provider disconnect error."""
    if error is None:
        return None
    for attr in ("status_code", "code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    output = getattr(error, "output", None)
    value = getattr(output, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def translate_update(update: Any) -> list[ConnectionEvent]:
    """Translate a provider ``connection.update`` into supervisor events.

    A single update may carry both a QR payload and a connection change.
    """
    events: list[ConnectionEvent] = []
    qr = getattr(update, "qr", None)
    if qr:
        events.append(QrIssued(payload=qr))

    connection = getattr(update, "connection", None)
    if connection == "open":
        events.append(Opened())
    elif connection == "close":
        status_code = disconnect_status_code(getattr(update, "last_disconnect", None))
        events.append(
            Closed(
                CloseReason(
                    status_code=status_code,
                    is_logged_out=status_code == LOGGED_OUT_STATUS,
                )
            )
        )
    return events


class PyaileysHandle:
    """Handle wrapping a ``pyaileys.WhatsAppClient``."""

    def __init__(self, client: Any):
        self.client = client

    @property
    def account_id(self) -> Optional[str]:
        me = getattr(getattr(getattr(self.client, "socket", None), "auth", None), "creds", None)
        me = getattr(me, "me", None)
        return getattr(me, "id", None)

    async def close(self) -> None:
        await self.client.disconnect()


class PyaileysProvider:
    """Connection provider backed by the ``pyaileys`` WhatsApp Web client.

    Install with ``pip install wapair[whatsapp]``.
    """

    async def connect(self, config: ProviderConfig, on_event: EventCallback) -> PyaileysHandle:
        try:
            from pyaileys import WhatsAppClient
        except ImportError as e:
            raise ProviderError(
                "pyaileys is not installed; install wapair[whatsapp]"
            ) from e

        config.auth_dir.mkdir(parents=True, exist_ok=True)
        client, auth_state = await WhatsAppClient.from_auth_folder(str(config.auth_dir))
        handle = PyaileysHandle(client)

        async def on_update(update: Any) -> None:
            for event in translate_update(update):
                if isinstance(event, Opened):
                    event = Opened(account_id=handle.account_id)
                on_event(event)

        async def on_creds_update(_creds: Any) -> None:
            try:
                await auth_state.save_creds()
            except Exception as e:
                logger.error(f"Failed to persist credentials: {e}")

        client.on("connection.update", on_update)
        client.on("creds.update", on_creds_update)

        version = ".".join(str(part) for part in config.version) if config.version else "provider default"
        logger.info(f"Using WhatsApp Web version: {version}")
        logger.debug(f"Connecting as {config.client_name} (auth dir {config.auth_dir})")
        try:
            await asyncio.wait_for(client.connect(), timeout=config.connect_timeout)
        except asyncio.TimeoutError as e:
            await _close_quietly(handle)
            raise ProviderError(f"Connection timed out after {config.connect_timeout}s") from e
        await auth_state.save_creds()
        return handle

    async def reset_credentials(self, config: ProviderConfig) -> None:
        if config.auth_dir.exists():
            await asyncio.to_thread(shutil.rmtree, config.auth_dir, True)
            logger.info(f"Removed stored session at {config.auth_dir}")


async def _close_quietly(handle: PyaileysHandle) -> None:
    try:
        await handle.close()
    except Exception as e:
        logger.debug(f"Error closing abandoned connection: {e}")
