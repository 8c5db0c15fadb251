"""Connection supervisor.

Keeps exactly one WhatsApp connection attempt alive and the connection
state consistent with what the provider reports.

Each attempt gets a generation number. Events are delivered together with
the generation of the attempt that produced them, and anything from a
superseded attempt is dropped, so a late "open" from an abandoned socket
cannot resurrect state after a newer attempt has moved on.

Usage:
    supervisor = ConnectionSupervisor(provider, ProviderConfig(auth_dir=path))
    await supervisor.start()
    ...
    await supervisor.shutdown()
"""

import asyncio
import functools
import logging
import time
from dataclasses import replace
from typing import Callable, List, Optional

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
from wapair.connection.provider import ConnectionHandle, ConnectionProvider, ProviderConfig
from wapair.connection.qr_renderer import QrRenderer
from wapair.connection.reducer import ReconnectPolicy, attempt_failed, begin_attempt, reduce
from wapair.connection.state import ConnectionState, ConnectionStatus
from wapair.connection.timer import ReconnectTimer
from wapair.errors import QrRenderError

logger = logging.getLogger(__name__)


class ConnectionSupervisor:
    """Owns the lifecycle of the single provider connection."""

    def __init__(
        self,
        provider: ConnectionProvider,
        provider_config: ProviderConfig,
        policy: Optional[ReconnectPolicy] = None,
        *,
        state: Optional[ConnectionState] = None,
        renderer: Optional[QrRenderer] = None,
        timer: Optional[ReconnectTimer] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize supervisor.

        Args:
            provider: External WhatsApp client library.
            provider_config: Settings for each connection attempt.
            policy: Reconnect delays and QR attempt limit.
            state: Initial state (defaults to DISCONNECTED).
            renderer: QR renderer used for the web page image.
            timer: Reconnect timer.
            clock: Wall clock returning Unix time.
        """
        self._provider = provider
        self._provider_config = provider_config
        self.policy = policy or ReconnectPolicy()
        self._clock = clock
        self._state = state or ConnectionState(last_status_change_at=clock())
        self._renderer = renderer or QrRenderer()
        self._timer = timer or ReconnectTimer()

        self._handle: Optional[ConnectionHandle] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closing = False

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_pending(self) -> bool:
        return self._timer.pending

    @property
    def reconnect_delay(self) -> Optional[float]:
        return self._timer.delay

    @property
    def max_attempts_reached(self) -> bool:
        return self._state.max_attempts_reached(self.policy.max_qr_attempts)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> bool:
        """Start a connection attempt.

        Returns:
            True if the provider accepted the attempt. False if an attempt
            is in flight or already online, if the supervisor is shutting
            down, or if the provider failed to initialize (a retry is then
            scheduled).
        """
        if self._closing:
            return False
        if self._state.is_connecting:
            logger.debug("Connection attempt already in progress, ignoring start")
            return False
        if self._state.status is not ConnectionStatus.DISCONNECTED:
            logger.debug(f"Already {self._state.status.value}, ignoring start")
            return False

        self._timer.cancel()
        self._state, _ = begin_attempt(self._state, self._clock())
        generation = self._state.generation
        logger.info(f"Connecting to WhatsApp (attempt {generation})...")

        on_event = functools.partial(self.handle_event, generation)
        try:
            handle = await self._provider.connect(self._provider_config, on_event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A close event for this attempt may already have scheduled a retry.
            if generation != self._state.generation or not self._state.is_connecting:
                return False
            logger.error(f"WhatsApp initialization failed: {e}")
            self._state, effects = attempt_failed(self._state, self.policy, self._clock())
            self._log_status()
            self._run_effects(effects)
            return False

        if self._closing or generation != self._state.generation:
            logger.debug(f"Attempt {generation} superseded, closing its connection")
            await self._close_handle(handle, self._provider_config.connect_timeout)
            return False
        if self._state.status is ConnectionStatus.DISCONNECTED:
            # Closed before connect() returned; the close already scheduled a retry.
            await self._close_handle(handle, self._provider_config.connect_timeout)
            return False

        self._handle = handle
        logger.info("WhatsApp client initialized successfully")
        return True

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Stop reconnecting and close the active connection.

        Args:
            timeout: Maximum seconds to wait for the provider to close.
        """
        self._closing = True
        self._timer.cancel()

        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        handle, self._handle = self._handle, None
        if handle is not None:
            logger.info("Closing WhatsApp connection...")
            await self._close_handle(handle, timeout)

    # =========================================================================
    # Events
    # =========================================================================

    def handle_event(self, generation: int, event: ConnectionEvent) -> None:
        """Apply a provider event produced by attempt ``generation``."""
        if generation != self._state.generation:
            logger.debug(
                f"Ignoring stale {type(event).__name__} from attempt {generation} "
                f"(current {self._state.generation})"
            )
            return

        previous = self._state
        self._state, effects = reduce(previous, event, self.policy, self._clock())
        if self._state is previous:
            logger.debug(f"{type(event).__name__} ignored in status {previous.status.value}")
            return

        if isinstance(event, Opened):
            self._log_online(previous)
        elif isinstance(event, Closed):
            self._handle = None
            code = event.reason.status_code
            logger.warning(f"Connection closed. Status code: {code if code is not None else 'unknown'}")
        elif isinstance(event, QrIssued):
            logger.info(
                f"QR Code Generated (Attempt {self._state.qr_attempt_count}/"
                f"{self.policy.max_qr_attempts})"
            )

        self._log_status()
        self._run_effects(effects)

    def _run_effects(self, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, RenderQr):
                self._render_qr(effect.payload)
            elif isinstance(effect, MaxQrAttemptsReached):
                logger.warning(f"Maximum QR attempts reached ({effect.max_attempts})")
                logger.info("Please visit the web interface to scan the QR code")
            elif isinstance(effect, ScheduleReconnect):
                self._schedule_reconnect(effect)
            elif isinstance(effect, CancelReconnect):
                if self._timer.cancel():
                    logger.debug("Cancelled pending reconnect")

    def _render_qr(self, payload: str) -> None:
        try:
            image = self._renderer.to_data_url(payload)
        except QrRenderError as e:
            logger.error(f"QR Code generation error: {e}")
            return
        if self._state.current_qr_payload == payload:
            self._state = replace(self._state, qr_image=image)
            logger.info("QR Code image generated successfully")

    # =========================================================================
    # Reconnect
    # =========================================================================

    def _schedule_reconnect(self, effect: ScheduleReconnect) -> None:
        if self._closing:
            return
        if effect.reset_credentials:
            logger.warning("Logged out from WhatsApp. Cleaning session...")
            logger.info(f"Restarting connection in {effect.delay:g} seconds...")
        else:
            logger.info(f"Reconnecting in {effect.delay:g} seconds...")
        self._timer.schedule(effect.delay, self._on_reconnect_timer, effect.reset_credentials)

    def _on_reconnect_timer(self, reset_credentials: bool) -> None:
        if self._closing:
            return
        if self._state.is_connecting:
            logger.debug("Reconnect fired while an attempt is in flight, skipping")
            return
        self._reconnect_task = asyncio.ensure_future(self._reconnect(reset_credentials))

    async def _reconnect(self, reset_credentials: bool) -> None:
        if reset_credentials:
            try:
                await self._provider.reset_credentials(self._provider_config)
            except Exception as e:
                logger.warning(f"Could not clear stored session: {e}")
        await self.start()

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _close_handle(self, handle: ConnectionHandle, timeout: float) -> None:
        try:
            await asyncio.wait_for(handle.close(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Provider did not close within {timeout:g}s")
        except Exception as e:
            logger.warning(f"Error closing WhatsApp connection: {e}")

    def _log_online(self, previous: ConnectionState) -> None:
        logger.info("WhatsApp is ONLINE!")
        if previous.connecting_since is not None:
            elapsed_ms = int((self._clock() - previous.connecting_since) * 1000)
            logger.info(f"Connection established in {elapsed_ms}ms")
        logger.info(f"Phone: {self._state.account_id or 'Unknown'}")

    def _log_status(self) -> None:
        status = self._state.status
        if status is ConnectionStatus.DISCONNECTED and self._closing:
            return
        logger.info(f"Status: {self._state.status_text}")
