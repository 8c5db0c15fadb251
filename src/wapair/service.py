"""Service orchestration - ties all components together."""

import asyncio
import logging
import signal
from typing import Optional

from wapair import __version__
from wapair.config import Config
from wapair.connection.provider import ConnectionProvider, ProviderConfig, PyaileysProvider
from wapair.connection.reducer import ReconnectPolicy
from wapair.connection.supervisor import ConnectionSupervisor
from wapair.errors import StartupError
from wapair.pairing.registry import PairingCodeRegistry
from wapair.server import PairingServer

logger = logging.getLogger(__name__)


class PairingService:
    """Main service orchestrating all components.

    Responsibilities:
    - Start the HTTP server (abort if the port cannot be bound)
    - Start the WhatsApp connection shortly after the server is up
    - Handle graceful shutdown on SIGINT/SIGTERM
    """

    def __init__(
        self,
        config: Config,
        provider: Optional[ConnectionProvider] = None,
        registry: Optional[PairingCodeRegistry] = None,
        supervisor: Optional[ConnectionSupervisor] = None,
        server: Optional[PairingServer] = None,
    ):
        """Initialize service.

        Args:
            config: Service configuration.
            provider: Optional injected connection provider (for testing).
            registry: Optional injected pairing code registry (for testing).
            supervisor: Optional injected supervisor (for testing).
            server: Optional injected HTTP server (for testing).
        """
        self._config = config
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._connect_task: Optional[asyncio.Task] = None

        self.registry = registry or PairingCodeRegistry(ttl=config.pairing.code_ttl_seconds)
        self.supervisor = supervisor or ConnectionSupervisor(
            provider or PyaileysProvider(),
            ProviderConfig.from_config(config),
            ReconnectPolicy.from_config(config.connection),
        )
        self.server = server or PairingServer(config, self.supervisor, self.registry)

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the service.

        Raises:
            StartupError: If the HTTP server cannot bind its port.
        """
        logger.info(f"{self._config.service_name} v{__version__} starting...")
        self._stop_event = asyncio.Event()

        try:
            await self.server.start(self._config.bind_address, self._config.port)
        except OSError as e:
            raise StartupError(
                f"Cannot listen on {self._config.bind_address}:{self._config.port}: {e}"
            ) from e

        logger.info(f"Visit: http://localhost:{self.server.get_port()}")

        self._connect_task = asyncio.create_task(self._connect_after_delay())
        self._setup_signals()

        self._running = True
        logger.info("Service started successfully")

    async def run_forever(self) -> None:
        """Run until a shutdown signal or :meth:`stop`."""
        if not self._running:
            await self.start()

        try:
            await self._stop_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self._shutdown()

    async def stop(self) -> None:
        """Request shutdown."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    async def _connect_after_delay(self) -> None:
        await asyncio.sleep(self._config.startup_delay)
        logger.info("Initializing WhatsApp connection...")
        await self.supervisor.start()

    def _setup_signals(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(
                    sig,
                    lambda: asyncio.create_task(self.stop()),
                )
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread
                logger.debug(f"Signal handler for {sig.name} not installed")

    async def _shutdown(self) -> None:
        """Perform graceful shutdown."""
        logger.info(f"{self._config.service_name} - Shutting down gracefully...")
        self._running = False

        if self._connect_task is not None:
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Connection task ended with error: {e}")
            self._connect_task = None

        await self.supervisor.shutdown(timeout=self._config.connection.shutdown_timeout)
        self.registry.close()
        await self.server.close()

        logger.info("Service shutdown complete")
