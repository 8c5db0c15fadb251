"""HTTP server for the pairing web page and JSON API.

Routes:
- /health, /ready, /live, /ping - Health checks for the hosting platform
- / - HTML status/control page
- /generate-code - Issue a pairing code for a phone number
- /getqr - Current QR image as a data URL
- /status - Connection and pairing status (polled by the page)
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from aiohttp import web

from wapair import __version__
from wapair.config import Config
from wapair.connection.supervisor import ConnectionSupervisor
from wapair.errors import PhoneValidationError
from wapair.formatting import format_duration, to_iso
from wapair.page import render_status_page
from wapair.pairing.phone import require_phone_number
from wapair.pairing.registry import PairingCodeRegistry

logger = logging.getLogger(__name__)


class PairingServer:
    """aiohttp application exposing the pairing service."""

    def __init__(
        self,
        config: Config,
        supervisor: ConnectionSupervisor,
        registry: PairingCodeRegistry,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """Initialize server.

        Args:
            config: Service configuration.
            supervisor: Connection supervisor (read-only use).
            registry: Pairing code registry.
            clock: Wall clock for timestamps.
            monotonic: Monotonic clock for uptime.
        """
        self.config = config
        self.supervisor = supervisor
        self.registry = registry
        self._clock = clock
        self._monotonic = monotonic
        self._started_at = monotonic()

        self.app = web.Application(middlewares=[self._error_middleware])
        self._setup_routes()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._port: int = 0

    def _setup_routes(self) -> None:
        """Set up all HTTP routes."""
        # Health
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/ready", self._handle_ready)
        self.app.router.add_get("/live", self._handle_live)
        self.app.router.add_get("/ping", self._handle_ping)

        # Page and API
        self.app.router.add_get("/", self._handle_index)
        self.app.router.add_post("/generate-code", self._handle_generate_code)
        self.app.router.add_get("/getqr", self._handle_get_qr)
        self.app.router.add_get("/status", self._handle_status)

    @property
    def uptime(self) -> float:
        return self._monotonic() - self._started_at

    # =========================================================================
    # Health
    # =========================================================================

    async def _handle_health(self, request: web.Request) -> web.Response:
        state = self.supervisor.state
        return web.json_response({
            "status": "healthy",
            "service": self.config.service_name,
            "version": __version__,
            "uptime": self.uptime,
            "botStatus": state.status.value,
            "pairingCodes": self.registry.count(),
            "lastCode": self.registry.last_display_code,
            "lastConnectionUpdate": to_iso(state.last_status_change_at),
        })

    async def _handle_ready(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ready",
            "botStatus": self.supervisor.state.status.value,
            "message": "Service is ready to accept connections",
        })

    async def _handle_live(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "alive",
            "uptime": self.uptime,
            "timestamp": to_iso(self._clock()),
        })

    async def _handle_ping(self, request: web.Request) -> web.Response:
        return web.Response(text="pong")

    # =========================================================================
    # Page
    # =========================================================================

    async def _handle_index(self, request: web.Request) -> web.Response:
        html = render_status_page(
            service_name=self.config.service_name,
            version=__version__,
            state=self.supervisor.state,
            pairing_count=self.registry.count(),
            last_code=self.registry.last_display_code,
            max_qr_attempts=self.supervisor.policy.max_qr_attempts,
            code_ttl_minutes=self.config.pairing.code_ttl_minutes,
            calling_code=self.config.pairing.default_calling_code,
        )
        return web.Response(text=html, content_type="text/html")

    # =========================================================================
    # API
    # =========================================================================

    async def _read_body(self, request: web.Request) -> Dict[str, Any]:
        if request.content_type == "application/json":
            body = await request.json()
            if not isinstance(body, dict):
                raise ValueError("JSON body must be an object")
            return body
        form = await request.post()
        return dict(form)

    async def _handle_generate_code(self, request: web.Request) -> web.Response:
        """Issue a pairing code for the submitted phone number."""
        try:
            body = await self._read_body(request)
        except (json.JSONDecodeError, ValueError):
            return web.json_response(
                {"success": False, "message": "Invalid request body"},
                status=400,
            )

        phone_number = body.get("phoneNumber")
        if not phone_number:
            return web.json_response(
                {"success": False, "message": "Phone number is required"},
                status=400,
            )

        pairing = self.config.pairing
        try:
            validation = require_phone_number(
                phone_number,
                default_calling_code=pairing.default_calling_code,
                default_country=pairing.default_country,
            )
        except PhoneValidationError as e:
            return web.json_response({"success": False, "message": str(e)}, status=400)

        try:
            entry = self.registry.issue(validation.formatted, validation.country)
        except Exception:
            logger.exception("Error generating pairing code")
            return web.json_response(
                {"success": False, "message": "Internal server error while generating code"},
                status=500,
            )

        return web.json_response({
            "success": True,
            "code": entry.code,
            "displayCode": entry.display_code,
            "phoneNumber": validation.formatted,
            "country": validation.country,
            "expiresAt": to_iso(entry.expires_at),
            "message": "Pairing code generated successfully!",
        })

    async def _handle_get_qr(self, request: web.Request) -> web.Response:
        state = self.supervisor.state
        if state.is_qr_ready and state.qr_image:
            return web.json_response({
                "success": True,
                "qrImage": state.qr_image,
                "message": "Scan this QR code in WhatsApp",
                "status": state.status.value,
            })
        return web.json_response({
            "success": False,
            "message": "QR code not available yet. Please wait for connection...",
            "status": state.status.value,
            "qrAttempts": state.qr_attempt_count,
            "maxAttempts": self.supervisor.policy.max_qr_attempts,
        })

    async def _handle_status(self, request: web.Request) -> web.Response:
        state = self.supervisor.state
        payload = state.to_dict()
        payload.update({
            "pairingCodes": self.registry.count(),
            "lastCode": self.registry.last_display_code,
            "maxQrAttempts": self.supervisor.policy.max_qr_attempts,
            "maxAttemptsReached": self.supervisor.max_attempts_reached,
            "reconnectPending": self.supervisor.reconnect_pending,
            "service": self.config.service_name,
            "version": __version__,
            "uptime": self.uptime,
            "uptimeText": format_duration(self.uptime),
        })
        return web.json_response(payload)

    @web.middleware
    async def _error_middleware(self, request: web.Request, handler):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception:
            logger.exception(f"Unhandled error for {request.method} {request.path}")
            return web.json_response(
                {"success": False, "message": "Internal server error"},
                status=500,
            )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, host: str, port: int) -> web.AppRunner:
        """Start the server.

        Args:
            host: Host to bind to.
            port: Port to bind to (0 for random).

        Returns:
            App runner for cleanup.

        Raises:
            OSError: If the port cannot be bound.
        """
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host, port)
        try:
            await self._site.start()
        except OSError:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            raise

        # Get actual port
        if self._site._server and self._site._server.sockets:
            self._port = self._site._server.sockets[0].getsockname()[1]
        else:
            self._port = port

        logger.info(f"Server running on {host}:{self._port}")
        return self._runner

    def get_port(self) -> int:
        """Get the actual bound port."""
        return self._port

    async def close(self) -> None:
        """Stop the server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
