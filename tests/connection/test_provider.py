"""Tests for the connection provider adapter."""

import asyncio
import sys
import types
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from wapair.config import Config, ConnectionConfig
from wapair.connection.events import Closed, CloseReason, Opened, QrIssued
from wapair.connection.provider import (
    PyaileysProvider,
    ProviderConfig,
    disconnect_status_code,
    translate_update,
)
from wapair.errors import ProviderError


class Update:
    def __init__(self, connection=None, qr=None, last_disconnect=None):
        self.connection = connection
        self.qr = qr
        self.last_disconnect = last_disconnect


class DisconnectError(Exception):
    def __init__(self, status_code):
        super().__init__(f"closed with {status_code}")
        self.status_code = status_code


class TestDisconnectStatusCode:
    """Tests for status code extraction."""

    def test_none(self):
        assert disconnect_status_code(None) is None

    def test_status_code_attribute(self):
        assert disconnect_status_code(DisconnectError(401)) == 401

    def test_boom_style_output(self):
        """Errors carrying ``output.status_code`` are understood."""
        error = Exception("boom")
        error.output = types.SimpleNamespace(status_code=515)
        assert disconnect_status_code(error) == 515

    def test_no_code(self):
        assert disconnect_status_code(RuntimeError("oops")) is None


class TestTranslateUpdate:
    """Tests for provider update translation."""

    def test_qr(self):
        assert translate_update(Update(qr="payload")) == [QrIssued("payload")]

    def test_open(self):
        assert translate_update(Update(connection="open")) == [Opened()]

    def test_close_logged_out(self):
        events = translate_update(
            Update(connection="close", last_disconnect=DisconnectError(401))
        )
        assert events == [Closed(CloseReason(status_code=401, is_logged_out=True))]

    def test_close_other(self):
        events = translate_update(
            Update(connection="close", last_disconnect=DisconnectError(428))
        )
        assert events == [Closed(CloseReason(status_code=428, is_logged_out=False))]

    def test_close_without_error(self):
        """A close with no error is not treated as logged out."""
        events = translate_update(Update(connection="close"))
        assert events == [Closed(CloseReason())]

    def test_connecting_is_not_an_event(self):
        assert translate_update(Update(connection="connecting")) == []

    def test_qr_and_connection_together(self):
        events = translate_update(Update(connection="close", qr="late"))
        assert events[0] == QrIssued("late")
        assert isinstance(events[1], Closed)


class TestProviderConfig:
    """Tests for building provider settings from config."""

    def test_from_config(self):
        config = Config(
            auth_dir="~/wa-auth",
            connection=ConnectionConfig(
                client_name="test-client", version=[2, 3000, 1], connect_timeout=12.0
            ),
        )
        provider_config = ProviderConfig.from_config(config)

        assert provider_config.auth_dir == Path("~/wa-auth").expanduser()
        assert provider_config.client_name == "test-client"
        assert provider_config.version == [2, 3000, 1]
        assert provider_config.connect_timeout == 12.0


class TestResetCredentials:
    """Tests for discarding a stored session."""

    @pytest.mark.asyncio
    async def test_removes_auth_dir(self, provider_config):
        provider_config.auth_dir.mkdir(parents=True)
        (provider_config.auth_dir / "creds.json").write_text("{}")

        await PyaileysProvider().reset_credentials(provider_config)

        assert not provider_config.auth_dir.exists()

    @pytest.mark.asyncio
    async def test_missing_dir_is_fine(self, provider_config):
        await PyaileysProvider().reset_credentials(provider_config)
        assert not provider_config.auth_dir.exists()


class FakeClient:
    """Stand-in for ``pyaileys.WhatsAppClient``."""

    def __init__(self, connect_delay=0.0):
        self.handlers = {}
        self.connect_delay = connect_delay
        self.disconnected = False
        self.socket = types.SimpleNamespace(
            auth=types.SimpleNamespace(
                creds=types.SimpleNamespace(me=types.SimpleNamespace(id="254723278526:1@s.whatsapp.net"))
            )
        )

    def on(self, event, handler):
        self.handlers[event] = handler

    async def connect(self):
        await asyncio.sleep(self.connect_delay)

    async def disconnect(self):
        self.disconnected = True


@pytest.fixture
def fake_pyaileys(monkeypatch):
    """Install a fake ``pyaileys`` module for the duration of a test."""
    client = FakeClient()
    auth_state = types.SimpleNamespace(save_creds=AsyncMock())

    class WhatsAppClient:
        @staticmethod
        async def from_auth_folder(path):
            client.auth_path = path
            return client, auth_state

    module = types.ModuleType("pyaileys")
    module.WhatsAppClient = WhatsAppClient
    monkeypatch.setitem(sys.modules, "pyaileys", module)
    return client, auth_state


class TestPyaileysProvider:
    """Tests for wiring the pyaileys client."""

    @pytest.mark.asyncio
    async def test_connect_wires_events(self, fake_pyaileys, provider_config):
        client, auth_state = fake_pyaileys
        events = []

        handle = await PyaileysProvider().connect(provider_config, events.append)

        assert provider_config.auth_dir.is_dir()
        assert client.auth_path == str(provider_config.auth_dir)
        auth_state.save_creds.assert_awaited()

        await client.handlers["connection.update"](Update(qr="payload"))
        await client.handlers["connection.update"](Update(connection="open"))
        assert events == [
            QrIssued("payload"),
            Opened(account_id="254723278526:1@s.whatsapp.net"),
        ]

        await handle.close()
        assert client.disconnected

    @pytest.mark.asyncio
    async def test_creds_update_persists(self, fake_pyaileys, provider_config):
        client, auth_state = fake_pyaileys
        await PyaileysProvider().connect(provider_config, lambda event: None)
        auth_state.save_creds.reset_mock()

        await client.handlers["creds.update"](object())

        auth_state.save_creds.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_timeout(self, fake_pyaileys, provider_config):
        client, _ = fake_pyaileys
        client.connect_delay = 1.0
        provider_config.connect_timeout = 0.05

        with pytest.raises(ProviderError, match="timed out"):
            await PyaileysProvider().connect(provider_config, lambda event: None)
        assert client.disconnected

    @pytest.mark.asyncio
    async def test_missing_library(self, monkeypatch, provider_config):
        monkeypatch.setitem(sys.modules, "pyaileys", None)

        with pytest.raises(ProviderError, match="not installed"):
            await PyaileysProvider().connect(provider_config, lambda event: None)
