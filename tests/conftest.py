"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Any, List, Optional

import pytest

from wapair.connection.provider import ProviderConfig


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from wapair.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


class FakeHandle:
    """Connection handle that records close calls."""

    def __init__(self, close_delay: float = 0.0):
        self.closed = False
        self.close_delay = close_delay

    async def close(self) -> None:
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        self.closed = True


class FakeProvider:
    """In-memory connection provider.

    Records the event callback of every attempt so tests can replay
    provider events, including events from superseded attempts.
    """

    def __init__(self):
        self.callbacks: List[Any] = []
        self.handles: List[FakeHandle] = []
        self.configs: List[ProviderConfig] = []
        self.fail_next: Optional[Exception] = None
        self.close_delay = 0.0
        self.reset_calls = 0

    @property
    def connect_calls(self) -> int:
        return len(self.callbacks)

    async def connect(self, config, on_event):
        self.configs.append(config)
        self.callbacks.append(on_event)
        await asyncio.sleep(0)
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        handle = FakeHandle(self.close_delay)
        self.handles.append(handle)
        return handle

    async def reset_credentials(self, config) -> None:
        self.reset_calls += 1

    def emit(self, event, attempt: int = -1) -> None:
        """Deliver an event as the given attempt (default: latest)."""
        self.callbacks[attempt](event)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_config(tmp_path) -> ProviderConfig:
    return ProviderConfig(auth_dir=tmp_path / "auth_info", connect_timeout=1.0)
