"""Pairing code registry.

Issues short-lived, human-enterable codes that a user types into WhatsApp
(Linked devices -> Link with phone number) instead of scanning a QR image.

Each code is 8 characters from an alphabet without easily confused glyphs
and expires a fixed TTL after creation. Expiry is time-triggered: a timer is
scheduled per code on issue, so expired codes disappear from ``count()``
without any read having to sweep them.

The provider does not report when a code is redeemed, so entries only ever
move from PENDING to EXPIRED.
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from wapair.formatting import to_iso

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 8
DEFAULT_TTL = 600.0  # 10 minutes


class CodeStatus(Enum):
    """Lifecycle of a pairing code."""

    PENDING = "pending"
    EXPIRED = "expired"


class RandomSource(Protocol):
    """Anything with a uniform ``choice`` (random.Random, secrets.SystemRandom)."""

    def choice(self, seq: str) -> str:
        ...


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


# (delay_seconds, callback, *args) -> handle
Scheduler = Callable[..., Cancellable]


def format_display_code(code: str) -> str:
    """Format a code as two groups of four, e.g. ``ABCD-EFGH``."""
    if len(code) == CODE_LENGTH:
        return f"{code[:4]}-{code[4:]}"
    return code


@dataclass(frozen=True)
class PairingCodeEntry:
    """An issued pairing code. Immutable once created."""

    code: str
    created_at: float
    expires_at: float
    phone_number: Optional[str] = None
    country: Optional[str] = None

    @property
    def display_code(self) -> str:
        return format_display_code(self.code)

    def status(self, now: float) -> CodeStatus:
        if now >= self.expires_at:
            return CodeStatus.EXPIRED
        return CodeStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "displayCode": self.display_code,
            "phoneNumber": self.phone_number,
            "country": self.country,
            "createdAt": to_iso(self.created_at),
            "expiresAt": to_iso(self.expires_at),
        }


def _loop_scheduler(delay: float, callback: Callable[..., None], *args: Any) -> Cancellable:
    return asyncio.get_running_loop().call_later(delay, callback, *args)


class PairingCodeRegistry:
    """Issues, stores and expires pairing codes.

    All mutation happens on the event loop thread (issue from HTTP handlers,
    removal from timer callbacks), so no locking is needed.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        *,
        clock: Callable[[], float] = time.time,
        rng: Optional[RandomSource] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        """Initialize registry.

        Args:
            ttl: Lifetime of each code in seconds.
            clock: Wall clock returning Unix time.
            rng: Random source used for each character.
            scheduler: ``call_later``-style scheduler for expiry callbacks.
                Defaults to the running event loop.
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._rng: RandomSource = rng or secrets.SystemRandom()
        self._schedule = scheduler or _loop_scheduler

        self._entries: Dict[str, PairingCodeEntry] = {}
        self._timers: Dict[str, Cancellable] = {}
        self._last_issued: Optional[PairingCodeEntry] = None

    def _draw_code(self) -> str:
        return "".join(self._rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))

    def issue(
        self,
        phone_number: Optional[str] = None,
        country: Optional[str] = None,
    ) -> PairingCodeEntry:
        """Issue a new pairing code.

        Args:
            phone_number: Normalized phone number the code is meant for.
            country: Country identifier for the phone number.

        Returns:
            The stored entry.
        """
        now = self._clock()

        code = self._draw_code()
        while code in self._entries and self._entries[code].status(now) is CodeStatus.PENDING:
            logger.debug("Pairing code collision, drawing again")
            code = self._draw_code()

        entry = PairingCodeEntry(
            code=code,
            created_at=now,
            expires_at=now + self.ttl,
            phone_number=phone_number,
            country=country,
        )
        # Every stored entry has an armed expiry timer.
        timer = self._schedule(self.ttl, self.expire_sweep, code)
        self._cancel_timer(code)
        self._entries[code] = entry
        self._last_issued = entry
        self._timers[code] = timer

        logger.info(f"Generated pairing code: {entry.display_code}")
        if phone_number:
            logger.info(f"For phone: {phone_number}")
        return entry

    def expire_sweep(self, code: str) -> bool:
        """Remove an expired entry. Called by the expiry timer.

        Removes the entry only if it is still present and has actually
        expired. A timer that fires early (clock adjustment) is re-armed for
        the remaining time.

        Returns:
            True if the entry was removed.
        """
        self._timers.pop(code, None)
        entry = self._entries.get(code)
        if entry is None:
            return False

        now = self._clock()
        if entry.status(now) is CodeStatus.PENDING:
            self._timers[code] = self._schedule(entry.expires_at - now, self.expire_sweep, code)
            return False

        del self._entries[code]
        logger.info(f"Expired code removed: {entry.display_code}")
        return True

    def get(self, code: str) -> Optional[PairingCodeEntry]:
        """Get an entry by code (with or without the display separator)."""
        return self._entries.get(code.replace("-", "").upper())

    def lookup_last_issued(self) -> Optional[PairingCodeEntry]:
        """Most recently issued entry.

        Does not imply the code is still valid; check ``expires_at``.
        """
        return self._last_issued

    @property
    def last_display_code(self) -> Optional[str]:
        if self._last_issued is None:
            return None
        return self._last_issued.display_code

    def count(self) -> int:
        """Number of stored (pending) entries."""
        return len(self._entries)

    def __len__(self) -> int:
        return self.count()

    def close(self) -> None:
        """Cancel all outstanding expiry timers."""
        for code in list(self._timers):
            self._cancel_timer(code)

    def _cancel_timer(self, code: str) -> None:
        handle = self._timers.pop(code, None)
        if handle is not None:
            handle.cancel()
