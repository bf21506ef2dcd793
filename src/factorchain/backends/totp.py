"""
Time-window code backend (RFC 6238 TOTP).

Each subject owns a shared key. A code is accepted when it matches the
current time step or one within the configured drift window. Accepted
codes are remembered until they can no longer match, so a code cannot
be replayed inside its own validity window.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Tuple

import attrs
import structlog

from factorchain.backends.base import AuthBackend
from factorchain.core.crypto import match_totp
from factorchain.core.exceptions import AuthenticationFailed, CryptoError


@attrs.define
class UsedCodeCache:
    """
    Remembers (subject, time step) pairs already consumed.

    Entries expire once the step has left the drift window.
    """

    time_step: int = 30
    window: int = 1

    _used: Dict[Tuple[str, int], float] = attrs.Factory(dict)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def check_and_add(self, subject_id: str, counter: int, now: float) -> bool:
        """
        Record a consumed step.

        Returns:
            True if the step is fresh, False if it was already used
        """
        self._cleanup_expired(now)
        key = (subject_id, counter)
        if key in self._used:
            self._logger.warning("totp_replay_detected", subject=subject_id)
            return False
        self._used[key] = (counter + self.window + 1) * self.time_step
        return True

    def _cleanup_expired(self, now: float) -> int:
        expired = [key for key, until in self._used.items() if until <= now]
        for key in expired:
            del self._used[key]
        return len(expired)

    @property
    def size(self) -> int:
        return len(self._used)


@attrs.define
class TOTPBackend(AuthBackend):
    """
    Backend validating time-based one-time codes.

    Attributes:
        keys: Shared TOTP key per subject (at least 16 bytes)
        digits: Code length (6 to 8)
        time_step: Step length in seconds
        window: Steps of clock drift tolerated on either side
        clock: Source of the current UNIX time
    """

    keys: Dict[str, bytes] = attrs.field(factory=dict, converter=dict, repr=False)
    digits: int = 6
    time_step: int = 30
    window: int = 1
    clock: Callable[[], float] = time.time

    _used: UsedCodeCache = attrs.field(init=False)
    _lock: asyncio.Lock = attrs.Factory(asyncio.Lock)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @_used.default
    def _make_used_cache(self) -> UsedCodeCache:
        return UsedCodeCache(time_step=self.time_step, window=self.window)

    async def authenticate(self, subject_id: str, secret: str) -> None:
        key = self.keys.get(subject_id)
        if key is None or not secret:
            self._logger.info("totp_rejected", subject=subject_id)
            raise AuthenticationFailed()

        now = self.clock()
        try:
            counter = match_totp(
                key,
                secret,
                at=now,
                digits=self.digits,
                time_step=self.time_step,
                window=self.window,
            )
        except CryptoError as e:
            self._logger.error("totp_key_invalid", subject=subject_id, error=str(e))
            raise AuthenticationFailed(data={"reason": "key"}) from e
        if counter is None:
            self._logger.info("totp_rejected", subject=subject_id)
            raise AuthenticationFailed()

        async with self._lock:
            if not self._used.check_and_add(subject_id, counter, now):
                raise AuthenticationFailed()

        self._logger.debug("totp_accepted", subject=subject_id)
