"""
Out-of-band challenge code backend.

request_challenge generates a random code and hands it to a delivery
callable (e-mail, SMS, push, ...). The subject then proves ownership of
that channel by presenting the code to authenticate.

Pending codes:
- one per subject; repeated requests redeliver the same code
- consumed by the first successful authenticate (single use)
- expire after code_ttl, after which a new code is issued on request

Issue and consume are serialised with a lock so a consumed code can
never be reissued.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, ClassVar, Dict, Optional, Union

import attrs
import structlog

from factorchain.backends.base import AuthBackend
from factorchain.core.crypto import constant_time_compare, generate_challenge_code
from factorchain.core.exceptions import AuthenticationFailed
from factorchain.core.types import AuthChallenge

DeliverFn = Callable[[str, str], Union[None, Awaitable[None]]]


@attrs.define(frozen=True, slots=True)
class PendingCode:
    """A code waiting to be presented."""

    code: str = attrs.field(repr=False)
    issued_at: datetime
    expires_at: datetime

    def is_valid_at(self, time: Optional[datetime] = None) -> bool:
        if time is None:
            time = datetime.now(timezone.utc)
        return time < self.expires_at


@attrs.define
class OutOfBandCodeBackend(AuthBackend):
    """
    Challenge-response backend delivering codes through another channel.

    Example:
        async def send_email(subject_id: str, code: str) -> None:
            ...

        backend = OutOfBandCodeBackend(deliver=send_email)
        challenge = await backend.request_challenge("user1", "email")
        # challenge.sent is True; the user reads the code from their inbox
        await backend.authenticate("user1", code_from_inbox)
    """

    supports_challenge: ClassVar[bool] = True

    deliver: DeliverFn
    code_ttl: timedelta = timedelta(minutes=5)
    code_bytes: int = 16
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)

    _pending: Dict[str, PendingCode] = attrs.Factory(dict)
    _lock: asyncio.Lock = attrs.Factory(asyncio.Lock)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    async def request_challenge(self, subject_id: str, method: str) -> AuthChallenge:
        now = self.clock()
        async with self._lock:
            self._cleanup_expired(now)
            pending = self._pending.get(subject_id)
            if pending is None:
                pending = PendingCode(
                    code=generate_challenge_code(self.code_bytes),
                    issued_at=now,
                    expires_at=now + self.code_ttl,
                )
                self._pending[subject_id] = pending
                self._logger.info("challenge_issued", subject=subject_id, method=method)
            else:
                self._logger.info("challenge_reissued", subject=subject_id, method=method)
            code = pending.code

        result = self.deliver(subject_id, code)
        if inspect.isawaitable(result):
            await result

        return AuthChallenge(content=None, method=method, sent=True)

    async def authenticate(self, subject_id: str, secret: str) -> None:
        now = self.clock()
        async with self._lock:
            pending = self._pending.get(subject_id)
            if pending is None or not secret:
                self._logger.info("challenge_rejected", subject=subject_id)
                raise AuthenticationFailed()
            if not pending.is_valid_at(now):
                del self._pending[subject_id]
                self._logger.info("challenge_expired", subject=subject_id)
                raise AuthenticationFailed()
            if not constant_time_compare(pending.code, secret):
                self._logger.info("challenge_rejected", subject=subject_id)
                raise AuthenticationFailed()
            del self._pending[subject_id]

        self._logger.debug("challenge_consumed", subject=subject_id)

    def _cleanup_expired(self, now: datetime) -> int:
        expired = [
            subject for subject, pending in self._pending.items()
            if not pending.is_valid_at(now)
        ]
        for subject in expired:
            del self._pending[subject]
        return len(expired)

    @property
    def size(self) -> int:
        return len(self._pending)

    def has_pending(self, subject_id: str) -> bool:
        """Whether an unexpired code is outstanding for ``subject_id``."""
        pending = self._pending.get(subject_id)
        return pending is not None and pending.is_valid_at(self.clock())
