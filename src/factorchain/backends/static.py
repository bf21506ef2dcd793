"""
Static shared-secret backend.

Secrets are held in memory and compared in constant time. Suitable for
service accounts and tests.
"""

from __future__ import annotations

from typing import Any, Dict

import attrs
import structlog

from factorchain.backends.base import AuthBackend
from factorchain.core.crypto import constant_time_compare
from factorchain.core.exceptions import AuthenticationFailed


@attrs.define
class StaticSecretBackend(AuthBackend):
    """
    Backend matching a fixed secret per subject.

    Example:
        backend = StaticSecretBackend({"user1": "password1"})
        await backend.authenticate("user1", "password1")
    """

    secrets: Dict[str, str] = attrs.field(factory=dict, converter=dict, repr=False)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    async def authenticate(self, subject_id: str, secret: str) -> None:
        expected = self.secrets.get(subject_id)
        matches = constant_time_compare(expected or "", secret or "")
        if expected is None or not secret or not matches:
            self._logger.info("static_secret_rejected", subject=subject_id)
            raise AuthenticationFailed()
