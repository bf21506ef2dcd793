"""
factorchain Backend Contract

Every authentication method is served by one backend. A backend
validates a secret for a subject and may additionally issue a challenge
through an independent channel.

Contract:
- authenticate(subject_id, secret) returns None on success and raises
  AuthenticationFailed otherwise
- request_challenge(subject_id, method) returns an AuthChallenge;
  backends that do not issue challenges inherit the default, which
  raises UnsupportedOperation
- challenge-capable backends keep at most one pending challenge per
  subject, return it again on repeated requests, and consume it on the
  first successful authenticate
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from factorchain.core.exceptions import UnsupportedOperation
from factorchain.core.types import AuthChallenge


class AuthBackend(ABC):
    """
    Base class for authentication backends.

    Usage:
        @attrs.define
        class PinBackend(AuthBackend):
            pins: Dict[str, str]

            async def authenticate(self, subject_id: str, secret: str) -> None:
                if self.pins.get(subject_id) != secret:
                    raise AuthenticationFailed()
    """

    supports_challenge: ClassVar[bool] = False

    @abstractmethod
    async def authenticate(self, subject_id: str, secret: str) -> None:
        """
        Validate ``secret`` for ``subject_id``.

        Raises:
            AuthenticationFailed: If the secret is not valid
        """
        ...

    async def request_challenge(self, subject_id: str, method: str) -> AuthChallenge:
        """
        Present a challenge to ``subject_id`` for ``method``.

        Raises:
            UnsupportedOperation: Always, unless overridden
        """
        raise UnsupportedOperation(method)
