"""
Redis-backed password backend.

Passwords are stored as salted PBKDF2-SHA256 digests under
``{prefix}:{subject_id}``. Digest derivation runs in a worker thread so
it does not block the event loop.

Only digests produced by ``hash_password`` (``pbkdf2_sha256$...``) are
recognised. Keys holding bcrypt (``$2b$...``) or other digests are
rejected as invalid; re-provision them with ``set_password``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional
from urllib.parse import urlparse

import attrs
import redis.asyncio as redis
import structlog

from factorchain.backends.base import AuthBackend
from factorchain.core.crypto import DEFAULT_ITERATIONS, hash_password, verify_password
from factorchain.core.exceptions import AuthenticationFailed, CryptoError


# =============================================================================
# CONFIGURATION
# =============================================================================


@attrs.define
class RedisConfig:
    """
    Redis connection configuration.

    Attributes:
        host: Redis server host
        port: Redis server TCP port
        db: Database number
        password: Optional AUTH password
        prefix: Prefix for every key used by the backend
    """

    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 0
    password: Optional[str] = attrs.field(default=None, repr=False)
    prefix: str = "factorchain"

    @classmethod
    def from_url(cls, url: str, prefix: str = "factorchain") -> "RedisConfig":
        """
        Create config from a redis:// URL.

        Args:
            url: Connection URL, e.g. redis://:secret@cache:6379/2
            prefix: Key prefix
        """
        parsed = urlparse(url)
        db = parsed.path.lstrip("/")
        return cls(
            host=parsed.hostname or "127.0.0.1",
            port=parsed.port or 6379,
            db=int(db) if db else 0,
            password=parsed.password,
            prefix=prefix,
        )


# =============================================================================
# BACKEND
# =============================================================================


@attrs.define
class RedisPasswordBackend(AuthBackend):
    """
    Password backend over a Redis key space.

    Example:
        backend = RedisPasswordBackend.from_config(RedisConfig(port=6380))
        await backend.set_password("user1", "sugar-Guilt-Rex")
        await backend.authenticate("user1", "sugar-Guilt-Rex")
        await backend.close()
    """

    client: Any
    prefix: str = "factorchain"
    iterations: int = DEFAULT_ITERATIONS
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @classmethod
    def from_config(cls, config: RedisConfig, **kwargs: Any) -> "RedisPasswordBackend":
        """Create a backend with its own connection pool."""
        client = redis.Redis(
            host=config.host,
            port=config.port,
            db=config.db,
            password=config.password,
            decode_responses=True,
        )
        return cls(client=client, prefix=config.prefix, **kwargs)

    def key_for(self, subject_id: str) -> str:
        return f"{self.prefix}:{subject_id}"

    async def authenticate(self, subject_id: str, secret: str) -> None:
        stored = await self.client.get(self.key_for(subject_id))
        if not stored or not secret:
            self._logger.info("password_rejected", subject=subject_id)
            raise AuthenticationFailed()
        if isinstance(stored, bytes):
            stored = stored.decode("utf-8")

        try:
            matches = await asyncio.to_thread(verify_password, secret, stored)
        except CryptoError as e:
            self._logger.error("password_digest_invalid", subject=subject_id, error=str(e))
            raise AuthenticationFailed(data={"reason": "digest"}) from e

        if not matches:
            self._logger.info("password_rejected", subject=subject_id)
            raise AuthenticationFailed()

    async def set_password(self, subject_id: str, password: str) -> None:
        """Store (or replace) the digest of ``password`` for ``subject_id``."""
        digest = await asyncio.to_thread(hash_password, password, None, self.iterations)
        await self.client.set(self.key_for(subject_id), digest)
        self._logger.info("password_set", subject=subject_id)

    async def delete_password(self, subject_id: str) -> bool:
        """Remove the stored digest. Returns True if one existed."""
        return bool(await self.client.delete(self.key_for(subject_id)))

    async def close(self) -> None:
        await self.client.aclose()
