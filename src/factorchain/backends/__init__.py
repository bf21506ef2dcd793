"""
factorchain Backends

Pluggable authentication backends, one per method.
"""

from factorchain.backends.base import AuthBackend
from factorchain.backends.challenge import OutOfBandCodeBackend, PendingCode
from factorchain.backends.redis_password import RedisConfig, RedisPasswordBackend
from factorchain.backends.static import StaticSecretBackend
from factorchain.backends.totp import TOTPBackend, UsedCodeCache

__all__ = [
    "AuthBackend",
    "OutOfBandCodeBackend",
    "PendingCode",
    "RedisConfig",
    "RedisPasswordBackend",
    "StaticSecretBackend",
    "TOTPBackend",
    "UsedCodeCache",
]
