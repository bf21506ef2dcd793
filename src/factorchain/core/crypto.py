"""
factorchain Cryptographic Operations

Wrapper around the cryptography library for backend secret checks.
Uses established libraries - NO custom cryptographic implementations.

Security:
- Constant-time comparisons for every secret check
- Password digests are salted PBKDF2-SHA256
- One-time codes follow RFC 6238 (TOTP)
"""

from __future__ import annotations

import base64
import hmac
import secrets
import time
from typing import Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.twofactor import InvalidToken
from cryptography.hazmat.primitives.twofactor.totp import TOTP

from factorchain.core.exceptions import CryptoError

PASSWORD_SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 390000
SALT_LENGTH = 16
DIGEST_LENGTH = 32


# =============================================================================
# PASSWORD DIGESTS
# =============================================================================


def _pbkdf2(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=DIGEST_LENGTH,
        salt=salt,
        iterations=iterations,
    )


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def hash_password(
    password: str,
    salt: Optional[bytes] = None,
    iterations: int = DEFAULT_ITERATIONS,
) -> str:
    """
    Derive a storable digest from a password.

    Format: ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` with salt and
    digest in unpadded urlsafe base64.

    Args:
        password: Plaintext password
        salt: Salt (generated if not provided)
        iterations: PBKDF2 iteration count

    Returns:
        Encoded digest string
    """
    if salt is None:
        salt = secrets.token_bytes(SALT_LENGTH)
    digest = _pbkdf2(salt, iterations).derive(password.encode("utf-8"))
    return f"{PASSWORD_SCHEME}${iterations}${_b64encode(salt)}${_b64encode(digest)}"


def verify_password(password: str, encoded: str) -> bool:
    """
    Check a password against a digest produced by hash_password.

    Raises:
        CryptoError: If the stored digest is malformed
    """
    try:
        scheme, iterations_str, salt_str, digest_str = encoded.split("$")
        iterations = int(iterations_str)
        salt = _b64decode(salt_str)
        expected = _b64decode(digest_str)
    except ValueError as e:
        raise CryptoError(f"Malformed password digest: {e}") from e

    if scheme != PASSWORD_SCHEME:
        raise CryptoError(f"Unsupported password scheme: {scheme}")

    try:
        _pbkdf2(salt, iterations).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True


# =============================================================================
# ONE-TIME CODES
# =============================================================================


def generate_totp_key(length: int = 20) -> bytes:
    """Generate a random TOTP shared key (160 bits by default)."""
    return secrets.token_bytes(length)


def _totp(key: bytes, digits: int, time_step: int) -> TOTP:
    try:
        return TOTP(key, digits, hashes.SHA1(), time_step)
    except ValueError as e:
        raise CryptoError(f"Invalid TOTP parameters: {e}") from e


def generate_totp(
    key: bytes,
    at: Optional[float] = None,
    digits: int = 6,
    time_step: int = 30,
) -> str:
    """Compute the TOTP code for ``at`` (default: now)."""
    if at is None:
        at = time.time()
    return _totp(key, digits, time_step).generate(int(at)).decode("ascii")


def match_totp(
    key: bytes,
    code: str,
    at: Optional[float] = None,
    digits: int = 6,
    time_step: int = 30,
    window: int = 1,
) -> Optional[int]:
    """
    Find the time-step counter at which ``code`` is valid.

    Checks the current step and ``window`` steps on either side to
    tolerate clock drift.

    Returns:
        The matching counter, or None if the code is invalid
    """
    if at is None:
        at = time.time()
    totp = _totp(key, digits, time_step)
    encoded = code.encode("ascii", errors="replace")
    counter = int(at) // time_step
    for offset in range(-window, window + 1):
        step = counter + offset
        if step < 0:
            continue
        try:
            totp.verify(encoded, step * time_step)
        except InvalidToken:
            continue
        return step
    return None


# =============================================================================
# UTILITIES
# =============================================================================


def generate_challenge_code(nbytes: int = 16) -> str:
    """Random URL-safe code for out-of-band delivery."""
    return secrets.token_urlsafe(nbytes)


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two secrets in constant time.

    Prevents timing attacks on shared-secret checks.
    """
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
