"""
factorchain Exception Types

Custom exceptions for multi-step authentication errors.

Every error aborts the in-flight call; no token is minted and no state
is retained anywhere.
"""

from typing import Any, Optional


class FactorChainError(Exception):
    """Base exception for all factorchain errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(FactorChainError):
    """
    Invalid orchestrator or backend configuration.

    Raised at construction time, never during a request.
    """

    pass


class SequencingError(FactorChainError):
    """
    Requested step is not the legitimate next step.

    Covers a final token reused as a previous token, an explicit method
    that is not the required first/next step, and a token whose "from"
    claim names a step that is not configured. Always raised before any
    backend is invoked.
    """

    pass


class TokenInvalid(FactorChainError):
    """
    Previous token failed verification.

    Signature mismatch, malformed structure, disallowed algorithm or
    missing claims.
    """

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message, code=401)


class TokenExpired(TokenInvalid):
    """The previous token's expiry has passed."""

    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message)


class SubjectMismatch(TokenInvalid):
    """The previous token was issued to a different subject."""

    def __init__(self, message: str = "Token subject does not match") -> None:
        super().__init__(message)


class AuthenticationFailed(FactorChainError):
    """
    Authentication failed.

    The backend rejected the supplied secret. The message is the same
    for unknown subjects and wrong secrets; details for diagnostics can
    be attached through ``data`` and are never part of the message.
    """

    def __init__(self, data: Any = None, message: str = "Authentication failed") -> None:
        super().__init__(message, code=401)
        self.data = data


class UnsupportedOperation(FactorChainError):
    """
    Operation not supported by the selected backend.

    Raised when a challenge is requested for a method whose backend
    does not issue challenges.
    """

    def __init__(self, method: str) -> None:
        super().__init__(f"Method '{method}' does not support challenges", code=501)
        self.method = method


class CryptoError(FactorChainError):
    """
    Cryptographic operation failed.

    This indicates a malformed stored digest or key rather than a
    rejected secret.
    """

    pass
