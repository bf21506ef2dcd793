"""
factorchain Core Module

Provides foundational types and abstractions used by the orchestrator
and the backends.

Components:
- types: Value objects (AuthResult, AuthChallenge, TokenClaims)
- sequence: Auth step sequence and step resolution
- crypto: Password digests, one-time codes, constant-time compare
- exceptions: Custom exception types
"""

from factorchain.core.types import AuthChallenge, AuthResult, TokenClaims
from factorchain.core.sequence import StepResolution, StepSequence
from factorchain.core.exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    CryptoError,
    FactorChainError,
    SequencingError,
    SubjectMismatch,
    TokenExpired,
    TokenInvalid,
    UnsupportedOperation,
)

__all__ = [
    # Types
    "AuthChallenge",
    "AuthResult",
    "TokenClaims",
    # Sequence
    "StepResolution",
    "StepSequence",
    # Exceptions
    "AuthenticationFailed",
    "ConfigurationError",
    "CryptoError",
    "FactorChainError",
    "SequencingError",
    "SubjectMismatch",
    "TokenExpired",
    "TokenInvalid",
    "UnsupportedOperation",
]
