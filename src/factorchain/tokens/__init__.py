"""
factorchain Tokens Module

Signing and verification of continuation tokens.
"""

from factorchain.tokens.signer import (
    ALGORITHM,
    DEFAULT_EXPIRES_IN,
    TokenParameters,
    TokenSigner,
)

__all__ = [
    "ALGORITHM",
    "DEFAULT_EXPIRES_IN",
    "TokenParameters",
    "TokenSigner",
]
