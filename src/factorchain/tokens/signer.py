"""
factorchain Token Signer

Signs and verifies continuation tokens.

Wire format: compact JWS (HS256) carrying the registered claims sub,
iat and exp plus the custom claims "from" and "final". Only HS256 is
accepted on verification; any other algorithm is rejected.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import attrs
import jwt
import structlog
from attrs import field, validators

from factorchain.core.exceptions import (
    ConfigurationError,
    SubjectMismatch,
    TokenExpired,
    TokenInvalid,
)
from factorchain.core.types import TokenClaims

ALGORITHM = "HS256"
DEFAULT_EXPIRES_IN = timedelta(hours=8)


# =============================================================================
# CONFIGURATION
# =============================================================================


@attrs.define(frozen=True, slots=True)
class TokenParameters:
    """
    Signing key parameters.

    Attributes:
        key: HMAC key material
        expires_in: Lifetime of each minted token
        leeway: Clock skew tolerated when checking expiry
    """

    key: Union[str, bytes] = field(repr=False, validator=validators.instance_of((str, bytes)))
    expires_in: timedelta = field(
        default=DEFAULT_EXPIRES_IN, validator=validators.instance_of(timedelta)
    )
    leeway: timedelta = field(
        factory=lambda: timedelta(seconds=0), validator=validators.instance_of(timedelta)
    )

    def __attrs_post_init__(self) -> None:
        if not self.key:
            raise ConfigurationError("Token signing key must not be empty")
        if self.expires_in <= timedelta(0):
            raise ConfigurationError("Token lifetime must be positive")

    @property
    def algorithm(self) -> str:
        return ALGORITHM


# =============================================================================
# SIGNER
# =============================================================================


@attrs.define
class TokenSigner:
    """
    Signed Token Primitive.

    Provides tamper-evidence, expiry and subject binding for
    continuation tokens. Both operations are coroutines so that a
    signer backed by a remote key service can be dropped in.

    Example:
        signer = TokenSigner(TokenParameters(key="secret"))
        token = await signer.sign("user1", "password", final=False)
        claims = await signer.verify(token, "user1")
    """

    parameters: TokenParameters
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    async def sign(
        self,
        subject_id: str,
        from_method: str,
        final: bool,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Mint a token recording that ``from_method`` was satisfied.

        Args:
            subject_id: Subject the token is bound to
            from_method: Method just satisfied
            final: Whether the flow is complete
            now: Issue time (default: current UTC time)

        Returns:
            Encoded token
        """
        if now is None:
            now = datetime.now(timezone.utc)
        claims = TokenClaims(
            subject=subject_id,
            from_method=from_method,
            final=final,
            expires_at=now + self.parameters.expires_in,
        )
        payload = {
            "sub": claims.subject,
            "iat": now,
            "exp": claims.expires_at,
            **claims.to_payload(),
        }
        return jwt.encode(payload, self.parameters.key, algorithm=ALGORITHM)

    async def verify(self, token: str, subject_id: str) -> TokenClaims:
        """
        Verify signature, algorithm, expiry and subject, then decode.

        Raises:
            TokenExpired: If the token's expiry has passed
            SubjectMismatch: If the token belongs to another subject
            TokenInvalid: For any other verification failure
        """
        try:
            payload = jwt.decode(
                token,
                self.parameters.key,
                algorithms=[ALGORITHM],
                leeway=self.parameters.leeway,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            self._logger.info("token_expired", subject=subject_id)
            raise TokenExpired() from e
        except jwt.InvalidTokenError as e:
            self._logger.info("token_invalid", subject=subject_id, reason=type(e).__name__)
            raise TokenInvalid(f"Invalid token: {e}") from e

        if payload.get("sub") != subject_id:
            self._logger.warning("token_subject_mismatch", subject=subject_id)
            raise SubjectMismatch()

        try:
            return TokenClaims.from_payload(payload)
        except ValueError as e:
            raise TokenInvalid(f"Invalid token: {e}") from e
