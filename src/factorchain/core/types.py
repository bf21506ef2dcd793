"""
factorchain Core Types

Immutable value objects returned to callers and decoded from
continuation tokens.

Design Principles:
- Immutable: All types use frozen attrs for safety
- Validated: Invariants enforced at construction, inconsistent
  instances can never be observed
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

import attrs
from attrs import field, validators


def _to_next_tuple(value: Optional[Sequence[str]]) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        raise ValueError("next must be a sequence of method names, not a string")
    return tuple(value)


# =============================================================================
# RESULT TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class AuthResult:
    """
    Result of a successful authentication step.

    Holds the generated token and the progress of the flow: whether the
    token is final and, if not, which method comes next.

    Attributes:
        token: The signed continuation token
        final: Whether the token completes the flow
        next: The next method(s) to authenticate with; None when final

    INVARIANT: final <=> next is None
    INVARIANT: not final => next is non-empty
    """

    token: str = field(validator=validators.instance_of(str))
    final: bool = field(default=True, converter=bool)
    next: Optional[Tuple[str, ...]] = field(default=None, converter=_to_next_tuple)

    def __attrs_post_init__(self) -> None:
        if not self.token:
            raise ValueError("AuthResult requires a non-empty token")
        if self.final:
            if self.next is not None:
                raise ValueError("Final AuthResult cannot name a next method")
        elif not self.next:
            raise ValueError("Intermediate AuthResult must name the next method")

    @classmethod
    def final_result(cls, token: str) -> AuthResult:
        """Create a result that completes the flow."""
        return cls(token=token, final=True, next=None)

    @classmethod
    def intermediate_result(cls, token: str, next_method: str) -> AuthResult:
        """Create a result that must be followed by ``next_method``."""
        return cls(token=token, final=False, next=(next_method,))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "token": self.token,
            "final": self.final,
            "next": list(self.next) if self.next is not None else None,
        }


@attrs.define(frozen=True, slots=True)
class AuthChallenge:
    """
    A challenge put before the subject.

    A challenge may be interactive (content carries a puzzle or prompt)
    or it may use an independent channel, such as a one-time code sent
    by e-mail. In the latter case ``sent`` is True and ``content`` is
    usually None.
    """

    method: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    content: Any = None
    sent: bool = field(default=False, converter=bool)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"content": self.content, "method": self.method, "sent": self.sent}


# =============================================================================
# TOKEN TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class TokenClaims:
    """
    Decoded claims of a continuation token.

    Wire names: sub, from, final, exp.

    INVARIANT: subject and from_method are non-empty
    """

    subject: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    from_method: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    final: bool = field(validator=validators.instance_of(bool))
    expires_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> TokenClaims:
        """
        Build claims from a decoded JWT payload.

        Raises:
            ValueError: If a required claim is missing or mistyped
        """
        try:
            subject = payload["sub"]
            from_method = payload["from"]
            final = payload["final"]
        except KeyError as e:
            raise ValueError(f"Missing claim: {e.args[0]}") from e

        expires_at = None
        if "exp" in payload:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)

        try:
            return cls(
                subject=subject,
                from_method=from_method,
                final=final,
                expires_at=expires_at,
            )
        except TypeError as e:
            raise ValueError(f"Malformed claims: {e}") from e

    def to_payload(self) -> Dict[str, Any]:
        """Custom claims as placed in the token body."""
        return {"from": self.from_method, "final": self.final}
