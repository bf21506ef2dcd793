"""
factorchain Orchestrator

Chains authentication methods into a multi-step flow. The continuation
token presented by the caller is the only state carried between steps;
the orchestrator itself holds nothing mutable and takes no locks.

Each request runs three strictly ordered stages:
1. Verify the previous token (if any) and resolve the current method
2. Delegate the secret check (or challenge) to the method's backend
3. Mint a new token recording progress

A malformed step request fails in stage 1, before any backend is
invoked, so backends cannot be probed out of sequence.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

import attrs
import structlog
from returns.result import Failure

from factorchain.backends.base import AuthBackend
from factorchain.core.exceptions import (
    AuthenticationFailed,
    ConfigurationError,
    SequencingError,
)
from factorchain.core.sequence import StepResolution, StepSequence
from factorchain.core.types import AuthChallenge, AuthResult, TokenClaims
from factorchain.tokens.signer import TokenParameters, TokenSigner


# =============================================================================
# CONFIGURATION
# =============================================================================


def _to_sequence(value: Any) -> StepSequence:
    if isinstance(value, StepSequence):
        return value
    return StepSequence(value)


@attrs.define(frozen=True)
class OrchestratorConfig:
    """
    Orchestrator configuration.

    Attributes:
        steps: Ordered method names every subject must satisfy
        backends: Backend serving each method
        token_parameters: Signing key parameters

    INVARIANT: every configured step has a backend
    """

    steps: StepSequence = attrs.field(converter=_to_sequence)
    backends: Mapping[str, AuthBackend] = attrs.field(converter=dict)
    token_parameters: TokenParameters = attrs.field(
        validator=attrs.validators.instance_of(TokenParameters)
    )

    def __attrs_post_init__(self) -> None:
        missing = [step for step in self.steps if step not in self.backends]
        if missing:
            raise ConfigurationError(f"No backend configured for steps: {', '.join(missing)}")
        for method, backend in self.backends.items():
            if not isinstance(backend, AuthBackend):
                raise ConfigurationError(
                    f"Backend for '{method}' must implement AuthBackend, "
                    f"got {type(backend).__name__}"
                )

    @classmethod
    def build(
        cls,
        steps: Sequence[str],
        backends: Mapping[str, AuthBackend],
        key: str,
        **token_options: Any,
    ) -> "OrchestratorConfig":
        """
        Create config from plain values.

        Args:
            steps: Method names in order
            backends: Backend per method
            key: Token signing key
            **token_options: Extra TokenParameters fields (expires_in, leeway)
        """
        return cls(
            steps=steps,
            backends=backends,
            token_parameters=TokenParameters(key=key, **token_options),
        )


# =============================================================================
# ORCHESTRATOR
# =============================================================================


@attrs.define
class AuthOrchestrator:
    """
    Multi-step authentication orchestrator.

    Example:
        config = OrchestratorConfig.build(
            steps=["password", "totp"],
            backends={"password": password_backend, "totp": totp_backend},
            key=signing_key,
        )
        orchestrator = AuthOrchestrator(config)

        first = await orchestrator.get_token("user1", "password1")
        # first.final is False, first.next == ("totp",)
        done = await orchestrator.get_token(
            "user1", "492039", previous_token=first.token
        )
        # done.final is True
    """

    config: OrchestratorConfig
    _signer: TokenSigner = attrs.field(default=None)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        if self._signer is None:
            self._signer = TokenSigner(self.config.token_parameters)

    @property
    def steps(self) -> StepSequence:
        return self.config.steps

    def backend_for(self, method: str) -> AuthBackend:
        return self.config.backends[method]

    async def resolve_method(
        self,
        subject_id: str,
        previous_token: Optional[str] = None,
        method: Optional[str] = None,
    ) -> StepResolution:
        """
        Decide which method is legitimately next.

        Args:
            subject_id: Subject authenticating
            previous_token: Token from the previous step, if any
            method: Explicitly requested method, if any (empty string counts as unspecified)

        Returns:
            The resolved step

        Raises:
            TokenInvalid: If the previous token fails verification
            SequencingError: If the request is out of sequence
        """
        method = method or None
        claims: Optional[TokenClaims] = None
        if previous_token:
            claims = await self._signer.verify(previous_token, subject_id)

        result = self.steps.resolve(claims, method)
        if isinstance(result, Failure):
            error_msg = result.failure()
            self._logger.warning(
                "sequencing_rejected",
                subject=subject_id,
                requested=method,
                previous=claims.from_method if claims else None,
                reason=error_msg,
            )
            raise SequencingError(error_msg)

        index = result.unwrap()
        resolution = StepResolution(
            method=self.steps.steps[index],
            index=index,
            final=self.steps.is_final(index),
            claims=claims,
        )
        self._logger.debug(
            "step_resolved",
            subject=subject_id,
            method=resolution.method,
            index=index,
            final=resolution.final,
        )
        return resolution

    async def get_token(
        self,
        subject_id: str,
        secret: str,
        previous_token: Optional[str] = None,
        method: Optional[str] = None,
    ) -> AuthResult:
        """
        Request a final or intermediate token.

        When several factors are configured, satisfying the first one
        yields an intermediate token which must be passed as
        ``previous_token`` to the next step.

        Raises:
            TokenInvalid: If the previous token fails verification
            SequencingError: If the request is out of sequence
            AuthenticationFailed: If the backend rejects the secret
        """
        resolution = await self.resolve_method(subject_id, previous_token, method)
        backend = self.backend_for(resolution.method)

        try:
            await backend.authenticate(subject_id, secret)
        except AuthenticationFailed:
            self._logger.info(
                "authentication_failed",
                subject=subject_id,
                method=resolution.method,
            )
            raise

        token = await self._signer.sign(subject_id, resolution.method, resolution.final)
        self._logger.info(
            "token_issued",
            subject=subject_id,
            method=resolution.method,
            final=resolution.final,
        )

        if resolution.final:
            return AuthResult.final_result(token)
        return AuthResult.intermediate_result(
            token, self.steps.next_after(resolution.index)
        )

    async def request_challenge(
        self,
        subject_id: str,
        previous_token: Optional[str] = None,
        method: Optional[str] = None,
    ) -> AuthChallenge:
        """
        Have the current method's backend present a challenge.

        The challenge is either returned in-band (``content``) or sent
        through an independent channel (``sent`` is True), for instance
        a code e-mailed to the subject.

        Raises:
            TokenInvalid: If the previous token fails verification
            SequencingError: If the request is out of sequence
            UnsupportedOperation: If the backend does not issue challenges
        """
        resolution = await self.resolve_method(subject_id, previous_token, method)
        backend = self.backend_for(resolution.method)
        return await backend.request_challenge(subject_id, resolution.method)

    def describe(self) -> Dict[str, Any]:
        """Configured flow, for diagnostics."""
        return {
            "steps": list(self.steps),
            "challenges": [
                step for step in self.steps
                if self.backend_for(step).supports_challenge
            ],
            "algorithm": self.config.token_parameters.algorithm,
            "expires_in": int(self.config.token_parameters.expires_in.total_seconds()),
        }
