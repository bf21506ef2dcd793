"""
factorchain - Stateless Multi-Factor Authentication Chaining

Chains pluggable authentication methods into an ordered flow. The only
state carried between steps is a signed, self-contained continuation
token; no server-side session store is needed.

Guarantees:
- Steps cannot be skipped, repeated or reordered
- A final token grants no further step
- Out-of-sequence requests never reach a backend

Example Usage:
    from factorchain import AuthOrchestrator, OrchestratorConfig
    from factorchain.backends import OutOfBandCodeBackend, StaticSecretBackend

    config = OrchestratorConfig.build(
        steps=["password", "email"],
        backends={
            "password": StaticSecretBackend({"jdoe": "secret"}),
            "email": OutOfBandCodeBackend(deliver=send_code_by_email),
        },
        key=signing_key,
    )
    orchestrator = AuthOrchestrator(config)

    first = await orchestrator.get_token("jdoe", "secret")
    await orchestrator.request_challenge("jdoe", previous_token=first.token)
    result = await orchestrator.get_token(
        "jdoe", code_from_inbox, previous_token=first.token
    )
    if result.final:
        print(f"Authenticated! Token: {result.token}")
"""

from factorchain.core.types import AuthChallenge, AuthResult
from factorchain.core.exceptions import (
    AuthenticationFailed,
    FactorChainError,
    SequencingError,
    TokenInvalid,
    UnsupportedOperation,
)
from factorchain.orchestrator import AuthOrchestrator, OrchestratorConfig
from factorchain.tokens.signer import TokenParameters

__version__ = "0.1.0"

__all__ = [
    # Main API
    "AuthOrchestrator",
    "OrchestratorConfig",
    "TokenParameters",
    # Types
    "AuthChallenge",
    "AuthResult",
    # Exceptions
    "AuthenticationFailed",
    "FactorChainError",
    "SequencingError",
    "TokenInvalid",
    "UnsupportedOperation",
    # Metadata
    "__version__",
]
