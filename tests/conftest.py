"""
Pytest configuration and shared fixtures for factorchain tests.
"""

import pytest
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import attrs

from factorchain.backends import AuthBackend, OutOfBandCodeBackend, StaticSecretBackend
from factorchain.core.exceptions import AuthenticationFailed
from factorchain.orchestrator import AuthOrchestrator, OrchestratorConfig
from factorchain.tokens.signer import TokenParameters, TokenSigner


TOKEN_KEY = "chess-verify=barrel-0123456789abcdef"


# =============================================================================
# TEST BACKENDS
# =============================================================================


@attrs.define
class SameDayBackend(AuthBackend):
    """Accepts any ISO timestamp falling on the current UTC day."""

    async def authenticate(self, subject_id: str, secret: str) -> None:
        try:
            value = datetime.fromisoformat(secret)
        except (TypeError, ValueError) as e:
            raise AuthenticationFailed() from e
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value.astimezone(timezone.utc).date() != datetime.now(timezone.utc).date():
            raise AuthenticationFailed()


@attrs.define
class RecordingBackend(AuthBackend):
    """Accepts everything and records each call."""

    calls: List[Tuple[str, str]] = attrs.Factory(list)

    async def authenticate(self, subject_id: str, secret: str) -> None:
        self.calls.append((subject_id, secret))


@attrs.define
class Outbox:
    """Collects codes handed to an out-of-band channel."""

    messages: List[Tuple[str, str]] = attrs.Factory(list)

    def __call__(self, subject_id: str, code: str) -> None:
        self.messages.append((subject_id, code))

    def last_code(self, subject_id: str) -> Optional[str]:
        for recipient, code in reversed(self.messages):
            if recipient == subject_id:
                return code
        return None


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (get/set/delete)."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.closed = False

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    async def delete(self, key: str) -> int:
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# TOKEN FIXTURES
# =============================================================================


@pytest.fixture
def token_key() -> str:
    """HMAC key for signing tokens."""
    return TOKEN_KEY


@pytest.fixture
def token_parameters(token_key: str) -> TokenParameters:
    return TokenParameters(key=token_key)


@pytest.fixture
def signer(token_parameters: TokenParameters) -> TokenSigner:
    return TokenSigner(token_parameters)


# =============================================================================
# BACKEND FIXTURES
# =============================================================================


@pytest.fixture
def password_backend() -> StaticSecretBackend:
    """Password backend knowing user1/password1."""
    return StaticSecretBackend({"user1": "password1"})


@pytest.fixture
def date_backend() -> SameDayBackend:
    return SameDayBackend()


@pytest.fixture
def outbox() -> Outbox:
    return Outbox()


@pytest.fixture
def code_backend(outbox: Outbox) -> OutOfBandCodeBackend:
    return OutOfBandCodeBackend(deliver=outbox)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# =============================================================================
# ORCHESTRATOR FIXTURES
# =============================================================================


@pytest.fixture
def single_factor(password_backend, token_key) -> AuthOrchestrator:
    """Orchestrator with steps [password]."""
    return AuthOrchestrator(
        OrchestratorConfig.build(
            steps=["password"],
            backends={"password": password_backend},
            key=token_key,
        )
    )


@pytest.fixture
def two_factor(password_backend, date_backend, token_key) -> AuthOrchestrator:
    """Orchestrator with steps [password, date]."""
    return AuthOrchestrator(
        OrchestratorConfig.build(
            steps=["password", "date"],
            backends={"password": password_backend, "date": date_backend},
            key=token_key,
        )
    )


@pytest.fixture
def challenge_flow(code_backend, token_key) -> AuthOrchestrator:
    """Orchestrator with steps [code] served by an out-of-band backend."""
    return AuthOrchestrator(
        OrchestratorConfig.build(
            steps=["code"],
            backends={"code": code_backend},
            key=token_key,
        )
    )


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def make_orchestrator(
    steps: List[str],
    key: str = TOKEN_KEY,
) -> Tuple[AuthOrchestrator, Dict[str, RecordingBackend]]:
    """Helper to create an orchestrator whose backends accept everything."""
    backends = {step: RecordingBackend() for step in steps}
    config = OrchestratorConfig.build(steps=steps, backends=backends, key=key)
    return AuthOrchestrator(config), backends


def now_iso() -> str:
    """Current UTC time as an ISO string, valid for SameDayBackend."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
