#!/usr/bin/env python3
"""
Two-Factor Authentication Example

Demonstrates chaining a password step and an e-mailed code step with
factorchain's AuthOrchestrator.

Features:
1. Intermediate token after the first factor
2. Out-of-band challenge for the second factor
3. Skip prevention
4. Single-use challenge codes
"""

import asyncio
import secrets

from factorchain import (
    AuthOrchestrator,
    AuthenticationFailed,
    OrchestratorConfig,
    SequencingError,
)
from factorchain.backends import OutOfBandCodeBackend, StaticSecretBackend


INBOX = {}


def send_code(subject_id: str, code: str) -> None:
    """Pretend to e-mail the code."""
    INBOX[subject_id] = code
    print(f"   [mail to {subject_id}] your code is {code}")


async def main():
    """Demonstrate a two-factor flow."""

    print("=" * 70)
    print("factorchain - Password + E-mail Code")
    print("=" * 70)
    print()

    config = OrchestratorConfig.build(
        steps=["password", "email"],
        backends={
            "password": StaticSecretBackend({"jdoe": "correct horse"}),
            "email": OutOfBandCodeBackend(deliver=send_code),
        },
        key=secrets.token_urlsafe(32),
    )
    orchestrator = AuthOrchestrator(config)

    # ==========================================================================
    # EXAMPLE 1: Skipping the first factor is refused
    # ==========================================================================
    print("1. Try to start with the e-mail step")
    print("-" * 40)
    try:
        await orchestrator.request_challenge("jdoe", method="email")
    except SequencingError as e:
        print(f"   Refused: {e}")
    print()

    # ==========================================================================
    # EXAMPLE 2: First factor
    # ==========================================================================
    print("2. Password step")
    print("-" * 40)
    first = await orchestrator.get_token("jdoe", "correct horse")
    print(f"   final={first.final} next={list(first.next)}")
    print()

    # ==========================================================================
    # EXAMPLE 3: Second factor via out-of-band code
    # ==========================================================================
    print("3. E-mail step")
    print("-" * 40)
    challenge = await orchestrator.request_challenge("jdoe", previous_token=first.token)
    print(f"   challenge sent={challenge.sent} method={challenge.method}")
    result = await orchestrator.get_token("jdoe", INBOX["jdoe"], previous_token=first.token)
    print(f"   final={result.final}")
    print(f"   token={result.token[:32]}...")
    print()

    # ==========================================================================
    # EXAMPLE 4: Codes are single use
    # ==========================================================================
    print("4. Reuse the e-mailed code")
    print("-" * 40)
    try:
        await orchestrator.get_token("jdoe", INBOX["jdoe"], previous_token=first.token)
    except AuthenticationFailed as e:
        print(f"   Refused: {e}")


if __name__ == "__main__":
    asyncio.run(main())
