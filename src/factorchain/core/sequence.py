"""
factorchain Step Sequence

The ordered list of methods a subject must satisfy, and the pure
transition function deciding which method is legitimately next.

States are positions 0..N-1 in the sequence plus an implicit terminal
"final" state reached from position N-1. Edges exist only from i to
i+1. The initial state ("no previous token") sits before position 0.

Design Principles:
1. Pure transition function (no side effects, no I/O)
2. Failures are values; callers decide how to raise
3. The sequence itself is immutable per orchestrator
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Tuple

import attrs
from attrs import field
from returns.result import Failure, Result, Success

from factorchain.core.exceptions import ConfigurationError
from factorchain.core.types import TokenClaims


def _to_steps(value: Iterable[str]) -> Tuple[str, ...]:
    if isinstance(value, str):
        raise ConfigurationError("Auth steps must be a sequence of method names, not a string")
    return tuple(value)


@attrs.define(frozen=True, slots=True)
class StepResolution:
    """
    Outcome of resolving the current step.

    Attributes:
        method: Method to authenticate with now
        index: Position of that method in the sequence
        final: Whether satisfying this method completes the flow
        claims: Decoded previous token, if one was supplied
    """

    method: str
    index: int
    final: bool
    claims: Optional[TokenClaims] = None


@attrs.define(frozen=True, slots=True)
class StepSequence:
    """
    Auth Step Sequence.

    INVARIANT: non-empty
    INVARIANT: method names are unique, non-empty strings

    Usage:
        steps = StepSequence(["password", "totp"])
        steps.resolve(None, None)            # Success(0)
        steps.resolve(claims_from_password)  # Success(1)
    """

    steps: Tuple[str, ...] = field(converter=_to_steps)

    def __attrs_post_init__(self) -> None:
        if not self.steps:
            raise ConfigurationError("At least one auth step must be configured")
        for step in self.steps:
            if not isinstance(step, str) or not step:
                raise ConfigurationError(f"Invalid auth step name: {step!r}")
        if len(set(self.steps)) != len(self.steps):
            raise ConfigurationError("Auth step names must be unique")

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[str]:
        return iter(self.steps)

    def __contains__(self, method: object) -> bool:
        return method in self.steps

    @property
    def first(self) -> str:
        return self.steps[0]

    @property
    def last(self) -> str:
        return self.steps[-1]

    def index_of(self, method: str) -> Optional[int]:
        """Position of ``method``, or None if it is not configured."""
        try:
            return self.steps.index(method)
        except ValueError:
            return None

    def is_final(self, index: int) -> bool:
        """Whether satisfying the step at ``index`` completes the flow."""
        return index == len(self.steps) - 1

    def next_after(self, index: int) -> Optional[str]:
        """Method following position ``index``, None past the end."""
        if index + 1 < len(self.steps):
            return self.steps[index + 1]
        return None

    def resolve(
        self,
        previous: Optional[TokenClaims],
        method: Optional[str] = None,
    ) -> Result[int, str]:
        """
        Compute the position of the step to run now.

        Args:
            previous: Verified claims of the previous token, or None
            method: Explicitly requested method, or None for the default

        Returns:
            Success(index) of the legitimate current step
            Failure(error_message) if the request is out of sequence
        """
        if previous is None:
            if method is not None and method != self.first:
                return Failure(
                    f"Invalid authentication method selected: '{method}' is not the first step"
                )
            return Success(0)

        if previous.final:
            return Failure(
                "The previous token is final - no subsequent authentication is needed"
            )

        previous_index = self.index_of(previous.from_method)
        if previous_index is None:
            return Failure("The previous authentication step is invalid")

        expected = previous_index + 1
        if expected >= len(self.steps):
            # Intermediate token claiming the last step; never minted by us.
            return Failure("The previous authentication step has no successor")

        if method is None:
            return Success(expected)

        if self.index_of(method) != expected:
            return Failure(
                f"Invalid authentication method selected: '{method}' does not follow "
                f"'{previous.from_method}'"
            )
        return Success(expected)
