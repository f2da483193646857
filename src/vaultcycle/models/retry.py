"""
Retry policy configuration for eventually-consistent remote operations.

Design Pattern: Strategy Pattern
A RetryPolicy is a declarative table mapping result codes to decisions.
The executor never hard-codes what a code means; the same code can be a
success for one policy and a transient condition for another.

Policies are built once, at configuration time, and shared read-only
between any number of concurrent workflow runs.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, cast

from vaultcycle.models.codes import SUCCESS_CODES, ResultCode, parse_code

SOFT_DELETE_INITIAL_DELAY_SECONDS = 15.0
SOFT_DELETE_MAX_ATTEMPTS = 3

ABORT_CODES: frozenset[int] = frozenset(
    {ResultCode.BAD_REQUEST, ResultCode.FORBIDDEN, ResultCode.INTERNAL_ERROR}
)
SOFT_DELETE_RETRY_CODES: frozenset[int] = frozenset({ResultCode.NOT_FOUND, ResultCode.CONFLICT})

ENV_INITIAL_DELAY = "VAULTCYCLE_SOFT_DELETE_INITIAL_DELAY"
ENV_MAX_ATTEMPTS = "VAULTCYCLE_SOFT_DELETE_MAX_ATTEMPTS"


def _codes(values: Iterable[int | str]) -> frozenset[int]:
    return frozenset(parse_code(value) for value in values)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Declarative retry behavior for one kind of remote call.

    Classification precedence is abort_on, then continue_on, then retry_on;
    a code in none of them fails closed. The sets may overlap.

    Examples:
        # Wait for a resource to appear
        policy = RetryPolicy(
            initial_delay_seconds=15,
            max_attempts=3,
            continue_on={200},
            retry_on={404, 409},
            abort_on={400, 403, 500},
        )

        # Same shape from configuration
        policy = RetryPolicy.from_mapping({
            "initialDelaySeconds": 15,
            "maxAttempts": 3,
            "continueOn": ["success"],
            "retryOn": ["not-found", "conflict"],
            "abortOn": ["bad-request", "forbidden", "internal-error"],
        })
    """

    initial_delay_seconds: float
    """Delay inserted before every retry attempt (never before the first)."""

    max_attempts: int
    """Maximum number of attempts, including the first one."""

    continue_on: frozenset[int] = field(default_factory=frozenset)
    """Codes that end the operation successfully."""

    retry_on: frozenset[int] = field(default_factory=frozenset)
    """Codes considered transient while attempt budget remains."""

    abort_on: frozenset[int] = field(default_factory=frozenset)
    """Codes that end the operation immediately as fatal."""

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValueError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay_seconds < 0:
            raise ValueError(
                f"initial_delay_seconds must be >= 0, got {self.initial_delay_seconds}"
            )

        # Accept any iterable of codes or labels; store frozensets of ints
        object.__setattr__(self, "initial_delay_seconds", float(self.initial_delay_seconds))
        object.__setattr__(self, "continue_on", _codes(self.continue_on))
        object.__setattr__(self, "retry_on", _codes(self.retry_on))
        object.__setattr__(self, "abort_on", _codes(self.abort_on))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RetryPolicy:
        """
        Build a policy from its exchanged form.

        Keys: initialDelaySeconds, maxAttempts, continueOn, retryOn, abortOn.
        Missing code sets default to empty; missing numbers are an error.

        Raises:
            ValueError: On missing keys or unknown code labels
        """
        try:
            delay = float(data["initialDelaySeconds"])
            attempts = data["maxAttempts"]
        except KeyError as e:
            raise ValueError(f"Retry policy is missing required key {e.args[0]!r}") from None

        return cls(
            initial_delay_seconds=delay,
            max_attempts=attempts,
            continue_on=_codes(data.get("continueOn", ())),
            retry_on=_codes(data.get("retryOn", ())),
            abort_on=_codes(data.get("abortOn", ())),
        )

    def to_mapping(self) -> dict[str, Any]:
        """Exchanged form of this policy, codes sorted."""
        return {
            "initialDelaySeconds": self.initial_delay_seconds,
            "maxAttempts": self.max_attempts,
            "continueOn": sorted(self.continue_on),
            "retryOn": sorted(self.retry_on),
            "abortOn": sorted(self.abort_on),
        }

    def with_budget(
        self, *, initial_delay_seconds: float | None = None, max_attempts: int | None = None
    ) -> RetryPolicy:
        """Copy of this policy with a different delay and/or attempt budget."""
        changes: dict[str, Any] = {}
        if initial_delay_seconds is not None:
            changes["initial_delay_seconds"] = initial_delay_seconds
        if max_attempts is not None:
            changes["max_attempts"] = max_attempts
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(initial_delay_seconds={self.initial_delay_seconds}, "
            f"max_attempts={self.max_attempts}, "
            f"continue_on={sorted(self.continue_on)}, "
            f"retry_on={sorted(self.retry_on)}, "
            f"abort_on={sorted(self.abort_on)})"
        )


def presence_policy(
    initial_delay_seconds: float = SOFT_DELETE_INITIAL_DELAY_SECONDS,
    max_attempts: int = SOFT_DELETE_MAX_ATTEMPTS,
) -> RetryPolicy:
    """Wait for a view to appear: not-found and conflict are transient."""
    return RetryPolicy(
        initial_delay_seconds=initial_delay_seconds,
        max_attempts=max_attempts,
        continue_on=SUCCESS_CODES,
        retry_on=SOFT_DELETE_RETRY_CODES,
        abort_on=ABORT_CODES,
    )


def async_deletion_policy(
    initial_delay_seconds: float = SOFT_DELETE_INITIAL_DELAY_SECONDS,
    max_attempts: int = SOFT_DELETE_MAX_ATTEMPTS,
) -> RetryPolicy:
    """Wait for a view to disappear: not-found is the terminal answer."""
    return RetryPolicy(
        initial_delay_seconds=initial_delay_seconds,
        max_attempts=max_attempts,
        continue_on={ResultCode.NOT_FOUND},
        retry_on={ResultCode.SUCCESS, ResultCode.ACCEPTED, ResultCode.CONFLICT},
        abort_on=ABORT_CODES,
    )


@dataclass(frozen=True)
class RetryPolicies:
    """
    The named policies a workflow run draws from.

    presence: verify soft-deleted / verify recovered checkpoints
    restore: restore from snapshot while a purge may still be completing
    async_deletion: optional post-purge wait for the deleted view to vanish
    """

    presence: RetryPolicy
    restore: RetryPolicy
    async_deletion: RetryPolicy

    if TYPE_CHECKING:
        DEFAULT: RetryPolicies
    else:
        DEFAULT = cast("RetryPolicies", None)

    @classmethod
    def with_budget(cls, initial_delay_seconds: float, max_attempts: int) -> RetryPolicies:
        """All three named policies sharing one delay and attempt budget."""
        return cls(
            presence=presence_policy(initial_delay_seconds, max_attempts),
            restore=presence_policy(initial_delay_seconds, max_attempts),
            async_deletion=async_deletion_policy(initial_delay_seconds, max_attempts),
        )

    @classmethod
    def from_env(cls) -> RetryPolicies:
        """
        Named policies with budget overrides from the environment.

        Reads VAULTCYCLE_SOFT_DELETE_INITIAL_DELAY (seconds) and
        VAULTCYCLE_SOFT_DELETE_MAX_ATTEMPTS; unset variables keep defaults.

        Raises:
            ValueError: If a variable is set to something unparseable
        """
        delay_text = os.getenv(ENV_INITIAL_DELAY)
        attempts_text = os.getenv(ENV_MAX_ATTEMPTS)

        delay = SOFT_DELETE_INITIAL_DELAY_SECONDS
        attempts = SOFT_DELETE_MAX_ATTEMPTS
        try:
            if delay_text:
                delay = float(delay_text)
            if attempts_text:
                attempts = int(attempts_text)
        except ValueError:
            raise ValueError(
                f"Invalid retry budget in environment: "
                f"{ENV_INITIAL_DELAY}={delay_text!r}, {ENV_MAX_ATTEMPTS}={attempts_text!r}"
            ) from None

        return cls.with_budget(delay, attempts)


RetryPolicies.DEFAULT = RetryPolicies.with_budget(
    SOFT_DELETE_INITIAL_DELAY_SECONDS, SOFT_DELETE_MAX_ATTEMPTS
)
