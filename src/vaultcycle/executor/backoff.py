"""
Delay between attempts, and the attempt budget.

Design Pattern: Strategy Pattern
RetryExecutor asks a BackoffStrategy how long to wait before the next
attempt; swapping strategies never changes the executor's contract.
ConstantBackoff is the default and waits policy.initial_delay_seconds
before every retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from vaultcycle.models.retry import RetryPolicy

__all__ = ["BackoffStrategy", "ConstantBackoff", "ExponentialBackoff", "has_budget"]


def has_budget(policy: RetryPolicy, attempts_made: int) -> bool:
    """True while another attempt is allowed under the policy."""
    return attempts_made < policy.max_attempts


class BackoffStrategy(ABC):
    """Computes the wait before the next attempt."""

    @abstractmethod
    def next_delay(self, policy: RetryPolicy, attempts_made: int) -> float:
        """
        Seconds to wait before attempt number attempts_made + 1.

        Only called after at least one attempt; nothing waits before the
        first attempt.
        """


class ConstantBackoff(BackoffStrategy):
    """Wait initial_delay_seconds before every retry."""

    def next_delay(self, policy: RetryPolicy, attempts_made: int) -> float:
        return policy.initial_delay_seconds

    def __repr__(self) -> str:
        return "ConstantBackoff()"


@dataclass(frozen=True)
class ExponentialBackoff(BackoffStrategy):
    """
    Exponential back-off capped at max_delay_seconds.

    delay = initial_delay * multiplier^(attempts_made - 1), so the first
    retry waits initial_delay, the second initial_delay * multiplier, ...
    """

    multiplier: float = 2.0
    max_delay_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.multiplier < 1.0:
            raise ValueError(f"multiplier must be >= 1.0, got {self.multiplier}")
        if self.max_delay_seconds < 0:
            raise ValueError(f"max_delay_seconds must be >= 0, got {self.max_delay_seconds}")

    def next_delay(self, policy: RetryPolicy, attempts_made: int) -> float:
        exponent = max(attempts_made - 1, 0)
        delay = policy.initial_delay_seconds * (self.multiplier**exponent)
        return min(delay, self.max_delay_seconds)
