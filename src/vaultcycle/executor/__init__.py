"""
Execution primitives for eventually-consistent remote calls.

Public API:
    - classify / Decision: Result code classification under a RetryPolicy
    - BackoffStrategy, ConstantBackoff, ExponentialBackoff, has_budget
    - RetryExecutor / execute: Bounded, policy-driven retries
    - Succeeded, Aborted, Exhausted, Cancelled: Tagged outcomes
    - find_first / iter_pages: Lazy paged existence search
"""

from vaultcycle.executor.backoff import (
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    has_budget,
)
from vaultcycle.executor.outcome import (
    Aborted,
    Cancelled,
    ErrorKind,
    Exhausted,
    Outcome,
    Succeeded,
    is_aborted,
    is_cancelled,
    is_exhausted,
    is_succeeded,
    raise_for_outcome,
)
from vaultcycle.executor.policy import Decision, classify
from vaultcycle.executor.retry import RetryExecutor, execute
from vaultcycle.executor.search import SearchResult, find_first, iter_pages

__all__ = [
    "Decision",
    "classify",
    "BackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "has_budget",
    "RetryExecutor",
    "execute",
    "ErrorKind",
    "Succeeded",
    "Aborted",
    "Exhausted",
    "Cancelled",
    "Outcome",
    "is_succeeded",
    "is_aborted",
    "is_exhausted",
    "is_cancelled",
    "raise_for_outcome",
    "SearchResult",
    "find_first",
    "iter_pages",
]
