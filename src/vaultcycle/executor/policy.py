"""
Classification of a result code under a retry policy.

Pure function, no state: safe to call from any number of concurrent
workflow runs sharing the same policy objects.
"""

from __future__ import annotations

from enum import Enum

from vaultcycle.models.retry import RetryPolicy

__all__ = ["Decision", "classify"]


class Decision(Enum):
    """What the executor should do with an attempt's result code."""

    CONTINUE = "CONTINUE"
    """Terminal success for this policy's intent."""

    RETRY = "RETRY"
    """Transient; try again if attempt budget remains."""

    ABORT = "ABORT"
    """Fatal; the code is listed in abort_on."""

    ABORT_UNCLASSIFIED = "ABORT_UNCLASSIFIED"
    """Fatal; the code is in none of the policy's sets."""

    @property
    def is_abort(self) -> bool:
        return self in (Decision.ABORT, Decision.ABORT_UNCLASSIFIED)

    def __str__(self) -> str:
        return self.value


def classify(policy: RetryPolicy, code: int | None) -> Decision:
    """
    Classify a result code.

    Precedence is fixed: abort_on, continue_on, retry_on. A code found
    in none of them fails closed as ABORT_UNCLASSIFIED, and so does a
    missing code.

    Example:
        ```python
        classify(presence_policy(), 404)        # Decision.RETRY
        classify(async_deletion_policy(), 404)  # Decision.CONTINUE
        ```
    """
    if code is None:
        return Decision.ABORT_UNCLASSIFIED
    if code in policy.abort_on:
        return Decision.ABORT
    if code in policy.continue_on:
        return Decision.CONTINUE
    if code in policy.retry_on:
        return Decision.RETRY
    return Decision.ABORT_UNCLASSIFIED
