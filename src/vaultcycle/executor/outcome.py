"""
Retry execution outcomes.

RetryExecutor returns one of four tagged outcomes by value instead of
raising: the caller inspects the tag and decides. raise_for_outcome()
turns a non-success outcome into the matching WorkflowError when the
caller wants propagation.

Example:
    ```python
    outcome = await executor.execute(policy, lambda: client.get_deleted(ref))

    match outcome:
        case Succeeded(body=body):
            use(body)
        case Exhausted(code=code, attempts=attempts):
            log.warning(f"still {code} after {attempts} attempts")
        case Aborted() | Cancelled():
            raise_for_outcome(outcome, "verify soft-deleted")
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from vaultcycle.core.errors import (
    FatalRemoteConditionError,
    RetriesExhaustedError,
    TransportError,
    UnclassifiedConditionError,
    WorkflowCancelledError,
)
from vaultcycle.models.codes import describe_code

__all__ = [
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
]

R = TypeVar("R")


class ErrorKind(Enum):
    """Why an operation was aborted."""

    FATAL_REMOTE_CONDITION = "FATAL_REMOTE_CONDITION"
    """The code is listed in the policy's abort_on."""

    UNCLASSIFIED_CONDITION = "UNCLASSIFIED_CONDITION"
    """The code matched none of the policy's sets."""

    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    """No status code was obtainable at all."""

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Succeeded(Generic[R]):
    """
    The operation reached a continue_on code.

    Attributes:
        body: Body of the successful response (may be None)
        code: The continue_on code that ended the operation
        attempts: Attempts made, including the successful one
    """

    body: R
    code: int
    attempts: int

    def __str__(self) -> str:
        return f"Succeeded({describe_code(self.code)}, attempts={self.attempts})"


@dataclass(frozen=True)
class Aborted:
    """
    The operation hit a fatal or unclassified code, or a transport failure.

    Never retried and never waited on, whatever budget remained.
    """

    kind: ErrorKind
    code: int | None
    attempts: int
    message: str = ""

    def __str__(self) -> str:
        return f"Aborted({self.kind}, {describe_code(self.code)}, attempts={self.attempts})"


@dataclass(frozen=True)
class Exhausted:
    """Every attempt in the budget came back with a retry_on code."""

    code: int
    attempts: int

    def __str__(self) -> str:
        return f"Exhausted({describe_code(self.code)}, attempts={self.attempts})"


@dataclass(frozen=True)
class Cancelled:
    """
    A cancellation signal was observed before the next attempt.

    No further remote call was issued after the signal.
    """

    attempts: int
    last_code: int | None = None

    def __str__(self) -> str:
        return f"Cancelled(attempts={self.attempts}, last={describe_code(self.last_code)})"


Outcome = Succeeded[Any] | Aborted | Exhausted | Cancelled


def is_succeeded(outcome: Outcome) -> bool:
    return isinstance(outcome, Succeeded)


def is_aborted(outcome: Outcome) -> bool:
    return isinstance(outcome, Aborted)


def is_exhausted(outcome: Outcome) -> bool:
    return isinstance(outcome, Exhausted)


def is_cancelled(outcome: Outcome) -> bool:
    return isinstance(outcome, Cancelled)


_ABORT_ERRORS = {
    ErrorKind.FATAL_REMOTE_CONDITION: FatalRemoteConditionError,
    ErrorKind.UNCLASSIFIED_CONDITION: UnclassifiedConditionError,
    ErrorKind.TRANSPORT_ERROR: TransportError,
}


def raise_for_outcome(outcome: Outcome, step: str) -> Any:
    """
    Return the body of a Succeeded outcome, raise for anything else.

    Args:
        outcome: Result of RetryExecutor.execute()
        step: Workflow step name attached to the raised error

    Raises:
        FatalRemoteConditionError, UnclassifiedConditionError, TransportError:
            For Aborted, by kind
        RetriesExhaustedError: For Exhausted
        WorkflowCancelledError: For Cancelled
    """
    if isinstance(outcome, Succeeded):
        return outcome.body
    if isinstance(outcome, Aborted):
        raise _ABORT_ERRORS[outcome.kind](step, outcome.code, outcome.message)
    if isinstance(outcome, Exhausted):
        raise RetriesExhaustedError(step, outcome.code, outcome.attempts)
    if isinstance(outcome, Cancelled):
        raise WorkflowCancelledError(step, outcome.last_code)
    raise TypeError(f"Not an outcome: {outcome!r}")
