"""
Exception hierarchy for remote calls and workflow failures.

Retry decisions are carried by value (see vaultcycle.executor.outcome);
these exceptions are what a failed step finally surfaces to the caller,
always with the originating result code attached.
"""

from __future__ import annotations

from vaultcycle.models.codes import describe_code


class VaultCycleError(Exception):
    """Base class for every error raised by vaultcycle."""


class RemoteError(VaultCycleError):
    """
    A remote call answered with a failure status, or not at all.

    Raised by RemoteClient implementations. code is None when no status
    could be obtained (connection reset, DNS failure, timeout).
    """

    def __init__(self, code: int | None, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(f"{describe_code(code)}: {message}" if message else describe_code(code))

    @property
    def is_transport_failure(self) -> bool:
        return self.code is None


class LifecycleError(VaultCycleError):
    """A workflow tried to move a resource along an edge the lifecycle lacks."""


class WorkflowError(VaultCycleError):
    """
    A workflow step failed and the run stopped there.

    No compensation is attempted; steps completed before this one stay
    completed on the remote system.

    Attributes:
        step: Name of the failing step
        code: Last result code observed, None for transport failures
    """

    reason = "failed"

    def __init__(self, step: str, code: int | None, detail: str = ""):
        self.step = step
        self.code = code
        self.detail = detail
        message = f"Step '{step}' {self.reason} ({describe_code(code)})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FatalRemoteConditionError(WorkflowError):
    """The remote answered with a code the policy lists as fatal."""

    reason = "aborted on fatal remote condition"


class UnclassifiedConditionError(WorkflowError):
    """The remote answered with a code the policy does not mention."""

    reason = "aborted on unclassified result code"


class TransportError(WorkflowError):
    """No status code could be obtained for the remote call."""

    reason = "aborted on transport failure"


class RetriesExhaustedError(WorkflowError):
    """Every attempt in the policy's budget came back transient."""

    reason = "exhausted its retry budget"

    def __init__(self, step: str, code: int | None, attempts: int):
        self.attempts = attempts
        super().__init__(step, code, f"gave up after {attempts} attempts")


class WorkflowCancelledError(WorkflowError):
    """The run was cancelled cooperatively while waiting to retry."""

    reason = "was cancelled"


class PagingError(VaultCycleError):
    """A listing handed back a continuation cursor it had already issued."""

    def __init__(self, cursor: str, pages: int):
        self.cursor = cursor
        self.pages = pages
        super().__init__(f"Listing repeated cursor {cursor!r} after {pages} page(s)")
