"""
Policy-driven retry of a single remote operation.

Drives one idempotent (or safely repeatable) remote call through repeated
attempts until its result code classifies as terminal:

- CONTINUE: return Succeeded immediately
- ABORT: return Aborted immediately, no wait and no further attempt
- RETRY: wait and try again while the budget lasts, else return Exhausted

Attempts for one execute() call are strictly sequential. The executor
holds no per-call state between calls, so a single instance can serve
any number of concurrent workflow runs.

Design: Information Hiding (Parnas)
Classification (policy.py), delay (backoff.py) and the loop (here) can
evolve independently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from vaultcycle.core.errors import RemoteError
from vaultcycle.executor.backoff import BackoffStrategy, ConstantBackoff, has_budget
from vaultcycle.executor.outcome import (
    Aborted,
    Cancelled,
    ErrorKind,
    Exhausted,
    Outcome,
    Succeeded,
)
from vaultcycle.executor.policy import Decision, classify
from vaultcycle.models.codes import describe_code
from vaultcycle.models.response import RemoteResponse
from vaultcycle.models.retry import RetryPolicy

logger = logging.getLogger(__name__)

__all__ = ["Operation", "RetryExecutor", "execute"]

Operation = Callable[[], Awaitable[RemoteResponse | tuple[int, Any]]]
Sleep = Callable[[float], Awaitable[Any]]

_ABORT_KINDS = {
    Decision.ABORT: ErrorKind.FATAL_REMOTE_CONDITION,
    Decision.ABORT_UNCLASSIFIED: ErrorKind.UNCLASSIFIED_CONDITION,
}


class RetryExecutor:
    """
    Runs operations under a RetryPolicy.

    Args:
        backoff: Strategy computing the wait before each retry
        sleep: Coroutine function used to wait (injectable for tests)

    Example:
        ```python
        executor = RetryExecutor()
        outcome = await executor.execute(
            policies.presence,
            lambda: client.get_deleted(ref),
            label="verify soft-deleted",
        )
        ```
    """

    def __init__(
        self,
        backoff: BackoffStrategy | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._backoff = backoff or ConstantBackoff()
        self._sleep = sleep

    def __repr__(self) -> str:
        return f"RetryExecutor(backoff={self._backoff!r})"

    async def execute(
        self,
        policy: RetryPolicy,
        operation: Operation,
        *,
        cancel_event: asyncio.Event | None = None,
        label: str = "operation",
    ) -> Outcome:
        """
        Attempt operation until a terminal outcome.

        A RemoteError raised by the operation is classified by its code;
        one without a code (transport failure) always aborts. Any other
        exception propagates untouched.

        Args:
            policy: Classification table and attempt budget
            operation: Zero-argument coroutine function issuing the call
            cancel_event: When set, the next wait or attempt is skipped
                and Cancelled is returned
            label: Name used in log lines

        Returns:
            Succeeded, Aborted, Exhausted or Cancelled
        """
        attempts = 0
        last_code: int | None = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"{label}: cancelled before attempt {attempts + 1}")
                return Cancelled(attempts=attempts, last_code=last_code)

            body: Any = None
            try:
                response = await operation()
            except RemoteError as e:
                attempts += 1
                if e.code is None:
                    logger.warning(f"{label}: transport failure on attempt {attempts}: {e}")
                    return Aborted(ErrorKind.TRANSPORT_ERROR, None, attempts, str(e))
                code = e.code
                message = str(e)
            else:
                attempts += 1
                if isinstance(response, tuple):
                    response = RemoteResponse(*response)
                code = response.code
                body = response.body
                message = ""

            last_code = code
            decision = classify(policy, code)
            logger.debug(
                f"{label}: attempt {attempts}/{policy.max_attempts} "
                f"answered {describe_code(code)} -> {decision}"
            )

            if decision is Decision.CONTINUE:
                return Succeeded(body=body, code=code, attempts=attempts)

            if decision.is_abort:
                kind = _ABORT_KINDS[decision]
                logger.warning(f"{label}: {kind} {describe_code(code)} on attempt {attempts}")
                return Aborted(kind, code, attempts, message)

            if not has_budget(policy, attempts):
                logger.warning(
                    f"{label}: still {describe_code(code)} after {attempts} attempts, giving up"
                )
                return Exhausted(code=code, attempts=attempts)

            delay = self._backoff.next_delay(policy, attempts)
            logger.info(
                f"{label}: {describe_code(code)} is transient, "
                f"retrying in {delay:.2f}s (attempt {attempts + 1}/{policy.max_attempts})"
            )
            if await self._wait(delay, cancel_event):
                logger.info(f"{label}: cancelled while waiting to retry")
                return Cancelled(attempts=attempts, last_code=last_code)

    async def _wait(self, delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep for delay seconds; True if cancel_event fired first."""
        if cancel_event is None:
            await self._sleep(delay)
            return False
        if cancel_event.is_set():
            return True

        sleep_task = asyncio.ensure_future(self._sleep(delay))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleep_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleep_task, cancel_task):
                if not task.done():
                    task.cancel()

        # A failing sleep propagates the same as it does without cancel_event
        if sleep_task.done() and not sleep_task.cancelled():
            sleep_task.result()
        return cancel_event.is_set()


async def execute(
    policy: RetryPolicy,
    operation: Operation,
    *,
    cancel_event: asyncio.Event | None = None,
    label: str = "operation",
) -> Outcome:
    """Run operation with a default RetryExecutor (constant back-off, real sleep)."""
    return await RetryExecutor().execute(
        policy, operation, cancel_event=cancel_event, label=label
    )
