"""
Step journal of one workflow run.

Each orchestrator step appends a StepRecord; the report also tracks the
resource's LifecyclePhase and refuses transitions the lifecycle does not
have.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from vaultcycle.core.errors import LifecycleError
from vaultcycle.models import LifecyclePhase, ManagedResourceRef, describe_code

logger = logging.getLogger(__name__)

__all__ = ["StepRecord", "WorkflowReport"]


@dataclass(frozen=True)
class StepRecord:
    """
    One completed workflow step.

    Attributes:
        step: Step name ("verify soft-deleted", "purge", ...)
        attempts: Remote calls the step issued (1 for direct calls)
        phase: Lifecycle phase of the resource after the step
        code: Result code that completed the step
    """

    step: str
    attempts: int
    phase: LifecyclePhase
    code: int | None = None
    finished_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)

    def __str__(self) -> str:
        return (
            f"{self.step}: {describe_code(self.code)} after {self.attempts} attempt(s), "
            f"phase {self.phase}"
        )


@dataclass
class WorkflowReport:
    """
    What a workflow run did to one resource.

    Attributes:
        ref: The resource the run operated on
        phase: Current lifecycle phase
        steps: Completed steps in order
        snapshot: Snapshot handle from the backup step, if any
        access_token: Secret value fetched by the SAS stage, if any
        sas: Report of the SAS sub-workflow, if it ran
    """

    ref: ManagedResourceRef
    phase: LifecyclePhase = LifecyclePhase.ABSENT
    steps: list[StepRecord] = field(default_factory=list)
    snapshot: bytes | None = None
    access_token: str | None = None
    sas: WorkflowReport | None = None

    def record(
        self,
        step: str,
        *,
        attempts: int = 1,
        code: int | None = None,
        phase: LifecyclePhase | None = None,
    ) -> StepRecord:
        """
        Append a completed step, moving to phase when given.

        Raises:
            LifecycleError: If phase is not reachable from the current phase
        """
        if phase is not None:
            if not self.phase.can_transition_to(phase):
                raise LifecycleError(
                    f"{self.ref}: step '{step}' cannot move {self.phase} -> {phase}"
                )
            self.phase = phase

        entry = StepRecord(step=step, attempts=attempts, phase=self.phase, code=code)
        self.steps.append(entry)
        logger.info(f"{self.ref}: {entry}")
        return entry

    def step(self, name: str) -> StepRecord:
        """Last record of the named step."""
        for entry in reversed(self.steps):
            if entry.step == name:
                return entry
        raise KeyError(name)

    @property
    def step_names(self) -> list[str]:
        return [entry.step for entry in self.steps]

    @property
    def total_attempts(self) -> int:
        return sum(entry.attempts for entry in self.steps)
