"""
Lifecycle workflows over an eventually-consistent remote API.

- LifecycleOrchestrator: Runs the storage account and SAS definition stages
- WorkflowPlan / SasPlan: Names and payloads for one run
- WorkflowReport / StepRecord: Journal of what a run did
"""

from vaultcycle.workflow.orchestrator import (
    DIRECT_CALL_POLICY,
    LifecycleOrchestrator,
    SasPlan,
    WorkflowPlan,
)
from vaultcycle.workflow.report import StepRecord, WorkflowReport

__all__ = [
    "DIRECT_CALL_POLICY",
    "LifecycleOrchestrator",
    "SasPlan",
    "WorkflowPlan",
    "StepRecord",
    "WorkflowReport",
]
