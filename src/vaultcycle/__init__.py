"""
vaultcycle: Lifecycle orchestration for eventually-consistent vault APIs

Deletes, recovers and purges against a vault report success before reads
reflect them. vaultcycle decides, for every remote answer, whether it is
terminal success, a transient condition worth waiting out, or a fatal
failure, and retries with a bounded, observable budget.

Design Pattern: Façade Pattern
This module re-exports the pieces a driver needs, hiding the layout of
models, executor, client and workflow packages.

Example:
    ```python
    import asyncio
    from vaultcycle import (
        InMemoryVault,
        LifecycleOrchestrator,
        StorageAccountProperties,
        WorkflowPlan,
    )

    async def main():
        vault = InMemoryVault(consistency_lag=2)
        plan = WorkflowPlan(
            container_uri=vault.container_uri,
            account_name="msakmgmtsample",
            account=StorageAccountProperties(resource_id="/subscriptions/.../sa"),
        )
        report = await LifecycleOrchestrator(vault).run(plan)
        for step in report.steps:
            print(step)

    asyncio.run(main())
    ```
"""

# Models - dependency-free
from vaultcycle.models import (
    SUCCESS_CODES,
    LifecyclePhase,
    ManagedResourceRef,
    Page,
    RemoteResponse,
    ResourceItem,
    ResourceType,
    ResultCode,
    RetryPolicies,
    RetryPolicy,
    SasDefinitionProperties,
    SasType,
    StorageAccountProperties,
)

# Context and errors
from vaultcycle.core import (
    ClientContext,
    FatalRemoteConditionError,
    LifecycleError,
    PagingError,
    RemoteError,
    RetriesExhaustedError,
    TransportError,
    UnclassifiedConditionError,
    VaultCycleError,
    WorkflowCancelledError,
    WorkflowError,
)

# Execution primitives
from vaultcycle.executor import (
    Aborted,
    BackoffStrategy,
    Cancelled,
    ConstantBackoff,
    Decision,
    ErrorKind,
    Exhausted,
    ExponentialBackoff,
    Outcome,
    RetryExecutor,
    SearchResult,
    Succeeded,
    classify,
    execute,
    find_first,
    raise_for_outcome,
)

# Clients (Adapter pattern)
from vaultcycle.client import RemoteClient
from vaultcycle.client.memory import InMemoryVault

# Workflows
from vaultcycle.workflow import (
    LifecycleOrchestrator,
    SasPlan,
    StepRecord,
    WorkflowPlan,
    WorkflowReport,
)

# Version
__version__ = "0.1.0"

__all__ = [
    # Models
    "ResultCode",
    "SUCCESS_CODES",
    "RetryPolicy",
    "RetryPolicies",
    "ResourceType",
    "ManagedResourceRef",
    "LifecyclePhase",
    "SasType",
    "StorageAccountProperties",
    "SasDefinitionProperties",
    "RemoteResponse",
    "Page",
    "ResourceItem",

    # Context and errors
    "ClientContext",
    "VaultCycleError",
    "RemoteError",
    "LifecycleError",
    "PagingError",
    "WorkflowError",
    "FatalRemoteConditionError",
    "UnclassifiedConditionError",
    "TransportError",
    "RetriesExhaustedError",
    "WorkflowCancelledError",

    # Execution
    "Decision",
    "classify",
    "BackoffStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "RetryExecutor",
    "execute",
    "ErrorKind",
    "Succeeded",
    "Aborted",
    "Exhausted",
    "Cancelled",
    "Outcome",
    "raise_for_outcome",
    "SearchResult",
    "find_first",

    # Clients
    "RemoteClient",
    "InMemoryVault",

    # Workflows
    "LifecycleOrchestrator",
    "WorkflowPlan",
    "SasPlan",
    "WorkflowReport",
    "StepRecord",

    # Metadata
    "__version__",
]
