"""
Cross-cutting types for vaultcycle:
- ClientContext: Caller identity and target vault, built once by the driver
- VaultCycleError and its subclasses: what failed remote calls and
  failed workflow steps surface as
"""

from vaultcycle.core.context import ClientContext
from vaultcycle.core.errors import (
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

__all__ = [
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
]
