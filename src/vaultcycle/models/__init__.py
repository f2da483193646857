"""Core data models for lifecycle orchestration.

Defines result codes, retry policies and the identity and payload types of
vault-managed resources.

Design: Dependency-Free Models
These types have no dependencies on executor, client or workflow modules to
prevent circular imports and enable clean layering.
"""

from vaultcycle.models.codes import SUCCESS_CODES, ResultCode, describe_code, parse_code
from vaultcycle.models.resource import (
    LifecyclePhase,
    ManagedResourceRef,
    ResourceType,
    SasDefinitionProperties,
    SasType,
    StorageAccountProperties,
    iso_duration,
)
from vaultcycle.models.response import Page, RemoteResponse, ResourceItem
from vaultcycle.models.retry import (
    RetryPolicies,
    RetryPolicy,
    async_deletion_policy,
    presence_policy,
)

__all__ = [
    "ResultCode",
    "SUCCESS_CODES",
    "parse_code",
    "describe_code",
    "RetryPolicy",
    "RetryPolicies",
    "presence_policy",
    "async_deletion_policy",
    "ResourceType",
    "ManagedResourceRef",
    "LifecyclePhase",
    "SasType",
    "StorageAccountProperties",
    "SasDefinitionProperties",
    "iso_duration",
    "RemoteResponse",
    "Page",
    "ResourceItem",
]
