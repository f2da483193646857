"""
Identity and payload types for vault-managed resources.

Design: Dependency-Free Models
Nothing here performs I/O. A ManagedResourceRef is built by the
orchestrator from caller-supplied names and is never persisted; the remote
system is the system of record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any


class ResourceType(Enum):
    """Kinds of entities a vault-like container manages."""

    STORAGE_ACCOUNT = "storage"
    SAS_DEFINITION = "sas"

    def __str__(self) -> str:
        return self.value


class SasType(Enum):
    """Signature scope of a SAS definition (the remote API is case-sensitive)."""

    ACCOUNT = "account"
    SERVICE = "service"


class LifecyclePhase(Enum):
    """
    Observed state of one managed resource during a workflow run.

    Lifecycle:
    ABSENT → ACTIVE → SOFT_DELETED → ACTIVE → SOFT_DELETED → PURGED → ACTIVE

    The final PURGED → ACTIVE edge is the restore from snapshot. Without
    soft delete on the container, delete goes straight ACTIVE → PURGED.
    """

    ABSENT = "ABSENT"
    ACTIVE = "ACTIVE"
    SOFT_DELETED = "SOFT_DELETED"
    PURGED = "PURGED"

    def can_transition_to(self, target: LifecyclePhase) -> bool:
        return target is self or target in _TRANSITIONS[self]

    def __str__(self) -> str:
        return self.value


_TRANSITIONS: dict[LifecyclePhase, frozenset[LifecyclePhase]] = {
    LifecyclePhase.ABSENT: frozenset({LifecyclePhase.ACTIVE}),
    LifecyclePhase.ACTIVE: frozenset({LifecyclePhase.SOFT_DELETED, LifecyclePhase.PURGED}),
    LifecyclePhase.SOFT_DELETED: frozenset({LifecyclePhase.ACTIVE, LifecyclePhase.PURGED}),
    LifecyclePhase.PURGED: frozenset({LifecyclePhase.ACTIVE}),
}


@dataclass(frozen=True)
class ManagedResourceRef:
    """
    Identifies a named entity inside a vault-like container.

    SAS definitions live under a parent storage account, so parent_name is
    required for them and must be absent for storage accounts.
    """

    container_uri: str
    resource_type: ResourceType
    name: str
    parent_name: str | None = None

    def __post_init__(self) -> None:
        if not self.container_uri.strip():
            raise ValueError("container_uri must not be blank")
        if not self.name.strip():
            raise ValueError("name must not be blank")
        if self.resource_type is ResourceType.SAS_DEFINITION and not self.parent_name:
            raise ValueError("A SAS definition needs its parent storage account name")
        if self.resource_type is ResourceType.STORAGE_ACCOUNT and self.parent_name:
            raise ValueError("A storage account has no parent")

    @classmethod
    def storage_account(cls, container_uri: str, name: str) -> ManagedResourceRef:
        return cls(container_uri, ResourceType.STORAGE_ACCOUNT, name)

    @classmethod
    def sas_definition(
        cls, container_uri: str, account_name: str, name: str
    ) -> ManagedResourceRef:
        return cls(container_uri, ResourceType.SAS_DEFINITION, name, parent_name=account_name)

    @property
    def secret_name(self) -> str:
        """Name of the secret backing a SAS definition's access token."""
        if self.resource_type is not ResourceType.SAS_DEFINITION:
            raise ValueError(f"{self} has no associated secret")
        return f"{self.parent_name}-{self.name}"

    def __str__(self) -> str:
        if self.parent_name:
            return f"{self.resource_type}:{self.parent_name}/{self.name}"
        return f"{self.resource_type}:{self.name}"


def iso_duration(period: timedelta) -> str:
    """
    Format a period as an ISO-8601 duration ("P30D", "PT1H30M").

    Only whole seconds are kept; negative periods are rejected.
    """
    total = int(period.total_seconds())
    if total < 0:
        raise ValueError(f"Period must not be negative: {period}")

    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    text = "P"
    if days:
        text += f"{days}D"
    if hours or minutes or seconds or not days:
        text += "T"
        if hours:
            text += f"{hours}H"
        if minutes:
            text += f"{minutes}M"
        if seconds or not (hours or minutes):
            text += f"{seconds}S"
    return text


@dataclass(frozen=True)
class StorageAccountProperties:
    """Key management settings for a vault-managed storage account."""

    resource_id: str
    active_key_name: str = "key1"
    auto_regenerate_key: bool = True
    regeneration_period: timedelta = timedelta(days=30)

    def rotated(
        self, key_name: str = "key2", period: timedelta = timedelta(days=60)
    ) -> StorageAccountProperties:
        """Settings for an on-demand rotation to another key."""
        return StorageAccountProperties(
            resource_id=self.resource_id,
            active_key_name=key_name,
            auto_regenerate_key=self.auto_regenerate_key,
            regeneration_period=period,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "resourceId": self.resource_id,
            "activeKeyName": self.active_key_name,
            "autoRegenerateKey": self.auto_regenerate_key,
            "regenerationPeriod": iso_duration(self.regeneration_period),
        }


@dataclass(frozen=True)
class SasDefinitionProperties:
    """Template and validity of a SAS definition."""

    template_uri: str
    sas_type: SasType = SasType.ACCOUNT
    validity_period: timedelta = timedelta(days=1)

    def to_payload(self) -> dict[str, Any]:
        return {
            "templateUri": self.template_uri,
            "sasType": self.sas_type.value,
            "validityPeriod": iso_duration(self.validity_period),
        }
