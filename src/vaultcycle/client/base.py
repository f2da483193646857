"""
RemoteClient - abstract interface to the resource-management API.

Design Pattern: Adapter Pattern
RemoteClient is the target interface the orchestrator depends on. A real
SDK-backed client and the InMemoryVault simulation both adapt to it, so
the orchestrator never knows how requests are authenticated or
serialized.

Contract shared by every method: either return a RemoteResponse, or raise
RemoteError carrying the status code (code=None for transport failures).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from vaultcycle.models import ManagedResourceRef, Page, RemoteResponse, ResourceItem, ResourceType


@dataclass(frozen=True)
class ContainerInfo:
    """Properties of the vault-like container the orchestrator needs."""

    uri: str
    soft_delete_enabled: bool = True


class RemoteClient(ABC):
    """
    Remote operations consumed by the lifecycle orchestrator.

    Implementations must be safe to share between concurrent workflow runs
    against different resources.
    """

    # ========================================================================
    # Container
    # ========================================================================

    @abstractmethod
    async def get_container(self, container_uri: str) -> RemoteResponse:
        """Read container properties; body is a ContainerInfo."""

    # ========================================================================
    # Listing
    # ========================================================================

    @abstractmethod
    async def list_page(
        self,
        container_uri: str,
        resource_type: ResourceType,
        parent_name: str | None = None,
        cursor: str | None = None,
    ) -> Page[ResourceItem]:
        """
        Fetch one page of a listing.

        Args:
            container_uri: Vault to list
            resource_type: Storage accounts, or SAS definitions of parent_name
            parent_name: Parent storage account for SAS definition listings
            cursor: None for the first page, else a previous next_cursor
        """

    # ========================================================================
    # Active and deleted views
    # ========================================================================

    @abstractmethod
    async def get(self, ref: ManagedResourceRef) -> RemoteResponse:
        """Read the active view of a resource."""

    @abstractmethod
    async def get_deleted(self, ref: ManagedResourceRef) -> RemoteResponse:
        """Read the soft-deleted view of a resource."""

    # ========================================================================
    # Mutations
    # ========================================================================

    @abstractmethod
    async def create(self, ref: ManagedResourceRef, properties: dict[str, Any]) -> RemoteResponse:
        """Create (or overwrite) a resource."""

    @abstractmethod
    async def update(self, ref: ManagedResourceRef, properties: dict[str, Any]) -> RemoteResponse:
        """Update an existing resource, e.g. rotate its active key."""

    @abstractmethod
    async def delete(self, ref: ManagedResourceRef) -> RemoteResponse:
        """Delete a resource (soft delete when the container supports it)."""

    @abstractmethod
    async def recover(self, ref: ManagedResourceRef) -> RemoteResponse:
        """Recover a soft-deleted resource."""

    @abstractmethod
    async def purge(self, ref: ManagedResourceRef) -> RemoteResponse:
        """Irreversibly remove a soft-deleted resource."""

    # ========================================================================
    # Snapshots and secrets
    # ========================================================================

    @abstractmethod
    async def backup(self, ref: ManagedResourceRef) -> RemoteResponse:
        """Back up a resource; body is an opaque snapshot handle."""

    @abstractmethod
    async def restore(self, container_uri: str, snapshot: bytes) -> RemoteResponse:
        """Restore a resource from a snapshot handle returned by backup()."""

    @abstractmethod
    async def get_secret_value(self, container_uri: str, secret_name: str) -> RemoteResponse:
        """Read a secret; body is its string value."""
