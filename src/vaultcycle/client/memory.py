"""In-memory simulation of an eventually-consistent vault.

Design Pattern: Adapter Pattern
InMemoryVault adapts in-memory dictionaries to the RemoteClient interface.
It can be substituted for an SDK-backed client without changing the
orchestrator.

Eventual consistency is simulated per resource with read countdowns: after
a mutation, the view it produces stays invisible for consistency_lag reads
of that view (and a purged name stays blocked for restore for as many
attempts). With consistency_lag=0 every write is immediately visible.

Instance is immediately usable after __init__.
"""

from __future__ import annotations

import asyncio
import logging
import pickle
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import xxhash
from uuid_extensions import uuid7

from vaultcycle.client.base import ContainerInfo, RemoteClient
from vaultcycle.core.context import ClientContext
from vaultcycle.core.errors import RemoteError
from vaultcycle.models import (
    ManagedResourceRef,
    Page,
    RemoteResponse,
    ResourceItem,
    ResourceType,
    ResultCode,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_URI = "https://keyvaultsample.vault.azure.net/"
DEFAULT_PAGE_SIZE = 25

_DIGEST_SIZE = 8

_Key = tuple[ResourceType, str | None, str]

# Countdown kinds
_DELETED_APPEARS = "deleted-appears"
_ACTIVE_APPEARS = "active-appears"
_DELETED_LINGERS = "deleted-lingers"
_RESTORE_BLOCKED = "restore-blocked"


@dataclass
class _Entry:
    properties: dict[str, Any]
    enabled: bool = True
    version: str = field(default_factory=lambda: str(uuid7()))
    updated_at: datetime = field(default_factory=datetime.now)


def _key(ref: ManagedResourceRef) -> _Key:
    return (ref.resource_type, ref.parent_name, ref.name)


class InMemoryVault(RemoteClient):
    """
    Single-container vault held in memory, for tests and demos.

    Args:
        container_uri: URI of the one container this vault serves
        soft_delete_enabled: Whether delete is recoverable
        consistency_lag: Reads during which a new view stays invisible
        page_size: Items per listing page
        restore_pending_code: Code restore answers while a purge settles
        context: When given, container_uri is taken from context.vault_uri

    Usage:
        vault = InMemoryVault(consistency_lag=2)
        vault.inject("purge", ResultCode.FORBIDDEN)
        await vault.delete(ref)
    """

    def __init__(
        self,
        container_uri: str = DEFAULT_CONTAINER_URI,
        *,
        soft_delete_enabled: bool = True,
        consistency_lag: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        restore_pending_code: int = ResultCode.CONFLICT,
        context: ClientContext | None = None,
    ):
        if consistency_lag < 0:
            raise ValueError(f"consistency_lag must be >= 0, got {consistency_lag}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        self.context = context
        self.container_uri = context.vault_uri if context is not None else container_uri
        self.soft_delete_enabled = soft_delete_enabled
        self.consistency_lag = consistency_lag
        self.page_size = page_size
        self.restore_pending_code = restore_pending_code

        self._active: dict[_Key, _Entry] = {}
        self._deleted: dict[_Key, _Entry] = {}
        self._lingering: dict[_Key, _Entry] = {}
        self._countdowns: dict[tuple[str, _Key], int] = {}
        self._faults: dict[str, deque[int | None]] = defaultdict(deque)

        # Journal of calls, "<method> <resource>", in arrival order
        self.calls: list[str] = []

        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"InMemoryVault({self.container_uri!r})"

    # ========================================================================
    # Test hooks
    # ========================================================================

    def inject(self, method: str, *codes: int | None) -> None:
        """
        Make the next calls of method fail with the given codes, in order.

        None injects a transport failure (RemoteError without a code).
        """
        self._faults[method].extend(codes)

    def calls_to(self, method: str) -> list[str]:
        """Journal entries for one method."""
        return [call for call in self.calls if call.split(" ", 1)[0] == method]

    def seed(
        self,
        ref: ManagedResourceRef,
        properties: dict[str, Any] | None = None,
        *,
        enabled: bool = True,
    ) -> None:
        """Place an active resource directly, bypassing calls and faults."""
        self._active[_key(ref)] = _Entry(properties=dict(properties or {}), enabled=enabled)

    def phase_of(self, ref: ManagedResourceRef) -> str:
        """Settled server-side state: active, deleted or absent."""
        key = _key(ref)
        if key in self._active:
            return "active"
        if key in self._deleted:
            return "deleted"
        return "absent"

    # ========================================================================
    # Helpers
    # ========================================================================

    def _enter(self, method: str, subject: object) -> None:
        self.calls.append(f"{method} {subject}")
        faults = self._faults.get(method)
        if faults:
            code = faults.popleft()
            logger.debug(f"Injected {code} for {method} {subject}")
            raise RemoteError(code, f"injected failure for {method}")

    def _require_container(self, container_uri: str) -> None:
        if container_uri != self.container_uri:
            raise RemoteError(ResultCode.NOT_FOUND, f"vault {container_uri} not found")

    def _pending(self, kind: str, key: _Key) -> bool:
        """Consume one read of a countdown; True while it is still running."""
        remaining = self._countdowns.get((kind, key), 0)
        if remaining <= 0:
            return False
        self._countdowns[(kind, key)] = remaining - 1
        return True

    def _start(self, kind: str, key: _Key) -> None:
        if self.consistency_lag:
            self._countdowns[(kind, key)] = self.consistency_lag

    def _bundle(self, ref: ManagedResourceRef, entry: _Entry) -> dict[str, Any]:
        path = f"{ref.parent_name}/{ref.name}" if ref.parent_name else ref.name
        return {
            "id": f"{self.container_uri}{ref.resource_type.value}/{path}",
            "name": ref.name,
            "enabled": entry.enabled,
            "version": entry.version,
            "updated": entry.updated_at.isoformat(),
            **entry.properties,
        }

    @staticmethod
    def _apply(entry: _Entry, properties: dict[str, Any]) -> None:
        props = dict(properties)
        if "enabled" in props:
            entry.enabled = bool(props.pop("enabled"))
        entry.properties.update(props)
        entry.version = str(uuid7())
        entry.updated_at = datetime.now()

    # ========================================================================
    # RemoteClient
    # ========================================================================

    async def get_container(self, container_uri: str) -> RemoteResponse:
        async with self._lock:
            self._enter("get_container", container_uri)
            self._require_container(container_uri)
            info = ContainerInfo(
                uri=self.container_uri, soft_delete_enabled=self.soft_delete_enabled
            )
            return RemoteResponse(ResultCode.SUCCESS, info)

    async def list_page(
        self,
        container_uri: str,
        resource_type: ResourceType,
        parent_name: str | None = None,
        cursor: str | None = None,
    ) -> Page[ResourceItem]:
        async with self._lock:
            self._enter("list_page", f"{resource_type}:{parent_name or '*'}@{cursor or 0}")
            self._require_container(container_uri)

            if resource_type is ResourceType.SAS_DEFINITION:
                parent_key = (ResourceType.STORAGE_ACCOUNT, None, parent_name)
                if parent_key not in self._active:
                    raise RemoteError(ResultCode.NOT_FOUND, f"storage account {parent_name}")

            try:
                start = int(cursor) if cursor else 0
            except ValueError:
                raise RemoteError(ResultCode.BAD_REQUEST, f"invalid cursor {cursor!r}") from None

            matching = [
                ResourceItem(
                    name=name, enabled=entry.enabled, attributes={"version": entry.version}
                )
                for (kind, parent, name), entry in self._active.items()
                if kind is resource_type and parent == parent_name
            ]
            end = start + self.page_size
            next_cursor = str(end) if end < len(matching) else None
            return Page(items=tuple(matching[start:end]), next_cursor=next_cursor)

    async def get(self, ref: ManagedResourceRef) -> RemoteResponse:
        async with self._lock:
            self._enter("get", ref)
            self._require_container(ref.container_uri)
            key = _key(ref)
            if self._pending(_ACTIVE_APPEARS, key) or key not in self._active:
                raise RemoteError(ResultCode.NOT_FOUND, f"{ref} not found")
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, self._active[key]))

    async def get_deleted(self, ref: ManagedResourceRef) -> RemoteResponse:
        async with self._lock:
            self._enter("get_deleted", ref)
            self._require_container(ref.container_uri)
            key = _key(ref)
            if key in self._lingering:
                if self._pending(_DELETED_LINGERS, key):
                    stale = self._bundle(ref, self._lingering[key])
                    return RemoteResponse(ResultCode.SUCCESS, stale)
                del self._lingering[key]
            if self._pending(_DELETED_APPEARS, key) or key not in self._deleted:
                raise RemoteError(ResultCode.NOT_FOUND, f"deleted {ref} not found")
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, self._deleted[key]))

    async def create(self, ref: ManagedResourceRef, properties: dict[str, Any]) -> RemoteResponse:
        async with self._lock:
            self._enter("create", ref)
            self._require_container(ref.container_uri)
            key = _key(ref)

            if ref.resource_type is ResourceType.SAS_DEFINITION:
                parent_key = (ResourceType.STORAGE_ACCOUNT, None, ref.parent_name)
                if parent_key not in self._active:
                    raise RemoteError(ResultCode.NOT_FOUND, f"storage account {ref.parent_name}")
            if key in self._deleted:
                raise RemoteError(ResultCode.CONFLICT, f"{ref} is soft-deleted")

            # Set semantics: overwrite an existing active entry
            entry = self._active.get(key) or _Entry(properties={})
            self._apply(entry, {"enabled": True, **properties})
            self._active[key] = entry
            logger.debug(f"Created {ref}")
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, entry))

    async def update(self, ref: ManagedResourceRef, properties: dict[str, Any]) -> RemoteResponse:
        async with self._lock:
            self._enter("update", ref)
            self._require_container(ref.container_uri)
            entry = self._active.get(_key(ref))
            if entry is None:
                raise RemoteError(ResultCode.NOT_FOUND, f"{ref} not found")
            self._apply(entry, properties)
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, entry))

    async def delete(self, ref: ManagedResourceRef) -> RemoteResponse:
        async with self._lock:
            self._enter("delete", ref)
            self._require_container(ref.container_uri)
            key = _key(ref)
            entry = self._active.pop(key, None)
            if entry is None:
                raise RemoteError(ResultCode.NOT_FOUND, f"{ref} not found")

            if self.soft_delete_enabled:
                self._deleted[key] = entry
                self._start(_DELETED_APPEARS, key)
            else:
                self._start(_RESTORE_BLOCKED, key)
            logger.debug(f"Deleted {ref} (soft={self.soft_delete_enabled})")
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, entry))

    async def recover(self, ref: ManagedResourceRef) -> RemoteResponse:
        async with self._lock:
            self._enter("recover", ref)
            self._require_container(ref.container_uri)
            key = _key(ref)
            entry = self._deleted.pop(key, None)
            if entry is None:
                raise RemoteError(ResultCode.NOT_FOUND, f"deleted {ref} not found")
            self._active[key] = entry
            self._start(_ACTIVE_APPEARS, key)
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, entry))

    async def purge(self, ref: ManagedResourceRef) -> RemoteResponse:
        async with self._lock:
            self._enter("purge", ref)
            self._require_container(ref.container_uri)
            if not self.soft_delete_enabled:
                raise RemoteError(ResultCode.BAD_REQUEST, "soft delete is not enabled")
            key = _key(ref)
            entry = self._deleted.pop(key, None)
            if entry is None:
                raise RemoteError(ResultCode.NOT_FOUND, f"deleted {ref} not found")
            if self.consistency_lag:
                self._lingering[key] = entry
                self._start(_DELETED_LINGERS, key)
            self._start(_RESTORE_BLOCKED, key)
            return RemoteResponse(ResultCode.NO_CONTENT)

    async def backup(self, ref: ManagedResourceRef) -> RemoteResponse:
        async with self._lock:
            self._enter("backup", ref)
            self._require_container(ref.container_uri)
            if ref.resource_type is not ResourceType.STORAGE_ACCOUNT:
                raise RemoteError(
                    ResultCode.BAD_REQUEST, f"{ref.resource_type} cannot be backed up"
                )
            entry = self._active.get(_key(ref))
            if entry is None:
                raise RemoteError(ResultCode.NOT_FOUND, f"{ref} not found")

            payload = pickle.dumps(
                {
                    "container_uri": ref.container_uri,
                    "name": ref.name,
                    "properties": dict(entry.properties),
                    "enabled": entry.enabled,
                }
            )
            snapshot = xxhash.xxh64(payload).digest() + payload
            return RemoteResponse(ResultCode.SUCCESS, snapshot)

    async def restore(self, container_uri: str, snapshot: bytes) -> RemoteResponse:
        async with self._lock:
            self._enter("restore", container_uri)
            self._require_container(container_uri)

            digest, payload = snapshot[:_DIGEST_SIZE], snapshot[_DIGEST_SIZE:]
            if not payload or xxhash.xxh64(payload).digest() != digest:
                raise RemoteError(ResultCode.BAD_REQUEST, "snapshot is corrupt")
            data = pickle.loads(payload)
            if data["container_uri"] != container_uri:
                raise RemoteError(ResultCode.BAD_REQUEST, "snapshot belongs to another vault")

            ref = ManagedResourceRef.storage_account(container_uri, data["name"])
            key = _key(ref)
            if self._pending(_RESTORE_BLOCKED, key):
                raise RemoteError(self.restore_pending_code, f"{ref} is still being purged")
            if key in self._active or key in self._deleted:
                raise RemoteError(ResultCode.CONFLICT, f"{ref} already exists")

            entry = _Entry(properties=data["properties"], enabled=data["enabled"])
            self._active[key] = entry
            logger.debug(f"Restored {ref}")
            return RemoteResponse(ResultCode.SUCCESS, self._bundle(ref, entry))

    async def get_secret_value(self, container_uri: str, secret_name: str) -> RemoteResponse:
        async with self._lock:
            self._enter("get_secret_value", secret_name)
            self._require_container(container_uri)
            for (kind, parent, name), entry in self._active.items():
                if kind is ResourceType.SAS_DEFINITION and f"{parent}-{name}" == secret_name:
                    if not entry.enabled:
                        raise RemoteError(ResultCode.FORBIDDEN, f"{secret_name} is disabled")
                    template = entry.properties.get("templateUri", "")
                    signature = xxhash.xxh64_hexdigest(f"{secret_name}:{entry.version}")
                    return RemoteResponse(ResultCode.SUCCESS, f"{template}&kvsig={signature}")
            raise RemoteError(ResultCode.NOT_FOUND, f"secret {secret_name} not found")
