"""
Lifecycle orchestration of vault-managed storage accounts and SAS definitions.

Storage account stage, one step after another:

    read container → ensure exists (search, create-if-absent, get)
    → update (rotate key) → backup → delete
    → [soft delete enabled]
         verify soft-deleted → recover → verify recovered
         → delete (pass 2) → verify soft-deleted (pass 2) → purge
         → [confirm_purge] confirm purge
    → restore from snapshot

SAS definition stage (optional, nested under the storage account):

    ensure exists (search enabled definitions, create-if-absent, get)
    → get secret (the actual access token) → delete
    → [soft delete enabled] verify soft-deleted → recover → verify recovered

Every step needs something an earlier one produced (existence, snapshot
handle, secret name), so steps run strictly in order. Checkpoints that
observe eventually-consistent state run under a retry policy; direct calls
run under a single-attempt policy so all failures surface the same way.
The first failing step raises a WorkflowError; nothing is compensated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from vaultcycle.client.base import ContainerInfo, RemoteClient
from vaultcycle.core.context import ClientContext
from vaultcycle.core.errors import (
    FatalRemoteConditionError,
    PagingError,
    RemoteError,
    TransportError,
    UnclassifiedConditionError,
    WorkflowCancelledError,
    WorkflowError,
)
from vaultcycle.executor.outcome import raise_for_outcome
from vaultcycle.executor.policy import Decision, classify
from vaultcycle.executor.retry import Operation, RetryExecutor
from vaultcycle.executor.search import find_first
from vaultcycle.models import (
    SUCCESS_CODES,
    LifecyclePhase,
    ManagedResourceRef,
    ResourceItem,
    ResultCode,
    RetryPolicies,
    RetryPolicy,
    SasDefinitionProperties,
    StorageAccountProperties,
)
from vaultcycle.models.retry import ABORT_CODES
from vaultcycle.workflow.report import WorkflowReport

logger = logging.getLogger(__name__)

__all__ = ["DIRECT_CALL_POLICY", "SasPlan", "WorkflowPlan", "LifecycleOrchestrator"]

DEFAULT_MANAGED_STORAGE_NAME = "msakmgmtsample"

DIRECT_CALL_POLICY = RetryPolicy(
    initial_delay_seconds=0,
    max_attempts=1,
    continue_on=SUCCESS_CODES,
    abort_on=ABORT_CODES | {ResultCode.NOT_FOUND, ResultCode.CONFLICT},
)
"""One attempt, success codes only. Codes outside the vocabulary stay unclassified."""


@dataclass(frozen=True)
class SasPlan:
    """SAS definition to manage under the plan's storage account."""

    name: str
    properties: SasDefinitionProperties


@dataclass(frozen=True)
class WorkflowPlan:
    """
    Names and payloads for one workflow run.

    Attributes:
        container_uri: Vault holding the resources
        account_name: Name of the managed storage account
        account: Settings used when the account has to be created
        rotation: Settings for the mutate step (defaults to account.rotated())
        sas: SAS definition stage to run afterwards, if any
        confirm_purge: Wait for the deleted view to vanish before restoring
    """

    container_uri: str
    account_name: str
    account: StorageAccountProperties
    rotation: StorageAccountProperties | None = None
    sas: SasPlan | None = None
    confirm_purge: bool = False

    @classmethod
    def from_context(
        cls,
        context: ClientContext,
        account_name: str = DEFAULT_MANAGED_STORAGE_NAME,
        *,
        sas: SasPlan | None = None,
        confirm_purge: bool = False,
    ) -> WorkflowPlan:
        return cls(
            container_uri=context.vault_uri,
            account_name=account_name,
            account=StorageAccountProperties(resource_id=context.storage_account_resource_id),
            sas=sas,
            confirm_purge=confirm_purge,
        )

    @property
    def account_ref(self) -> ManagedResourceRef:
        return ManagedResourceRef.storage_account(self.container_uri, self.account_name)

    @property
    def rotation_settings(self) -> StorageAccountProperties:
        return self.rotation or self.account.rotated()


class LifecycleOrchestrator:
    """
    Drives the lifecycle workflow against a RemoteClient.

    Holds no per-run state: concurrent runs against different resources
    may share one orchestrator (and its policies) without coordination.

    Args:
        client: Remote API adapter
        policies: Named retry policies (defaults to RetryPolicies.DEFAULT)
        executor: RetryExecutor to use (defaults to constant back-off)
        cancel_event: Cooperative cancellation signal for every step

    Example:
        ```python
        orchestrator = LifecycleOrchestrator(InMemoryVault(consistency_lag=2))
        report = await orchestrator.run(plan)
        print(report.step_names)
        ```
    """

    def __init__(
        self,
        client: RemoteClient,
        policies: RetryPolicies | None = None,
        *,
        executor: RetryExecutor | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self.client = client
        self.policies = policies or RetryPolicies.DEFAULT
        self.executor = executor or RetryExecutor()
        self.cancel_event = cancel_event

    # ========================================================================
    # Workflows
    # ========================================================================

    async def run(self, plan: WorkflowPlan) -> WorkflowReport:
        """
        Run the storage account stage, then the SAS stage if planned.

        Returns:
            The storage account's WorkflowReport; report.sas holds the SAS
            stage's report when it ran.

        Raises:
            WorkflowError: From the first failing step
        """
        report = WorkflowReport(ref=plan.account_ref)
        container = await self._read_container(report, plan.container_uri)
        await self._storage_account_stage(report, plan, container)

        if plan.sas is not None:
            sas_ref = ManagedResourceRef.sas_definition(
                plan.container_uri, plan.account_name, plan.sas.name
            )
            report.sas = WorkflowReport(ref=sas_ref)
            await self._sas_stage(report.sas, plan.sas, container)

        logger.info(f"{report.ref}: workflow complete in {report.total_attempts} remote call(s)")
        return report

    async def run_storage_account(self, plan: WorkflowPlan) -> WorkflowReport:
        """Run only the storage account stage of plan."""
        report = WorkflowReport(ref=plan.account_ref)
        container = await self._read_container(report, plan.container_uri)
        await self._storage_account_stage(report, plan, container)
        return report

    async def run_sas_definition(
        self, container_uri: str, account_name: str, sas: SasPlan
    ) -> WorkflowReport:
        """Run only the SAS definition stage under an existing storage account."""
        ref = ManagedResourceRef.sas_definition(container_uri, account_name, sas.name)
        report = WorkflowReport(ref=ref)
        container = await self._read_container(report, container_uri)
        await self._sas_stage(report, sas, container)
        return report

    # ========================================================================
    # Stages
    # ========================================================================

    async def _storage_account_stage(
        self, report: WorkflowReport, plan: WorkflowPlan, container: ContainerInfo
    ) -> None:
        ref = report.ref
        client = self.client
        presence = self.policies.presence

        await self._ensure_exists(
            report,
            properties=plan.account.to_payload(),
            predicate=lambda item: item.name == ref.name,
        )

        await self._direct(
            report, "update", lambda: client.update(ref, plan.rotation_settings.to_payload())
        )

        report.snapshot = await self._direct(report, "backup", lambda: client.backup(ref))
        if not report.snapshot:
            raise UnclassifiedConditionError("backup", None, "backup returned no snapshot handle")

        if not container.soft_delete_enabled:
            await self._direct(
                report, "delete", lambda: client.delete(ref), phase=LifecyclePhase.PURGED
            )
        else:
            await self._direct(report, "delete", lambda: client.delete(ref))
            await self._checkpoint(
                report,
                "verify soft-deleted",
                presence,
                lambda: client.get_deleted(ref),
                phase=LifecyclePhase.SOFT_DELETED,
            )
            await self._direct(report, "recover", lambda: client.recover(ref))
            await self._checkpoint(
                report,
                "verify recovered",
                presence,
                lambda: client.get(ref),
                phase=LifecyclePhase.ACTIVE,
            )
            await self._direct(report, "delete (pass 2)", lambda: client.delete(ref))
            await self._checkpoint(
                report,
                "verify soft-deleted (pass 2)",
                presence,
                lambda: client.get_deleted(ref),
                phase=LifecyclePhase.SOFT_DELETED,
            )
            await self._direct(
                report, "purge", lambda: client.purge(ref), phase=LifecyclePhase.PURGED
            )
            if plan.confirm_purge:
                await self._checkpoint(
                    report,
                    "confirm purge",
                    self.policies.async_deletion,
                    lambda: client.get_deleted(ref),
                )

        snapshot = report.snapshot
        await self._checkpoint(
            report,
            "restore",
            self.policies.restore,
            lambda: client.restore(ref.container_uri, snapshot),
            phase=LifecyclePhase.ACTIVE,
        )

    async def _sas_stage(
        self, report: WorkflowReport, sas: SasPlan, container: ContainerInfo
    ) -> None:
        ref = report.ref
        client = self.client
        presence = self.policies.presence

        # A disabled definition is not usable: treat it as absent
        await self._ensure_exists(
            report,
            properties=sas.properties.to_payload(),
            predicate=lambda item: item.name == ref.name and item.enabled,
        )

        report.access_token = await self._direct(
            report,
            "get secret",
            lambda: client.get_secret_value(ref.container_uri, ref.secret_name),
        )

        if not container.soft_delete_enabled:
            await self._direct(
                report, "delete", lambda: client.delete(ref), phase=LifecyclePhase.PURGED
            )
            return

        await self._direct(report, "delete", lambda: client.delete(ref))
        await self._checkpoint(
            report,
            "verify soft-deleted",
            presence,
            lambda: client.get_deleted(ref),
            phase=LifecyclePhase.SOFT_DELETED,
        )
        await self._direct(report, "recover", lambda: client.recover(ref))
        await self._checkpoint(
            report,
            "verify recovered",
            presence,
            lambda: client.get(ref),
            phase=LifecyclePhase.ACTIVE,
        )

    # ========================================================================
    # Steps
    # ========================================================================

    async def _read_container(
        self, report: WorkflowReport, container_uri: str
    ) -> ContainerInfo:
        info = await self._direct(
            report, "read container", lambda: self.client.get_container(container_uri)
        )
        if not isinstance(info, ContainerInfo):
            raise UnclassifiedConditionError(
                "read container", None, "container properties missing from response"
            )
        logger.info(f"Operating on vault {info.uri} (soft delete: {info.soft_delete_enabled})")
        return info

    async def _ensure_exists(
        self,
        report: WorkflowReport,
        *,
        properties: dict[str, Any],
        predicate: Callable[[ResourceItem], bool],
    ) -> None:
        """Search the listing; create only when no usable match exists; then read it back."""
        ref = report.ref
        client = self.client

        self._check_cancelled("search")
        try:
            result = await find_first(
                lambda cursor: client.list_page(
                    ref.container_uri, ref.resource_type, ref.parent_name, cursor
                ),
                predicate,
            )
        except RemoteError as e:
            logger.error(f"{ref}: search failed: {e}")
            raise _direct_failure("search", e) from e
        except PagingError as e:
            logger.error(f"{ref}: search failed: {e}")
            raise UnclassifiedConditionError("search", None, str(e)) from e

        report.record("search", attempts=result.pages_fetched, code=ResultCode.SUCCESS)

        if not result.found:
            logger.info(f"{ref}: not found, creating")
            await self._direct(report, "create", lambda: client.create(ref, properties))

        await self._direct(report, "get", lambda: client.get(ref), phase=LifecyclePhase.ACTIVE)

    async def _direct(
        self,
        report: WorkflowReport,
        step: str,
        call: Operation,
        *,
        phase: LifecyclePhase | None = None,
    ) -> Any:
        """A single remote call; any non-success answer fails the step."""
        return await self._checkpoint(report, step, DIRECT_CALL_POLICY, call, phase=phase)

    async def _checkpoint(
        self,
        report: WorkflowReport,
        step: str,
        policy: RetryPolicy,
        call: Operation,
        *,
        phase: LifecyclePhase | None = None,
    ) -> Any:
        """Run call under policy, journal it, return its body or raise."""
        outcome = await self.executor.execute(
            policy, call, cancel_event=self.cancel_event, label=f"{report.ref}: {step}"
        )
        try:
            body = raise_for_outcome(outcome, step)
        except WorkflowError as e:
            logger.error(f"{report.ref}: workflow stopped: {e}")
            raise

        report.record(step, attempts=outcome.attempts, code=outcome.code, phase=phase)
        return body

    def _check_cancelled(self, step: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise WorkflowCancelledError(step, None)


def _direct_failure(step: str, error: RemoteError) -> WorkflowError:
    """Map a RemoteError from an unwrapped call onto the workflow taxonomy."""
    if error.code is None:
        return TransportError(step, None, error.message)
    if classify(DIRECT_CALL_POLICY, error.code) is Decision.ABORT:
        return FatalRemoteConditionError(step, error.code, error.message)
    return UnclassifiedConditionError(step, error.code, error.message)
