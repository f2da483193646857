"""Tests for the SAS definition stage nested under a storage account."""

import pytest
from conftest import ACCOUNT_NAME, CONTAINER_URI, SAS_TEMPLATE, make_orchestrator

from vaultcycle.client.memory import InMemoryVault
from vaultcycle.core.errors import FatalRemoteConditionError
from vaultcycle.models import LifecyclePhase, ManagedResourceRef, ResultCode
from vaultcycle.workflow import WorkflowPlan

SAS_SOFT_DELETE_STEPS = [
    "search",
    "create",
    "get",
    "get secret",
    "delete",
    "verify soft-deleted",
    "recover",
    "verify recovered",
]


@pytest.fixture
def sas_workflow_plan(plan, sas_plan):
    return WorkflowPlan(plan.container_uri, plan.account_name, plan.account, sas=sas_plan)


@pytest.fixture
def sas_ref():
    return ManagedResourceRef.sas_definition(CONTAINER_URI, ACCOUNT_NAME, "blobsas")


@pytest.mark.asyncio
async def test_sas_stage_runs_after_storage_account(vault, executor, sas_workflow_plan):
    report = await make_orchestrator(vault, executor).run(sas_workflow_plan)

    assert report.sas is not None
    assert report.sas.step_names == SAS_SOFT_DELETE_STEPS
    assert report.sas.phase is LifecyclePhase.ACTIVE
    assert report.step_names[-1] == "restore"


@pytest.mark.asyncio
async def test_access_token_is_derived_from_template(vault, executor, sas_workflow_plan):
    report = await make_orchestrator(vault, executor).run(sas_workflow_plan)

    token = report.sas.access_token
    assert token.startswith(SAS_TEMPLATE)
    assert "&kvsig=" in token
    assert vault.calls_to("get_secret_value") == [f"get_secret_value {ACCOUNT_NAME}-blobsas"]


@pytest.mark.asyncio
async def test_sas_stage_waits_out_consistency_lag(lagging_vault, executor, sas_workflow_plan):
    report = await make_orchestrator(lagging_vault, executor).run(sas_workflow_plan)

    assert report.sas.step("verify soft-deleted").attempts == 3
    assert report.sas.step("verify recovered").attempts == 3


@pytest.mark.asyncio
async def test_enabled_definition_is_reused(vault, executor, plan, sas_plan, sas_ref):
    vault.seed(plan.account_ref)
    vault.seed(sas_ref, sas_plan.properties.to_payload())

    report = await make_orchestrator(vault, executor).run_sas_definition(
        CONTAINER_URI, ACCOUNT_NAME, sas_plan
    )

    assert report.step_names[0] == "read container"
    assert "create" not in report.step_names


@pytest.mark.asyncio
async def test_disabled_definition_is_recreated(vault, executor, plan, sas_plan, sas_ref):
    vault.seed(plan.account_ref)
    vault.seed(sas_ref, sas_plan.properties.to_payload(), enabled=False)

    report = await make_orchestrator(vault, executor).run_sas_definition(
        CONTAINER_URI, ACCOUNT_NAME, sas_plan
    )

    assert "create" in report.step_names
    assert report.access_token.startswith(SAS_TEMPLATE)


@pytest.mark.asyncio
async def test_missing_parent_account_fails_search(vault, executor, sas_plan):
    with pytest.raises(FatalRemoteConditionError) as exc_info:
        await make_orchestrator(vault, executor).run_sas_definition(
            CONTAINER_URI, ACCOUNT_NAME, sas_plan
        )

    assert exc_info.value.step == "search"
    assert exc_info.value.code == ResultCode.NOT_FOUND


@pytest.mark.asyncio
async def test_forbidden_secret_read_stops_stage(vault, executor, sas_workflow_plan):
    vault.inject("get_secret_value", ResultCode.FORBIDDEN)

    with pytest.raises(FatalRemoteConditionError) as exc_info:
        await make_orchestrator(vault, executor).run(sas_workflow_plan)

    assert exc_info.value.step == "get secret"


@pytest.mark.asyncio
async def test_sas_stage_without_soft_delete(executor, plan, sas_plan):
    vault = InMemoryVault(CONTAINER_URI, soft_delete_enabled=False)
    vault.seed(plan.account_ref)

    report = await make_orchestrator(vault, executor).run_sas_definition(
        CONTAINER_URI, ACCOUNT_NAME, sas_plan
    )

    assert report.step_names == [
        "read container",
        "search",
        "create",
        "get",
        "get secret",
        "delete",
    ]
    assert report.phase is LifecyclePhase.PURGED
