"""Tests for the in-memory vault simulation."""

import pytest
from conftest import ACCOUNT_NAME, CONTAINER_URI

from vaultcycle.client.memory import InMemoryVault
from vaultcycle.core.context import ClientContext
from vaultcycle.core.errors import RemoteError
from vaultcycle.models import ManagedResourceRef, ResourceType, ResultCode


@pytest.fixture
def ref():
    return ManagedResourceRef.storage_account(CONTAINER_URI, ACCOUNT_NAME)


@pytest.fixture
def sas_ref():
    return ManagedResourceRef.sas_definition(CONTAINER_URI, ACCOUNT_NAME, "blobsas")


def test_rejects_invalid_settings():
    with pytest.raises(ValueError):
        InMemoryVault(consistency_lag=-1)
    with pytest.raises(ValueError):
        InMemoryVault(page_size=0)


def test_container_uri_from_context():
    context = ClientContext.build("t", "a", "s", "sub", "rg", "sa", "/id", vault_name="other")
    assert InMemoryVault(context=context).container_uri == "https://other.vault.azure.net/"


@pytest.mark.asyncio
async def test_get_container_reports_soft_delete(vault):
    response = await vault.get_container(CONTAINER_URI)

    assert response.code == ResultCode.SUCCESS
    assert response.body.soft_delete_enabled


@pytest.mark.asyncio
async def test_unknown_container_is_not_found(vault):
    with pytest.raises(RemoteError) as exc_info:
        await vault.get_container("https://elsewhere.vault.azure.net/")
    assert exc_info.value.code == ResultCode.NOT_FOUND


@pytest.mark.asyncio
async def test_create_get_update(vault, ref):
    await vault.create(ref, {"activeKeyName": "key1"})
    await vault.update(ref, {"activeKeyName": "key2"})

    response = await vault.get(ref)

    assert response.code == ResultCode.SUCCESS
    assert response.body["activeKeyName"] == "key2"
    assert response.body["name"] == ACCOUNT_NAME


@pytest.mark.asyncio
async def test_update_missing_resource_is_not_found(vault, ref):
    with pytest.raises(RemoteError) as exc_info:
        await vault.update(ref, {})
    assert exc_info.value.code == ResultCode.NOT_FOUND


@pytest.mark.asyncio
async def test_listing_is_paged(ref):
    vault = InMemoryVault(CONTAINER_URI, page_size=2)
    for index in range(5):
        vault.seed(ManagedResourceRef.storage_account(CONTAINER_URI, f"sa{index}"))

    first = await vault.list_page(CONTAINER_URI, ResourceType.STORAGE_ACCOUNT)
    last = await vault.list_page(CONTAINER_URI, ResourceType.STORAGE_ACCOUNT, cursor="4")

    assert [item.name for item in first.items] == ["sa0", "sa1"]
    assert first.next_cursor == "2"
    assert [item.name for item in last.items] == ["sa4"]
    assert last.is_last


@pytest.mark.asyncio
async def test_invalid_cursor_is_bad_request(vault):
    with pytest.raises(RemoteError) as exc_info:
        await vault.list_page(CONTAINER_URI, ResourceType.STORAGE_ACCOUNT, cursor="next")
    assert exc_info.value.code == ResultCode.BAD_REQUEST


@pytest.mark.asyncio
async def test_sas_listing_requires_parent(vault):
    with pytest.raises(RemoteError) as exc_info:
        await vault.list_page(CONTAINER_URI, ResourceType.SAS_DEFINITION, ACCOUNT_NAME)
    assert exc_info.value.code == ResultCode.NOT_FOUND


@pytest.mark.asyncio
async def test_soft_delete_recover_cycle(vault, ref):
    vault.seed(ref)

    await vault.delete(ref)
    assert vault.phase_of(ref) == "deleted"
    assert (await vault.get_deleted(ref)).code == ResultCode.SUCCESS

    await vault.recover(ref)
    assert vault.phase_of(ref) == "active"
    assert (await vault.get(ref)).code == ResultCode.SUCCESS


@pytest.mark.asyncio
async def test_deleted_view_lags_behind_delete(lagging_vault, ref):
    lagging_vault.seed(ref)
    await lagging_vault.delete(ref)

    for _ in range(2):
        with pytest.raises(RemoteError) as exc_info:
            await lagging_vault.get_deleted(ref)
        assert exc_info.value.code == ResultCode.NOT_FOUND

    assert (await lagging_vault.get_deleted(ref)).code == ResultCode.SUCCESS


@pytest.mark.asyncio
async def test_create_over_soft_deleted_name_conflicts(vault, ref):
    vault.seed(ref)
    await vault.delete(ref)

    with pytest.raises(RemoteError) as exc_info:
        await vault.create(ref, {})
    assert exc_info.value.code == ResultCode.CONFLICT


@pytest.mark.asyncio
async def test_purge_requires_soft_delete(ref):
    vault = InMemoryVault(CONTAINER_URI, soft_delete_enabled=False)
    vault.seed(ref)

    await vault.delete(ref)

    assert vault.phase_of(ref) == "absent"
    with pytest.raises(RemoteError) as exc_info:
        await vault.purge(ref)
    assert exc_info.value.code == ResultCode.BAD_REQUEST


@pytest.mark.asyncio
async def test_purged_view_lingers_then_vanishes(lagging_vault, ref):
    lagging_vault.seed(ref)
    await lagging_vault.delete(ref)

    assert (await lagging_vault.purge(ref)).code == ResultCode.NO_CONTENT
    assert lagging_vault.phase_of(ref) == "absent"

    assert (await lagging_vault.get_deleted(ref)).code == ResultCode.SUCCESS
    assert (await lagging_vault.get_deleted(ref)).code == ResultCode.SUCCESS
    with pytest.raises(RemoteError):
        await lagging_vault.get_deleted(ref)


@pytest.mark.asyncio
async def test_backup_and_restore_after_purge(vault, ref):
    vault.seed(ref, {"activeKeyName": "key2"})
    snapshot = (await vault.backup(ref)).body

    await vault.delete(ref)
    await vault.purge(ref)
    response = await vault.restore(CONTAINER_URI, snapshot)

    assert response.code == ResultCode.SUCCESS
    assert vault.phase_of(ref) == "active"
    assert (await vault.get(ref)).body["activeKeyName"] == "key2"


@pytest.mark.asyncio
async def test_restore_blocked_while_purge_settles(ref):
    vault = InMemoryVault(
        CONTAINER_URI, consistency_lag=1, restore_pending_code=ResultCode.NOT_FOUND
    )
    vault.seed(ref)
    snapshot = (await vault.backup(ref)).body
    await vault.delete(ref)
    await vault.purge(ref)

    with pytest.raises(RemoteError) as exc_info:
        await vault.restore(CONTAINER_URI, snapshot)
    assert exc_info.value.code == ResultCode.NOT_FOUND

    assert (await vault.restore(CONTAINER_URI, snapshot)).code == ResultCode.SUCCESS


@pytest.mark.asyncio
async def test_restore_over_existing_resource_conflicts(vault, ref):
    vault.seed(ref)
    snapshot = (await vault.backup(ref)).body

    with pytest.raises(RemoteError) as exc_info:
        await vault.restore(CONTAINER_URI, snapshot)
    assert exc_info.value.code == ResultCode.CONFLICT


@pytest.mark.asyncio
async def test_corrupt_snapshot_is_bad_request(vault, ref):
    vault.seed(ref)
    snapshot = (await vault.backup(ref)).body
    tampered = snapshot[:-1] + bytes([snapshot[-1] ^ 0xFF])

    with pytest.raises(RemoteError) as exc_info:
        await vault.restore(CONTAINER_URI, tampered)
    assert exc_info.value.code == ResultCode.BAD_REQUEST


@pytest.mark.asyncio
async def test_sas_definitions_cannot_be_backed_up(vault, ref, sas_ref):
    vault.seed(ref)
    vault.seed(sas_ref, {"templateUri": "?sv=1"})

    with pytest.raises(RemoteError) as exc_info:
        await vault.backup(sas_ref)
    assert exc_info.value.code == ResultCode.BAD_REQUEST


@pytest.mark.asyncio
async def test_secret_value_follows_sas_template(vault, ref, sas_ref):
    vault.seed(ref)
    await vault.create(sas_ref, {"templateUri": "?sv=1&sp=r"})

    response = await vault.get_secret_value(CONTAINER_URI, sas_ref.secret_name)

    assert response.body.startswith("?sv=1&sp=r&kvsig=")


@pytest.mark.asyncio
async def test_disabled_sas_secret_is_forbidden(vault, ref, sas_ref):
    vault.seed(ref)
    vault.seed(sas_ref, {"templateUri": "?sv=1"}, enabled=False)

    with pytest.raises(RemoteError) as exc_info:
        await vault.get_secret_value(CONTAINER_URI, sas_ref.secret_name)
    assert exc_info.value.code == ResultCode.FORBIDDEN


@pytest.mark.asyncio
async def test_injected_faults_are_consumed_in_order(vault, ref):
    vault.seed(ref)
    vault.inject("get", ResultCode.CONFLICT, None)

    with pytest.raises(RemoteError) as first:
        await vault.get(ref)
    with pytest.raises(RemoteError) as second:
        await vault.get(ref)

    assert first.value.code == ResultCode.CONFLICT
    assert second.value.is_transport_failure
    assert (await vault.get(ref)).code == ResultCode.SUCCESS
    assert len(vault.calls_to("get")) == 3
