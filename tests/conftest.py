"""
Pytest configuration and fixtures for vaultcycle tests.

Provides simulated vaults, a sleep recorder standing in for asyncio.sleep,
scripted operations and reusable workflow plans.
"""

from collections.abc import Iterable
from datetime import timedelta

import pytest
from hypothesis import strategies as st

from vaultcycle.client.memory import InMemoryVault
from vaultcycle.core.errors import RemoteError
from vaultcycle.executor.retry import RetryExecutor
from vaultcycle.models import (
    RemoteResponse,
    ResultCode,
    RetryPolicies,
    RetryPolicy,
    SasDefinitionProperties,
    SasType,
    StorageAccountProperties,
)
from vaultcycle.workflow import LifecycleOrchestrator, SasPlan, WorkflowPlan

CONTAINER_URI = "https://keyvaultsample.vault.azure.net/"
ACCOUNT_NAME = "msakmgmtsample"
SAS_TEMPLATE = "?sv=2017-07-29&srt=sco&ss=bfqt&sp=racupwdl&spr=https"


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def count(self) -> int:
        return len(self.delays)


class ScriptedOperation:
    """
    Remote operation answering from a script.

    Each entry is a result code (returned as a RemoteResponse), a
    RemoteError to raise, or None for a transport failure. The last entry
    repeats once the script runs out.
    """

    def __init__(self, script: Iterable[int | RemoteError | None], body="payload"):
        self.script = list(script)
        self.body = body
        self.calls = 0

    async def __call__(self) -> RemoteResponse:
        entry = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if entry is None:
            raise RemoteError(None, "connection reset")
        if isinstance(entry, RemoteError):
            raise entry
        return RemoteResponse(entry, self.body)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def executor(sleep: SleepRecorder) -> RetryExecutor:
    """Constant back-off executor that never actually sleeps."""
    return RetryExecutor(sleep=sleep)


@pytest.fixture
def bounded_policy() -> RetryPolicy:
    """The bounded-attempts policy: wait for something to appear."""
    return RetryPolicy(
        initial_delay_seconds=15,
        max_attempts=3,
        continue_on={200},
        retry_on={409, 404},
        abort_on={400},
    )


@pytest.fixture
def disappearance_policy() -> RetryPolicy:
    """Wait for something to disappear: 404 is the good answer."""
    return RetryPolicy(
        initial_delay_seconds=15,
        max_attempts=3,
        continue_on={404},
        retry_on={200},
    )


@pytest.fixture
def vault() -> InMemoryVault:
    """Immediately consistent vault with soft delete enabled."""
    return InMemoryVault(CONTAINER_URI)


@pytest.fixture
def lagging_vault() -> InMemoryVault:
    """Vault whose new views stay invisible for two reads."""
    return InMemoryVault(CONTAINER_URI, consistency_lag=2)


@pytest.fixture
def account_properties() -> StorageAccountProperties:
    return StorageAccountProperties(
        resource_id="/subscriptions/0000/resourceGroups/rg/providers/"
        "Microsoft.Storage/storageAccounts/sample"
    )


@pytest.fixture
def sas_plan() -> SasPlan:
    return SasPlan(
        name="blobsas",
        properties=SasDefinitionProperties(
            template_uri=SAS_TEMPLATE,
            sas_type=SasType.ACCOUNT,
            validity_period=timedelta(days=1),
        ),
    )


@pytest.fixture
def plan(account_properties: StorageAccountProperties) -> WorkflowPlan:
    return WorkflowPlan(
        container_uri=CONTAINER_URI,
        account_name=ACCOUNT_NAME,
        account=account_properties,
    )


@pytest.fixture
def policies() -> RetryPolicies:
    return RetryPolicies.with_budget(initial_delay_seconds=15, max_attempts=3)


def make_orchestrator(vault, executor, policies=None, **kwargs) -> LifecycleOrchestrator:
    return LifecycleOrchestrator(vault, policies, executor=executor, **kwargs)


# Hypothesis strategies for property-based testing

VOCABULARY = [int(code) for code in ResultCode]

result_codes = st.one_of(st.sampled_from(VOCABULARY), st.integers(min_value=100, max_value=599))
code_sets = st.frozensets(result_codes, max_size=6)
