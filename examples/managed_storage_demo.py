"""
Managed Storage Account Lifecycle Demonstration

Runs the full lifecycle of a vault-managed storage account, then of a SAS
definition under it, against an in-memory vault whose reads lag behind
its writes.

Scenario:
- Every delete, recover and purge becomes visible only after 2 reads
- Checkpoints wait out the lag under the soft-delete retry policies
- The retry delay is shortened through VAULTCYCLE_SOFT_DELETE_INITIAL_DELAY
- A second run injects a forbidden purge to show a fatal stop

Key Features:
- Bounded, observable retries (each wait is logged)
- Step journal with attempts and lifecycle phase per step
- Short-lived access token read from the SAS definition's secret

Run:
    VAULTCYCLE_SOFT_DELETE_INITIAL_DELAY=0.2 PYTHONPATH=src python examples/managed_storage_demo.py
"""

import asyncio
import logging
import time
from datetime import timedelta

from vaultcycle import (
    InMemoryVault,
    LifecycleOrchestrator,
    ResultCode,
    RetryPolicies,
    SasDefinitionProperties,
    SasPlan,
    SasType,
    StorageAccountProperties,
    WorkflowError,
    WorkflowPlan,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

RESOURCE_ID = (
    "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/sample"
    "/providers/Microsoft.Storage/storageAccounts/samplestorage"
)


def build_plan(vault: InMemoryVault, account_name: str) -> WorkflowPlan:
    return WorkflowPlan(
        container_uri=vault.container_uri,
        account_name=account_name,
        account=StorageAccountProperties(resource_id=RESOURCE_ID),
        sas=SasPlan(
            name="blobsas",
            properties=SasDefinitionProperties(
                template_uri="?sv=2017-07-29&ss=b&srt=sco&sp=rl&spr=https",
                sas_type=SasType.ACCOUNT,
                validity_period=timedelta(hours=2),
            ),
        ),
        confirm_purge=True,
    )


async def main():
    policies = RetryPolicies.from_env()
    logger.info(f"Presence policy: {policies.presence!r}")

    # Successful run
    vault = InMemoryVault(consistency_lag=2)
    orchestrator = LifecycleOrchestrator(vault, policies)

    start = time.time()
    report = await orchestrator.run(build_plan(vault, "msakmgmtsample"))
    duration = time.time() - start

    print("\nStorage account steps:")
    for step in report.steps:
        print(f"  {step}")
    print("SAS definition steps:")
    for step in report.sas.steps:
        print(f"  {step}")
    print(f"Access token: {report.sas.access_token}")
    print(f"Remote calls: {report.total_attempts + report.sas.total_attempts}")
    print(f"Duration: {duration:.2f}s")

    # Fatal purge
    vault = InMemoryVault(consistency_lag=1)
    vault.inject("purge", ResultCode.FORBIDDEN)
    try:
        await LifecycleOrchestrator(vault, policies).run(build_plan(vault, "msakdenied"))
    except WorkflowError as e:
        print(f"\nSecond run stopped at '{e.step}': {e}")


if __name__ == "__main__":
    asyncio.run(main())
