"""
Client context: who is calling, and against which vault.

One ClientContext is constructed by the driver and passed by reference to
whichever RemoteClient performs authentication. The orchestrator never
reads credentials; it only needs the container URI.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_LOCATION = "southcentralus"
DEFAULT_VAULT_NAME = "keyvaultsample"
VAULT_DNS_SUFFIX = "vault.azure.net"

ENV_PREFIX = "VAULTCYCLE_"


@dataclass(frozen=True)
class ClientContext:
    """
    Tenant, subscription, application identity and target vault.

    Use build() or from_env() rather than the constructor so required
    values are validated.
    """

    tenant_id: str
    app_id: str
    app_secret: str = field(repr=False)
    subscription_id: str
    resource_group: str
    storage_account_name: str
    storage_account_resource_id: str
    location: str = DEFAULT_LOCATION
    vault_name: str = DEFAULT_VAULT_NAME

    @classmethod
    def build(
        cls,
        tenant_id: str,
        app_id: str,
        app_secret: str,
        subscription_id: str,
        resource_group: str,
        storage_account_name: str,
        storage_account_resource_id: str,
        location: str | None = None,
        vault_name: str | None = None,
    ) -> ClientContext:
        """
        Validate and assemble a context.

        Raises:
            ValueError: Naming the first required value that is blank
        """
        required = {
            "tenant_id": tenant_id,
            "app_id": app_id,
            "app_secret": app_secret,
            "subscription_id": subscription_id,
            "resource_group": resource_group,
            "storage_account_name": storage_account_name,
            "storage_account_resource_id": storage_account_resource_id,
        }
        for name, value in required.items():
            if value is None or not str(value).strip():
                raise ValueError(f"{name} is required")

        return cls(
            tenant_id=tenant_id,
            app_id=app_id,
            app_secret=app_secret,
            subscription_id=subscription_id,
            resource_group=resource_group,
            storage_account_name=storage_account_name,
            storage_account_resource_id=storage_account_resource_id,
            location=location or DEFAULT_LOCATION,
            vault_name=vault_name or DEFAULT_VAULT_NAME,
        )

    @classmethod
    def from_env(cls) -> ClientContext:
        """Build a context from VAULTCYCLE_* environment variables."""

        def env(name: str) -> str:
            return os.getenv(ENV_PREFIX + name, "")

        return cls.build(
            tenant_id=env("TENANT_ID"),
            app_id=env("APP_ID"),
            app_secret=env("APP_SECRET"),
            subscription_id=env("SUBSCRIPTION_ID"),
            resource_group=env("RESOURCE_GROUP"),
            storage_account_name=env("STORAGE_ACCOUNT_NAME"),
            storage_account_resource_id=env("STORAGE_ACCOUNT_RESOURCE_ID"),
            location=env("LOCATION") or None,
            vault_name=env("VAULT_NAME") or None,
        )

    @property
    def vault_uri(self) -> str:
        return f"https://{self.vault_name}.{VAULT_DNS_SUFFIX}/"
