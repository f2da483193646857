"""Remote clients for the resource-management API.

Provides the interface the orchestrator depends on, and implementations:
    - RemoteClient: Abstract interface
    - InMemoryVault: Eventually-consistent in-memory simulation

Design: Adapter Pattern + Dependency Inversion (SOLID)
    The orchestrator depends on RemoteClient, not on a concrete client,
    so an SDK-backed client and the simulation are interchangeable.
"""

from vaultcycle.client.base import ContainerInfo, RemoteClient


def __getattr__(name: str):
    """Lazy import of implementations so the interface stays import-light."""
    if name == "InMemoryVault":
        from vaultcycle.client.memory import InMemoryVault

        return InMemoryVault
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ContainerInfo",
    "RemoteClient",
    "InMemoryVault",
]
