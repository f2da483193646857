"""
Shapes of what a remote call hands back.

The core only looks at a response's code, and at a page's items and
continuation cursor; bodies are opaque to it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from vaultcycle.models.codes import describe_code

T = TypeVar("T")


@dataclass(frozen=True)
class RemoteResponse:
    """Status code plus optional body of one remote call."""

    code: int
    body: Any = None

    def __str__(self) -> str:
        return f"RemoteResponse({describe_code(self.code)})"


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a remote listing.

    next_cursor is opaque. None or an empty string means the listing ends
    with this page.
    """

    items: Sequence[T] = ()
    next_cursor: str | None = None

    @property
    def is_last(self) -> bool:
        return not self.next_cursor


@dataclass(frozen=True)
class ResourceItem:
    """
    Listing entry for a managed resource.

    Only name and enabled are read by the core; attributes carries
    whatever else the listing returned.
    """

    name: str
    enabled: bool = True
    attributes: dict[str, Any] = field(default_factory=dict, compare=False)
