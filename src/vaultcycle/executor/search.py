"""Forward-only search over a paged remote listing."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass
from typing import Generic, TypeVar

from vaultcycle.core.errors import PagingError
from vaultcycle.models.response import Page

logger = logging.getLogger(__name__)

__all__ = ["FetchPage", "SearchResult", "find_first", "iter_pages"]

T = TypeVar("T")

FetchPage = Callable[[str | None], Awaitable[Page[T]]]


@dataclass(frozen=True)
class SearchResult(Generic[T]):
    """Result of find_first: the match (if any) and how many pages it cost."""

    found: bool
    item: T | None = None
    pages_fetched: int = 0


async def iter_pages(fetch_page: FetchPage[T]) -> AsyncIterator[Page[T]]:
    """
    Yield pages lazily, starting from the initial page (cursor None).

    The next page is only requested when the consumer asks for it, and
    never after a page without a continuation cursor.

    Raises:
        PagingError: If the listing hands back a cursor it already issued
    """
    cursor: str | None = None
    seen: set[str] = set()
    while True:
        page = await fetch_page(cursor)
        yield page
        if page.is_last:
            return
        cursor = page.next_cursor
        if cursor in seen:
            raise PagingError(cursor, len(seen) + 1)
        seen.add(cursor)


async def find_first(
    fetch_page: FetchPage[T], predicate: Callable[[T], bool]
) -> SearchResult[T]:
    """
    Find the first listed item matching predicate.

    Items are scanned in listing order; once a match is found no further
    page is fetched.

    Example:
        ```python
        result = await find_first(
            lambda cursor: client.list_page(uri, ResourceType.STORAGE_ACCOUNT, cursor=cursor),
            lambda item: item.name == "msakmgmtsample",
        )
        if not result.found:
            await client.create(ref, properties)
        ```
    """
    pages = 0
    async with aclosing(iter_pages(fetch_page)) as listing:
        async for page in listing:
            pages += 1
            for item in page.items:
                if predicate(item):
                    logger.debug(f"Search matched on page {pages}")
                    return SearchResult(found=True, item=item, pages_fetched=pages)

    logger.debug(f"Search found no match in {pages} page(s)")
    return SearchResult(found=False, item=None, pages_fetched=pages)
