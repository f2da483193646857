"""Tests for lazy paged search."""

import pytest

from vaultcycle.core.errors import PagingError
from vaultcycle.executor.search import find_first, iter_pages
from vaultcycle.models import Page


class PagedListing:
    """Listing served from fixed pages; cursors are page indexes."""

    def __init__(self, pages):
        self.pages = pages
        self.cursors = []

    async def __call__(self, cursor):
        self.cursors.append(cursor)
        index = int(cursor) if cursor else 0
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return Page(items=tuple(self.pages[index]), next_cursor=next_cursor)


@pytest.mark.asyncio
async def test_stops_fetching_after_match():
    listing = PagedListing([["a", "b"], ["c", "d"], ["e"]])

    result = await find_first(listing, lambda item: item == "c")

    assert result.found
    assert result.item == "c"
    assert result.pages_fetched == 2
    assert listing.cursors == [None, "1"]


@pytest.mark.asyncio
async def test_scans_every_page_when_nothing_matches():
    listing = PagedListing([["a", "b"], ["c", "d"], ["e"]])

    result = await find_first(listing, lambda item: item == "z")

    assert not result.found
    assert result.item is None
    assert result.pages_fetched == 3
    assert listing.cursors == [None, "1", "2"]


@pytest.mark.asyncio
async def test_match_on_first_page_needs_one_fetch():
    listing = PagedListing([["a"], ["b"]])

    result = await find_first(listing, lambda item: item == "a")

    assert result.pages_fetched == 1
    assert listing.cursors == [None]


@pytest.mark.asyncio
async def test_returns_first_match_in_listing_order():
    listing = PagedListing([["x1", "y"], ["x2"]])

    result = await find_first(listing, lambda item: item.startswith("x"))

    assert result.item == "x1"


@pytest.mark.asyncio
async def test_empty_listing():
    listing = PagedListing([[]])

    result = await find_first(listing, lambda item: True)

    assert not result.found
    assert result.pages_fetched == 1


@pytest.mark.asyncio
async def test_empty_string_cursor_ends_listing():
    calls = []

    async def fetch(cursor):
        calls.append(cursor)
        return Page(items=("a",), next_cursor="")

    pages = [page async for page in iter_pages(fetch)]

    assert len(pages) == 1
    assert calls == [None]


@pytest.mark.asyncio
async def test_fetch_errors_propagate():
    async def fetch(cursor):
        if cursor:
            raise RuntimeError("listing broke")
        return Page(items=("a",), next_cursor="1")

    with pytest.raises(RuntimeError, match="listing broke"):
        await find_first(fetch, lambda item: item == "b")


@pytest.mark.asyncio
async def test_repeated_cursor_stops_the_listing():
    calls = []

    async def fetch(cursor):
        calls.append(cursor)
        return Page(items=("a",), next_cursor="same")

    with pytest.raises(PagingError) as exc_info:
        await find_first(fetch, lambda item: item == "z")

    assert calls == [None, "same"]
    assert exc_info.value.cursor == "same"
    assert exc_info.value.pages == 2


@pytest.mark.asyncio
async def test_cursor_cycle_is_detected():
    cycle = {None: "a", "a": "b", "b": "a"}
    calls = []

    async def fetch(cursor):
        calls.append(cursor)
        return Page(items=(), next_cursor=cycle[cursor])

    with pytest.raises(PagingError):
        await find_first(fetch, lambda item: True)

    assert calls == [None, "a", "b"]
