"""Tests for the in-memory object store."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from s3_browse.models import RequestedRange
from s3_browse.store import RangeNotSatisfiableError, StoreError
from s3_browse.store.memory import InMemoryStore


@pytest.fixture
def seeded() -> InMemoryStore:
    store = InMemoryStore(page_size=2)
    store.put("a.txt", b"aaa")
    store.put("b/one.txt", b"1")
    store.put("b/two.txt", b"22")
    store.put("c/", b"")
    store.put("d", b"marker")
    store.put("d/inner.txt", b"inner")
    return store


async def _all_keys(store: InMemoryStore, prefix: str, delimiter: str | None):
    keys, cursor = [], None
    while True:
        page = await store.list(prefix, delimiter=delimiter, cursor=cursor)
        keys.extend((obj.key, obj.is_collection) for obj in page.objects)
        assert all(obj.body is None for obj in page.objects)
        if not page.truncated:
            assert page.cursor is None
            return keys
        cursor = page.cursor


class TestListing:
    """Test delimiter grouping and pagination."""

    @pytest.mark.anyio
    async def test_delimited_root(self, seeded: InMemoryStore):
        keys = await _all_keys(seeded, "", "/")

        assert keys == [
            ("a.txt", False),
            ("b", True),
            ("c", True),
            ("d", True),
        ]

    @pytest.mark.anyio
    async def test_recursive_root(self, seeded: InMemoryStore):
        keys = [key for key, _ in await _all_keys(seeded, "", None)]

        assert keys == ["a.txt", "b/one.txt", "b/two.txt", "c", "d", "d/inner.txt"]

    @pytest.mark.anyio
    async def test_nested_prefix(self, seeded: InMemoryStore):
        keys = await _all_keys(seeded, "b/", "/")

        assert keys == [("b/one.txt", False), ("b/two.txt", False)]

    @pytest.mark.anyio
    async def test_folder_marker_lists_under_directory_name(self):
        store = InMemoryStore()
        store.put("docs/", b"")
        store.put("docs/a", b"a")

        keys = await _all_keys(store, "docs/", "/")

        assert keys == [("docs", True), ("docs/a", False)]

    @pytest.mark.anyio
    async def test_pages_are_truncated_by_page_size(self, seeded: InMemoryStore):
        page = await seeded.list("", delimiter="/")

        assert len(page.objects) == 2
        assert page.truncated is True
        assert page.cursor == "2"

    @pytest.mark.anyio
    async def test_invalid_cursor(self, seeded: InMemoryStore):
        with pytest.raises(StoreError, match="invalid listing cursor"):
            await seeded.list("", cursor="not-a-cursor")


class TestGet:
    """Test fetches, preconditions and ranges."""

    @pytest.fixture
    def store(self) -> InMemoryStore:
        store = InMemoryStore(chunk_size=4)
        store.put(
            "file.bin",
            b"0123456789",
            uploaded=datetime(2024, 1, 1, tzinfo=UTC),
        )
        store.put("empty", b"")
        return store

    @pytest.mark.anyio
    async def test_missing(self, store: InMemoryStore):
        assert await store.get("nope") is None

    @pytest.mark.anyio
    async def test_full_body_streams_in_chunks(self, store: InMemoryStore):
        obj = await store.get("file.bin")

        assert obj is not None
        assert obj.size == 10
        assert obj.range is None
        chunks = [chunk async for chunk in obj.body]
        assert chunks == [b"0123", b"4567", b"89"]
        assert obj.body.closed

    @pytest.mark.anyio
    async def test_range_slices_body(self, store: InMemoryStore):
        obj = await store.get("file.bin", range={"Range": "bytes=2-4"})

        assert obj.range == RequestedRange(offset=2, length=3)
        assert obj.size == 10
        assert await obj.body.read() == b"234"

    @pytest.mark.anyio
    async def test_suffix_longer_than_object(self, store: InMemoryStore):
        obj = await store.get("file.bin", range={"range": "bytes=-50"})

        assert await obj.body.read() == b"0123456789"

    @pytest.mark.anyio
    @pytest.mark.parametrize("header", ["bytes=10-", "bytes=-0", "bytes=20-30"])
    async def test_unsatisfiable(self, store: InMemoryStore, header: str):
        with pytest.raises(RangeNotSatisfiableError) as excinfo:
            await store.get("file.bin", range={"range": header})

        assert excinfo.value.size == 10

    @pytest.mark.anyio
    async def test_range_on_empty_object_is_ignored(self, store: InMemoryStore):
        obj = await store.get("empty", range={"range": "bytes=0-5"})

        assert obj.range is None
        assert await obj.body.read() == b""

    @pytest.mark.anyio
    async def test_failed_precondition_has_no_body(self, store: InMemoryStore):
        obj = await store.get("file.bin", conditional={"If-Match": '"other"'})

        assert obj is not None
        assert obj.body is None
        assert obj.size == 10

    @pytest.mark.anyio
    async def test_if_none_match_hit_has_no_body(self, store: InMemoryStore):
        etag = store.objects["file.bin"].etag

        obj = await store.get("file.bin", conditional={"If-None-Match": f'W/"{etag}"'})

        assert obj.body is None

    @pytest.mark.anyio
    async def test_unrelated_headers_are_not_preconditions(self, store: InMemoryStore):
        obj = await store.get("file.bin", conditional={"Accept": "*/*"})

        assert obj.body is not None
        await obj.body.aclose()
