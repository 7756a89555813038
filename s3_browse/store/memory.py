from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from hashlib import md5
from typing import TYPE_CHECKING

from ..conditions import Conditional
from ..models import (
    COLLECTION_MARKER,
    RESOURCE_TYPE,
    HttpMetadata,
    ListingPage,
    ObjectBody,
    StoreObject,
)
from ..ranges import range_from_headers, resolve_range
from . import RangeNotSatisfiableError, StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models import RequestedRange

LOG = logging.getLogger("s3_browse.store.memory")


@dataclass
class _Stored:
    data: bytes
    http_metadata: HttpMetadata
    custom_metadata: dict[str, str]
    etag: str
    uploaded: datetime


@dataclass
class InMemoryStore:
    """Dictionary-backed object store with paginated listings.

    Cursors are stringified offsets into the sorted listing, so a page size
    smaller than the listing forces truncated pages.
    """

    page_size: int = 1000
    chunk_size: int = 64 * 1024
    objects: dict[str, _Stored] = field(default_factory=dict)

    def put(
        self,
        key: str,
        data: bytes,
        *,
        http_metadata: HttpMetadata | None = None,
        custom_metadata: dict[str, str] | None = None,
        uploaded: datetime | None = None,
    ) -> None:
        self.objects[key] = _Stored(
            data=data,
            http_metadata=http_metadata or HttpMetadata(),
            custom_metadata=dict(custom_metadata or {}),
            etag=md5(data).hexdigest(),
            uploaded=uploaded or datetime.now(UTC),
        )

    def put_collection(self, key: str) -> None:
        self.put(key, b"", custom_metadata={RESOURCE_TYPE: COLLECTION_MARKER})

    async def list(
        self,
        prefix: str,
        delimiter: str | None = None,
        cursor: str | None = None,
    ) -> ListingPage:
        entries = self._entries(prefix, delimiter)
        try:
            start = int(cursor) if cursor else 0
        except ValueError as error:
            msg = f"invalid listing cursor {cursor!r}"
            raise StoreError(msg) from error

        page = entries[start : start + self.page_size]
        end = start + len(page)
        truncated = end < len(entries)
        LOG.debug(
            "list prefix=%r delimiter=%r cursor=%r -> %d entries (truncated=%s)",
            prefix,
            delimiter,
            cursor,
            len(page),
            truncated,
        )
        return ListingPage(
            objects=page, truncated=truncated, cursor=str(end) if truncated else None
        )

    async def get(
        self,
        key: str,
        conditional: Mapping[str, str] | None = None,
        range: Mapping[str, str] | None = None,
    ) -> StoreObject | None:
        stored = self.objects.get(key)
        if stored is None:
            return None

        obj = self._to_object(key, stored)
        condition = Conditional.from_headers(conditional)
        if condition is not None and not condition.matches(
            stored.etag, stored.uploaded
        ):
            LOG.debug("precondition failed for %s", key)
            return obj

        size = len(stored.data)
        requested = range_from_headers(range)
        if requested is not None and size == 0:
            requested = None
        if requested is not None and not _satisfiable(requested, size):
            raise RangeNotSatisfiableError(key, size)

        window = resolve_range(size, requested)
        obj.range = requested
        obj.body = ObjectBody(
            io.BytesIO(stored.data[window.offset : window.end + 1]), self.chunk_size
        )
        return obj

    def _entries(self, prefix: str, delimiter: str | None) -> list[StoreObject]:
        entries: dict[str, StoreObject] = {}
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix) :]
            if delimiter and delimiter in rest.rstrip(delimiter):
                group = prefix + rest.split(delimiter, 1)[0]
                if group in entries:
                    entries[group].is_collection = True
                elif group:
                    entries[group] = StoreObject(key=group, size=0, is_collection=True)
                continue

            obj = self._to_object(key, self.objects[key])
            if key.endswith("/"):
                # folder marker, listed under its own name
                obj.key = key.rstrip("/")
                obj.is_collection = True
                if not obj.key:
                    continue
            if obj.key in entries:
                obj.is_collection = obj.is_collection or entries[obj.key].is_collection
            entries[obj.key] = obj
        return sorted(entries.values(), key=lambda entry: entry.key)

    @staticmethod
    def _to_object(key: str, stored: _Stored) -> StoreObject:
        return StoreObject(
            key=key,
            size=len(stored.data),
            http_metadata=stored.http_metadata,
            custom_metadata=dict(stored.custom_metadata),
            etag=stored.etag,
            uploaded=stored.uploaded,
        )


def _satisfiable(requested: RequestedRange, size: int) -> bool:
    if requested.suffix is not None:
        return requested.suffix > 0
    if requested.length == 0:
        return False
    return (requested.offset or 0) < size
