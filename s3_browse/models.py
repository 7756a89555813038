from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, BinaryIO

from anyio import to_thread

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from datetime import datetime

RESOURCE_TYPE = "resourcetype"
COLLECTION_MARKER = "<collection />"


async def run_sync(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    return await to_thread.run_sync(func, *args, **kwargs)


@dataclass(frozen=True)
class RequestedRange:
    """A byte range in one of three shapes: offset/length, length only, or suffix."""

    offset: int | None = None
    length: int | None = None
    suffix: int | None = None

    def __post_init__(self) -> None:
        if self.suffix is not None:
            if self.offset is not None or self.length is not None:
                msg = "suffix range cannot be combined with offset or length"
                raise ValueError(msg)
        elif self.offset is None and self.length is None:
            msg = "range needs an offset, a length or a suffix"
            raise ValueError(msg)
        for name in ("offset", "length", "suffix"):
            value = getattr(self, name)
            if value is not None and value < 0:
                msg = f"range {name} must be non-negative"
                raise ValueError(msg)


@dataclass(frozen=True)
class HttpMetadata:
    content_type: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None
    content_language: str | None = None
    cache_control: str | None = None
    cache_expiry: datetime | None = None


class ObjectBody:
    """Async byte stream over a blocking file-like reader.

    Reads happen in worker threads. The reader is closed once the stream is
    exhausted or when ``aclose`` is called, whichever comes first.
    """

    def __init__(self, reader: BinaryIO | Any, chunk_size: int = 64 * 1024):
        self._reader = reader
        self._chunk_size = chunk_size
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            while not self._closed:
                chunk = await run_sync(self._reader.read, self._chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await run_sync(self._reader.close)

    @property
    def closed(self) -> bool:
        return self._closed


@dataclass
class StoreObject:
    """One entry of the object store, as listed or fetched."""

    key: str
    size: int
    http_metadata: HttpMetadata = field(default_factory=HttpMetadata)
    custom_metadata: dict[str, str] = field(default_factory=dict)
    etag: str | None = None
    uploaded: datetime | None = None
    range: RequestedRange | None = None
    body: ObjectBody | None = None
    is_collection: bool = False

    def __post_init__(self) -> None:
        if not self.key:
            msg = "object key must not be empty"
            raise ValueError(msg)
        if self.size < 0:
            msg = "object size must be non-negative"
            raise ValueError(msg)
        if self.custom_metadata.get(RESOURCE_TYPE) == COLLECTION_MARKER:
            self.is_collection = True


@dataclass(frozen=True)
class ListingPage:
    objects: list[StoreObject]
    truncated: bool = False
    cursor: str | None = None
