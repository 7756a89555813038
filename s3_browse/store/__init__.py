from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models import ListingPage, StoreObject
    from ..settings import StoreSettings


class StoreError(Exception):
    """The object store failed to answer a list or get call."""


class RangeNotSatisfiableError(Exception):
    """The requested range starts past the end of the object."""

    def __init__(self, key: str, size: int):
        super().__init__(f"range not satisfiable for {key!r} (size={size})")
        self.key = key
        self.size = size


class ObjectStore(Protocol):
    async def list(
        self,
        prefix: str,
        delimiter: str | None = None,
        cursor: str | None = None,
    ) -> ListingPage: ...

    async def get(
        self,
        key: str,
        conditional: Mapping[str, str] | None = None,
        range: Mapping[str, str] | None = None,
    ) -> StoreObject | None: ...


def build_store(settings: StoreSettings) -> ObjectStore:
    if settings.backend == "memory":
        from .memory import InMemoryStore

        return InMemoryStore(
            page_size=settings.page_size, chunk_size=settings.read_chunk_size
        )

    from .s3 import S3ObjectStore

    return S3ObjectStore(settings)


__all__ = [
    "ObjectStore",
    "RangeNotSatisfiableError",
    "StoreError",
    "build_store",
]
