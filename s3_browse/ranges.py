from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import RequestedRange

if TYPE_CHECKING:
    from collections.abc import Mapping

LOG = logging.getLogger("s3_browse.ranges")


@dataclass(frozen=True)
class ContentRange:
    """Inclusive byte window ``offset..end`` of an object of ``size`` bytes."""

    offset: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return max(self.end - self.offset + 1, 0)

    def header_value(self) -> str:
        if self.size == 0:
            return "bytes */0"
        return f"bytes {self.offset}-{self.end}/{self.size}"


def resolve_range(size: int, requested: RequestedRange | None) -> ContentRange:
    """Normalize a requested range against the object size.

    Suffix ranges longer than the object start at byte 0.
    """
    offset = 0
    end = size - 1
    if requested is not None:
        if requested.suffix is not None:
            offset = max(size - requested.suffix, 0)
        else:
            offset = requested.offset or 0
            length = (
                requested.length if requested.length is not None else size - offset
            )
            end = min(offset + length - 1, size - 1)
    return ContentRange(offset=offset, end=end, size=size)


def is_partial(requested: RequestedRange | None, content_range: ContentRange) -> bool:
    return requested is not None and content_range.length != content_range.size


def parse_range_header(range_header: str | None) -> RequestedRange | None:
    """Parse a single ``bytes=`` range into its structured shape.

    Anything that is not exactly one well-formed byte range yields ``None``,
    meaning the whole object is served.
    """
    if not range_header:
        return None

    try:
        unit, ranges = range_header.split("=", 1)
        if unit.strip().lower() != "bytes":
            return None

        if "," in ranges:
            LOG.debug("ignoring multi-range request %r", range_header)
            return None

        r = ranges.strip()
        if "-" not in r:
            return None

        start_str, end_str = (part.strip() for part in r.split("-", 1))

        if start_str and end_str:
            start = int(start_str)
            end = int(end_str)
            if end < start:
                return None
            return RequestedRange(offset=start, length=end - start + 1)
        if start_str:
            return RequestedRange(offset=int(start_str))
        if end_str:
            return RequestedRange(suffix=int(end_str))
    except ValueError:
        LOG.debug("ignoring malformed range %r", range_header)
    return None


def range_to_header(requested: RequestedRange) -> str:
    """Render a structured range back into a ``Range`` header value."""
    if requested.suffix is not None:
        return f"bytes=-{requested.suffix}"
    offset = requested.offset or 0
    if requested.length is None:
        return f"bytes={offset}-"
    return f"bytes={offset}-{offset + requested.length - 1}"


def range_from_headers(headers: Mapping[str, str] | None) -> RequestedRange | None:
    if not headers:
        return None
    for name, value in headers.items():
        if name.lower() == "range":
            return parse_range_header(value)
    return None
