from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


def _lower_keys(headers: Mapping[str, str]) -> dict[str, str]:
    return {key.lower(): value for key, value in headers.items()}


def strip_etag(etag: str) -> str:
    etag = etag.strip()
    if etag.startswith("W/"):
        etag = etag[2:]
    if etag.startswith('"') and etag.endswith('"'):
        etag = etag[1:-1]
    return etag


def _parse_etags(value: str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if value.strip() == "*":
        return ("*",)
    return tuple(strip_etag(tag) for tag in value.split(",") if tag.strip())


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


@dataclass(frozen=True)
class Conditional:
    """Request preconditions evaluated by a store before it returns a body."""

    if_match: tuple[str, ...] | None = None
    if_none_match: tuple[str, ...] | None = None
    if_modified_since: datetime | None = None
    if_unmodified_since: datetime | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str] | None) -> Conditional | None:
        if not headers:
            return None
        lowered = _lower_keys(headers)
        conditional = cls(
            if_match=_parse_etags(lowered.get("if-match")),
            if_none_match=_parse_etags(lowered.get("if-none-match")),
            if_modified_since=_parse_http_date(lowered.get("if-modified-since")),
            if_unmodified_since=_parse_http_date(lowered.get("if-unmodified-since")),
        )
        return conditional if conditional.is_set else None

    @property
    def is_set(self) -> bool:
        return any(
            value is not None
            for value in (
                self.if_match,
                self.if_none_match,
                self.if_modified_since,
                self.if_unmodified_since,
            )
        )

    def matches(self, etag: str | None, uploaded: datetime | None) -> bool:
        """Return whether an object with this etag and upload time passes.

        Date checks are skipped when the corresponding etag check is present.
        """
        tag = strip_etag(etag) if etag else None
        mtime = uploaded.replace(microsecond=0) if uploaded is not None else None

        if self.if_match is not None:
            if "*" not in self.if_match and tag not in self.if_match:
                return False
        elif self.if_unmodified_since is not None and mtime is not None:
            if mtime > self.if_unmodified_since:
                return False

        if self.if_none_match is not None:
            if "*" in self.if_none_match or tag in self.if_none_match:
                return False
        elif self.if_modified_since is not None and mtime is not None:
            if mtime <= self.if_modified_since:
                return False

        return True
