from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Any

from boto3.session import Session
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..conditions import Conditional
from ..models import HttpMetadata, ListingPage, ObjectBody, StoreObject, run_sync
from ..ranges import range_from_headers, range_to_header
from . import RangeNotSatisfiableError, StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..settings import StoreSettings

LOG = logging.getLogger("s3_browse.store.s3")

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_PRECONDITION_CODES = {"304", "412", "NotModified", "PreconditionFailed"}
_RANGE_CODES = {"416", "InvalidRange"}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _aware(value: Any) -> datetime | None:
    if not isinstance(value, datetime):
        return None
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class S3ObjectStore:
    """Object store backed by a single S3-compatible bucket."""

    def __init__(self, settings: StoreSettings, client: Any | None = None):
        self._settings = settings
        self._client = client if client is not None else self._build_client()

    @property
    def bucket(self) -> str:
        return self._settings.bucket

    def _build_client(self):
        session = Session(
            aws_access_key_id=self._settings.access_key,
            aws_secret_access_key=self._settings.secret_key,
            aws_session_token=self._settings.session_token,
            region_name=self._settings.region,
        )
        return session.client(
            "s3",
            endpoint_url=self._settings.endpoint,
            config=BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 3},
                s3={"addressing_style": self._settings.addressing_style},
            ),
        )

    def describe(self) -> str:
        endpoint = self._settings.endpoint or "aws"
        return f"s3://{self.bucket} via {endpoint} ({self._settings.region})"

    async def list(
        self,
        prefix: str,
        delimiter: str | None = None,
        cursor: str | None = None,
    ) -> ListingPage:
        list_kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": self._settings.page_size,
        }
        if delimiter:
            list_kwargs["Delimiter"] = delimiter
        if cursor:
            list_kwargs["ContinuationToken"] = cursor

        try:
            result = await run_sync(
                partial(self._client.list_objects_v2, **list_kwargs)
            )
        except (BotoCoreError, ClientError) as error:
            msg = f"listing s3://{self.bucket}/{prefix} failed: {error}"
            raise StoreError(msg) from error

        entries: dict[str, StoreObject] = {}
        for item in result.get("CommonPrefixes") or []:
            key = item["Prefix"].rstrip("/")
            if key:
                entries[key] = StoreObject(key=key, size=0, is_collection=True)

        for item in result.get("Contents") or []:
            key = item["Key"]
            is_marker = key.endswith("/")
            if is_marker:
                key = key.rstrip("/")
                if not key:
                    continue
            obj = StoreObject(
                key=key,
                size=int(item.get("Size", 0)),
                etag=item.get("ETag"),
                uploaded=_aware(item.get("LastModified")),
                is_collection=is_marker or key in entries,
            )
            entries[key] = obj

        truncated = bool(result.get("IsTruncated"))
        LOG.debug(
            "list s3://%s/%s delimiter=%r -> %d entries (truncated=%s)",
            self.bucket,
            prefix,
            delimiter,
            len(entries),
            truncated,
        )
        return ListingPage(
            objects=sorted(entries.values(), key=lambda entry: entry.key),
            truncated=truncated,
            cursor=result.get("NextContinuationToken") if truncated else None,
        )

    async def get(
        self,
        key: str,
        conditional: Mapping[str, str] | None = None,
        range: Mapping[str, str] | None = None,
    ) -> StoreObject | None:
        get_kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        condition = Conditional.from_headers(conditional)
        if condition is not None:
            get_kwargs.update(self._condition_kwargs(condition))
        requested = range_from_headers(range)
        if requested is not None:
            get_kwargs["Range"] = range_to_header(requested)

        try:
            result = await run_sync(partial(self._client.get_object, **get_kwargs))
        except ClientError as error:
            code = _error_code(error)
            if code in _MISSING_CODES:
                LOG.debug("miss for s3://%s/%s", self.bucket, key)
                return None
            if code in _PRECONDITION_CODES:
                LOG.debug("precondition failed for s3://%s/%s", self.bucket, key)
                return await self._head(key)
            if code in _RANGE_CODES:
                head = await self._head(key)
                if head is None:
                    return None
                size = head.size
                if size == 0:
                    LOG.debug("ignoring range on empty s3://%s/%s", self.bucket, key)
                    return await self.get(key, conditional=conditional)
                LOG.warning(
                    "unsatisfiable range %s for s3://%s/%s (size=%d)",
                    get_kwargs["Range"],
                    self.bucket,
                    key,
                    size,
                )
                raise RangeNotSatisfiableError(key, size) from error
            msg = f"get s3://{self.bucket}/{key} failed: {error}"
            raise StoreError(msg) from error
        except BotoCoreError as error:
            msg = f"get s3://{self.bucket}/{key} failed: {error}"
            raise StoreError(msg) from error

        obj = self._to_object(key, result)
        obj.range = requested
        obj.body = ObjectBody(result["Body"], self._settings.read_chunk_size)
        return obj

    async def _head(self, key: str) -> StoreObject | None:
        try:
            result = await run_sync(
                partial(self._client.head_object, Bucket=self.bucket, Key=key)
            )
        except ClientError as error:
            if _error_code(error) in _MISSING_CODES:
                return None
            msg = f"head s3://{self.bucket}/{key} failed: {error}"
            raise StoreError(msg) from error
        except BotoCoreError as error:
            msg = f"head s3://{self.bucket}/{key} failed: {error}"
            raise StoreError(msg) from error
        return self._to_object(key, result)

    @staticmethod
    def _condition_kwargs(condition: Conditional) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if condition.if_match is not None:
            kwargs["IfMatch"] = ", ".join(
                tag if tag == "*" else f'"{tag}"' for tag in condition.if_match
            )
        if condition.if_none_match is not None:
            kwargs["IfNoneMatch"] = ", ".join(
                tag if tag == "*" else f'"{tag}"' for tag in condition.if_none_match
            )
        if condition.if_modified_since is not None:
            kwargs["IfModifiedSince"] = condition.if_modified_since
        if condition.if_unmodified_since is not None:
            kwargs["IfUnmodifiedSince"] = condition.if_unmodified_since
        return kwargs

    @staticmethod
    def _to_object(key: str, result: Mapping[str, Any]) -> StoreObject:
        size = int(result.get("ContentLength", 0))
        content_range = result.get("ContentRange")
        if content_range and "/" in content_range:
            total = content_range.rsplit("/", 1)[1]
            if total.isdigit():
                size = int(total)

        return StoreObject(
            key=key,
            size=size,
            http_metadata=HttpMetadata(
                content_type=result.get("ContentType"),
                content_disposition=result.get("ContentDisposition"),
                content_encoding=result.get("ContentEncoding"),
                content_language=result.get("ContentLanguage"),
                cache_control=result.get("CacheControl"),
                cache_expiry=_aware(result.get("Expires")),
            ),
            custom_metadata=dict(result.get("Metadata") or {}),
            etag=result.get("ETag"),
            uploaded=_aware(result.get("LastModified")),
        )
