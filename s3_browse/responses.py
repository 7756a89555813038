from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from litestar.enums import MediaType
from litestar.response import Response, Stream

from .ranges import ContentRange, is_partial, resolve_range

if TYPE_CHECKING:
    from litestar import Litestar, Request
    from litestar.response.base import ASGIResponse

    from .models import StoreObject

DEFAULT_CONTENT_TYPE = "application/octet-stream"
SUPPORTED_METHODS = ("OPTIONS", "GET", "HEAD")
ALLOW = ", ".join(SUPPORTED_METHODS)


def format_expiry(value: datetime) -> str:
    """Render a timestamp as ISO-8601 in UTC with millisecond precision."""
    aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    text = aware.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def object_headers(obj: StoreObject, content_range: ContentRange) -> dict[str, str]:
    meta = obj.http_metadata
    pairs: list[tuple[str, str | None]] = [
        ("Content-Type", meta.content_type or DEFAULT_CONTENT_TYPE),
        ("Content-Length", str(content_range.length)),
        ("Content-Range", content_range.header_value()),
        ("Content-Disposition", meta.content_disposition),
        ("Content-Encoding", meta.content_encoding),
        ("Content-Language", meta.content_language),
        ("Cache-Control", meta.cache_control),
        (
            "Cache-Expiry",
            format_expiry(meta.cache_expiry) if meta.cache_expiry else None,
        ),
    ]
    return {name: value for name, value in pairs if value}


class BodylessResponse(Response):
    """A response sent with neither a body nor content headers."""

    def __init__(self, status_code: int, headers: dict[str, str] | None = None):
        super().__init__(content=b"", status_code=status_code, headers=headers)

    def to_asgi_response(
        self, app: Litestar | None, request: Request, **kwargs: Any
    ) -> ASGIResponse:
        response = super().to_asgi_response(app, request, **kwargs)
        for name in ("content-type", "content-length"):
            del response.headers[name]
        return response


def _encoded_response(
    content: str,
    status_code: int,
    content_type: str,
    headers: dict[str, str] | None = None,
) -> Response:
    # HEAD responses copy these headers verbatim
    body = content.encode("utf-8")
    return Response(
        content=body,
        status_code=status_code,
        headers={
            "Content-Type": content_type,
            "Content-Length": str(len(body)),
            **(headers or {}),
        },
        media_type=content_type,
    )


def text_response(
    message: str, status_code: int, headers: dict[str, str] | None = None
) -> Response:
    return _encoded_response(
        message, status_code, f"{MediaType.TEXT.value}; charset=utf-8", headers
    )


def object_response(obj: StoreObject | None) -> Response:
    """Translate the result of a store ``get`` into an HTTP response."""
    if obj is None:
        return text_response("Not Found", 404)
    if obj.body is None:
        return BodylessResponse(status_code=412)

    content_range = resolve_range(obj.size, obj.range)
    headers = object_headers(obj, content_range)
    status_code = 206 if is_partial(obj.range, content_range) else 200
    return Stream(
        content=obj.body,
        status_code=status_code,
        headers=headers,
        media_type=headers["Content-Type"],
    )


def range_not_satisfiable_response(size: int) -> Response:
    return text_response(
        "Range Not Satisfiable", 416, headers={"Content-Range": f"bytes */{size}"}
    )


def options_response() -> Response:
    return Response(content=b"", status_code=204, headers={"Allow": ALLOW})


def method_not_allowed_response() -> Response:
    return text_response("Method Not Allowed", 405, headers={"Allow": ALLOW})


def html_response(page: str) -> Response:
    return _encoded_response(page, 200, f"{MediaType.HTML.value}; charset=utf-8")
