from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from litestar.response import Response, Stream

from .listing import list_all, listing_prefix, render_listing
from .responses import (
    BodylessResponse,
    html_response,
    method_not_allowed_response,
    object_response,
    options_response,
    range_not_satisfiable_response,
    text_response,
)
from .settings import (
    GatewaySettings,
    StoreSettings,
    load_gateway_settings_from_env,
    load_store_settings_from_env,
)
from .store import RangeNotSatisfiableError, build_store

if TYPE_CHECKING:
    from litestar import Request

    from .store import ObjectStore

LOG = logging.getLogger("s3_browse.gateway")


def resource_path(path: str) -> str:
    """Map a URL path onto a storage key.

    The leading slash and a single trailing slash are dropped; ``""`` is the
    store root.
    """
    if path.startswith("/"):
        path = path[1:]
    return path[:-1] if path.endswith("/") else path


def is_directory_request(path: str) -> bool:
    return path == "" or path.endswith("/")


class ObjectGateway:
    """Read-only HTTP front for an object store."""

    def __init__(self, store: ObjectStore, settings: GatewaySettings):
        self._store = store
        self._settings = settings

    @property
    def store(self) -> ObjectStore:
        return self._store

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    async def startup(self) -> None:
        describe = getattr(self._store, "describe", None)
        LOG.info(
            "object gateway ready (store=%s, public_prefix=%s)",
            describe() if callable(describe) else type(self._store).__name__,
            self._settings.public_prefix or "/",
        )

    async def shutdown(self) -> None:
        LOG.debug("object gateway stopped")

    async def handle(self, request: Request, path: str) -> Response:
        LOG.debug("handle method=%s path=%s", request.method, path)
        if not self._settings.is_public(path):
            LOG.debug("rejecting non-public path %s", path)
            return text_response("Unauthorized", 401)

        method = request.method.upper()
        if method == "OPTIONS":
            return options_response()
        if method == "HEAD":
            return await self._handle_head(request, path)
        if method == "GET":
            return await self._handle_get(request, path)
        return method_not_allowed_response()

    async def _handle_head(self, request: Request, path: str) -> Response:
        response = await self._handle_get(request, path)
        if isinstance(response, Stream):
            close = getattr(response.iterator, "aclose", None)
            if close is not None:
                await close()
        elif isinstance(response, BodylessResponse):
            return response
        return Response(
            content=b"",
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )

    async def _handle_get(self, request: Request, path: str) -> Response:
        key = resource_path(path)
        if is_directory_request(path):
            return await self._handle_listing(key)

        try:
            obj = await self._store.get(
                key, conditional=request.headers, range=request.headers
            )
        except RangeNotSatisfiableError as error:
            return range_not_satisfiable_response(error.size)

        response = object_response(obj)
        LOG.debug("GET %s status=%s", key, response.status_code)
        return response

    async def _handle_listing(self, key: str) -> Response:
        objects = list_all(self._store, listing_prefix(key))
        page = await render_listing(key, objects, self._settings.index_title)
        return html_response(page)

    @classmethod
    def from_env(cls) -> ObjectGateway:
        """Create an ObjectGateway instance from environment variables.

        Returns:
            ObjectGateway configured from environment variables.
        """
        return cls.from_settings(
            load_store_settings_from_env(), load_gateway_settings_from_env()
        )

    @classmethod
    def from_settings(
        cls, store_settings: StoreSettings, settings: GatewaySettings
    ) -> ObjectGateway:
        return cls(build_store(store_settings), settings)
