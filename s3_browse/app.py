from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import unquote

from litestar import Litestar, Request, get
from litestar.config.cors import CORSConfig
from litestar.handlers import asgi
from litestar.logging.config import LoggingConfig
from litestar.plugins.prometheus import PrometheusConfig, PrometheusController

from .gateway import ObjectGateway
from .responses import SUPPORTED_METHODS

if TYPE_CHECKING:
    from litestar.types import Receive, Scope, Send


def create_app(gateway: ObjectGateway | None = None) -> Litestar:
    """Create the object gateway ASGI application."""
    if gateway is None:
        gateway = ObjectGateway.from_env()

    @get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @asgi(path="/", is_mount=True, copy_scope=True)
    async def gateway_handler(scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope=scope, receive=receive)
        # mounted scope paths gain a trailing "/", which marks a directory here
        raw_path = scope.get("raw_path")
        if raw_path:
            path = unquote(raw_path.decode("latin-1"))
        else:
            path = scope.get("path", "/")
        if not path.startswith("/"):
            path = f"/{path}"
        response = await gateway.handle(request, path)
        asgi_response = response.to_asgi_response(None, request)
        await asgi_response(scope, receive, send)

    async def startup(app: Litestar) -> None:
        await gateway.startup()

    async def shutdown(app: Litestar) -> None:
        await gateway.shutdown()

    cors_config = CORSConfig(
        allow_origins=["*"],
        allow_methods=list(SUPPORTED_METHODS),
        allow_headers=["*"],
        expose_headers=[
            "Content-Length",
            "Content-Range",
            "Content-Disposition",
            "Cache-Expiry",
        ],
    )
    logging_config = LoggingConfig(
        loggers={
            "s3_browse": {
                "level": gateway.settings.log_level,
                "handlers": ["queue_listener"],
                "propagate": False,
            }
        },
        log_exceptions="always",
    )
    prometheus_config = PrometheusConfig(app_name="s3_browse", prefix="s3_browse")

    return Litestar(
        route_handlers=[health, gateway_handler, PrometheusController],
        on_startup=[startup],
        on_shutdown=[shutdown],
        cors_config=cors_config,
        logging_config=logging_config,
        middleware=[prometheus_config.middleware],
    )


app = create_app()
