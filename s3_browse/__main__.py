from __future__ import annotations

import anyio

from .app import create_app
from .gateway import ObjectGateway


async def main() -> None:
    import uvicorn

    gateway = ObjectGateway.from_env()
    app = create_app(gateway)

    config = uvicorn.Config(
        app,
        host=gateway.settings.host,
        port=gateway.settings.port,
        log_level=gateway.settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


if __name__ == "__main__":
    anyio.run(main)
