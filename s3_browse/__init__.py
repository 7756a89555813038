"""Read-only HTTP gateway for browsing and fetching objects in a bucket."""

from .app import create_app
from .gateway import ObjectGateway
from .settings import GatewaySettings, StoreSettings

__all__ = ["GatewaySettings", "ObjectGateway", "StoreSettings", "create_app"]
