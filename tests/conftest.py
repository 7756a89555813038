from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

import pytest
from litestar import Request
from s3_browse import GatewaySettings, ObjectGateway
from s3_browse.store.memory import InMemoryStore

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from botocore.client import BaseClient
    from litestar.types import HTTPScope
    from pytest_databases._service import DockerService


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> InMemoryStore:
    """An empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    return GatewaySettings(public_prefix="/public", index_title="Test Storage")


@pytest.fixture
def gateway(store: InMemoryStore, gateway_settings: GatewaySettings) -> ObjectGateway:
    return ObjectGateway(store, gateway_settings)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Litestar request for a method, path and optional headers."""

    def _make(
        method: str, path: str, headers: dict[str, str] | None = None
    ) -> Request:
        scope = cast(
            "HTTPScope",
            {
                "type": "http",
                "method": method,
                "path": path,
                "query_string": b"",
                "headers": [
                    (name.lower().encode("latin-1"), value.encode("latin-1"))
                    for name, value in (headers or {}).items()
                ],
            },
        )

        async def receive():
            return {"type": "http.request", "body": b""}

        return Request(scope=scope, receive=receive)

    return _make


def _set_env(env_vars: dict[str, str]) -> dict[str, str | None]:
    original_values = {}
    for key, value in env_vars.items():
        original_values[key] = os.environ.get(key)
        os.environ[key] = value
    return original_values


def _restore_env(original_values: dict[str, str | None]) -> None:
    for key, original_value in original_values.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


@pytest.fixture
def gateway_env_vars() -> Generator[dict[str, str]]:
    """Set up environment variables for the gateway settings."""
    env_vars = {
        "S3_BROWSE_PUBLIC_PREFIX": "files/",
        "S3_BROWSE_INDEX_TITLE": "Team Files",
        "S3_BROWSE_LOG_LEVEL": "debug",
    }
    original_values = _set_env(env_vars)
    yield env_vars
    _restore_env(original_values)


@pytest.fixture
def memory_env_vars() -> Generator[dict[str, str]]:
    """Point the store settings at the in-memory backend."""
    env_vars = {
        "S3_BROWSE_BACKEND": "memory",
        "S3_BROWSE_PAGE_SIZE": "5",
    }
    original_values = _set_env(env_vars)
    yield env_vars
    _restore_env(original_values)


@dataclass
class MinioService:
    endpoint: str
    access_key: str
    secret_key: str
    secure: bool


@pytest.fixture(scope="session")
def minio_access_key() -> str:
    return os.getenv("MINIO_ACCESS_KEY", "minio")


@pytest.fixture(scope="session")
def minio_secret_key() -> str:
    return os.getenv("MINIO_SECRET_KEY", "minio123")


@pytest.fixture(scope="session")
def minio_secure() -> bool:
    return os.getenv("MINIO_SECURE", "false").lower() in {
        "true",
        "1",
        "yes",
        "y",
        "t",
        "on",
    }


@pytest.fixture(scope="session")
def minio_service(
    docker_service: DockerService,
    minio_access_key: str,
    minio_secret_key: str,
    minio_secure: bool,
) -> Generator[MinioService]:
    from urllib.error import URLError
    from urllib.request import Request as UrlRequest
    from urllib.request import urlopen

    from pytest_databases.types import ServiceContainer

    def check(_service: ServiceContainer) -> bool:
        scheme = "https" if minio_secure else "http"
        url = f"{scheme}://{_service.host}:{_service.port}/minio/health/ready"
        if not url.startswith(("http:", "https:")):
            msg = "URL must start with 'http:' or 'https:'"
            raise ValueError(msg)
        try:
            with urlopen(url=UrlRequest(url, method="GET"), timeout=10) as response:
                return response.status == 200
        except (URLError, ConnectionError):
            return False

    env = {
        "MINIO_ROOT_USER": minio_access_key,
        "MINIO_ROOT_PASSWORD": minio_secret_key,
    }

    with docker_service.run(
        image="quay.io/minio/minio",
        name="minio-s3-browse",
        command="server /data",
        container_port=9000,
        timeout=20,
        pause=0.5,
        env=env,
        check=check,
    ) as service:
        yield MinioService(
            endpoint=f"{service.host}:{service.port}",
            access_key=minio_access_key,
            secret_key=minio_secret_key,
            secure=minio_secure,
        )


@pytest.fixture
def minio_client(minio_service: MinioService) -> BaseClient:
    """Create a boto3 S3 client for the MinIO service."""
    import boto3
    from botocore.config import Config

    scheme = "https" if minio_service.secure else "http"
    return boto3.client(
        "s3",
        endpoint_url=f"{scheme}://{minio_service.endpoint}",
        aws_access_key_id=minio_service.access_key,
        aws_secret_access_key=minio_service.secret_key,
        region_name="us-east-1",
        config=Config(s3={"addressing_style": "path"}),
    )


@pytest.fixture
def minio_env_vars(minio_service: MinioService) -> Generator[dict[str, str]]:
    """Set up environment variables pointing the gateway at MinIO."""
    scheme = "https" if minio_service.secure else "http"
    env_vars = {
        "S3_BROWSE_BACKEND": "s3",
        "S3_BROWSE_ENDPOINT": f"{scheme}://{minio_service.endpoint}",
        "S3_BROWSE_ACCESS_KEY": minio_service.access_key,
        "S3_BROWSE_SECRET_KEY": minio_service.secret_key,
        "S3_BROWSE_REGION": "us-east-1",
        "S3_BROWSE_ADDRESSING_STYLE": "path",
        "S3_BROWSE_BUCKET": "s3-browse-it",
        "S3_BROWSE_PAGE_SIZE": "2",
        "S3_BROWSE_PUBLIC_PREFIX": "/",
    }
    original_values = _set_env(env_vars)
    yield env_vars
    _restore_env(original_values)
