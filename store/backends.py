"""
Model Fetch Backends
====================

Where model bytes come from. Two backends, chosen by StoreConfig.kind:

    static        - public HTTP release assets: GET <base_url>/<key>
    object_store  - authenticated S3-compatible bucket: <prefix>/<key>

Both expose the same single operation, open(key), an async context manager
yielding a ByteStream. Writing to disk, progress and hashing live in
ArtifactStore and are shared by both.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

import aiohttp
from aiobotocore.session import AioSession, get_session
from botocore.exceptions import BotoCoreError, ClientError

from core.config import StoreConfig
from core.errors import ArtifactFetchError, ConfigError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class ByteStream:
    """An open download: declared length (0 if unknown) and a chunk iterator"""
    length: int
    chunks: AsyncIterator[bytes]


class StaticBackend:
    """Release-asset style downloads over plain HTTPS"""

    kind = "static"

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 300.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout, sock_connect=10)

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    @asynccontextmanager
    async def open(self, key: str) -> AsyncIterator[ByteStream]:
        url = self.url_for(key)
        session = self._get_session()
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ArtifactFetchError(f"GET {url} returned HTTP {response.status}")
                yield ByteStream(
                    length=response.content_length or 0,
                    chunks=response.content.iter_chunked(CHUNK_SIZE),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ArtifactFetchError(f"Failed to download {url}: {e}") from e

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()


class ObjectStoreBackend:
    """
    Authenticated S3-compatible object storage (Cloudflare R2, MinIO, S3).

    The region is fixed to "auto", which R2 expects and other S3
    implementations ignore when an explicit endpoint is given.
    """

    kind = "object_store"

    def __init__(
        self,
        bucket: str,
        endpoint: str,
        client_id: str,
        secret: str,
        prefix: Optional[str] = None,
        session: Optional[AioSession] = None,
    ):
        self.bucket = bucket
        self.endpoint = endpoint
        self.prefix = prefix.strip("/") if prefix else None
        self._client_id = client_id
        self._secret = secret
        self._session = session or get_session()

    def object_key(self, key: str) -> str:
        if self.prefix:
            return f"{self.prefix}/{key}"
        return key

    @asynccontextmanager
    async def open(self, key: str) -> AsyncIterator[ByteStream]:
        object_key = self.object_key(key)
        try:
            async with self._session.create_client(
                "s3",
                endpoint_url=self.endpoint,
                region_name="auto",
                aws_access_key_id=self._client_id,
                aws_secret_access_key=self._secret,
            ) as client:
                response = await client.get_object(Bucket=self.bucket, Key=object_key)
                body = response["Body"]
                try:
                    yield ByteStream(
                        length=int(response.get("ContentLength") or 0),
                        chunks=body.iter_chunks(CHUNK_SIZE),
                    )
                finally:
                    body.close()
        except (BotoCoreError, ClientError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ArtifactFetchError(
                f"Failed to get s3://{self.bucket}/{object_key}: {e}"
            ) from e

    async def aclose(self) -> None:
        return None


FetchBackend = Union[StaticBackend, ObjectStoreBackend]


def create_backend(config: StoreConfig) -> FetchBackend:
    """Build the backend selected by config.kind"""
    if config.kind == "static":
        logger.info(f"Model store: static release assets at {config.base_url}")
        return StaticBackend(config.base_url)

    if config.kind == "object_store":
        if not (config.bucket and config.endpoint and config.client_id and config.secret):
            raise ConfigError("object_store requires bucket, endpoint, client_id and secret")
        logger.info(f"Model store: bucket {config.bucket} at {config.endpoint}")
        return ObjectStoreBackend(
            bucket=config.bucket,
            endpoint=config.endpoint,
            client_id=config.client_id,
            secret=config.secret,
            prefix=config.prefix,
        )

    raise ConfigError(f"Unknown store kind: {config.kind}")
