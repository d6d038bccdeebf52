from typing import AsyncIterator, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import BLOBS

DEFAULT_CHUNK_BYTES = 256 * 1024


class BlobRepository:
    """
    Redis-backed byte store for uploaded documents keyed by storage path.

    Reads are served as GETRANGE windows, so a consumer never needs the
    whole object in memory and can stop early (e.g. on a size ceiling).
    Objects expire after ttl_seconds when one is configured.
    """

    def __init__(self, ttl_seconds: Optional[int] = settings.UPLOAD_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds) if ttl_seconds else None

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(path: str) -> str:
        return f"{BLOBS}:{path}"

    async def put(self, path: str, data: bytes) -> None:
        r = await self._client()
        await r.set(self._key(path), data, ex=self._ttl)

    async def exists(self, path: str) -> bool:
        r = await self._client()
        return bool(await r.exists(self._key(path)))

    async def open_read_stream(
        self, path: str, chunk_size: Optional[int] = None
    ) -> AsyncIterator[bytes]:
        step = max(1, int(chunk_size or DEFAULT_CHUNK_BYTES))
        r = await self._client()
        key = self._key(path)
        offset = 0
        while True:
            chunk = await r.getrange(key, offset, offset + step - 1)
            if not chunk:
                return
            yield bytes(chunk)
            if len(chunk) < step:
                return
            offset += len(chunk)

    async def delete(self, path: str) -> int:
        r = await self._client()
        return int(await r.delete(self._key(path)))
