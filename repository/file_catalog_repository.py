from typing import Final, Optional
from pydantic import ValidationError
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from model.document import DocumentSource
from repository.namespaces import FILES
import logging

KEY_PREFIX: Final[str] = FILES
logger = logging.getLogger(__name__)


class FileCatalogRepository:
    """
    fileId -> DocumentSource records written by the upload flow.
    Shares the blob TTL so a catalog entry never outlives its bytes.
    """

    def __init__(self, ttl_seconds: Optional[int] = settings.UPLOAD_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds) if ttl_seconds else None

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(file_id: str) -> str:
        return f"{KEY_PREFIX}:{file_id}"

    async def put(self, source: DocumentSource) -> None:
        r = await self._client()
        payload = source.model_dump_json(exclude_none=True).encode("utf-8")
        await r.set(self._key(source.fileId), payload, ex=self._ttl)

    async def get(self, file_id: str) -> Optional[DocumentSource]:
        if not file_id:
            return None
        r = await self._client()
        raw = await r.get(self._key(file_id))
        if raw is None:
            return None
        try:
            return DocumentSource.model_validate_json(raw)
        except ValidationError:
            logger.error("catalog.decode.error file=%s", file_id)
            return None
