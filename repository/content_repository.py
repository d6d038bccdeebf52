from typing import Optional
from uuid import uuid4
from redis.asyncio import Redis
from config.cache import get_redis
from model.content import ContentContext, GeneratedContent, LectureContentRecord
from repository.namespaces import CONTENTS, LECTURES
import logging

logger = logging.getLogger(__name__)


class ContentRepository:
    """
    Flow:
    - save_content writes one LectureContentRecord per finished job (no TTL).
    - link_to_lecture points a user's lecture at its newest content id.
    - for_lecture follows that link for the read API.
    Links are keyed by user and lecture id.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _content_key(content_id: str) -> str:
        return f"{CONTENTS}:{content_id}"

    @staticmethod
    def _lecture_key(user_id: str, lecture_id: str) -> str:
        return f"{LECTURES}:{user_id}:{lecture_id}"

    async def save_content(
        self, content: GeneratedContent, context: ContentContext
    ) -> str:
        record = LectureContentRecord(
            id=uuid4().hex,
            **context.model_dump(),
            **content.model_dump(),
        )
        r = await self._client()
        await r.set(
            self._content_key(record.id),
            record.model_dump_json().encode("utf-8"),
        )
        logger.info(
            "content.saved id=%s lecture=%s files=%d",
            record.id,
            record.lectureId,
            len(record.fileIds),
        )
        return record.id

    async def link_to_lecture(
        self, user_id: str, lecture_id: str, content_id: str
    ) -> None:
        r = await self._client()
        await r.set(
            self._lecture_key(user_id, lecture_id), content_id.encode("utf-8")
        )

    async def get(self, content_id: str) -> Optional[LectureContentRecord]:
        r = await self._client()
        raw = await r.get(self._content_key(content_id))
        if raw is None:
            return None
        return LectureContentRecord.model_validate_json(raw)

    async def for_lecture(
        self, user_id: str, lecture_id: str
    ) -> Optional[LectureContentRecord]:
        r = await self._client()
        content_id = await r.get(self._lecture_key(user_id, lecture_id))
        if content_id is None:
            return None
        if isinstance(content_id, (bytes, bytearray)):
            content_id = content_id.decode("utf-8")
        return await self.get(content_id)
