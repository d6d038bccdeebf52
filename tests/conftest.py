import os

# Settings exit the process when required variables are missing, so they
# have to be in place before any project module is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT_TIMES", "100")
os.environ.setdefault("RATE_LIMIT_SECONDS", "60")
os.environ.setdefault("MAX_FILE_MB", "10")
os.environ.setdefault("TRUST_PROXY", "false")
os.environ.setdefault("ANTHROPIC_API_URL", "https://api.anthropic.test/v1/messages")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("ANTHROPIC_MODEL", "claude-test")
os.environ.setdefault("ANTHROPIC_VERSION", "2023-06-01")

import asyncio
import json
from typing import AsyncIterator, Dict, List, Optional

import fitz
import pytest

from core.entities import ResourceLimits
from model.content import ContentContext, GeneratedContent
from model.document import DocumentSource


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_source(file_id: str, owner: Optional[str] = "user-1") -> DocumentSource:
    return DocumentSource(
        fileId=file_id,
        storagePath=f"uploads/{owner}/{file_id}/{file_id}.pdf",
        declaredName=f"{file_id}.pdf",
        ownerId=owner,
    )


VALID_REPLY = json.dumps(
    {
        "summary": ["Cells are the basic unit of life.", "Mitochondria make ATP."],
        "flashcards": [{"question": "What makes ATP?", "answer": "Mitochondria"}],
        "examQuestions": [
            {"question": "Explain cell theory.", "answer": "All life is cells."}
        ],
        "revision": "## Cells\n- basic unit of life",
    }
)


class FakeBlobStore:
    """In-memory BlobStore; streams objects in fixed-size chunks."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None) -> None:
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.chunks_served = 0

    async def exists(self, path: str) -> bool:
        return path in self.objects

    async def open_read_stream(
        self, path: str, chunk_size: Optional[int] = None
    ) -> AsyncIterator[bytes]:
        data = self.objects[path]
        step = chunk_size or 1024
        for i in range(0, len(data), step):
            self.chunks_served += 1
            yield data[i : i + step]


class FakeCatalog:
    def __init__(self, *sources: DocumentSource) -> None:
        self.sources = {s.fileId: s for s in sources}

    async def get(self, file_id: str) -> Optional[DocumentSource]:
        return self.sources.get(file_id)


class FakeModel:
    """TextGenerator returning a canned reply; optionally waits on a gate."""

    def __init__(self, reply: str = VALID_REPLY, gate: Optional[asyncio.Event] = None):
        self.reply = reply
        self.gate = gate
        self.prompts: List[str] = []
        self.active = 0
        self.max_active = 0

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if isinstance(self.reply, Exception):
                raise self.reply
            return self.reply
        finally:
            self.active -= 1


class FakeSink:
    def __init__(
        self,
        link_error: Optional[Exception] = None,
        save_error: Optional[Exception] = None,
    ) -> None:
        self.saved: List[tuple] = []
        self.links: List[tuple] = []
        self.link_error = link_error
        self.save_error = save_error

    async def save_content(
        self, content: GeneratedContent, context: ContentContext
    ) -> str:
        if self.save_error is not None:
            raise self.save_error
        content_id = f"content-{len(self.saved) + 1}"
        self.saved.append((content_id, content, context))
        return content_id

    async def link_to_lecture(
        self, user_id: str, lecture_id: str, content_id: str
    ) -> None:
        if self.link_error is not None:
            raise self.link_error
        self.links.append((user_id, lecture_id, content_id))


class FakeRedis:
    """Subset of redis.asyncio.Redis used by the repositories (bytes in, bytes out)."""

    def __init__(self) -> None:
        self.store: Dict[str, bytes] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    @staticmethod
    def _b(value) -> bytes:
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    async def set(self, key: str, value, ex: Optional[int] = None) -> bool:
        self.store[key] = self._b(value)
        self.ttls[key] = ex
        return True

    async def get(self, key: str) -> Optional[bytes]:
        return self.store.get(key)

    async def exists(self, key: str) -> int:
        return int(key in self.store)

    async def strlen(self, key: str) -> int:
        return len(self.store.get(key, b""))

    async def getrange(self, key: str, start: int, end: int) -> bytes:
        return self.store.get(key, b"")[start : end + 1]

    async def delete(self, key: str) -> int:
        self.ttls.pop(key, None)
        return int(self.store.pop(key, None) is not None)


@pytest.fixture
def limits() -> ResourceLimits:
    return ResourceLimits()


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    import repository.blob_repository as blob_repository
    import repository.content_repository as content_repository
    import repository.file_catalog_repository as file_catalog_repository

    redis = FakeRedis()

    async def _get_redis():
        return redis

    for module in (blob_repository, content_repository, file_catalog_repository):
        monkeypatch.setattr(module, "get_redis", _get_redis)
    return redis
