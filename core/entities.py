from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Protocol
from model.content import ContentContext, GeneratedContent
from model.document import DocumentSource
from util.enums import FailurePolicy


@dataclass(frozen=True)
class ResourceLimits:
    """
    Every ceiling the pipeline enforces, in one value.
    Byte ceilings apply to downloads; *_chars ceilings to extracted text.
    """

    max_download_bytes: int = 10 * 1024 * 1024
    max_extracted_chars: int = 100 * 1024
    max_prompt_chars: int = 30000
    max_combined_chars: int = 150 * 1024
    max_pdf_pages: int = 50
    fallback_summary_chars: int = 500
    blob_read_chunk_bytes: int = 256 * 1024
    max_concurrent_jobs: int = 4
    failure_policy: FailurePolicy = FailurePolicy.LENIENT

    @classmethod
    def from_settings(cls, s) -> "ResourceLimits":
        return cls(
            max_download_bytes=s.MAX_DOWNLOAD_BYTES,
            max_extracted_chars=s.MAX_EXTRACTED_CHARS,
            max_prompt_chars=s.MAX_PROMPT_CHARS,
            max_combined_chars=s.MAX_COMBINED_CHARS,
            max_pdf_pages=s.MAX_PDF_PAGES,
            fallback_summary_chars=s.FALLBACK_SUMMARY_CHARS,
            blob_read_chunk_bytes=s.BLOB_READ_CHUNK_BYTES,
            max_concurrent_jobs=s.MAX_CONCURRENT_JOBS,
            failure_policy=FailurePolicy(s.MODEL_FAILURE_POLICY),
        )


@dataclass
class PdfText:
    text: str
    pages_read: int
    page_count: int


@dataclass
class ExtractedText:
    source: DocumentSource
    text: str
    truncated: bool = False
    original_chars: int = 0


@dataclass
class AggregatedText:
    text: str
    content_chars: int = 0  # len(text) without separators
    used: List[str] = field(default_factory=list)  # fileIds that contributed
    failed: List[str] = field(default_factory=list)  # fileIds that were skipped
    truncated: bool = False


class BlobStore(Protocol):
    async def exists(self, path: str) -> bool: ...

    def open_read_stream(
        self, path: str, chunk_size: Optional[int] = None
    ) -> AsyncIterator[bytes]: ...


class FileCatalog(Protocol):
    async def get(self, file_id: str) -> Optional[DocumentSource]: ...


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class ContentSink(Protocol):
    async def save_content(
        self, content: GeneratedContent, context: ContentContext
    ) -> str: ...

    async def link_to_lecture(
        self, user_id: str, lecture_id: str, content_id: str
    ) -> None: ...
