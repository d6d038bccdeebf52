import asyncio
from contextlib import aclosing
from typing import Callable, Optional
from core.entities import BlobStore, ExtractedText, PdfText, ResourceLimits
from core.pdf_text import extract_pdf_text
from model.document import DocumentSource
from util.errors import (
    ExtractionError,
    NoExtractableTextError,
    NotFoundError,
    TooLargeError,
)
from util.functions import clip_chars, format_bytes
from util.timing import timed
from util.types import ProgressReporter, no_progress
import logging

logger = logging.getLogger(__name__)

Extractor = Callable[[bytes, int], PdfText]


class IngestionWorker:
    """
    Downloads one stored document and turns it into bounded plain text.

    Progress checkpoints (single-document jobs): 15 existence check,
    20 download, 25 extraction, 30 truncation notice, 35 done.
    """

    def __init__(
        self,
        blobs: BlobStore,
        limits: ResourceLimits,
        extractor: Extractor = extract_pdf_text,
    ) -> None:
        self._blobs = blobs
        self._limits = limits
        self._extract = extractor

    async def fetch_and_extract(
        self, source: DocumentSource, progress: Optional[ProgressReporter] = None
    ) -> ExtractedText:
        report = progress or no_progress

        report(15, f"Locating {source.declaredName} in storage...")
        if not await self._blobs.exists(source.storagePath):
            logger.warning(
                "ingest.missing file=%s path=%s", source.fileId, source.storagePath
            )
            raise NotFoundError(f"File not found in storage: {source.declaredName}")

        report(20, "Downloading file from storage...")
        data = await self._download(source)

        report(25, "Extracting text from PDF...")
        try:
            pdf = await asyncio.to_thread(
                self._extract, data, self._limits.max_pdf_pages
            )
        except Exception as e:
            logger.error(
                "ingest.extract.error file=%s err=%s", source.fileId, type(e).__name__
            )
            raise ExtractionError(
                f"Failed to extract text from {source.declaredName}. "
                "Please check that the file is a valid PDF document."
            ) from e
        finally:
            del data

        text = pdf.text.strip()
        if not text:
            raise NoExtractableTextError(
                f"No text could be extracted from {source.declaredName}. "
                "This might be a scanned document or image-based PDF."
            )

        original = len(text)
        text, truncated = clip_chars(text, self._limits.max_extracted_chars)
        if truncated:
            logger.info(
                "ingest.truncated file=%s chars=%d kept=%d",
                source.fileId,
                original,
                len(text),
            )
            report(
                30,
                f"Text truncated to {format_bytes(self._limits.max_extracted_chars)} (too long)...",
            )

        report(35, f"Extracted {len(text)} characters.")
        return ExtractedText(
            source=source, text=text, truncated=truncated, original_chars=original
        )

    async def _download(self, source: DocumentSource) -> bytes:
        ceiling = self._limits.max_download_bytes
        buf = bytearray()
        stream = self._blobs.open_read_stream(
            source.storagePath, self._limits.blob_read_chunk_bytes
        )
        with timed(logger, "ingest.download", file=source.fileId):
            async with aclosing(stream) as chunks:
                async for chunk in chunks:
                    if len(buf) + len(chunk) > ceiling:
                        logger.warning(
                            "ingest.too_large file=%s ceiling=%d",
                            source.fileId,
                            ceiling,
                        )
                        raise TooLargeError(
                            f"File too large (max {format_bytes(ceiling)})"
                        )
                    buf.extend(chunk)
        return bytes(buf)
