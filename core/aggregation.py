from typing import Optional, Sequence
from core.entities import AggregatedText, ResourceLimits
from core.ingestion import IngestionWorker
from model.document import DocumentSource
from util.constants import DOCUMENT_SEPARATOR
from util.errors import AllSourcesFailedError
from util.types import ProgressReporter, no_progress
import logging

logger = logging.getLogger(__name__)

PROGRESS_START = 5
PROGRESS_SPAN = 35  # sources share 5..40 of the job range


class Aggregator:
    """
    Combine several documents into one bounded text.

    Sources are ingested one after another so at most one downloaded file is
    held in memory. A failing source is logged and skipped; only a batch in
    which every source failed is an error.
    """

    def __init__(self, worker: IngestionWorker, limits: ResourceLimits) -> None:
        self._worker = worker
        self._limits = limits

    async def aggregate(
        self,
        sources: Sequence[DocumentSource],
        combined_ceiling: Optional[int] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> AggregatedText:
        report = progress or no_progress
        ceiling = (
            self._limits.max_combined_chars
            if combined_ceiling is None
            else combined_ceiling
        )
        if ceiling < 1:
            raise ValueError(f"combined ceiling must be at least 1, got {ceiling}")
        total = len(sources)
        out = AggregatedText(text="")
        parts: list[str] = []
        used = 0

        for i, source in enumerate(sources):
            if used >= ceiling:
                out.truncated = True
                break
            report(
                PROGRESS_START + (i * PROGRESS_SPAN) // total,
                f"Processing document {i + 1} of {total}: {source.declaredName}",
            )
            try:
                extracted = await self._worker.fetch_and_extract(source)
            except Exception as e:
                logger.warning(
                    "aggregate.source.skipped file=%s err=%s msg=%s",
                    source.fileId,
                    type(e).__name__,
                    e,
                )
                out.failed.append(source.fileId)
                continue

            chunk = extracted.text
            remaining = ceiling - used
            if len(chunk) > remaining:
                chunk = chunk[:remaining]
                out.truncated = True
            parts.append(chunk)
            out.used.append(source.fileId)
            used += len(chunk)
            logger.info(
                "aggregate.source.added file=%s chars=%d total=%d",
                source.fileId,
                len(chunk),
                used,
            )
            if out.truncated:
                logger.info("aggregate.budget.reached ceiling=%d", ceiling)
                break

        if not parts:
            raise AllSourcesFailedError(
                f"Could not extract text from any of the {total} documents"
            )

        out.text = DOCUMENT_SEPARATOR.join(parts)
        out.content_chars = used
        return out
