import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Dict, Optional, Sequence, Set
from uuid import uuid4
from core.aggregation import Aggregator
from core.entities import ContentSink, FileCatalog, ResourceLimits
from core.ingestion import IngestionWorker
from core.synthesis import ContentSynthesizer
from model.content import ContentContext
from model.document import DocumentSource, UserRef
from model.job import Job, JobStatus
from repository.job_registry import JobRegistry
from util.constants import Messages
from util.errors import (
    AllSourcesFailedError,
    LinkFailureError,
    NotFoundError,
    PipelineError,
)
from util.types import ProgressReporter

logger = logging.getLogger(__name__)

Pipeline = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class ContentRequest:
    lecture_id: str
    subject_id: str
    title: str
    actor: UserRef


class JobOrchestrator:
    """
    Public entry point for content generation jobs.

    submit()/submit_batch() register a queued job and start its pipeline as
    a supervised asyncio task, returning the job id at once. The pipeline
    walks ingestion (or aggregation), synthesis and persistence, reporting
    progress to the registry; whatever happens, the supervisor leaves the
    job completed or failed. At most limits.max_concurrent_jobs pipelines
    run at a time; the rest wait in the queued state.
    """

    def __init__(
        self,
        *,
        registry: JobRegistry,
        catalog: FileCatalog,
        worker: IngestionWorker,
        aggregator: Aggregator,
        synthesizer: ContentSynthesizer,
        sink: ContentSink,
        limits: ResourceLimits,
    ) -> None:
        self._registry = registry
        self._catalog = catalog
        self._worker = worker
        self._aggregator = aggregator
        self._synthesizer = synthesizer
        self._sink = sink
        self._slots = asyncio.Semaphore(max(1, limits.max_concurrent_jobs))
        self._tasks: Dict[str, asyncio.Task] = {}
        self._persisting: Set[str] = set()
        self._owners: Dict[str, str] = {}
        self._janitor: Optional[asyncio.Task] = None

    # ---------------- Submission ----------------

    def submit(
        self,
        file_id: str,
        lecture_id: str,
        subject_id: str,
        title: str,
        actor: UserRef,
    ) -> str:
        request = ContentRequest(lecture_id, subject_id, title, actor)
        return self._start(
            partial(self._run_single, file_id=file_id, request=request), actor, 1
        )

    def submit_batch(
        self,
        file_ids: Sequence[str],
        lecture_id: str,
        subject_id: str,
        title: str,
        actor: UserRef,
    ) -> str:
        if not file_ids:
            raise ValueError("file_ids must not be empty")
        request = ContentRequest(lecture_id, subject_id, title, actor)
        ids = list(file_ids)
        return self._start(
            partial(self._run_batch, file_ids=ids, request=request), actor, len(ids)
        )

    def _start(self, pipeline: Pipeline, actor: UserRef, files: int) -> str:
        job_id = str(uuid4())
        self._registry.create(job_id, message=Messages.QUEUED)
        self._owners[job_id] = actor.id
        task = asyncio.create_task(
            self._supervise(job_id, pipeline), name=f"content-job:{job_id}"
        )
        self._tasks[job_id] = task
        task.add_done_callback(partial(self._on_done, job_id))
        logger.info("job.created job=%s files=%d", job_id, files)
        return job_id

    # ---------------- Queries & control ----------------

    def get_status(self, job_id: str) -> Job:
        return self._registry.get(job_id)

    def handle(self, job_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(job_id)

    def cancel(self, job_id: str, actor: UserRef) -> bool:
        """
        Cancel a queued or running job on behalf of its owner. Refused once
        the job has started saving its content, so saved content is never
        left half-written.
        """
        task = self._tasks.get(job_id)
        if task is None or task.done() or job_id in self._persisting:
            return False
        if self._owners.get(job_id) != actor.id:
            logger.warning("job.cancel.foreign job=%s user=%s", job_id, actor.id)
            return False
        task.cancel()
        logger.info("job.cancel.requested job=%s", job_id)
        return True

    def start_janitor(self, interval_seconds: float) -> None:
        if self._janitor is None or self._janitor.done():
            self._janitor = asyncio.create_task(
                self._sweep_forever(interval_seconds), name="job-registry-janitor"
            )

    async def aclose(self) -> None:
        if self._janitor is not None:
            self._janitor.cancel()
            await asyncio.gather(self._janitor, return_exceptions=True)
            self._janitor = None
        tasks = list(self._tasks.items())
        # Jobs already saving run to completion; the rest are cancelled.
        saving = [jid for jid, _ in tasks if jid in self._persisting]
        for job_id, task in tasks:
            if job_id not in self._persisting:
                task.cancel()
        if tasks:
            logger.info(
                "job.shutdown cancelling=%d draining=%d",
                len(tasks) - len(saving),
                len(saving),
            )
            await asyncio.gather(*(t for _, t in tasks), return_exceptions=True)
        self._registry.clear()

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            evicted = self._registry.sweep()
            if evicted:
                logger.info("job.janitor evicted=%d", evicted)

    # ---------------- Supervision ----------------

    def _progress(self, job_id: str) -> ProgressReporter:
        def report(progress: int, message: str) -> None:
            self._registry.update(job_id, JobStatus.processing, progress, message)

        return report

    async def _supervise(self, job_id: str, pipeline: Pipeline) -> None:
        try:
            async with self._slots:
                self._registry.update(
                    job_id, JobStatus.processing, 5, "Starting analysis..."
                )
                content_id = await pipeline(job_id)
        except asyncio.CancelledError:
            logger.warning("job.cancelled job=%s", job_id)
            self._fail(job_id, Messages.CANCELLED)
            raise
        except Exception as e:
            logger.error(
                "job.failed job=%s err=%s msg=%s",
                job_id,
                type(e).__name__,
                e,
                exc_info=not isinstance(e, PipelineError),
            )
            self._fail(job_id, str(e) or type(e).__name__)
        else:
            self._registry.update(
                job_id,
                JobStatus.completed,
                100,
                Messages.COMPLETED,
                {"contentId": content_id},
            )
            logger.info("job.completed job=%s content=%s", job_id, content_id)
        finally:
            self._persisting.discard(job_id)

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        self._owners.pop(job_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "job.task.crashed job=%s err=%s", job_id, type(task.exception()).__name__
            )
        # Covers tasks cancelled before their first step and anything that
        # escaped _supervise.
        status = self._registry.get(job_id).status
        if status in (JobStatus.queued, JobStatus.processing):
            self._fail(
                job_id,
                Messages.CANCELLED if task.cancelled() else "Job stopped unexpectedly",
            )

    def _fail(self, job_id: str, message: str) -> None:
        job = self._registry.get(job_id)
        if job.status is JobStatus.queued:
            self._registry.update(job_id, JobStatus.processing, job.progress, message)
        self._registry.update(job_id, JobStatus.failed, 0, f"Error: {message}")

    # ---------------- Pipelines ----------------

    async def _run_single(
        self, job_id: str, *, file_id: str, request: ContentRequest
    ) -> str:
        report = self._progress(job_id)
        source = await self._resolve(file_id, request.actor)
        if source is None:
            raise NotFoundError(f"File not found in database with ID: {file_id}")
        report(10, f"Found file: {source.declaredName}")

        extracted = await self._worker.fetch_and_extract(source, progress=report)
        return await self._synthesize_and_persist(
            job_id, extracted.text, request, [source.fileId]
        )

    async def _run_batch(
        self, job_id: str, *, file_ids: Sequence[str], request: ContentRequest
    ) -> str:
        report = self._progress(job_id)
        sources = []
        for file_id in file_ids:
            source = await self._resolve(file_id, request.actor)
            if source is None:
                logger.warning("job.source.missing job=%s file=%s", job_id, file_id)
                continue
            sources.append(source)
        if not sources:
            raise AllSourcesFailedError(
                f"Could not extract text from any of the {len(file_ids)} documents"
            )

        combined = await self._aggregator.aggregate(sources, progress=report)
        logger.info(
            "job.aggregated job=%s used=%d failed=%d chars=%d truncated=%s",
            job_id,
            len(combined.used),
            len(combined.failed) + len(file_ids) - len(sources),
            combined.content_chars,
            combined.truncated,
        )
        return await self._synthesize_and_persist(
            job_id, combined.text, request, combined.used
        )

    async def _resolve(self, file_id: str, actor: UserRef) -> Optional[DocumentSource]:
        source = await self._catalog.get(file_id)
        if source is not None and source.ownerId and source.ownerId != actor.id:
            logger.warning("job.source.foreign file=%s user=%s", file_id, actor.id)
            return None
        return source

    async def _synthesize_and_persist(
        self,
        job_id: str,
        text: str,
        request: ContentRequest,
        file_ids: Sequence[str],
    ) -> str:
        report = self._progress(job_id)
        report(40, "Generating AI content... This may take a moment.")
        content = await self._synthesizer.synthesize(
            request.title, text, progress=report
        )

        report(90, "Saving content to database...")
        self._persisting.add(job_id)
        context = ContentContext(
            userId=request.actor.id,
            lectureId=request.lecture_id,
            subjectId=request.subject_id,
            title=request.title,
            fileIds=list(file_ids),
        )
        content_id = await self._sink.save_content(content, context)
        try:
            await self._link(request.actor.id, request.lecture_id, content_id)
        except LinkFailureError as e:
            logger.warning("job.link.failed job=%s msg=%s", job_id, e)
        return content_id

    async def _link(self, user_id: str, lecture_id: str, content_id: str) -> None:
        try:
            await self._sink.link_to_lecture(user_id, lecture_id, content_id)
        except Exception as e:
            raise LinkFailureError(
                f"Content {content_id} saved but lecture {lecture_id} was not updated"
            ) from e
