from fastapi import APIRouter, Depends, status
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from controller.controller_dependencies import (
    get_actor,
    get_content_repository,
    get_orchestrator,
)
from model.api import (
    AnalyzeRequest,
    AnalyzeResponse,
    CancelJobResponse,
    JobStatusResponse,
)
from model.content import LectureContentRecord
from model.document import UserRef
from repository.content_repository import ContentRepository
from service.job_orchestrator import JobOrchestrator
from util.constants import InternalURIs
from util.enums import ErrorMessage
from util.errors import AppError

analyze_rate_limit = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)

analysis_router = APIRouter()


@analysis_router.post(
    InternalURIs.ANALYZE_PDF,
    response_model=AnalyzeResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(analyze_rate_limit)],
)
async def analyze_pdf(
    payload: AnalyzeRequest,
    actor: UserRef = Depends(get_actor),
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> AnalyzeResponse:
    if payload.fileIds:
        job_id = orchestrator.submit_batch(
            payload.fileIds, payload.lectureId, payload.subjectId, payload.title, actor
        )
    else:
        job_id = orchestrator.submit(
            payload.fileId, payload.lectureId, payload.subjectId, payload.title, actor
        )
    return AnalyzeResponse(jobId=job_id)


@analysis_router.get(InternalURIs.JOB_STATUS, response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobStatusResponse:
    # Unknown and evicted jobs both answer 200 with status "unknown".
    return JobStatusResponse.from_job(orchestrator.get_status(job_id))


@analysis_router.post(InternalURIs.CANCEL_JOB, response_model=CancelJobResponse)
async def cancel_job(
    job_id: str,
    actor: UserRef = Depends(get_actor),
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> CancelJobResponse:
    if not orchestrator.cancel(job_id, actor):
        raise AppError(
            ErrorMessage.JOB_NOT_CANCELLABLE.value.message,
            ErrorMessage.JOB_NOT_CANCELLABLE.value.http_status,
        )
    return CancelJobResponse(jobId=job_id, cancelled=True)


@analysis_router.get(InternalURIs.LECTURE_CONTENT, response_model=LectureContentRecord)
async def get_lecture_content(
    lecture_id: str,
    actor: UserRef = Depends(get_actor),
    contents: ContentRepository = Depends(get_content_repository),
) -> LectureContentRecord:
    record = await contents.for_lecture(actor.id, lecture_id)
    if record is None or record.userId != actor.id:
        raise AppError(
            ErrorMessage.CONTENT_NOT_FOUND.value.message,
            ErrorMessage.CONTENT_NOT_FOUND.value.http_status,
        )
    return record
