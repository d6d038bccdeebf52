from fastapi import File, Header, HTTPException, Request, UploadFile, status
from config.settings import settings
from core.aggregation import Aggregator
from core.anthropic_client import AnthropicClient
from core.entities import ResourceLimits
from core.ingestion import IngestionWorker
from core.synthesis import ContentSynthesizer
from model.document import UserRef
from repository.blob_repository import BlobRepository
from repository.content_repository import ContentRepository
from repository.file_catalog_repository import FileCatalogRepository
from repository.job_registry import JobRegistry
from service.job_orchestrator import JobOrchestrator
from service.upload_service import UploadService


def create_orchestrator() -> JobOrchestrator:
    """Wire the pipeline once per process; main.lifespan keeps the instance."""
    limits = ResourceLimits.from_settings(settings)
    registry = JobRegistry(
        capacity=settings.JOB_REGISTRY_CAPACITY,
        terminal_ttl_seconds=settings.JOB_TERMINAL_TTL_SECONDS,
        eviction_fraction=settings.JOB_EVICTION_FRACTION,
    )
    worker = IngestionWorker(BlobRepository(), limits)
    return JobOrchestrator(
        registry=registry,
        catalog=FileCatalogRepository(),
        worker=worker,
        aggregator=Aggregator(worker, limits),
        synthesizer=ContentSynthesizer(AnthropicClient(), limits),
        sink=ContentRepository(),
        limits=limits,
    )


def get_orchestrator(request: Request) -> JobOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job orchestrator not initialized",
        )
    return orchestrator


def get_upload_service() -> UploadService:
    return UploadService(BlobRepository(), FileCatalogRepository())


def get_content_repository() -> ContentRepository:
    return ContentRepository()


async def get_actor(x_user_id: str = Header(..., alias="X-User-Id")) -> UserRef:
    # Authentication happens upstream; the gateway forwards the user id.
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    return UserRef(id=user_id)


async def enforce_max_upload_size(
    request: Request, file: UploadFile = File(...)
) -> UploadFile:
    # Fast pre-check via Content-Length if present
    max_bytes = settings.MAX_FILE_MB * 1024 * 1024
    too_large = HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail={
            "ok": False,
            "error": "file_too_large",
            "maxMb": settings.MAX_FILE_MB,
        },
    )
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise too_large

    # Hard cap while reading initial bytes (works even if no Content-Length)
    blob = await file.read(max_bytes + 1)
    if len(blob) > max_bytes:
        raise too_large

    # Reset so downstream can re-read file stream
    await file.seek(0)
    return file
