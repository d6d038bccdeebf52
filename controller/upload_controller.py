from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from controller.controller_dependencies import (
    enforce_max_upload_size,
    get_actor,
    get_upload_service,
)
from model.api import UploadResponse
from model.document import UserRef
from service.upload_service import UploadService
from util.constants import InternalURIs

upload_rate_limit = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)

upload_router = APIRouter(dependencies=[Depends(upload_rate_limit)])


@upload_router.post(
    InternalURIs.UPLOAD,
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def upload_document(
    file: UploadFile = File(...),
    actor: UserRef = Depends(get_actor),
    service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    source = await service.store_upload(file, actor)
    return UploadResponse(
        fileId=source.fileId,
        declaredName=source.declaredName,
        sizeBytes=source.sizeBytes or 0,
    )
