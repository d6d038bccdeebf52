import logging
import os
from uuid import uuid4
from fastapi import UploadFile
from model.document import DocumentSource, UserRef
from repository.blob_repository import BlobRepository
from repository.file_catalog_repository import FileCatalogRepository
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


def _safe_name(filename: str | None) -> str:
    name = os.path.basename((filename or "").replace("\\", "/")).strip()
    return name or "document.pdf"


class UploadService:
    def __init__(self, blobs: BlobRepository, catalog: FileCatalogRepository) -> None:
        self._blobs = blobs
        self._catalog = catalog

    async def store_upload(self, file: UploadFile, actor: UserRef) -> DocumentSource:
        """
        Persist uploaded bytes and register them in the file catalog.
        Logs: file id and byte size (no payloads).
        """
        try:
            data = await file.read()
        except Exception:
            logger.error("upload.read.error user=%s", actor.id)
            raise
        if not data:
            raise AppError(
                ErrorMessage.EMPTY_UPLOAD.value.message,
                ErrorMessage.EMPTY_UPLOAD.value.http_status,
            )

        file_id = uuid4().hex
        name = _safe_name(file.filename)
        source = DocumentSource(
            fileId=file_id,
            storagePath=f"uploads/{actor.id}/{file_id}/{name}",
            declaredName=name,
            ownerId=actor.id,
            sizeBytes=len(data),
            contentType=file.content_type,
        )
        try:
            await self._blobs.put(source.storagePath, data)
        except Exception:
            logger.error("upload.blob.error file=%s", file_id, exc_info=True)
            raise AppError(
                ErrorMessage.INTERNAL_ERROR.value.message,
                ErrorMessage.INTERNAL_ERROR.value.http_status,
            )
        try:
            await self._catalog.put(source)
        except Exception:
            logger.error("upload.catalog.error file=%s", file_id, exc_info=True)
            # Bytes without a catalog entry are unreachable
            await self._blobs.delete(source.storagePath)
            raise AppError(
                ErrorMessage.INTERNAL_ERROR.value.message,
                ErrorMessage.INTERNAL_ERROR.value.http_status,
            )
        logger.info("upload.ok file=%s bytes=%d", file_id, len(data))
        return source
