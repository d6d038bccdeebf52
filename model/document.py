from datetime import datetime, timezone
from pydantic import BaseModel, Field


class UserRef(BaseModel):
    id: str


class DocumentSource(BaseModel):
    """Catalog entry for a previously uploaded file; read-only to the pipeline."""

    fileId: str
    storagePath: str
    declaredName: str
    ownerId: str | None = None
    sizeBytes: int | None = None
    contentType: str | None = None
    uploadedAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
