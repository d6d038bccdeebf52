from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field, model_validator
from model.job import Job, JobStatus


class UploadResponse(BaseModel):
    fileId: str
    declaredName: str
    sizeBytes: int


class AnalyzeRequest(BaseModel):
    """
    Single-document jobs send `fileId`; multi-document jobs send `fileIds`.
    """

    fileId: str | None = Field(default=None, min_length=1)
    fileIds: list[str] | None = None
    lectureId: str = Field(min_length=1)
    subjectId: str = Field(min_length=1)
    title: str = Field(min_length=1)

    @model_validator(mode="after")
    def _one_source_kind(self) -> "AnalyzeRequest":
        if self.fileIds is not None:
            self.fileIds = [f for f in self.fileIds if f]
        if bool(self.fileId) == bool(self.fileIds):
            raise ValueError("Provide either fileId or a non-empty fileIds list")
        return self


class AnalyzeResponse(BaseModel):
    jobId: str


class JobStatusResponse(BaseModel):
    jobId: str
    status: JobStatus
    progress: int
    message: str
    data: dict[str, Any] | None = None
    updatedAt: datetime

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusResponse":
        return cls(
            jobId=job.id,
            status=job.status,
            progress=job.progress,
            message=job.message,
            data=job.data,
            updatedAt=job.updatedAt,
        )


class CancelJobResponse(BaseModel):
    jobId: str
    cancelled: bool
