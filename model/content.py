from datetime import datetime, timezone
from pydantic import BaseModel, Field


class QAPair(BaseModel):
    question: str
    answer: str


class GeneratedContent(BaseModel):
    """Wire schema the model reply must satisfy once parsed."""

    summary: str | list[str]
    flashcards: list[QAPair]
    examQuestions: list[QAPair]
    revision: str


class ContentContext(BaseModel):
    userId: str
    lectureId: str
    subjectId: str
    title: str
    fileIds: list[str]


class LectureContentRecord(GeneratedContent):
    id: str
    userId: str
    lectureId: str
    subjectId: str
    title: str
    fileIds: list[str]
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
