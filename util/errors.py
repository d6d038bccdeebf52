from fastapi import HTTPException, status


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class PipelineError(Exception):
    """
    Base for errors raised inside a background content job.

    The orchestrator turns these into a failed job status; str(err) is the
    user-visible message, so keep it short and free of document payloads.
    """


class IngestError(PipelineError):
    pass


class NotFoundError(IngestError):
    pass


class TooLargeError(IngestError):
    pass


class NoExtractableTextError(IngestError):
    pass


class ExtractionError(IngestError):
    pass


class AllSourcesFailedError(PipelineError):
    pass


class SynthesisError(PipelineError):
    pass


class InvalidModelOutputError(SynthesisError):
    pass


class ModelRequestError(SynthesisError):
    pass


class LinkFailureError(PipelineError):
    # Non-fatal: content was saved but the lecture could not point at it.
    pass
