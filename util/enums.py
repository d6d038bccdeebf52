from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class FailurePolicy(str, Enum):
    """What to do when the model reply cannot be parsed into study content."""

    STRICT = "strict"  # fail the job
    LENIENT = "lenient"  # complete with degraded content


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
    EMPTY_UPLOAD = ErrorInfo("Uploaded file is empty", status.HTTP_400_BAD_REQUEST)
    CONTENT_NOT_FOUND = ErrorInfo(
        "Lecture content not found", status.HTTP_404_NOT_FOUND
    )
    JOB_NOT_CANCELLABLE = ErrorInfo(
        "Job is not running or can no longer be cancelled", status.HTTP_409_CONFLICT
    )
