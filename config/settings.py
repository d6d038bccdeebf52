import os
import sys
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment, FailurePolicy
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")
    UPLOAD_TTL_SECONDS: Optional[int] = Field(
        default=None, validation_alias="UPLOAD_TTL_SECONDS"
    )

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(..., validation_alias="MAX_FILE_MB")
    TRUST_PROXY: bool = Field(..., validation_alias="TRUST_PROXY")

    # Anthropic Settings
    ANTHROPIC_API_URL: str = Field(..., validation_alias="ANTHROPIC_API_URL")
    ANTHROPIC_API_KEY: str = Field(..., validation_alias="ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL: str = Field(..., validation_alias="ANTHROPIC_MODEL")
    ANTHROPIC_VERSION: str = Field(..., validation_alias="ANTHROPIC_VERSION")
    MODEL_MAX_TOKENS: int = Field(default=4096, validation_alias="MODEL_MAX_TOKENS")
    MODEL_TIMEOUT_SECONDS: float = Field(
        default=120.0, validation_alias="MODEL_TIMEOUT_SECONDS"
    )
    MODEL_FAILURE_POLICY: FailurePolicy = Field(
        default=FailurePolicy.LENIENT, validation_alias="MODEL_FAILURE_POLICY"
    )

    # Pipeline ceilings
    MAX_DOWNLOAD_BYTES: int = Field(
        default=10 * 1024 * 1024, validation_alias="MAX_DOWNLOAD_BYTES"
    )
    MAX_EXTRACTED_CHARS: int = Field(
        default=100 * 1024, validation_alias="MAX_EXTRACTED_CHARS"
    )
    MAX_PROMPT_CHARS: int = Field(default=30000, validation_alias="MAX_PROMPT_CHARS")
    MAX_COMBINED_CHARS: int = Field(
        default=150 * 1024, validation_alias="MAX_COMBINED_CHARS"
    )
    MAX_PDF_PAGES: int = Field(default=50, validation_alias="MAX_PDF_PAGES")
    FALLBACK_SUMMARY_CHARS: int = Field(
        default=500, validation_alias="FALLBACK_SUMMARY_CHARS"
    )
    BLOB_READ_CHUNK_BYTES: int = Field(
        default=256 * 1024, validation_alias="BLOB_READ_CHUNK_BYTES"
    )
    MAX_CONCURRENT_JOBS: int = Field(default=4, validation_alias="MAX_CONCURRENT_JOBS")

    # Job registry
    JOB_REGISTRY_CAPACITY: int = Field(
        default=1000, validation_alias="JOB_REGISTRY_CAPACITY"
    )
    JOB_EVICTION_FRACTION: float = Field(
        default=0.2, validation_alias="JOB_EVICTION_FRACTION"
    )
    JOB_TERMINAL_TTL_SECONDS: int = Field(
        default=5 * 60, validation_alias="JOB_TERMINAL_TTL_SECONDS"
    )
    JOB_SWEEP_INTERVAL_SECONDS: int = Field(
        default=60, validation_alias="JOB_SWEEP_INTERVAL_SECONDS"
    )

    # Logging knobs
    LOGGER_NAME: str = "study-content-engine"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    STUDY_SYSTEM_PROMPT: str = (
        "You are an AI assistant helping students learn from their lecture material.\n"
        "Reply with exactly one JSON object and nothing else: no code fences, no prose "
        "before or after it.\n"
        "Base every statement on the supplied document text; do not invent topics it "
        "does not cover.\n"
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
