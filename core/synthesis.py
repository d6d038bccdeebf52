import json
from dataclasses import dataclass
from typing import Optional, Union
from pydantic import ValidationError
from core.entities import ResourceLimits, TextGenerator
from model.content import GeneratedContent
from util.enums import FailurePolicy
from util.errors import InvalidModelOutputError
from util.functions import clip_chars, strip_code_fences
from util.types import ProgressReporter, no_progress
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentParseError:
    reason: str


ParseResult = Union[GeneratedContent, ContentParseError]


def build_prompt(title: str, document_text: str) -> str:
    return (
        f'Based on the following text from a lecture document titled "{title}", '
        "generate a JSON object with exactly these properties: "
        '"summary", "flashcards", "examQuestions", "revision".\n\n'
        '- "summary": an array of 8-10 bullet points, each a clear, concise '
        "statement about an important concept from the lecture.\n"
        '- "flashcards": an array of 8-10 objects with "question" and "answer" '
        "properties covering main ideas, definitions and concepts.\n"
        '- "examQuestions": an array of 4-5 objects with "question" and "answer" '
        "properties; answers should be detailed enough to serve as model answers.\n"
        '- "revision": a structured revision guide as a single string with clear '
        "sections and bullet points.\n\n"
        "Here is the document text:\n"
        "---\n"
        f"{document_text}\n"
        "---\n"
        "Return only the raw JSON object, without any markdown formatting."
    )


def parse_generated_content(raw: str) -> ParseResult:
    cleaned = strip_code_fences(raw)
    if not cleaned:
        return ContentParseError("empty reply")
    try:
        obj = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return ContentParseError(f"invalid JSON at line {e.lineno} column {e.colno}")
    if not isinstance(obj, dict):
        return ContentParseError(f"expected a JSON object, got {type(obj).__name__}")
    try:
        return GeneratedContent.model_validate(obj)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        return ContentParseError(f"schema mismatch: {', '.join(fields)}")


def fallback_content(raw: str, summary_chars: int = 500) -> GeneratedContent:
    summary, _ = clip_chars(raw or "", summary_chars)
    return GeneratedContent(summary=summary, flashcards=[], examQuestions=[], revision="")


class ContentSynthesizer:
    """
    Prompt the model once per job and turn its reply into GeneratedContent.

    Progress checkpoints: 45 when the text is cut to the prompt ceiling,
    60 before the model call, 80 once the reply arrives.
    """

    def __init__(self, model: TextGenerator, limits: ResourceLimits) -> None:
        self._model = model
        self._limits = limits

    async def synthesize(
        self,
        title: str,
        text: str,
        policy: Optional[FailurePolicy] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> GeneratedContent:
        report = progress or no_progress
        policy = policy or self._limits.failure_policy

        body, truncated = clip_chars(text, self._limits.max_prompt_chars)
        if truncated:
            logger.info(
                "synth.truncated chars=%d kept=%d", len(text), self._limits.max_prompt_chars
            )
            report(45, f"Using the first {len(body)} characters of the document...")

        report(60, "Sending to AI for analysis...")
        raw = await self._model.generate(build_prompt(title, body))
        report(80, "Processing AI response...")

        result = parse_generated_content(raw)
        if isinstance(result, GeneratedContent):
            logger.info(
                "synth.parsed flashcards=%d exam=%d",
                len(result.flashcards),
                len(result.examQuestions),
            )
            return result

        logger.warning(
            "synth.parse.error policy=%s reason=%s", policy.value, result.reason
        )
        if policy is FailurePolicy.STRICT:
            raise InvalidModelOutputError(
                "The AI returned an invalid response. Please try again."
            )
        return fallback_content(raw, self._limits.fallback_summary_chars)
