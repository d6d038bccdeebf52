from typing import Any, Dict, Optional
import httpx
from config.settings import settings
from util.errors import ModelRequestError
import logging
from util.timing import timed

logger = logging.getLogger(__name__)


def _response_text(data: Dict[str, Any]) -> str:
    """
    Concatenate the text blocks of a Messages API response; "" when there are none.
    """
    content = data.get("content") or []
    if not isinstance(content, list):
        return ""
    parts = [
        node.get("text") or ""
        for node in content
        if isinstance(node, dict) and node.get("type") == "text"
    ]
    return "".join(parts)


class AnthropicClient:
    """
    Text-to-text generator over the Anthropic Messages API.
    The reply is returned verbatim; callers treat it as untrusted text.
    """

    def __init__(
        self,
        *,
        api_key: str = settings.ANTHROPIC_API_KEY,
        api_url: str = settings.ANTHROPIC_API_URL,
        model: str = settings.ANTHROPIC_MODEL,
        version: str = settings.ANTHROPIC_VERSION,
        system_prompt: str = settings.STUDY_SYSTEM_PROMPT,
        max_tokens: int = settings.MODEL_MAX_TOKENS,
        timeout: float = settings.MODEL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._url = api_url
        self._model = model
        self._version = version
        self._system = system_prompt
        self._max_tokens = max_tokens
        self._timeout = httpx.Timeout(timeout, connect=10.0)
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": self._version,
            "content-type": "application/json",
        }
        payload = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": self._system,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.2,
        }
        try:
            with timed(logger, "ai.generate", model=self._model, chars=len(prompt)):
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    resp = await client.post(self._url, headers=headers, json=payload)
                    resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("ai.generate.bad_status status=%d", e.response.status_code)
            raise ModelRequestError(
                f"AI service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("ai.generate.request_error err=%s", type(e).__name__)
            raise ModelRequestError("AI service request failed") from e

        try:
            data = resp.json()
        except ValueError:
            logger.warning("ai.generate.non_json_envelope")
            data = {}
        text = _response_text(data) if isinstance(data, dict) else ""
        logger.info(
            "ai.generate.reply chars=%d stop=%s",
            len(text),
            data.get("stop_reason") if isinstance(data, dict) else None,
        )
        return text
