import json

import httpx
import pytest

from core.anthropic_client import AnthropicClient
from util.errors import ModelRequestError


def _client(handler) -> AnthropicClient:
    return AnthropicClient(
        api_key="k",
        api_url="https://api.anthropic.test/v1/messages",
        model="claude-test",
        version="2023-06-01",
        system_prompt="Reply with JSON.",
        max_tokens=256,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.anyio
async def test_generate_joins_text_blocks_and_sends_prompt():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "content": [
                    {"type": "text", "text": '{"summary": '},
                    {"type": "tool_use", "id": "x"},
                    {"type": "text", "text": '"ok"}'},
                ],
                "stop_reason": "end_turn",
            },
        )

    text = await _client(handler).generate("Summarise this lecture.")

    assert text == '{"summary": "ok"}'
    assert seen["headers"]["x-api-key"] == "k"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"]["model"] == "claude-test"
    assert seen["body"]["system"] == "Reply with JSON."
    assert seen["body"]["messages"] == [
        {"role": "user", "content": "Summarise this lecture."}
    ]


@pytest.mark.anyio
async def test_error_status_becomes_model_request_error():
    client = _client(lambda request: httpx.Response(529, json={"error": "overloaded"}))
    with pytest.raises(ModelRequestError, match="HTTP 529"):
        await client.generate("p")


@pytest.mark.anyio
async def test_transport_failure_becomes_model_request_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ModelRequestError):
        await _client(handler).generate("p")


@pytest.mark.anyio
async def test_reply_without_text_is_empty_string():
    client = _client(lambda request: httpx.Response(200, json={"content": []}))
    assert await client.generate("p") == ""
