import json

import httpx
import pytest

from babyname.config import Settings
from babyname.services.ai_client import AiCompletionClient
from babyname.utils.errors import (
    AiAuthFailed,
    AiEmptyResponse,
    AiError,
    AiRateLimit,
    AiServiceError,
    AiServiceUnavailable,
    AiTimeout,
)


def build_client(handler, **overrides) -> AiCompletionClient:
    options = {
        "_env_file": None,
        "ai_api_url": "https://open.bigmodel.cn/api/paas/v4/chat/completions",
        "ai_api_key": "sk-test-secret-key",
        "ai_model": "glm-4",
    }
    options.update(overrides)
    settings = Settings(**options)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AiCompletionClient(settings, http_client)


@pytest.mark.anyio
async def test_complete_returns_message_content_and_sends_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "{\"names\": []}"}}]})

    client = build_client(handler)
    content = await client.complete("起名")

    assert content == '{"names": []}'
    assert captured["auth"] == "Bearer sk-test-secret-key"
    assert captured["body"]["model"] == "glm-4"
    assert captured["body"]["messages"] == [{"role": "user", "content": "起名"}]
    assert captured["body"]["max_tokens"] == 4000
    assert captured["body"]["top_p"] == 0.9


def test_deepseek_payload_defaults():
    client = build_client(lambda request: None, ai_api_url="https://api.deepseek.com/v1/chat/completions")
    payload = client.build_payload("起名")

    assert payload["max_tokens"] == 3000
    assert "top_p" not in payload
    assert client.settings.ai_timeout_seconds == 60.0


@pytest.mark.anyio
@pytest.mark.parametrize(
    "status_code, error_type",
    [
        (401, AiAuthFailed),
        (403, AiAuthFailed),
        (429, AiRateLimit),
        (500, AiServiceError),
        (502, AiServiceError),
    ],
)
async def test_upstream_status_is_mapped(status_code, error_type):
    client = build_client(lambda request: httpx.Response(status_code, json={"error": {"message": "bad"}}))

    with pytest.raises(error_type) as exc:
        await client.complete("起名")
    assert exc.value.status_code == 503


@pytest.mark.anyio
async def test_other_client_errors_map_to_generic_ai_error():
    client = build_client(lambda request: httpx.Response(400, text="bad request"))

    with pytest.raises(AiError) as exc:
        await client.complete("起名")
    assert exc.value.code == "AI_ERROR"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {"content": "   "}}]},
        {"choices": []},
        {},
    ],
)
async def test_empty_content_raises_empty_response(payload):
    client = build_client(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(AiEmptyResponse):
        await client.complete("起名")


@pytest.mark.anyio
async def test_timeout_and_transport_errors():
    def timeout_handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    def broken_handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(AiTimeout):
        await build_client(timeout_handler).complete("起名")
    with pytest.raises(AiServiceError):
        await build_client(broken_handler).complete("起名")


@pytest.mark.anyio
async def test_missing_api_key_is_unavailable():
    calls = []
    client = build_client(lambda request: calls.append(request), ai_api_key="")

    with pytest.raises(AiServiceUnavailable):
        await client.complete("起名")
    assert calls == []
