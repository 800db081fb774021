"""Tests for ``HttpxTransport`` using ``httpx.MockTransport``.

Covers:
- OpenAI-compatible body, bearer auth and streamed bytes
- Anthropic body (system prompt out of band, default max_tokens) and headers
- missing API key and unknown provider fail before any request is sent
- HTTP error statuses are classified and carry the response body
- a full fan-out over HTTP with the real adapters
"""
from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from crux_fanout.base.errors import ErrorCode, TransportError, UnknownProviderError
from crux_fanout.base.http import EndpointConfig, HttpxTransport, build_request_body
from crux_fanout.base.models import Message, SamplingParams, StreamRequest
from crux_fanout.mock import anthropic_sse, openai_sse
from crux_fanout.orchestrator import MultiModelOrchestrator

pytestmark = pytest.mark.asyncio


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _sse_body(lines: List[str]) -> bytes:
    return "".join(lines).encode("utf-8")


async def _drain(transport: HttpxTransport, request: StreamRequest) -> bytes:
    out = b""
    async for chunk in transport.open_stream(request):
        out += chunk
    return out


async def test_openai_request_shape_and_stream():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=_sse_body(openai_sse(["hi"])))

    async with _client(handler) as client:
        transport = HttpxTransport(client=client, api_keys={"openai": "sk-live"})
        request = StreamRequest.from_prompt("gpt-4o-mini", "openai", "hello", system_prompt="be brief")
        data = await _drain(transport, request)

    assert b"[DONE]" in data  # nosec B101
    assert seen["url"] == "https://api.openai.com/v1/chat/completions"  # nosec B101
    assert seen["auth"] == "Bearer sk-live"  # nosec B101
    body = seen["body"]
    assert body["stream"] is True and body["stream_options"] == {"include_usage": True}  # nosec B101
    assert body["messages"][0] == {"role": "system", "content": "be brief"}  # nosec B101
    assert body["messages"][1] == {"role": "user", "content": "hello"}  # nosec B101


async def test_anthropic_request_shape():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=_sse_body(anthropic_sse(["ok"])))

    request = StreamRequest(
        model_id="claude-3-5-haiku",
        provider="anthropic",
        messages=(Message("system", "rules"), Message("user", "hi")),
        sampling=SamplingParams(temperature=0.2),
    )
    async with _client(handler) as client:
        await _drain(HttpxTransport(client=client, api_keys={"anthropic": "ak"}), request)

    assert seen["headers"]["x-api-key"] == "ak"  # nosec B101
    assert seen["headers"]["anthropic-version"] == "2023-06-01"  # nosec B101
    body = seen["body"]
    assert body["system"] == "rules"  # nosec B101
    assert body["messages"] == [{"role": "user", "content": "hi"}]  # nosec B101
    assert body["max_tokens"] == 4096 and body["temperature"] == 0.2  # nosec B101


async def test_missing_key_fails_before_request(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    async with _client(handler) as client:
        transport = HttpxTransport(client=client)
        with pytest.raises(TransportError) as info:
            await _drain(transport, StreamRequest.from_prompt("gpt", "openai", "x"))
    assert info.value.code is ErrorCode.AUTH  # nosec B101
    assert "OPENAI_API_KEY" in info.value.message  # nosec B101
    assert calls == []  # nosec B101


async def test_key_from_environment(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-env")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, content=b"")

    async with _client(handler) as client:
        await _drain(HttpxTransport(client=client), StreamRequest.from_prompt("llama", "groq", "x"))
    assert seen["auth"] == "Bearer gsk-env"  # nosec B101


async def test_unknown_provider_endpoint():
    transport = HttpxTransport(endpoints={})
    with pytest.raises(UnknownProviderError):
        await _drain(transport, StreamRequest.from_prompt("m", "openai", "x"))


async def test_keyless_local_endpoint():
    local = EndpointConfig(provider="local", base_url="http://localhost:8080/v1", path="chat", requires_key=False)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, content=b"data: [DONE]\n\n")

    async with _client(handler) as client:
        transport = HttpxTransport(endpoints={}, client=client)
        transport.register(local)
        await _drain(transport, StreamRequest.from_prompt("m", "local", "x"))
    assert seen == {"url": "http://localhost:8080/v1/chat", "auth": None}  # nosec B101


@pytest.mark.parametrize(
    "status,code",
    [(401, ErrorCode.AUTH), (429, ErrorCode.RATE_LIMIT), (503, ErrorCode.UNAVAILABLE), (599, ErrorCode.SERVER_ERROR)],
)
async def test_http_error_status_is_classified(status, code):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"message": "nope"}})

    async with _client(handler) as client:
        transport = HttpxTransport(client=client, api_keys={"openai": "k"})
        with pytest.raises(TransportError) as info:
            await _drain(transport, StreamRequest.from_prompt("gpt", "openai", "x"))
    assert info.value.code is code  # nosec B101
    assert info.value.message.startswith(f"HTTP {status}")  # nosec B101
    assert "nope" in info.value.message  # nosec B101


def test_build_request_body_text_wire_has_no_stream_flag():
    request = StreamRequest.from_prompt("m", "text", "x", sampling=SamplingParams(max_tokens=5))
    body = build_request_body("text", request)
    assert body == {"model": "m", "messages": [{"role": "user", "content": "x"}], "max_tokens": 5}  # nosec B101


async def test_fan_out_over_http():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.host == "api.anthropic.com":
            return httpx.Response(200, content=_sse_body(anthropic_sse(["from ", body["model"]])))
        if body["model"] == "broken":
            return httpx.Response(500, text="boom")
        return httpx.Response(200, content=_sse_body(openai_sse(["from ", body["model"]])))

    async with _client(handler) as client:
        transport = HttpxTransport(client=client, api_keys={"openai": "k", "anthropic": "k", "xai": "k"})
        orch = MultiModelOrchestrator(transport, watchdog_seconds=5.0)
        results = await orch.run_batch(
            [
                StreamRequest.from_prompt("gpt", "openai", "q"),
                StreamRequest.from_prompt("claude", "anthropic", "q"),
                StreamRequest.from_prompt("broken", "xai", "q"),
            ]
        )
    by = {r.model_id: r for r in results}
    assert by["gpt"].content == "from gpt"  # nosec B101
    assert by["claude"].content == "from claude"  # nosec B101
    assert by["broken"].error_code == ErrorCode.SERVER_ERROR.value  # nosec B101
