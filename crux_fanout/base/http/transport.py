"""Provider byte transports.

Purpose
-------
Define the ``ProviderTransport`` boundary (request in, raw bytes out) and the
concrete :class:`HttpxTransport` that opens a streaming POST against the
provider's HTTP API.

External dependencies
---------------------
- ``httpx`` async streaming (``AsyncClient.stream``) via the pooled clients in
  ``base.http.client``; a caller-supplied client (``httpx.MockTransport`` in
  tests) can replace the pool.

Failure Modes
-------------
- Unknown provider: ``UnknownProviderError`` before any network call.
- Missing API key: ``TransportError`` with code ``auth`` before any network call.
- HTTP status >= 400: the body is read (bounded) and a ``TransportError``
  classified from the status (auth, rate_limit, server_error ...) is raised
  before any byte is yielded.
- Network failures while reading propagate as ``httpx`` exceptions; the
  adapter maps them to ``Error(TransportError)``.

The response is closed when the byte iterator is closed or exhausted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Literal, Mapping, Optional, Protocol

import httpx

from ...config import defaults
from ...config.env import env_var_for, resolve_provider_key
from ..errors import ErrorCode, TransportError, UnknownProviderError, to_stream_failure
from ..models import StreamRequest
from .client import get_async_client

WireFormat = Literal["openai", "anthropic", "text"]

_ERROR_BODY_LIMIT = 2048


class ProviderTransport(Protocol):
    """Opens the raw byte stream for one request.

    ``open_stream`` may raise before yielding on outright call failure.
    """

    def open_stream(self, request: StreamRequest) -> AsyncIterator[bytes]:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class EndpointConfig:
    """How to reach one provider.

    Attributes:
        provider: Provider id this endpoint serves.
        base_url: API base URL.
        path: Streaming endpoint path appended to ``base_url``.
        wire: Request body format.
        auth_header: Header carrying the API key.
        auth_scheme: Prefix placed before the key (``"Bearer"``), or ``""``.
        headers: Extra static headers.
        requires_key: When False, a missing key is not an error (local servers).
    """

    provider: str
    base_url: str
    path: str
    wire: WireFormat = "openai"
    auth_header: str = "Authorization"
    auth_scheme: str = "Bearer"
    headers: Mapping[str, str] = field(default_factory=dict)
    requires_key: bool = True

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.path.lstrip("/")


def _openai_compatible(provider: str, base_url: str) -> EndpointConfig:
    return EndpointConfig(provider=provider, base_url=base_url, path="/chat/completions")


DEFAULT_ENDPOINTS: Dict[str, EndpointConfig] = {
    "openai": _openai_compatible("openai", defaults.OPENAI_DEFAULT_BASE_URL),
    "openrouter": _openai_compatible("openrouter", defaults.OPENROUTER_DEFAULT_BASE_URL),
    "deepseek": _openai_compatible("deepseek", defaults.DEEPSEEK_DEFAULT_BASE_URL),
    "xai": _openai_compatible("xai", defaults.XAI_DEFAULT_BASE_URL),
    "groq": _openai_compatible("groq", defaults.GROQ_DEFAULT_BASE_URL),
    "anthropic": EndpointConfig(
        provider="anthropic",
        base_url=defaults.ANTHROPIC_DEFAULT_BASE_URL,
        path="/messages",
        wire="anthropic",
        auth_header="x-api-key",
        auth_scheme="",
        headers={"anthropic-version": defaults.ANTHROPIC_API_VERSION},
    ),
}


def build_request_body(wire: WireFormat, request: StreamRequest) -> Dict[str, Any]:
    """Return the JSON body for ``request`` in the given wire format."""
    sampling = request.sampling.to_dict() if request.sampling else {}
    if wire == "anthropic":
        system_parts = [request.system_prompt] if request.system_prompt else []
        messages: List[Dict[str, Any]] = []
        for m in request.messages:
            if m.role == "system":
                system_parts.append(m.content)
            else:
                messages.append(m.to_dict())
        body: Dict[str, Any] = {
            "model": request.model_id,
            "messages": messages,
            "stream": True,
            "max_tokens": sampling.pop("max_tokens", defaults.ANTHROPIC_DEFAULT_MAX_TOKENS),
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        body.update(sampling)
        return body
    messages = [m.to_dict() for m in request.messages]
    if request.system_prompt:
        messages.insert(0, {"role": "system", "content": request.system_prompt})
    if wire == "text":
        return {"model": request.model_id, "messages": messages, **sampling}
    return {
        "model": request.model_id,
        "messages": messages,
        "stream": True,
        "stream_options": {"include_usage": True},
        **sampling,
    }


class HttpxTransport:
    """Streaming POST transport over pooled ``httpx.AsyncClient`` instances.

    Parameters:
        endpoints: Provider id to endpoint map; defaults to ``DEFAULT_ENDPOINTS``.
        client: Optional client used for every request instead of the pool.
        api_keys: Optional explicit keys per provider; the environment
            (``config.env``) is consulted for providers not listed.
    """

    def __init__(
        self,
        endpoints: Optional[Mapping[str, EndpointConfig]] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        api_keys: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._endpoints = dict(DEFAULT_ENDPOINTS if endpoints is None else endpoints)
        self._client = client
        self._api_keys = dict(api_keys or {})

    def register(self, endpoint: EndpointConfig) -> None:
        self._endpoints[endpoint.provider.lower()] = endpoint

    def endpoint_for(self, request: StreamRequest) -> EndpointConfig:
        endpoint = self._endpoints.get(request.provider.lower())
        if endpoint is None:
            raise UnknownProviderError(
                code=ErrorCode.UNKNOWN_PROVIDER,
                message=f"No endpoint configured for provider '{request.provider}'",
                provider=request.provider,
                model=request.model_id,
            )
        return endpoint

    def _headers(self, endpoint: EndpointConfig, request: StreamRequest) -> Dict[str, str]:
        headers = {"accept": "text/event-stream", **endpoint.headers}
        key = self._api_keys.get(endpoint.provider)
        if key is None:
            key, _ = resolve_provider_key(endpoint.provider)
        if key:
            headers[endpoint.auth_header] = f"{endpoint.auth_scheme} {key}".strip()
        elif endpoint.requires_key:
            env_name = env_var_for(endpoint.provider)
            raise TransportError(
                code=ErrorCode.AUTH,
                message=f"missing API key (set {env_name})",
                provider=request.provider,
                model=request.model_id,
            )
        return headers

    async def open_stream(self, request: StreamRequest) -> AsyncIterator[bytes]:
        """Yield response body bytes as they arrive."""
        endpoint = self.endpoint_for(request)
        headers = self._headers(endpoint, request)
        body = build_request_body(endpoint.wire, request)
        client = self._client or get_async_client(endpoint.base_url, "stream")
        async with client.stream("POST", endpoint.url, json=body, headers=headers) as response:
            if response.status_code >= 400:
                await self._raise_for_status(response, request)
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk

    @staticmethod
    async def _raise_for_status(response: httpx.Response, request: StreamRequest) -> None:
        raw = b""
        async for part in response.aiter_bytes():
            raw += part
            if len(raw) >= _ERROR_BODY_LIMIT:
                break
        detail = raw[:_ERROR_BODY_LIMIT].decode("utf-8", "replace").strip()
        message = f"HTTP {response.status_code}" + (f": {detail}" if detail else "")
        exc = httpx.HTTPStatusError(message, request=response.request, response=response)
        raise to_stream_failure(exc, provider=request.provider, model=request.model_id) from exc


__all__ = [
    "ProviderTransport",
    "EndpointConfig",
    "DEFAULT_ENDPOINTS",
    "WireFormat",
    "build_request_body",
    "HttpxTransport",
]
