"""HTTP package: pooled async httpx clients and the provider byte transport."""

from .client import aclose_all_clients, get_async_client
from .transport import (
    DEFAULT_ENDPOINTS,
    EndpointConfig,
    HttpxTransport,
    ProviderTransport,
    build_request_body,
)

__all__ = [
    "get_async_client",
    "aclose_all_clients",
    "ProviderTransport",
    "EndpointConfig",
    "DEFAULT_ENDPOINTS",
    "HttpxTransport",
    "build_request_body",
]
