"""Typed access to the chat service: wire models, errors, results, HTTP client."""

from __future__ import annotations

from chatterm.api.client import ServiceClient
from chatterm.api.errors import (
    ChatError,
    NoModelSelectedError,
    NoProvidersError,
    ProtocolError,
    ProviderListError,
    SessionCreateError,
    StateError,
    TransportError,
)
from chatterm.api.result import ApiResult, Failure, Ok

__all__ = [
    "ApiResult",
    "ChatError",
    "Failure",
    "NoModelSelectedError",
    "NoProvidersError",
    "Ok",
    "ProtocolError",
    "ProviderListError",
    "ServiceClient",
    "SessionCreateError",
    "StateError",
    "TransportError",
]
