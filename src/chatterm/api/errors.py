"""Error taxonomy for calls against the chat service."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base class for every failure surfaced by the client core."""


class TransportError(ChatError):
    """The request never produced a response (connection, timeout, ...)."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"failed to {operation}: {detail}")
        self.operation = operation
        self.detail = detail


class ProtocolError(ChatError):
    """The service answered with a non-success status or an unusable body."""

    def __init__(self, operation: str, status: int, detail: str = "") -> None:
        message = f"failed to {operation}: {status}"
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)
        self.operation = operation
        self.status = status
        self.detail = detail


class StateError(ChatError):
    """Local state does not allow the requested action."""


class NoProvidersError(StateError):
    def __init__(self) -> None:
        super().__init__("no providers configured")


class NoModelSelectedError(StateError):
    def __init__(self) -> None:
        super().__init__("no provider or model selected")


class ProviderListError(ChatError):
    """Fetching providers failed on the startup path."""

    def __init__(self, cause: ChatError) -> None:
        super().__init__(str(cause))
        self.cause = cause


class SessionCreateError(ChatError):
    """Creating a session failed on the send path."""

    def __init__(self, cause: ChatError) -> None:
        super().__init__(str(cause))
        self.cause = cause
