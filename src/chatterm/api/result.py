"""Tagged results returned by every remote call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from chatterm.api.errors import ChatError, ProtocolError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    @property
    def status(self) -> int | None:
        return None

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: ChatError

    @property
    def ok(self) -> bool:
        return False

    @property
    def status(self) -> int | None:
        """HTTP status for protocol failures, None for transport failures."""
        if isinstance(self.error, ProtocolError):
            return self.error.status
        return None

    def unwrap(self):
        raise self.error


ApiResult = Union[Ok[T], Failure]
