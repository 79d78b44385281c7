"""Two-phase message identity: local placeholders vs. server-confirmed ids."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Union

from chatterm.api.schema import Message

OPTIMISTIC_PREFIX = "optimistic-"

_lock = threading.Lock()
_last_ns = 0


@dataclass(frozen=True)
class Optimistic:
    local_id: str


@dataclass(frozen=True)
class Confirmed:
    server_id: str


MessageIdentity = Union[Optimistic, Confirmed]


def new_optimistic_id() -> str:
    """Return a reserved-prefix id whose suffix strictly increases in-process."""
    global _last_ns
    with _lock:
        now = max(time.time_ns(), _last_ns + 1)
        _last_ns = now
    return f"{OPTIMISTIC_PREFIX}{now}"


def identity_of(message: Message) -> MessageIdentity:
    if message.id.startswith(OPTIMISTIC_PREFIX):
        return Optimistic(message.id)
    return Confirmed(message.id)


def is_optimistic(message: Message) -> bool:
    return isinstance(identity_of(message), Optimistic)


def reconcile(messages: list[Message], incoming: Message) -> list[Message]:
    """Merge a server message into the local sequence.

    Same id: replaced in place. A confirmed user message takes the slot of the
    oldest optimistic user message of its session. Anything else is appended.
    """
    for index, existing in enumerate(messages):
        if existing.id == incoming.id:
            return [*messages[:index], incoming, *messages[index + 1 :]]

    if incoming.role == "user" and not is_optimistic(incoming):
        placeholders = (
            index
            for index, existing in enumerate(messages)
            if existing.role == "user"
            and is_optimistic(existing)
            and existing.session_id == incoming.session_id
        )
        index = next(placeholders, None)
        if index is not None:
            return [*messages[:index], incoming, *messages[index + 1 :]]

    return [*messages, incoming]
