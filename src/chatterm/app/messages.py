"""Messages delivered to the owner loop.

The first group is what the UI reacts to; the second carries results of
background commands back to the owner, which alone applies them to state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from chatterm.api.schema import Message, Model, Provider, Session


@dataclass(frozen=True)
class Attachment:
    file_path: Path
    file_name: str
    mime_type: str


@dataclass(frozen=True)
class SessionSelected:
    session: Session


@dataclass(frozen=True)
class ModelSelected:
    provider: Provider
    model: Model


@dataclass(frozen=True)
class SessionCleared:
    pass


@dataclass(frozen=True)
class CompactRequested:
    pass


@dataclass(frozen=True)
class SendRequested:
    text: str
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class OptimisticMessageAdded:
    message: Message


@dataclass(frozen=True)
class CompletionDialogTriggered:
    initial_value: str = ""


@dataclass(frozen=True)
class ErrorToast:
    text: str


@dataclass(frozen=True)
class InfoToast:
    text: str


# Results of background commands.


@dataclass(frozen=True)
class SendSessionReady:
    session: Session


@dataclass(frozen=True)
class SendSessionFailed:
    text: str


@dataclass(frozen=True)
class ProjectSessionReady:
    session: Session
    # Session that was current when initialization started.
    previous_id: str = ""


@dataclass(frozen=True)
class MessagesLoaded:
    session_id: str
    messages: list[Message] = field(default_factory=list)


@dataclass(frozen=True)
class SessionsListed:
    sessions: list[Session] = field(default_factory=list)


@dataclass(frozen=True)
class ProvidersListed:
    providers: list[Provider] = field(default_factory=list)


@dataclass(frozen=True)
class SessionDeleted:
    session_id: str


@dataclass(frozen=True)
class MessageUpdated:
    message: Message


@dataclass(frozen=True)
class SessionUpdated:
    session: Session


@dataclass(frozen=True)
class CommandFailed:
    error: BaseException
    command: Any = None


@dataclass(frozen=True)
class Quit:
    pass
