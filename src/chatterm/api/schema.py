"""Pydantic wire models for the chat service.

The service speaks camelCase JSON (`sessionID`, `mediaType`, ...). Every model
accepts both the wire alias and the Python field name and ignores fields it
does not know about, so newer servers keep working.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Model(WireModel):
    id: str
    name: str = ""


class Provider(WireModel):
    id: str
    name: str = ""
    models: dict[str, Model] = Field(default_factory=dict)


class ProviderList(WireModel):
    providers: list[Provider] = Field(default_factory=list)
    default: dict[str, str] = Field(default_factory=dict)


class SessionTime(WireModel):
    created: float = 0
    updated: float = 0


class Session(WireModel):
    id: str = ""
    title: str = ""
    parent_id: str | None = Field(None, alias="parentID")
    time: SessionTime = Field(default_factory=SessionTime)

    @property
    def is_empty(self) -> bool:
        """A session without an id means none has been created yet."""
        return self.id == ""


class TextPart(WireModel):
    type: Literal["text"] = "text"
    text: str


class FilePart(WireModel):
    type: Literal["file"] = "file"
    media_type: str = Field(..., alias="mediaType")
    filename: str | None = None
    url: str


class OtherPart(WireModel):
    """Any part kind this client does not render (tool calls, reasoning, ...)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str


# Tried in order; a part that is neither a valid text nor file part is kept as
# an OtherPart rather than failing the whole message.
MessagePart = Annotated[Union[TextPart, FilePart, OtherPart], Field(union_mode="left_to_right")]


class MessageTime(WireModel):
    created: float
    completed: float | None = None


class MessageMetadata(WireModel):
    session_id: str = Field("", alias="sessionID")
    time: MessageTime
    tool: dict[str, Any] = Field(default_factory=dict)


class Message(WireModel):
    id: str
    role: Literal["user", "assistant"]
    parts: list[MessagePart] = Field(default_factory=list)
    metadata: MessageMetadata

    @property
    def completed(self) -> bool:
        return self.metadata.time.completed is not None

    @property
    def session_id(self) -> str:
        return self.metadata.session_id

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))


class Keybinds(WireModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    leader: str | None = None


class Config(WireModel):
    theme: str | None = None
    model: str | None = None
    keybinds: Keybinds | None = None


class AppPaths(WireModel):
    root: str = ""
    state: str = ""
    config: str = ""
    cwd: str = ""
    data: str = ""


class AppTime(WireModel):
    initialized: float | None = None


class AppInfo(WireModel):
    path: AppPaths = Field(default_factory=AppPaths)
    time: AppTime = Field(default_factory=AppTime)

    @property
    def initialized(self) -> bool:
        return self.time.initialized is not None
