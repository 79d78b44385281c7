from __future__ import annotations

import httpx
import pytest

from chatterm.api.schema import Message, Session
from chatterm.app import messages as m
from chatterm.app.commands import Program
from chatterm.app.core import build_parts
from chatterm.app.identity import OPTIMISTIC_PREFIX, is_optimistic

from tests.utils import FakeService, make_app, message_json, model, provider, raise_connect_error, session_json


def _ready_app(service: FakeService, tmp_path, *, session_id: str = ""):
    app = make_app(service, tmp_path)
    app.provider = provider("anthropic", "claude-3")
    app.model = model("claude-3")
    if session_id:
        app.session = Session(id=session_id)
    return app


def _updated(message_id: str, role: str, text: str, **kwargs) -> m.MessageUpdated:
    return m.MessageUpdated(Message.model_validate(message_json(message_id, role, text, **kwargs)))


@pytest.mark.asyncio
async def test_send_creates_session_before_chat(tmp_path) -> None:
    service = FakeService({"/session_create": session_json("s1", 10), "/session_chat": True})
    app = _ready_app(service, tmp_path)
    seen: list = []
    program = Program(app, observers=[seen.append])

    program.send(m.SendRequested("hi"))
    await program.settle()

    assert service.paths() == ["/session_create", "/session_chat"]
    assert app.session.id == "s1"
    assert len(app.messages) == 1
    sent = app.messages[0]
    assert sent.role == "user"
    assert sent.text == "hi"
    assert sent.metadata.time.completed is None
    assert sent.id.startswith(OPTIMISTIC_PREFIX)
    assert any(isinstance(msg, m.SessionSelected) and msg.session.id == "s1" for msg in seen)
    assert any(isinstance(msg, m.OptimisticMessageAdded) for msg in seen)


@pytest.mark.asyncio
async def test_optimistic_message_exists_before_network_send(tmp_path) -> None:
    observed: list[list[str]] = []

    def chat(request: httpx.Request) -> httpx.Response:
        observed.append([msg.text for msg in app.messages])
        return httpx.Response(200, json=True)

    service = FakeService({"/session_chat": chat})
    app = _ready_app(service, tmp_path, session_id="s1")
    program = Program(app)

    program.send(m.SendRequested("hello"))
    await program.settle()

    assert observed == [["hello"]]


@pytest.mark.asyncio
async def test_chat_body_carries_snapshot(tmp_path) -> None:
    service = FakeService({"/session_chat": True})
    app = _ready_app(service, tmp_path, session_id="s1")
    program = Program(app)

    program.send(m.SendRequested("hi"))
    await program.settle()

    assert service.bodies("/session_chat") == [
        {
            "sessionID": "s1",
            "parts": [{"type": "text", "text": "hi"}],
            "providerID": "anthropic",
            "modelID": "claude-3",
        }
    ]


@pytest.mark.asyncio
async def test_send_snapshot_ignores_later_model_change(tmp_path) -> None:
    service = FakeService({"/session_chat": True})
    app = _ready_app(service, tmp_path, session_id="s1")

    cmd = app.send_chat_message("hi")
    app.model = model("claude-4")
    for item in cmd.cmds:
        await item()

    assert service.bodies("/session_chat")[0]["modelID"] == "claude-3"


@pytest.mark.asyncio
async def test_create_failure_aborts_send(tmp_path) -> None:
    service = FakeService({"/session_create": (500, {"error": "nope"}), "/session_chat": True})
    app = _ready_app(service, tmp_path)
    seen: list = []
    program = Program(app, observers=[seen.append])

    program.send(m.SendRequested("hi"))
    await program.settle()

    assert service.paths() == ["/session_create"]
    assert app.messages == []
    assert app.session.is_empty
    assert not any(isinstance(msg, m.OptimisticMessageAdded) for msg in seen)
    toasts = [msg for msg in seen if isinstance(msg, m.ErrorToast)]
    assert len(toasts) == 1
    assert toasts[0].text.startswith("failed to create session: 500")
    assert app.queued_sends == []


@pytest.mark.asyncio
async def test_sends_during_session_creation_share_one_session(tmp_path) -> None:
    service = FakeService({"/session_create": session_json("s1", 10), "/session_chat": True})
    app = _ready_app(service, tmp_path)
    program = Program(app)

    program.send(m.SendRequested("one"))
    program.send(m.SendRequested("two"))
    await program.settle()

    assert service.paths().count("/session_create") == 1
    assert sorted(body["parts"][0]["text"] for body in service.bodies("/session_chat")) == ["one", "two"]
    assert [msg.text for msg in app.messages] == ["one", "two"]


@pytest.mark.asyncio
async def test_session_picked_during_creation_is_not_replaced(tmp_path) -> None:
    service = FakeService(
        {
            "/session_create": session_json("s-new", 10),
            "/session_messages": [message_json("p1", "user", "earlier", session_id="picked", completed=1)],
            "/session_chat": True,
        }
    )
    app = _ready_app(service, tmp_path)
    seen: list = []
    program = Program(app, observers=[seen.append])

    program.send(m.SendRequested("one"))
    program.send(m.SessionSelected(Session(id="picked")))
    await program.settle()

    assert app.session.id == "picked"
    assert [msg.text for msg in app.messages] == ["earlier"]
    assert app.queued_sends == []
    assert [body["sessionID"] for body in service.bodies("/session_chat")] == ["s-new"]
    assert service.bodies("/session_chat")[0]["parts"][0]["text"] == "one"
    assert any(isinstance(msg, m.InfoToast) and "s-new" in msg.text for msg in seen)



@pytest.mark.asyncio
async def test_send_failure_shows_status_toast(tmp_path) -> None:
    service = FakeService({"/session_chat": (500, {"error": "boom"})})
    app = _ready_app(service, tmp_path, session_id="s1")
    program = Program(app)

    program.send(m.SendRequested("hi"))
    await program.settle()

    assert len(app.toasts) == 1
    assert app.toasts[0].text.startswith("failed to send message: 500")
    # The optimistic message is not rolled back.
    assert [msg.text for msg in app.messages] == ["hi"]


@pytest.mark.asyncio
async def test_send_transport_failure_shows_toast(tmp_path) -> None:
    service = FakeService({"/session_chat": raise_connect_error})
    app = _ready_app(service, tmp_path, session_id="s1")
    program = Program(app)

    program.send(m.SendRequested("hi"))
    await program.settle()

    assert app.toasts == [m.ErrorToast("failed to send message: connection refused")]


@pytest.mark.asyncio
async def test_send_without_model_is_rejected(tmp_path) -> None:
    service = FakeService({})
    app = make_app(service, tmp_path)
    program = Program(app)

    program.send(m.SendRequested("hi"))
    await program.settle()

    assert service.calls == []
    assert app.messages == []
    assert app.toasts == [m.ErrorToast("no provider or model selected")]


def test_busy_state(tmp_path) -> None:
    app = _ready_app(FakeService({}), tmp_path, session_id="s1")
    assert app.is_busy() is False

    app.send_chat_message("hi")
    assert app.is_busy() is True

    app.update(_updated("u1", "user", "hi", created=1, completed=1))
    app.update(_updated("a1", "assistant", "", created=2))
    assert app.is_busy() is True

    app.update(_updated("a1", "assistant", "hello", created=2, completed=3))
    assert app.is_busy() is False


def test_confirmed_user_message_replaces_optimistic(tmp_path) -> None:
    app = _ready_app(FakeService({}), tmp_path, session_id="s1")
    app.send_chat_message("hi")

    app.update(_updated("u1", "user", "hi", created=1, completed=1))

    assert [msg.id for msg in app.messages] == ["u1"]
    assert not any(is_optimistic(msg) for msg in app.messages)


def test_updates_for_other_sessions_are_ignored(tmp_path) -> None:
    app = _ready_app(FakeService({}), tmp_path, session_id="s1")
    app.send_chat_message("hi")

    app.update(_updated("x1", "assistant", "elsewhere", session_id="s2", completed=2))

    assert [msg.text for msg in app.messages] == ["hi"]


def test_build_parts_text_first_then_files(tmp_path) -> None:
    source = tmp_path / "notes.md"
    source.write_text("# notes")
    attachment = m.Attachment(file_path=source, file_name="notes.md", mime_type="text/markdown")

    parts = build_parts("look", [attachment])

    assert [part.type for part in parts] == ["text", "file"]
    assert parts[1].to_wire() == {
        "type": "file",
        "mediaType": "text/markdown",
        "filename": "notes.md",
        "url": source.resolve().as_uri(),
    }


@pytest.mark.asyncio
async def test_attachments_are_sent_as_file_parts(tmp_path) -> None:
    source = tmp_path / "a.txt"
    source.write_text("data")
    service = FakeService({"/session_chat": True})
    app = _ready_app(service, tmp_path, session_id="s1")
    program = Program(app)

    attachment = m.Attachment(file_path=source, file_name="a.txt", mime_type="text/plain")
    program.send(m.SendRequested("see file", attachments=(attachment,)))
    await program.settle()

    parts = service.bodies("/session_chat")[0]["parts"]
    assert parts[0] == {"type": "text", "text": "see file"}
    assert parts[1]["type"] == "file"
    assert parts[1]["mediaType"] == "text/plain"
    assert parts[1]["url"].startswith("file://")
