"""Owner state for the chat client and the send orchestrator.

`App` holds everything the UI reads: persisted state, the active provider and
model, the current session and its messages. Only `App.update`, called by the
`Program` owner loop, mutates it. Network work is returned as commands that
capture plain values and report back through messages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from chatterm.api.client import ServiceClient
from chatterm.api.errors import ChatError, NoModelSelectedError
from chatterm.api.result import Failure
from chatterm.api.schema import (
    AppInfo,
    Config,
    FilePart,
    Keybinds,
    Message,
    MessageMetadata,
    MessageTime,
    Model,
    Provider,
    Session,
    TextPart,
)
from chatterm.app import messages as m
from chatterm.app.commands import Command, batch, cmd_handler
from chatterm.app.identity import new_optimistic_id, reconcile
from chatterm.app.resolution import initialize_provider
from chatterm.app.sessions import SessionManager
from chatterm.log_utils import log_context, log_event
from chatterm.settings import ClientSettings
from chatterm.state import ClientState, default_state_path, load_or_create_state, save_state

logger = logging.getLogger(__name__)

DEFAULT_LEADER = "ctrl+x"
MAX_TOASTS = 20


@dataclass
class App:
    info: AppInfo
    config: Config
    client: ServiceClient
    state: ClientState
    state_path: Path
    provider: Provider | None = None
    model: Model | None = None
    session: Session = field(default_factory=Session)
    messages: list[Message] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)
    providers: list[Provider] = field(default_factory=list)
    toasts: list[Any] = field(default_factory=list)
    session_manager: SessionManager = field(init=False, repr=False)
    # Sends waiting for the lazily created session.
    queued_sends: list[m.SendRequested] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.session_manager = SessionManager(self.client)

    @classmethod
    async def new(cls, client: ServiceClient, settings: ClientSettings | None = None) -> "App":
        """Bootstrap from the service; raises `ChatError` if it is unreachable."""
        settings = settings or ClientSettings()
        info = (await client.get_app_info()).unwrap()
        config = (await client.get_config()).unwrap()
        if config.keybinds is None:
            config.keybinds = Keybinds(leader=DEFAULT_LEADER)

        state_path = settings.state_file or default_state_path(info.path.state or None)
        state = load_or_create_state(state_path)

        if config.theme:
            state.theme = config.theme
        if settings.theme:
            state.theme = settings.theme
        if config.model:
            provider_id, _, model_id = config.model.partition("/")
            state.provider = provider_id
            state.model = model_id

        log_event(logger, "app.loaded", server=client.base_url, state_path=str(state_path), theme=state.theme)
        return cls(info=info, config=config, client=client, state=state, state_path=state_path)

    def init(self) -> Command:
        """Startup command: resolve the active provider and model."""
        return initialize_provider(self.client, self.state)

    def is_busy(self) -> bool:
        if not self.messages:
            return False
        return not self.messages[-1].completed

    def save_state(self) -> None:
        try:
            save_state(self.state_path, self.state)
        except OSError as exc:
            log_event(logger, "state.save.failed", level=logging.ERROR, error=str(exc))

    # Orchestration. Each method reads owner state and returns commands.

    def send_chat_message(self, text: str, attachments: Sequence[m.Attachment] = ()) -> Command:
        if self.provider is None or self.model is None:
            return _toast(NoModelSelectedError())
        if self.session.is_empty:
            self.queued_sends.append(m.SendRequested(text=text, attachments=tuple(attachments)))
            if len(self.queued_sends) > 1:
                return None
            manager = self.session_manager

            async def _create_for_send():
                try:
                    session = await manager.create()
                except ChatError as exc:
                    log_event(logger, "chat.send.aborted", level=logging.ERROR, error=str(exc))
                    return m.SendSessionFailed(str(exc))
                return m.SendSessionReady(session)

            return _create_for_send
        return self._send_in_session(text, attachments)

    def _send_in_session(self, text: str, attachments: Sequence[m.Attachment]) -> Command:
        assert self.provider is not None and self.model is not None
        parts = build_parts(text, attachments)
        optimistic = Message(
            id=new_optimistic_id(),
            role="user",
            parts=parts,
            metadata=MessageMetadata(session_id=self.session.id, time=MessageTime(created=time.time())),
        )
        self.messages.append(optimistic)

        # The assistant reply arrives later on the event stream.
        return batch(cmd_handler(m.OptimisticMessageAdded(optimistic)), self._send_cmd(self.session.id, parts))

    def _send_cmd(self, session_id: str, parts: list[Any]) -> Command:
        assert self.provider is not None and self.model is not None
        client = self.client
        provider_id, model_id = self.provider.id, self.model.id

        async def _send():
            with log_context(session_id=session_id):
                result = await client.send_chat(session_id, parts, provider_id, model_id)
                if isinstance(result, Failure):
                    log_event(logger, "chat.send.failed", level=logging.ERROR, error=str(result.error))
                    return m.ErrorToast(str(result.error))
                log_event(logger, "chat.sent", provider=provider_id, model=model_id)
            return None

        return _send

    def initialize_project(self) -> Command:
        manager = self.session_manager
        previous_id = self.session.id

        async def _create():
            try:
                session = await manager.create()
            except ChatError as exc:
                return m.ErrorToast(str(exc))
            return m.ProjectSessionReady(session, previous_id=previous_id)

        return _create

    def compact_session(self) -> Command:
        if self.session.is_empty or self.provider is None or self.model is None:
            return None
        return self.session_manager.compact_cmd(self.session.id, self.provider.id, self.model.id)

    def cancel(self, session_id: str | None = None) -> Command:
        target = session_id or self.session.id
        if not target:
            return None
        manager = self.session_manager

        async def _abort():
            try:
                await manager.abort(target)
            except ChatError as exc:
                return m.ErrorToast(str(exc))
            return None

        return _abort

    def list_sessions(self) -> Command:
        manager = self.session_manager

        async def _list():
            try:
                return m.SessionsListed(await manager.list())
            except ChatError as exc:
                return m.ErrorToast(str(exc))

        return _list

    def delete_session(self, session_id: str) -> Command:
        manager = self.session_manager

        async def _delete():
            try:
                await manager.delete(session_id)
            except ChatError as exc:
                return m.ErrorToast(str(exc))
            return m.SessionDeleted(session_id)

        return _delete

    def select_session(self, session: Session) -> Command:
        return cmd_handler(m.SessionSelected(session))

    def load_messages(self, session_id: str) -> Command:
        manager = self.session_manager

        async def _load():
            try:
                return m.MessagesLoaded(session_id, await manager.list_messages(session_id))
            except ChatError as exc:
                return m.ErrorToast(str(exc))

        return _load

    def list_providers(self) -> Command:
        client = self.client

        async def _list():
            result = await client.list_providers()
            if isinstance(result, Failure):
                return m.ErrorToast(str(result.error))
            return m.ProvidersListed(result.unwrap().providers)

        return _list

    def select_model(self, provider_id: str, model_id: str) -> Command:
        """Select from the last provider listing, fetching one if there is none."""
        if self.providers:
            return cmd_handler(_model_selection(self.providers, provider_id, model_id))
        client = self.client

        async def _fetch_and_select():
            result = await client.list_providers()
            if isinstance(result, Failure):
                return m.ErrorToast(str(result.error))
            return _model_selection(result.unwrap().providers, provider_id, model_id)

        return _fetch_and_select

    def _remember_toast(self, toast: Any) -> None:
        self.toasts = [*self.toasts, toast][-MAX_TOASTS:]

    # Owner-side state transitions.

    def update(self, msg: Any) -> Command:
        if isinstance(msg, m.SendRequested):
            return self.send_chat_message(msg.text, msg.attachments)
        if isinstance(msg, m.SendSessionReady):
            queued, self.queued_sends = self.queued_sends, []
            if self.session.is_empty:
                self.session = msg.session
                self.messages = []
                return batch(
                    cmd_handler(m.SessionSelected(msg.session)),
                    *(self._send_in_session(item.text, item.attachments) for item in queued),
                )
            # Another session was picked meanwhile; deliver without switching.
            log_event(logger, "chat.send.detached", session_id=msg.session.id, count=len(queued))
            return batch(
                cmd_handler(m.InfoToast(f"sent to new session {msg.session.id}")),
                *(self._send_cmd(msg.session.id, build_parts(item.text, item.attachments)) for item in queued),
            )
        if isinstance(msg, m.SendSessionFailed):
            self.queued_sends = []
            return cmd_handler(m.ErrorToast(msg.text))
        if isinstance(msg, m.ProjectSessionReady):
            init = None
            if self.provider is not None and self.model is not None:
                init = self.session_manager.initialize_cmd(msg.session.id, self.provider.id, self.model.id)
            if self.session.id != msg.previous_id:
                return batch(cmd_handler(m.InfoToast(f"initializing project in session {msg.session.id}")), init)
            self.session = msg.session
            self.messages = []
            return batch(cmd_handler(m.SessionSelected(msg.session)), init)
        if isinstance(msg, m.SessionSelected):
            if msg.session.id == self.session.id:
                return None
            self.session = msg.session
            self.messages = []
            return self.load_messages(msg.session.id)
        if isinstance(msg, m.MessagesLoaded):
            if msg.session_id == self.session.id:
                # Keep what arrived locally while the history was in flight.
                loaded = list(msg.messages)
                for local in self.messages:
                    loaded = reconcile(loaded, local)
                self.messages = loaded
            return None
        if isinstance(msg, m.ModelSelected):
            self.provider = msg.provider
            self.model = msg.model
            self.state.provider = msg.provider.id
            self.state.model = msg.model.id
            self.save_state()
            return None
        if isinstance(msg, m.SessionCleared):
            self.session = Session()
            self.messages = []
            return None
        if isinstance(msg, m.CompactRequested):
            return self.compact_session()
        if isinstance(msg, m.SessionsListed):
            self.sessions = list(msg.sessions)
            return None
        if isinstance(msg, m.ProvidersListed):
            self.providers = list(msg.providers)
            return None
        if isinstance(msg, m.SessionDeleted):
            self.sessions = [s for s in self.sessions if s.id != msg.session_id]
            if msg.session_id == self.session.id:
                return cmd_handler(m.SessionCleared())
            return None
        if isinstance(msg, m.MessageUpdated):
            if msg.message.session_id == self.session.id:
                self.messages = reconcile(self.messages, msg.message)
            return None
        if isinstance(msg, m.SessionUpdated):
            if msg.session.id == self.session.id:
                self.session = msg.session
            self.sessions = [msg.session if s.id == msg.session.id else s for s in self.sessions]
            return None
        if isinstance(msg, m.CommandFailed):
            self._remember_toast(m.ErrorToast(str(msg.error) or msg.error.__class__.__name__))
            return None
        if isinstance(msg, (m.ErrorToast, m.InfoToast)):
            self._remember_toast(msg)
            return None
        return None


def build_parts(text: str, attachments: Sequence[m.Attachment] = ()) -> list[Any]:
    """Text part first, then one file reference per attachment."""
    parts: list[Any] = [TextPart(text=text)]
    for attachment in attachments:
        path = Path(attachment.file_path).expanduser().resolve()
        parts.append(
            FilePart(
                media_type=attachment.mime_type,
                filename=attachment.file_name,
                url=path.as_uri(),
            )
        )
    return parts


def _model_selection(providers: list[Provider], provider_id: str, model_id: str) -> Any:
    provider = next((p for p in providers if p.id == provider_id), None)
    model = None
    if provider is not None:
        model = next((mdl for mdl in provider.models.values() if mdl.id == model_id), None)
    if provider is None or model is None:
        return m.ErrorToast(f"unknown model: {provider_id}/{model_id}")
    return m.ModelSelected(provider=provider, model=model)


def _toast(error: ChatError) -> Command:
    log_event(logger, "chat.send.rejected", level=logging.WARNING, error=str(error))
    return cmd_handler(m.ErrorToast(str(error)))
