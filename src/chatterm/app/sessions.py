"""Session lifecycle against the chat service.

Every method is a single round trip; failures raise the typed errors from
`chatterm.api.errors` and are never retried here.
"""

from __future__ import annotations

import logging

from chatterm.api.client import ServiceClient
from chatterm.api.errors import ChatError, SessionCreateError
from chatterm.api.result import Failure
from chatterm.api.schema import Message, Session
from chatterm.app.commands import Cmd
from chatterm.log_utils import log_context, log_event

logger = logging.getLogger(__name__)


def sort_sessions(sessions: list[Session]) -> list[Session]:
    """Most recent first; equal creation times keep their service order."""
    return sorted(sessions, key=lambda session: session.time.created, reverse=True)


class SessionManager:
    def __init__(self, client: ServiceClient) -> None:
        self._client = client

    async def create(self) -> Session:
        result = await self._client.create_session()
        if isinstance(result, Failure):
            raise SessionCreateError(result.error)
        session = result.unwrap()
        log_event(logger, "session.created", session_id=session.id)
        return session

    async def list(self) -> list[Session]:
        return sort_sessions((await self._client.list_sessions()).unwrap())

    async def delete(self, session_id: str) -> None:
        (await self._client.delete_session(session_id)).unwrap()
        log_event(logger, "session.deleted", session_id=session_id)

    async def abort(self, session_id: str) -> None:
        (await self._client.abort_session(session_id)).unwrap()
        log_event(logger, "session.aborted", session_id=session_id)

    async def summarize(self, session_id: str, provider_id: str, model_id: str) -> None:
        (await self._client.summarize_session(session_id, provider_id, model_id)).unwrap()

    async def initialize(self, session_id: str, provider_id: str, model_id: str) -> None:
        (await self._client.initialize_session(session_id, provider_id, model_id)).unwrap()

    async def mark_initialized(self) -> None:
        (await self._client.mark_app_initialized()).unwrap()

    async def list_messages(self, session_id: str) -> list[Message]:
        return (await self._client.list_messages(session_id)).unwrap()

    def compact_cmd(self, session_id: str, provider_id: str, model_id: str) -> Cmd:
        """Fire-and-forget summarize; failures are only logged."""

        async def _compact():
            with log_context(session_id=session_id):
                try:
                    await self.summarize(session_id, provider_id, model_id)
                except ChatError as exc:
                    log_event(logger, "session.compact.failed", level=logging.ERROR, error=str(exc))
            return None

        return _compact

    def initialize_cmd(self, session_id: str, provider_id: str, model_id: str) -> Cmd:
        """Bootstrap project context for a new session, then flag the app initialized."""

        async def _initialize():
            with log_context(session_id=session_id):
                try:
                    await self.initialize(session_id, provider_id, model_id)
                    await self.mark_initialized()
                except ChatError as exc:
                    log_event(logger, "session.initialize.failed", level=logging.ERROR, error=str(exc))
            return None

        return _initialize
