"""Feed the service's event stream into the owner inbox."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from chatterm.api.client import ServiceClient
from chatterm.api.errors import ChatError
from chatterm.api.schema import Message, Session
from chatterm.app.commands import Program
from chatterm.app.messages import ErrorToast, MessageUpdated, SessionUpdated
from chatterm.log_utils import log_event, stream_events_logged

logger = logging.getLogger(__name__)


def event_to_message(event: dict[str, Any]) -> Any:
    """Translate one decoded event into an inbox message, or None to ignore it."""
    kind = event.get("type")
    info = (event.get("properties") or {}).get("info")
    if info is None:
        return None
    try:
        if kind == "message.updated":
            return MessageUpdated(Message.model_validate(info))
        if kind == "session.updated":
            return SessionUpdated(Session.model_validate(info))
    except ValidationError as exc:
        log_event(logger, "events.invalid", level=logging.WARNING, kind=kind, errors=exc.error_count())
    return None


async def pump_events(client: ServiceClient, program: Program) -> None:
    """Run until the stream ends; a dropped stream is reported once as a toast."""
    try:
        async for event in client.events():
            if stream_events_logged():
                log_event(logger, "events.received", level=logging.DEBUG, kind=event.get("type"))
            msg = event_to_message(event)
            if msg is not None:
                program.send(msg)
    except ChatError as exc:
        log_event(logger, "events.stream.closed", level=logging.ERROR, error=str(exc))
        program.send(ErrorToast(f"event stream closed: {exc}"))
