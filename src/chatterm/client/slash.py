"""Client-side slash command registry and dispatch.

Handlers run on the input task. They never mutate `App` directly: they post
messages to the program inbox or dispatch commands built from its state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from chatterm.api.schema import Session
from chatterm.app import messages as m
from chatterm.app.commands import Program
from chatterm.app.core import App
from chatterm.client.display import print_info

logger = logging.getLogger(__name__)

SlashHandler = Callable[[App, Program, str], Awaitable[bool] | bool]


@dataclass
class SlashCommandDef:
    description: str
    hint: str
    handler: SlashHandler


SLASH_HANDLERS: dict[str, SlashCommandDef] = {}


def register_slash_command(
    name: str, description: str, hint: str
) -> Callable[[SlashHandler], SlashHandler]:
    """Decorator to register a slash command."""

    def _decorator(func: SlashHandler) -> SlashHandler:
        SLASH_HANDLERS[name] = SlashCommandDef(description=description, hint=hint, handler=func)
        return func

    return _decorator


def print_help() -> None:
    print("Available slash commands:")
    for entry in SLASH_HANDLERS.values():
        print(f"{entry.hint:<22} - {entry.description}")


def _find_session(app: App, argument: str) -> Session | None:
    """Resolve a 1-based index into the last listing, or a session id."""
    if argument.isdigit():
        index = int(argument) - 1
        if 0 <= index < len(app.sessions):
            return app.sessions[index]
        return None
    return next((session for session in app.sessions if session.id == argument), None)


@register_slash_command("/help", description="Show available slash commands.", hint="/help")
def _handle_help(_app: App, _program: Program, _argument: str) -> bool:
    print_help()
    return True


@register_slash_command("/new", description="Start a new session on the next message.", hint="/new")
def _handle_new(_app: App, program: Program, _argument: str) -> bool:
    program.send(m.SessionCleared())
    print_info("new session")
    return True


@register_slash_command("/sessions", description="List sessions, most recent first.", hint="/sessions")
def _handle_sessions(app: App, program: Program, _argument: str) -> bool:
    program.dispatch(app.list_sessions())
    return True


@register_slash_command("/session", description="Switch to a listed session.", hint="/session <n|id>")
def _handle_session(app: App, program: Program, argument: str) -> bool:
    session = _find_session(app, argument.strip())
    if session is None:
        print("Usage: /session <n|id> (use /sessions to list)")
        return True
    program.dispatch(app.select_session(session))
    return True


@register_slash_command("/delete", description="Delete a listed session.", hint="/delete <n|id>")
def _handle_delete(app: App, program: Program, argument: str) -> bool:
    session = _find_session(app, argument.strip())
    if session is None:
        print("Usage: /delete <n|id> (use /sessions to list)")
        return True
    program.dispatch(app.delete_session(session.id))
    return True


@register_slash_command("/models", description="List available models.", hint="/models")
def _handle_models(app: App, program: Program, _argument: str) -> bool:
    program.dispatch(app.list_providers())
    return True


@register_slash_command("/model", description="Select a model.", hint="/model <provider>/<model>")
def _handle_model(app: App, program: Program, argument: str) -> bool:
    provider_id, sep, model_id = argument.strip().partition("/")
    if not sep or not provider_id or not model_id:
        print("Usage: /model <provider>/<model> (use /models to list)")
        return True
    program.dispatch(app.select_model(provider_id, model_id))
    return True


@register_slash_command("/compact", description="Summarize the current session.", hint="/compact")
def _handle_compact(app: App, program: Program, _argument: str) -> bool:
    if app.session.is_empty:
        print_info("no active session")
        return True
    program.send(m.CompactRequested())
    print_info("compacting session")
    return True


@register_slash_command("/init", description="Initialize project context.", hint="/init")
def _handle_init(app: App, program: Program, _argument: str) -> bool:
    program.dispatch(app.initialize_project())
    return True


@register_slash_command("/abort", description="Abort the running assistant turn.", hint="/abort")
def _handle_abort(app: App, program: Program, _argument: str) -> bool:
    program.dispatch(app.cancel())
    return True


@register_slash_command("/exit", description="Exit the client.", hint="/exit")
@register_slash_command("/quit", description="Exit the client.", hint="/quit")
def _handle_exit(_app: App, program: Program, _argument: str) -> bool:
    print("[exiting]")
    program.send(m.Quit())
    return True


async def handle_slash_command(line: str, app: App, program: Program) -> bool:
    """Dispatch client-side slash commands, returning True if handled."""
    trimmed = line.strip()
    if not trimmed.startswith("/"):
        return False
    if trimmed == "/":
        program.send(m.CompletionDialogTriggered(initial_value="/"))
        return True

    parts = trimmed.split(maxsplit=1)
    command = parts[0]
    argument = parts[1].strip() if len(parts) > 1 else ""

    entry = SLASH_HANDLERS.get(command)
    if entry is None:
        print(f"[unknown slash command: {command}]")
        print_help()
        return True

    try:
        result = entry.handler(app, program, argument)
        if asyncio.iscoroutine(result):
            return bool(await result)
        return bool(result)
    except Exception as exc:  # noqa: BLE001
        logger.error("Slash command failed (%s): %s", command, exc)
        return True
