"""Interactive REPL loop and the renderer that follows the owner loop."""

from __future__ import annotations

import logging
import mimetypes
import os
from pathlib import Path
from typing import Any

from prompt_toolkit import PromptSession  # type: ignore
from prompt_toolkit.key_binding import KeyBindings  # type: ignore
from prompt_toolkit.patch_stdout import patch_stdout  # type: ignore

from chatterm.app import messages as m
from chatterm.app.commands import Program
from chatterm.app.core import App
from chatterm.app.identity import is_optimistic
from chatterm.client import display
from chatterm.client.slash import handle_slash_command, print_help
from chatterm.client.status_box import build_status_toolbar, build_welcome_banner

logger = logging.getLogger(__name__)

CANCEL_TOKEN = "__CANCEL__"
EXIT_COMMANDS = {"/exit", "/quit"}


class Renderer:
    """Observer called by the program after each update; prints what changed."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._printed: set[str] = set()

    def __call__(self, msg: Any) -> None:
        app = self._app
        if isinstance(msg, m.OptimisticMessageAdded):
            display.print_user_message(msg.message)
        elif isinstance(msg, m.MessageUpdated):
            message = msg.message
            if message.role == "assistant" and message.completed and message.id not in self._printed:
                self._printed.add(message.id)
                display.print_assistant_message(message)
        elif isinstance(msg, m.MessagesLoaded) and msg.session_id == app.session.id:
            for message in app.messages:
                if is_optimistic(message):
                    continue
                self._printed.add(message.id)
                if message.role == "user":
                    display.print_user_message(message)
                else:
                    display.print_assistant_message(message)
        elif isinstance(msg, m.ModelSelected):
            display.print_model_selected(msg.provider, msg.model)
        elif isinstance(msg, m.SessionSelected):
            display.print_info(f"session -> {msg.session.title or msg.session.id}")
        elif isinstance(msg, m.SessionsListed):
            display.print_sessions(app.sessions, app.session.id)
        elif isinstance(msg, m.ProvidersListed):
            current = (app.provider.id, app.model.id) if app.provider and app.model else None
            display.print_models(app.providers, current)
        elif isinstance(msg, m.SessionDeleted):
            display.print_info(f"deleted session {msg.session_id}")
        elif isinstance(msg, m.CompletionDialogTriggered):
            print_help()
        elif isinstance(msg, m.ErrorToast):
            display.print_error(msg.text)
        elif isinstance(msg, m.InfoToast):
            display.print_info(msg.text)
        elif isinstance(msg, m.CommandFailed):
            display.print_error(str(msg.error) or msg.error.__class__.__name__)


async def interactive_loop(app: App, program: Program) -> None:
    """Read input and post it to the program; ends by sending `Quit`."""
    kb = KeyBindings()

    @kb.add("escape")
    def _(event):  # type: ignore
        if not event.app.is_done:
            event.app.exit(result=CANCEL_TOKEN)

    session: PromptSession = PromptSession(
        key_bindings=kb,
        bottom_toolbar=lambda: build_status_toolbar(app),
    )
    display.print_renderable(build_welcome_banner(app))

    with patch_stdout():
        while True:
            try:
                line = await session.prompt_async("> ")
            except EOFError:
                break
            except KeyboardInterrupt:
                continue

            if line == CANCEL_TOKEN:
                if app.is_busy():
                    program.dispatch(app.cancel())
                    print("[aborted]")
                continue
            if not line.strip():
                continue

            if line.startswith("/"):
                await handle_slash_command(line, app, program)
                if line.strip() in EXIT_COMMANDS:
                    return
                continue

            program.send(m.SendRequested(text=line, attachments=tuple(build_attachments(line))))

    program.send(m.Quit())


def build_attachments(line: str) -> list[m.Attachment]:
    """Attach files referenced as `@path` in the input line.

    Only a reference is recorded; the service reads the file through its URI.
    """
    attachments: list[m.Attachment] = []
    refs = [word[1:] for word in line.split() if word.startswith("@") and len(word) > 1]
    for ref in refs:
        path = Path(ref).expanduser()
        if not path.is_absolute():
            path = Path(os.getcwd()) / path
        if not path.is_file():
            logger.info("Skipping attachment %s: not a file", path)
            continue
        mime_type = mimetypes.guess_type(path.name)[0] or "text/plain"
        attachments.append(m.Attachment(file_path=path, file_name=path.name, mime_type=mime_type))
    return attachments
