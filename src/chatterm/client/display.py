"""Shared rich console utilities for client output."""

from __future__ import annotations

from datetime import datetime
from io import StringIO
from threading import Lock
from typing import Any, Iterable

from prompt_toolkit.formatted_text import ANSI  # type: ignore
from prompt_toolkit.shortcuts import print_formatted_text  # type: ignore
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table
from rich.text import Text

from chatterm.api.schema import Message, Model, Provider, Session

# Render to a buffer with rich, then hand ANSI to prompt_toolkit so output
# does not corrupt the prompt line.
_render_buffer = StringIO()
_render_console = Console(
    file=_render_buffer,
    force_terminal=True,
    color_system="standard",
    markup=False,
    highlight=False,
)
_render_lock = Lock()


def _render_and_print(*args: Any, **kwargs: Any) -> None:
    kwargs.setdefault("end", "\n")
    with _render_lock:
        _render_buffer.seek(0)
        _render_buffer.truncate(0)
        _render_console.print(*args, **kwargs)
        output = _render_buffer.getvalue()
    if output:
        print_formatted_text(ANSI(output), end="")


def print_renderable(renderable: Any) -> None:
    _render_and_print(renderable)


def _format_time(timestamp: float) -> str:
    if not timestamp:
        return "-"
    # Session times may arrive in milliseconds.
    seconds = timestamp / 1000 if timestamp > 1e11 else timestamp
    return datetime.fromtimestamp(seconds).strftime("%Y-%m-%d %H:%M")


def print_user_message(message: Message) -> None:
    _render_and_print(Text(f"> {message.text}", style="bold cyan"))


def print_assistant_message(message: Message) -> None:
    text = message.text
    if not text:
        return
    _render_and_print(Markdown(text))


def print_error(text: str) -> None:
    _render_and_print(Text(f"[error] {text}", style="red"))


def print_info(text: str) -> None:
    _render_and_print(Text(f"[{text}]", style="magenta"))


def print_sessions(sessions: Iterable[Session], current_id: str = "") -> None:
    table = Table(show_header=True, box=None, header_style="bold")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Created", style="dim")
    table.add_column("Id", style="dim")
    count = 0
    for index, session in enumerate(sessions, start=1):
        marker = "*" if session.id == current_id else ""
        table.add_row(f"{marker}{index}", session.title or "(untitled)", _format_time(session.time.created), session.id)
        count += 1
    if not count:
        print_info("no sessions yet")
        return
    _render_and_print(table)


def print_models(providers: Iterable[Provider], current: tuple[str, str] | None = None) -> None:
    table = Table(show_header=True, box=None, header_style="bold")
    table.add_column("Model", style="white")
    table.add_column("Name", style="dim")
    for provider in providers:
        for model in sorted(provider.models.values(), key=lambda item: item.id):
            selected = current == (provider.id, model.id)
            label = f"{provider.id}/{model.id}"
            table.add_row(Text(label, style="green" if selected else ""), model.name)
    _render_and_print(table)


def print_model_selected(provider: Provider, model: Model) -> None:
    print_info(f"model -> {provider.id}/{model.id}")
