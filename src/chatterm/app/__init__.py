"""Owner state, commands and orchestration for the chat client."""

from __future__ import annotations

from chatterm.app.commands import Batch, Program, batch, cmd_handler
from chatterm.app.core import App, build_parts
from chatterm.app.resolution import default_model_for, initialize_provider, resolve_default
from chatterm.app.sessions import SessionManager, sort_sessions

__all__ = [
    "App",
    "Batch",
    "Program",
    "SessionManager",
    "batch",
    "build_parts",
    "cmd_handler",
    "default_model_for",
    "initialize_provider",
    "resolve_default",
    "sort_sessions",
]
