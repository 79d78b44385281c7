"""Bottom toolbar and welcome banner."""

from __future__ import annotations

import os
from pathlib import Path

from rich.panel import Panel
from rich.text import Text

from chatterm.app.core import App


def short_path(path: str | None) -> str:
    """Absolute path with the home directory shown as `~`."""
    resolved = Path(path or os.getcwd()).expanduser().absolute()
    home = Path.home()
    if resolved == home or home in resolved.parents:
        return str(Path("~") / resolved.relative_to(home))
    return str(resolved)


def _model_label(app: App) -> str:
    if app.provider is None or app.model is None:
        return "not set"
    return f"{app.provider.id}/{app.model.id}"


def _session_label(app: App) -> str:
    if app.session.is_empty:
        return "new"
    return app.session.title or app.session.id


def build_status_toolbar(app: App) -> list[tuple[str, str]]:
    leader = (app.config.keybinds.leader if app.config.keybinds else None) or "-"
    fields = [
        ("Model", _model_label(app)),
        ("Session", _session_label(app)),
        ("State", "busy" if app.is_busy() else "idle"),
        ("Leader", leader),
        ("Esc", "abort"),
    ]
    fragments: list[tuple[str, str]] = []
    for index, (label, value) in enumerate(fields):
        if index:
            fragments.append(("", "  "))
        fragments.append(("class:toolbar.label", f"{label}: "))
        fragments.append(("class:toolbar.value", value))
    return fragments


def welcome_lines(app: App) -> list[str]:
    lines = [
        "Send /help for the command list.",
        f"Directory: {short_path(app.info.path.cwd or None)}",
        f"Server: {app.client.base_url}",
        f"Theme: {app.state.theme}",
    ]
    if not app.info.initialized:
        lines.append("Project not initialized: send /init")
    return lines


def build_welcome_banner(app: App) -> Panel:
    return Panel(
        Text("\n".join(welcome_lines(app))),
        title="chatterm",
        title_align="left",
        border_style="green",
        expand=False,
    )
