"""Durable per-install client state (selected provider, model, theme)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from chatterm.paths import state_dir

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "tui.json"
DEFAULT_THEME = "system"


@dataclass
class ClientState:
    provider: str = ""
    model: str = ""
    theme: str = DEFAULT_THEME

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "model": self.model, "theme": self.theme}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientState":
        return cls(
            provider=str(data.get("provider") or ""),
            model=str(data.get("model") or ""),
            theme=str(data.get("theme") or DEFAULT_THEME),
        )


def default_state_path(service_state_dir: str | None = None) -> Path:
    """Prefer the state directory the service reports, else the local one."""
    if service_state_dir:
        return Path(service_state_dir) / STATE_FILE_NAME
    return state_dir() / STATE_FILE_NAME


def load_state(path: Path) -> ClientState:
    """Read state from disk.

    Raises FileNotFoundError when absent and ValueError when the file is not
    a JSON object.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"state file {path} does not hold an object")
    return ClientState.from_dict(data)


def save_state(path: Path, state: ClientState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = json.dumps(state.to_dict(), indent=2, sort_keys=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def load_or_create_state(path: Path) -> ClientState:
    """Load state, or start fresh and persist the defaults right away."""
    try:
        return load_state(path)
    except (OSError, ValueError) as exc:
        if not isinstance(exc, FileNotFoundError):
            logger.warning("Discarding unreadable state file %s: %s", path, exc)
        state = ClientState()
        try:
            save_state(path, state)
        except OSError as save_exc:
            logger.error("Failed to save state: %s", save_exc)
        return state
