"""Runtime settings read from the environment and `.env` files."""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

from chatterm.paths import config_dir

DEFAULT_SERVER_URL = "http://127.0.0.1:4096"
DEFAULT_TIMEOUT_S = 30.0


def env_file() -> Path:
    return config_dir() / ".env"


@dataclass(frozen=True)
class ClientSettings:
    server_url: str = DEFAULT_SERVER_URL
    timeout: float = DEFAULT_TIMEOUT_S
    state_file: Path | None = None
    theme: str | None = None


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    with contextlib.suppress(ValueError):
        parsed = float(value)
        if parsed > 0:
            return parsed
    return default


def load_settings(env: Mapping[str, str] | None = None) -> ClientSettings:
    """Build settings from `CHATTERM_*` variables.

    When no mapping is given the process environment is used, after loading
    the config-dir `.env` and then a `.env` in the working directory. Neither
    overrides variables that are already set.
    """

    if env is None:
        load_dotenv(env_file(), override=False)
        load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ

    state_file = env.get("CHATTERM_STATE_FILE")
    return ClientSettings(
        server_url=(env.get("CHATTERM_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
        timeout=_parse_float(env.get("CHATTERM_TIMEOUT"), DEFAULT_TIMEOUT_S),
        state_file=Path(state_file).expanduser() if state_file else None,
        theme=env.get("CHATTERM_THEME") or None,
    )
