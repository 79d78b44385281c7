"""Per-user directories for config, state and logs.

`CHATTERM_HOME` roots all of them under one directory, which suits portable
installs; otherwise platformdirs picks the platform locations.
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "chatterm"
HOME_ENV = "CHATTERM_HOME"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _resolve(kind: str) -> Path:
    home = os.getenv(HOME_ENV)
    if home:
        return ensure_dir(Path(home).expanduser() / kind)
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    locations = {
        "config": dirs.user_config_path,
        "state": dirs.user_state_path,
        "log": dirs.user_log_path,
    }
    return ensure_dir(Path(locations[kind]))


def config_dir() -> Path:
    return _resolve("config")


def state_dir() -> Path:
    return _resolve("state")


def log_dir() -> Path:
    return _resolve("log")
