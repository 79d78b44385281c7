from __future__ import annotations

from pathlib import Path

from chatterm import settings
from chatterm.settings import DEFAULT_SERVER_URL, DEFAULT_TIMEOUT_S, ClientSettings, load_settings


def test_defaults_without_environment() -> None:
    assert load_settings({}) == ClientSettings()


def test_values_from_mapping() -> None:
    loaded = load_settings(
        {
            "CHATTERM_SERVER_URL": "http://example.test:9000/",
            "CHATTERM_TIMEOUT": "5",
            "CHATTERM_STATE_FILE": "~/state.json",
            "CHATTERM_THEME": "dark",
        }
    )

    assert loaded.server_url == "http://example.test:9000"
    assert loaded.timeout == 5.0
    assert loaded.state_file == Path.home() / "state.json"
    assert loaded.theme == "dark"


def test_invalid_timeout_falls_back() -> None:
    assert load_settings({"CHATTERM_TIMEOUT": "soon"}).timeout == DEFAULT_TIMEOUT_S
    assert load_settings({"CHATTERM_TIMEOUT": "-1"}).timeout == DEFAULT_TIMEOUT_S


def test_env_file_in_config_dir_is_loaded(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    settings.env_file().write_text("CHATTERM_SERVER_URL=http://from-dotenv.test\n")
    # Registered first so teardown also removes what the .env file sets.
    monkeypatch.setenv("CHATTERM_SERVER_URL", "placeholder")
    monkeypatch.delenv("CHATTERM_SERVER_URL")

    assert load_settings().server_url == "http://from-dotenv.test"


def test_process_environment_wins_over_env_file(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    settings.env_file().write_text("CHATTERM_SERVER_URL=http://from-dotenv.test\n")
    monkeypatch.setenv("CHATTERM_SERVER_URL", "http://from-env.test")

    assert load_settings().server_url == "http://from-env.test"
    assert load_settings().server_url != DEFAULT_SERVER_URL
