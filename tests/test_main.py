import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from chatterm.app.messages import Quit
from chatterm.client.client import build_parser, run_client, settings_from_args
from chatterm.settings import ClientSettings

from tests.utils import FakeService, make_client, provider_json, raise_connect_error


def test_arguments_override_settings() -> None:
    args = build_parser().parse_args(
        ["--server", "http://remote.test:4096/", "--timeout", "2.5", "--state-file", "~/tui.json", "--theme", "dark"]
    )

    settings = settings_from_args(args, ClientSettings(server_url="http://env.test"))

    assert settings.server_url == "http://remote.test:4096"
    assert settings.timeout == 2.5
    assert settings.state_file == Path.home() / "tui.json"
    assert settings.theme == "dark"


def test_missing_arguments_keep_settings() -> None:
    base = ClientSettings(server_url="http://env.test", timeout=9.0)
    assert settings_from_args(build_parser().parse_args([]), base) == base


@pytest.mark.asyncio
async def test_unreachable_service_exits_with_error(tmp_path, capsys):
    """Bootstrap failures are reported on stderr, not raised."""
    service = FakeService({"/app_info": raise_connect_error})

    with patch("chatterm.client.client.ServiceClient", return_value=make_client(service)):
        code = await run_client(ClientSettings(state_file=tmp_path / "tui.json"))

    assert code == 1
    assert "Cannot reach chat service" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_run_client_resolves_model_then_quits(tmp_path):
    """The owner loop runs the startup command and stops on Quit from input."""
    service = FakeService(
        {
            "/app_info": {},
            "/config_get": {},
            "/provider_list": {"providers": [provider_json("anthropic", "claude-3")]},
        }
    )
    seen = {}

    async def fake_loop(app, program):
        while app.model is None:
            await asyncio.sleep(0.01)
        seen["model"] = app.model.id
        program.send(Quit())

    with (
        patch("chatterm.client.client.ServiceClient", return_value=make_client(service)),
        patch("chatterm.client.client.interactive_loop", side_effect=fake_loop),
        patch("chatterm.client.client.pump_events", new=AsyncMock()),
        patch("chatterm.client.client.Renderer"),
    ):
        code = await asyncio.wait_for(run_client(ClientSettings(state_file=tmp_path / "tui.json")), timeout=5)

    assert code == 0
    assert seen == {"model": "claude-3"}
    assert (tmp_path / "tui.json").exists()
