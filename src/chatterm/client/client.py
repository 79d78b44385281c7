"""Terminal chat client: bootstrap, owner loop, input and event tasks."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from dataclasses import replace
from pathlib import Path

from chatterm.api.client import ServiceClient
from chatterm.api.errors import ChatError
from chatterm.app.commands import Program
from chatterm.app.core import App
from chatterm.app.events import pump_events
from chatterm.client.repl import Renderer, interactive_loop
from chatterm.log_utils import build_log_config, configure_logging, log_event
from chatterm.settings import ClientSettings, load_settings

logger = logging.getLogger(__name__)


async def run_client(settings: ClientSettings) -> int:
    async with ServiceClient(settings.server_url, timeout=settings.timeout) as client:
        try:
            app = await App.new(client, settings)
        except ChatError as exc:
            log_event(logger, "app.bootstrap.failed", level=logging.ERROR, error=str(exc))
            print(f"Cannot reach chat service at {settings.server_url}: {exc}", file=sys.stderr)
            return 1

        program = Program(app, observers=[Renderer(app)])
        events = asyncio.create_task(pump_events(client, program))
        repl = asyncio.create_task(interactive_loop(app, program))
        try:
            await program.run(app.init())
        finally:
            for task in (events, repl):
                task.cancel()
            for task in (events, repl):
                with contextlib.suppress(asyncio.CancelledError):
                    await task
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatterm", description="Terminal client for a chat service.")
    parser.add_argument("--server", type=str, help="Base URL of the chat service.")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds.")
    parser.add_argument("--state-file", type=Path, help="Where to keep the selected provider/model/theme.")
    parser.add_argument("--theme", type=str, help="Theme name to record in client state.")
    return parser


def settings_from_args(args: argparse.Namespace, base: ClientSettings) -> ClientSettings:
    overrides = {}
    if args.server:
        overrides["server_url"] = args.server.rstrip("/")
    if args.timeout and args.timeout > 0:
        overrides["timeout"] = args.timeout
    if args.state_file:
        overrides["state_file"] = args.state_file.expanduser()
    if args.theme:
        overrides["theme"] = args.theme
    return replace(base, **overrides)


async def main(argv: list[str]) -> int:
    args = build_parser().parse_args(argv[1:])
    settings = settings_from_args(args, load_settings())
    configure_logging(build_log_config())
    return await run_client(settings)


def cli() -> None:
    try:
        raise SystemExit(asyncio.run(main(sys.argv)))
    except KeyboardInterrupt:
        raise SystemExit(130)
