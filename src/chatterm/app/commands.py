"""Commands, batches and the single-owner message loop.

A command is a zero-argument coroutine function. The `Program` runs every
command as its own asyncio task; whatever message the command returns is put
on the owner's inbox, and only the owner loop hands messages to
`model.update`. Commands therefore never touch shared state: they capture
plain values when they are built and report back with a message.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Protocol, Union

from chatterm.app.messages import CommandFailed, Quit
from chatterm.log_utils import log_event

logger = logging.getLogger(__name__)

Msg = Any
Cmd = Callable[[], Awaitable[Msg]]


@dataclass(frozen=True)
class Batch:
    """Commands issued together; they complete in no particular order."""

    cmds: tuple[Cmd, ...]


Command = Union[Cmd, Batch, None]


def batch(*cmds: Command) -> Command:
    flat: list[Cmd] = []
    for cmd in cmds:
        if cmd is None:
            continue
        if isinstance(cmd, Batch):
            flat.extend(cmd.cmds)
        else:
            flat.append(cmd)
    if not flat:
        return None
    if len(flat) == 1:
        return flat[0]
    return Batch(tuple(flat))


def cmd_handler(msg: Msg) -> Cmd:
    """Wrap an already-known message as a command."""

    async def _deliver() -> Msg:
        return msg

    return _deliver


class Model(Protocol):
    def update(self, msg: Msg) -> Command: ...


Observer = Callable[[Msg], None]


class Program:
    """Owner of the inbox; the only caller of `model.update`."""

    def __init__(self, model: Model, observers: Iterable[Observer] = ()) -> None:
        self._model = model
        self._inbox: asyncio.Queue[Msg] = asyncio.Queue()
        self._tasks: set[asyncio.Task[None]] = set()
        self._observers: list[Observer] = list(observers)

    @property
    def model(self) -> Model:
        return self._model

    @property
    def running(self) -> int:
        return len(self._tasks)

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def send(self, msg: Msg) -> None:
        """Post a message to the inbox from any task on the loop."""
        self._inbox.put_nowait(msg)

    def dispatch(self, cmd: Command) -> None:
        """Start a command (or batch) and return immediately."""
        if cmd is None:
            return
        if isinstance(cmd, Batch):
            for item in cmd.cmds:
                self.dispatch(item)
            return
        task = asyncio.create_task(self._execute(cmd))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, cmd: Cmd) -> None:
        try:
            msg = await cmd()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - reported to the owner as a message
            log_event(
                logger,
                "command.failed",
                level=logging.ERROR,
                command=getattr(cmd, "__qualname__", repr(cmd)),
                error=str(exc) or exc.__class__.__name__,
            )
            msg = CommandFailed(exc, cmd)
        if msg is not None:
            self._inbox.put_nowait(msg)

    def process(self, msg: Msg) -> bool:
        """Apply one message on the owner. Returns False on `Quit`."""
        if isinstance(msg, Quit):
            return False
        cmd = self._model.update(msg)
        for observer in self._observers:
            observer(msg)
        self.dispatch(cmd)
        return True

    async def run(self, init: Command = None) -> None:
        """Consume the inbox until a `Quit` message arrives."""
        self.dispatch(init)
        try:
            while True:
                msg = await self._inbox.get()
                if not self.process(msg):
                    break
        finally:
            await self.shutdown()

    async def settle(self) -> None:
        """Process messages until no command is running and the inbox is empty."""
        while True:
            while not self._inbox.empty():
                if not self.process(self._inbox.get_nowait()):
                    return
            # A finished command has already queued its message.
            pending = {task for task in self._tasks if not task.done()}
            if not pending:
                return
            await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

    async def shutdown(self) -> None:
        """Cancel running commands; their results are discarded."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
