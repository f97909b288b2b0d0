"""Room event loop: serial dispatch of advances and chat commands."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from roomguard.config import ResolverConfig
from roomguard.integrations.contracts import RoomClient
from roomguard.logging import get_logger
from roomguard.logging_events import log_event
from roomguard.orchestrator.commands import ChatCommandHandler
from roomguard.orchestrator.events import AdvanceEvent, ChatEvent
from roomguard.orchestrator.resolver import ResolutionOrchestrator
from roomguard.utils.retry import BackoffPolicy

logger = get_logger(__name__)


class RoomDispatcher:
    """Consumes room events one at a time and reconnects when the stream drops.

    Advances are never resolved concurrently; the next event is only read
    once the previous handler returned.
    """

    def __init__(
        self,
        *,
        room: RoomClient,
        orchestrator: ResolutionOrchestrator,
        commands: ChatCommandHandler,
        config: ResolverConfig | None = None,
    ) -> None:
        self._room = room
        self._orchestrator = orchestrator
        self._commands = commands
        self._config = config or ResolverConfig()
        self._backoff = BackoffPolicy(
            base_ms=self._config.reconnect_backoff_ms,
            max_delay_ms=self._config.reconnect_max_delay_ms,
        )
        self._stop_signal: asyncio.Event | None = None
        self._pending_stop = False
        self._running = False
        self.reconnects = 0

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        if self._stop_signal is not None:
            self._stop_signal.set()
        else:
            self._pending_stop = True

    async def run(self) -> None:
        """Connect and dispatch until :meth:`stop` is called."""

        self._stop_signal = asyncio.Event()
        if self._pending_stop:
            self._stop_signal.set()
            self._pending_stop = False
        failures = 0
        self._running = True
        try:
            while not self._stop_signal.is_set():
                try:
                    await self._room.connect()
                    if await self._consume():
                        failures = 0
                    reason = "closed"
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.warning("Room connection failed: %s", exc)
                    reason = exc.__class__.__name__
                if self._stop_signal.is_set():
                    break
                failures += 1
                self.reconnects += 1
                delay_ms = self._reconnect_delay(failures)
                log_event(
                    logger,
                    "dispatcher.reconnect",
                    level=logging.WARNING,
                    component="dispatcher",
                    status="reconnecting",
                    reason=reason,
                    attempt=failures,
                    delay_ms=delay_ms,
                )
                await self._sleep(delay_ms)
        finally:
            self._running = False
            self._stop_signal = None

    async def _consume(self) -> int:
        """Dispatch one connection's events; returns how many were delivered."""

        assert self._stop_signal is not None
        delivered = 0
        async for event in self._room.events():
            delivered += 1
            await self.dispatch(event)
            if self._stop_signal.is_set():
                break
        return delivered

    async def dispatch(self, event: object) -> None:
        """Route a single event; handler failures are logged and swallowed."""

        try:
            if isinstance(event, AdvanceEvent):
                await self._orchestrator.handle_advance(event)
            elif isinstance(event, ChatEvent):
                reply = self._commands.handle(event.text)
                if reply is not None:
                    await self._room.send_chat(reply)
            else:
                logger.debug("Ignoring room event %r", event)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Room event handler failed for %s", type(event).__name__)

    def _reconnect_delay(self, failures: int) -> int:
        delays = self._backoff.delays(failures + 1)
        return delays[-1] if delays else 0

    async def _sleep(self, delay_ms: int) -> None:
        if self._stop_signal is None or delay_ms <= 0:
            await asyncio.sleep(0)
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_signal.wait(), delay_ms / 1000.0)


__all__ = ["RoomDispatcher"]
