from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from fleetview.common.logging_config import TRACE, trace_enabled
from fleetview.services.executor import CancellationToken, Success

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fleetview.services.executor import Outcome
    from fleetview.state import Position


class PositionPoller:
    """
    Periodically fetches robot positions while enabled.

    At most one fetch is live at a time: starting a new poll triggers the
    previous poll's cancellation token instead of waiting for it. Results of
    a superseded poll are dropped and cancellations are never reported.
    """

    def __init__(
        self,
        fetch: Callable[[CancellationToken], Awaitable[Outcome[list[Position]]]],
        on_update: Callable[[list[Position]], None],
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._on_update = on_update
        self._on_error = on_error
        self._interval_ms: float | None = None
        self._schedule_task: asyncio.Task | None = None
        self._current_token: CancellationToken | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._schedule_task is not None and not self._schedule_task.done()

    @property
    def interval_ms(self) -> float | None:
        return self._interval_ms

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def enable(self, interval_ms: float) -> None:
        """Start polling: one fetch now, then one every interval_ms."""
        _check_interval(interval_ms)
        if self.running:
            if interval_ms != self._interval_ms:
                self.set_interval(interval_ms)
            return
        self._interval_ms = interval_ms
        self._schedule_task = asyncio.get_running_loop().create_task(
            self._schedule(interval_ms / 1000.0)
        )
        logging.info("Position polling enabled (every %g ms)", interval_ms)

    def disable(self) -> None:
        """Stop polling and abandon any in-flight fetch."""
        was_running = self.running
        if self._schedule_task is not None:
            self._schedule_task.cancel()
            self._schedule_task = None
        if self._current_token is not None:
            self._current_token.cancel()
            self._current_token = None
        if was_running:
            logging.info("Position polling disabled")

    def set_interval(self, interval_ms: float) -> None:
        """Change the period; a running schedule is fully restarted."""
        _check_interval(interval_ms)
        if not self.running:
            self._interval_ms = interval_ms
            return
        self.disable()
        self.enable(interval_ms)

    async def aclose(self) -> None:
        """Disable and wait for the schedule and abandoned fetches to settle."""
        task = self._schedule_task
        self.disable()
        pending = [t for t in (task, *self._inflight) if t is not None]
        for t in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await t

    async def _schedule(self, interval_s: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            self._poll()
            next_tick += interval_s
            now = loop.time()
            if next_tick < now:
                # Ticks missed while the loop was blocked are skipped, not replayed
                next_tick = now + interval_s
            await asyncio.sleep(next_tick - now)

    def _poll(self) -> None:
        if self._current_token is not None:
            self._current_token.cancel()
        token = CancellationToken()
        self._current_token = token
        task = asyncio.get_running_loop().create_task(self._cycle(token))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _cycle(self, token: CancellationToken) -> None:
        if trace_enabled():
            logging.log(TRACE, "Polling robot positions")
        outcome = await self._fetch(token)
        if token.cancelled:
            # Superseded by a newer poll or by disable()
            return
        if isinstance(outcome, Success):
            try:
                self._on_update(outcome.value)
            except Exception as e:
                logging.error("Position update handler failed: %s", e)
            return
        if outcome.cancelled:
            return
        if self._on_error is None:
            logging.warning("Position poll failed: %s", outcome.error)
            return
        try:
            self._on_error(outcome.error)
        except Exception as e:
            logging.error("Poll error handler failed: %s", e)


def _check_interval(interval_ms: float) -> None:
    if not interval_ms > 0:
        raise ValueError(f"Poll interval must be > 0 ms, got {interval_ms!r}")
