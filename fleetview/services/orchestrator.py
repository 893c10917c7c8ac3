from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from fleetview.common.validation import FieldError, validate_inputs
from fleetview.services.executor import Failure, Success

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fleetview.config import FleetConfig
    from fleetview.services.executor import Outcome
    from fleetview.services.robot_client import RobotApiClient
    from fleetview.state import FleetState


class Orchestrator:
    """
    Sequences user commands against the robot service.

    Each method validates the settings it needs, issues its calls strictly in
    order and stops at the first failure. Steps that already succeeded are
    never undone: the service has no rollback endpoint. Only one sequence may
    run at a time; `state.busy` is raised while one is in flight.
    """

    def __init__(self, client: RobotApiClient, state: FleetState, config: FleetConfig) -> None:
        self.client = client
        self.state = state
        self.config = config

    @contextlib.contextmanager
    def _busy(self) -> Iterator[None]:
        self.state.set_busy(True)
        try:
            yield
        finally:
            self.state.set_busy(False)

    def _reject(self, err: FieldError) -> Failure:
        # Only the offending field gets its corrected value written back
        self.state.settings.by_field(err.field).value = err.corrected_value
        self.state.report_error(err.message)
        return Failure(err.message)

    def _fail(self, action: str, outcome: Failure) -> Failure:
        self.state.report_error(f"{action} failed: {outcome.error}")
        return outcome

    # ---- Direct commands ----

    async def move_once(self) -> Outcome[Any]:
        setting = self.state.settings.meters
        check = setting.validate()
        if not check.is_valid:
            return self._reject(FieldError("meters", check.error or "", check.value))
        with self._busy():
            outcome = await self.client.move(check.value)
        if isinstance(outcome, Success):
            self.state.set_positions(outcome.value)
            return outcome
        return self._fail("Move", outcome)

    async def reset_robots(self) -> Outcome[Any]:
        setting = self.state.settings.robot_count
        check = setting.validate()
        if not check.is_valid:
            return self._reject(FieldError("robot_count", check.error or "", check.value))
        with self._busy():
            outcome = await self.client.reset(check.value)
        if isinstance(outcome, Success):
            self.state.set_positions(outcome.value)
            logging.info("Fleet reset to %d robots", len(outcome.value))
            return outcome
        return self._fail("Reset", outcome)

    # ---- Auto-run toggling ----

    async def toggle_auto(self) -> Outcome[Any]:
        if self.state.is_auto_running:
            return await self.stop_auto()
        return await self.start_auto()

    async def start_auto(self) -> Outcome[Any]:
        result = validate_inputs(self.state.settings.values(), self.config)
        if isinstance(result, FieldError):
            return self._reject(result)
        with self._busy():
            outcome = await self.client.start_auto(result.meters, result.interval_ms)
        if isinstance(outcome, Failure):
            return self._fail("Start auto", outcome)
        self.state.set_auto_running(True)
        return outcome

    async def stop_auto(self) -> Outcome[Any]:
        with self._busy():
            outcome = await self.client.stop_auto()
        if isinstance(outcome, Failure):
            return self._fail("Stop auto", outcome)
        self.state.set_auto_running(False)
        return outcome

    # ---- Apply changes ----

    async def apply_changes(self) -> Outcome[Any]:
        """
        Apply distance, interval and count together.

        stop-auto (if running) -> reset -> start-auto (if it was running).
        A failed stop leaves everything as it was. A failed reset leaves
        auto-run stopped. A failed restart keeps the new robot count.
        """
        result = validate_inputs(self.state.settings.values(), self.config, include_count=True)
        if isinstance(result, FieldError):
            return self._reject(result)
        assert result.count is not None

        was_running = self.state.is_auto_running
        with self._busy():
            if was_running:
                stopped = await self.client.stop_auto()
                if isinstance(stopped, Failure):
                    return self._fail("Stop auto", stopped)
                self.state.set_auto_running(False)

            reset = await self.client.reset(result.count)
            if isinstance(reset, Failure):
                return self._fail("Reset", reset)
            self.state.set_positions(reset.value)
            logging.info("Fleet reset to %d robots", len(reset.value))

            if not was_running:
                return reset

            started = await self.client.start_auto(result.meters, result.interval_ms)
            if isinstance(started, Failure):
                return self._fail("Start auto", started)
            self.state.set_auto_running(True)
            return started
