from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

from fleetview.common.validation import (
    InputValues,
    ValidationResult,
    clamp,
    validate_in_range,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetview.config import FleetConfig, SettingRange


class Position(NamedTuple):
    lat: float
    lng: float


@dataclass
class NumericSetting:
    """
    A user-editable number with inclusive bounds.

    `value` is either committed (inside the bounds) or a draft that is still
    being typed; commit() clamps it before anything reaches the network.
    """

    label: str
    minimum: float
    maximum: float
    value: float

    def __post_init__(self) -> None:
        self.value = clamp(self.value, self.minimum, self.maximum)

    @classmethod
    def from_range(cls, rng: SettingRange) -> "NumericSetting":
        return cls(rng.label, rng.minimum, rng.maximum, rng.default)

    def set_draft(self, raw: object) -> bool:
        """Accept a typed value; empty or non-numeric input is ignored."""
        if raw is None or isinstance(raw, bool) or raw == "":
            return False
        try:
            number = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False
        if not math.isfinite(number):
            return False
        self.value = number
        return True

    def commit(self) -> float:
        self.value = clamp(self.value, self.minimum, self.maximum)
        return self.value

    def validate(self) -> ValidationResult:
        return validate_in_range(self.value, self.minimum, self.maximum, self.label)


@dataclass
class FleetSettings:
    meters: NumericSetting
    interval_ms: NumericSetting
    robot_count: NumericSetting

    @classmethod
    def from_config(cls, config: FleetConfig) -> "FleetSettings":
        return cls(
            meters=NumericSetting.from_range(config.move_meters),
            interval_ms=NumericSetting.from_range(config.interval_ms),
            robot_count=NumericSetting.from_range(config.robot_count),
        )

    def by_field(self, name: str) -> NumericSetting:
        return {
            "meters": self.meters,
            "interval_ms": self.interval_ms,
            "robot_count": self.robot_count,
        }[name]

    def values(self) -> InputValues:
        return InputValues(
            meters=self.meters.value,
            interval_ms=self.interval_ms.value,
            robot_count=self.robot_count.value,
        )


@dataclass
class FleetState:
    """
    Client-side view of the fleet for one session.

    Readers subscribe with on_positions / on_change / on_error; writers go
    through set_positions, set_auto_running and report_error.
    """

    settings: FleetSettings
    positions: list[Position] = field(default_factory=list)
    is_auto_running: bool = False
    busy: bool = False
    last_error: str | None = None
    last_update_ts: float = 0.0
    _position_listeners: list[Callable[[list[Position]], None]] = field(
        default_factory=list, repr=False
    )
    _change_listeners: list[Callable[[], None]] = field(default_factory=list, repr=False)
    _error_listeners: list[Callable[[str], None]] = field(default_factory=list, repr=False)

    @classmethod
    def from_config(cls, config: FleetConfig) -> "FleetState":
        return cls(
            settings=FleetSettings.from_config(config),
            is_auto_running=config.initial_auto_running,
        )

    @property
    def robot_count(self) -> int:
        return len(self.positions)

    # ---- Subscriptions ----

    def on_positions(self, callback: Callable[[list[Position]], None]) -> None:
        self._position_listeners.append(callback)

    def on_change(self, callback: Callable[[], None]) -> None:
        self._change_listeners.append(callback)

    def on_error(self, callback: Callable[[str], None]) -> None:
        self._error_listeners.append(callback)

    def _notify_change(self) -> None:
        for cb in list(self._change_listeners):
            try:
                cb()
            except Exception as e:
                logging.error("State listener failed: %s", e)

    # ---- Mutations ----

    def set_positions(self, positions: list[Position]) -> None:
        """Replace the position set wholesale."""
        self.positions = list(positions)
        self.last_update_ts = time.time()
        for cb in list(self._position_listeners):
            try:
                cb(self.positions)
            except Exception as e:
                logging.error("Positions listener failed: %s", e)
        self._notify_change()

    def set_auto_running(self, running: bool) -> None:
        if self.is_auto_running != running:
            self.is_auto_running = running
            logging.info("Auto-run %s", "started" if running else "stopped")
        self._notify_change()

    def set_busy(self, busy: bool) -> None:
        self.busy = busy
        self._notify_change()

    def report_error(self, message: str) -> None:
        self.last_error = message
        logging.warning("%s", message)
        for cb in list(self._error_listeners):
            try:
                cb(message)
            except Exception as e:
                logging.error("Error listener failed: %s", e)
        self._notify_change()

    def dismiss_error(self) -> None:
        self.last_error = None
        self._notify_change()
