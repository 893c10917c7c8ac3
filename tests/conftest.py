from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from fleetview.common import logging_config
from fleetview.config import FleetConfig
from fleetview.services.executor import CallExecutor
from fleetview.services.robot_client import RobotApiClient
from fleetview.state import FleetState

from .utils.recorder import BASE_URL, RecorderClient

pytest_plugins = ["nicegui.testing.user_plugin"]

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture
def config() -> FleetConfig:
    return FleetConfig(api_base_url=BASE_URL, initial_auto_running=True)


@pytest.fixture
def state(config: FleetConfig) -> FleetState:
    return FleetState.from_config(config)


@pytest.fixture
def recorder() -> RecorderClient:
    return RecorderClient()


class SleepRecorder:
    """Injected executor sleep: records requested backoff delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
async def api(sleeps: SleepRecorder) -> AsyncIterator[RobotApiClient]:
    client = RobotApiClient(BASE_URL, timeout=2.0, executor=CallExecutor(sleep=sleeps))
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture
def root_logger():
    """Root logger whose handlers, level and trace flag are restored afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    trace = logging_config.trace_enabled()
    try:
        yield root
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        logging_config.set_trace_enabled(trace)
