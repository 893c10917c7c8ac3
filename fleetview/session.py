from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetview.services.orchestrator import Orchestrator
from fleetview.services.poller import PositionPoller
from fleetview.state import FleetState

if TYPE_CHECKING:
    from fleetview.config import FleetConfig
    from fleetview.services.robot_client import RobotApiClient


class FleetSession:
    """One browser page's worth of client state, polling and commands."""

    def __init__(self, client: RobotApiClient, config: FleetConfig) -> None:
        self.config = config
        self.client = client
        self.state = FleetState.from_config(config)
        self.orchestrator = Orchestrator(client, self.state, config)
        self.poller = PositionPoller(
            fetch=client.get_robots,
            on_update=self.state.set_positions,
            on_error=self._on_poll_error,
        )

    def _on_poll_error(self, message: str) -> None:
        self.state.report_error(f"Failed to fetch robots: {message}")

    def start(self) -> None:
        if self.config.poll_on_start:
            self.poller.enable(self.state.settings.interval_ms.commit())
        logging.info("Fleet session started (api=%s)", self.client.base_url)

    def commit_interval(self) -> float:
        """Clamp the interval setting and re-time polling to it."""
        interval = self.state.settings.interval_ms.commit()
        self.poller.set_interval(interval)
        return interval

    async def stop(self) -> None:
        await self.poller.aclose()
        logging.info("Fleet session stopped")
