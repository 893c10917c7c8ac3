from __future__ import annotations

import os
from dataclasses import dataclass, field

from fleetview import constants as c


@dataclass(frozen=True)
class SettingRange:
    """Inclusive bounds plus default for one user-editable numeric setting."""

    label: str
    minimum: float
    maximum: float
    default: float


@dataclass(frozen=True)
class FleetConfig:
    """Runtime configuration passed explicitly into the client components."""

    api_base_url: str = c.API_BASE_URL
    request_timeout_s: float = 10.0  # per-request transport timeout
    poll_on_start: bool = True
    # The service starts auto-run on boot
    initial_auto_running: bool = True
    move_meters: SettingRange = SettingRange(
        "Move meters", c.MIN_MOVE_METERS, c.MAX_MOVE_METERS, c.DEFAULT_MOVE_METERS
    )
    interval_ms: SettingRange = SettingRange(
        "Auto interval", c.MIN_INTERVAL_MS, c.MAX_INTERVAL_MS, c.DEFAULT_INTERVAL_MS
    )
    robot_count: SettingRange = SettingRange(
        "Robot count", c.MIN_ROBOT_COUNT, c.MAX_ROBOT_COUNT, c.DEFAULT_ROBOT_COUNT
    )
    region: tuple[tuple[float, float], ...] = field(
        default_factory=lambda: tuple(c.REGION_POLYGON)
    )

    @classmethod
    def from_env(cls) -> "FleetConfig":
        timeout = float(os.getenv("FLEETVIEW_REQUEST_TIMEOUT_S", "10.0"))
        return cls(
            api_base_url=c.API_BASE_URL,
            request_timeout_s=timeout,
            poll_on_start=c.env_flag("FLEETVIEW_POLL_ON_START", "1"),
            initial_auto_running=c.env_flag("FLEETVIEW_AUTO_RUNNING", "1"),
        )


def padded_bounds(
    polygon: tuple[tuple[float, float], ...] | list[tuple[float, float]],
    ratio: float = 0.2,
) -> tuple[tuple[float, float], tuple[float, float]]:
    """Return ((south, west), (north, east)) around polygon, grown by ratio on each side."""
    if not polygon:
        raise ValueError("polygon must contain at least one point")
    lats = [p[0] for p in polygon]
    lngs = [p[1] for p in polygon]
    south, north = min(lats), max(lats)
    west, east = min(lngs), max(lngs)
    dlat = (north - south) * ratio
    dlng = (east - west) * ratio
    return (south - dlat, west - dlng), (north + dlat, east + dlng)


# Export a default instance for convenience
CONFIG = FleetConfig.from_env()
