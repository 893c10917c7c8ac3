from __future__ import annotations

import logging
import os

# Remote robot service (what the UI talks to)
API_BASE_URL: str = os.getenv("FLEETVIEW_API_URL", "http://localhost:4000").rstrip("/")

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("FLEETVIEW_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("FLEETVIEW_SERVER_PORT", "8080"))

# Movement / polling defaults
DEFAULT_MOVE_METERS: float = 1
DEFAULT_INTERVAL_MS: int = 60_000  # 1 minute
DEFAULT_ROBOT_COUNT: int = 20

# Validation constraints (inclusive)
MIN_MOVE_METERS: float = 0.1
MAX_MOVE_METERS: float = 10_000
MIN_INTERVAL_MS: int = 100
MAX_INTERVAL_MS: int = 3_600_000  # 1 hour
MIN_ROBOT_COUNT: int = 1
MAX_ROBOT_COUNT: int = 10_000

# Region the simulated robots live in: Downtown Los Angeles
REGION_POLYGON: list[tuple[float, float]] = [
    (34.055, -118.275),
    (34.055, -118.225),
    (34.02, -118.225),
    (34.02, -118.275),
]
MAP_CENTER: tuple[float, float] = (34.04, -118.25)
MAP_ZOOM: int = 14

_TRUTHY = ("1", "true", "True", "yes", "YES", "on")


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default) in _TRUTHY


def _resolve_log_level() -> int:
    s = os.getenv("FLEETVIEW_LOG_LEVEL")
    if not s:
        return logging.WARNING
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(s.strip().upper(), logging.WARNING)


LOG_LEVEL: int = _resolve_log_level()
