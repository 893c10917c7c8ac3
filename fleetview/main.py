from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import TYPE_CHECKING

from nicegui import app as ng_app
from nicegui import ui

from fleetview.common.logging_config import TRACE, configure_logging
from fleetview.config import CONFIG
from fleetview.constants import LOG_LEVEL, SERVER_HOST, SERVER_PORT
from fleetview.pages.fleet import FleetPage
from fleetview.services.robot_client import client
from fleetview.session import FleetSession

if TYPE_CHECKING:
    from fleetview.config import FleetConfig
    from fleetview.services.robot_client import RobotApiClient

# Runtime configuration (resolved later from CLI/env)
RUNTIME_CONFIG = CONFIG


def mount_fleet_page(api: RobotApiClient, config: FleetConfig) -> FleetPage:
    """Build the fleet page for the current browser client and start its session."""
    ui.query(".nicegui-content").classes("p-2 gap-2")
    session = FleetSession(api, config)
    page = FleetPage(session)
    page.build()
    session.start()

    async def _on_disconnect() -> None:
        page.teardown()
        await session.stop()

    ui.context.client.on_disconnect(_on_disconnect)
    return page


@ui.page("/")
async def index() -> None:
    mount_fleet_page(client, RUNTIME_CONFIG)


ng_app.on_shutdown(client.aclose)


def resolve_log_level(args: argparse.Namespace) -> int:
    """Explicit --log-level > -v/-q > env default from constants."""
    if args.log_level:
        if args.log_level == "TRACE":
            return TRACE
        return getattr(logging, args.log_level)
    if args.verbose >= 3:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.WARNING
    return LOG_LEVEL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Robot fleet NiceGUI viewer")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Webserver bind port")
    parser.add_argument(
        "--api-url",
        default=CONFIG.api_base_url,
        help="Base URL of the robot simulation service",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Enable WARNING logging"
    )
    return parser


def run(argv: list[str] | None = None) -> None:
    global RUNTIME_CONFIG
    args, _ = build_parser().parse_known_args(argv)

    RUNTIME_CONFIG = dataclasses.replace(CONFIG, api_base_url=args.api_url.rstrip("/"))
    client.base_url = RUNTIME_CONFIG.api_base_url

    configure_logging(resolve_log_level(args))
    logging.info("Webserver bind: host=%s port=%s", args.host, args.port)
    logging.info("Robot service: %s", RUNTIME_CONFIG.api_base_url)

    ui.run(
        title="Robot Fleet Viewer",
        host=args.host,
        port=int(args.port),
        reload=False,
        show=False,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
        ws="wsproto",
        binding_refresh_interval=0.1,
    )


if __name__ in {"__main__", "__mp_main__"}:
    run()
