from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

import httpx

from fleetview.common.logging_config import TRACE, trace_enabled
from fleetview.config import CONFIG, FleetConfig
from fleetview.services.executor import (
    COMMAND_POLICY,
    LIST_POLICY,
    CallExecutor,
    CancellationToken,
    Outcome,
    RetryPolicy,
)
from fleetview.services.executor import executor as default_executor
from fleetview.state import Position

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

JSON_HEADERS = {"Content-Type": "application/json"}


class ServiceError(Exception):
    """Non-2xx response from the robot service."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def parse_positions(payload: Any) -> list[Position]:
    """
    Decode a `{"robots": [[lat, lng], ...]}` body into positions.

    A missing or null `robots` field is an empty fleet. Anything else that is
    not a list of pairs of finite JSON numbers raises ValueError.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected response body: {type(payload).__name__}")
    robots = payload.get("robots")
    if robots is None:
        return []
    if not isinstance(robots, list):
        raise ValueError("'robots' must be a list")
    positions: list[Position] = []
    for idx, item in enumerate(robots):
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            raise ValueError(f"Malformed robot position at index {idx}: {item!r}")
        positions.append(Position(_coordinate(item[0], idx), _coordinate(item[1], idx)))
    return positions


def _coordinate(value: Any, idx: int) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Non-numeric coordinate at index {idx}: {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"Non-finite coordinate at index {idx}: {value!r}")
    return float(value)


class RobotApiClient:
    """
    Async HTTP client for the robot simulation service.

    Each operation is one executor-wrapped request and returns an Outcome;
    nothing here touches client-side state.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        executor: CallExecutor | None = None,
        list_policy: RetryPolicy = LIST_POLICY,
        command_policy: RetryPolicy = COMMAND_POLICY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.list_policy = list_policy
        self.command_policy = command_policy
        self._executor = executor or default_executor
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: FleetConfig, **kwargs: Any) -> "RobotApiClient":
        return cls(config.api_base_url, timeout=config.request_timeout_s, **kwargs)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _send(self, method: str, path: str, body: dict | None = None) -> httpx.Response:
        if method == "GET":
            response = await self._client().get(path)
        else:
            response = await self._client().request(
                method, path, json=body, headers=JSON_HEADERS
            )
        if not response.is_success:
            raise ServiceError(
                response.status_code, response.text or response.reason_phrase
            )
        return response

    async def _positions(self, method: str, path: str, body: dict | None = None) -> list[Position]:
        response = await self._send(method, path, body)
        return parse_positions(response.json())

    async def _ack(self, path: str, body: dict | None = None) -> None:
        await self._send("POST", path, body)

    async def _run(
        self,
        name: str,
        operation: Callable[[], Awaitable[Any]],
        policy: RetryPolicy,
        token: CancellationToken | None = None,
    ) -> Outcome[Any]:
        outcome = await self._executor.execute(operation, policy, token, name=name)
        if outcome.ok and trace_enabled():
            logging.log(TRACE, "%s ok", name)
        return outcome

    # ---- Public operations ----

    async def get_robots(
        self, token: CancellationToken | None = None
    ) -> Outcome[list[Position]]:
        return await self._run(
            "GET /robots", lambda: self._positions("GET", "/robots"), self.list_policy, token
        )

    async def move(self, meters: float) -> Outcome[list[Position]]:
        return await self._run(
            "POST /move",
            lambda: self._positions("POST", "/move", {"meters": meters}),
            self.command_policy,
        )

    async def reset(self, count: float) -> Outcome[list[Position]]:
        return await self._run(
            "POST /reset",
            lambda: self._positions("POST", "/reset", {"count": int(count)}),
            self.command_policy,
        )

    async def start_auto(self, meters: float, interval_ms: float) -> Outcome[None]:
        body = {"meters": meters, "intervalMs": int(interval_ms)}
        return await self._run(
            "POST /start-auto", lambda: self._ack("/start-auto", body), self.command_policy
        )

    async def stop_auto(self) -> Outcome[None]:
        return await self._run(
            "POST /stop-auto", lambda: self._ack("/stop-auto"), self.command_policy
        )


# Module-level singleton instance
client = RobotApiClient.from_config(CONFIG)
