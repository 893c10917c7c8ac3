from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nicegui import ui

from fleetview.common.logging_config import attach_ui_log, detach_ui_log
from fleetview.config import padded_bounds
from fleetview.constants import MAP_CENTER, MAP_ZOOM
from fleetview.services.executor import Failure

if TYPE_CHECKING:
    from nicegui.elements.leaflet_layer import Layer

    from fleetview.services.executor import Outcome
    from fleetview.session import FleetSession
    from fleetview.state import NumericSetting, Position

REGION_STYLE = {
    "color": "#f97316",  # bright orange outline
    "weight": 3,
    "fillColor": "#f97316",
    "fillOpacity": 0.15,
}


class FleetPage:
    """Map, controls and log for one fleet session."""

    def __init__(self, session: FleetSession) -> None:
        self.session = session
        self.state = session.state
        self.orchestrator = session.orchestrator

        self.map: ui.leaflet | None = None
        self.response_log: ui.log | None = None
        self.inputs: dict[str, ui.number] = {}
        self._markers: list[Layer] = []

    # ---- Actions ----

    def _report(self, action: str, outcome: Outcome) -> None:
        if isinstance(outcome, Failure):
            ui.notify(outcome.error, color="negative")
        else:
            ui.notify(action, color="positive")
            logging.info("%s", action)
        self._sync_inputs()

    async def move_once(self) -> None:
        self._report("Moved robots", await self.orchestrator.move_once())

    async def reset_robots(self) -> None:
        self._report("Reset robots", await self.orchestrator.reset_robots())

    async def toggle_auto(self) -> None:
        starting = not self.state.is_auto_running
        outcome = await self.orchestrator.toggle_auto()
        self._report("Started auto" if starting else "Stopped auto", outcome)

    async def apply_changes(self) -> None:
        outcome = await self.orchestrator.apply_changes()
        self._report("Applied changes", outcome)
        if outcome.ok:
            self.session.commit_interval()

    # ---- Inputs ----

    def _sync_inputs(self) -> None:
        """Push setting values (possibly corrected) back into the widgets."""
        for name, widget in self.inputs.items():
            value = self.state.settings.by_field(name).value
            if widget.value != value:
                widget.value = value

    def _commit(self, name: str) -> None:
        setting = self.state.settings.by_field(name)
        if name == "interval_ms":
            self.session.commit_interval()
        else:
            setting.commit()
        self._sync_inputs()

    def _number_input(self, name: str, setting: NumericSetting, step: float) -> ui.number:
        widget = ui.number(
            label=setting.label,
            value=setting.value,
            min=setting.minimum,
            max=setting.maximum,
            step=step,
            on_change=lambda e: setting.set_draft(e.value),
        ).style("width: 140px").mark(name)
        widget.on("blur", lambda: self._commit(name))
        widget.on("keydown.enter", lambda: self._commit(name))
        self.inputs[name] = widget
        return widget

    # ---- Map ----

    def _fit_region(self) -> None:
        if self.map is None:
            return
        (south, west), (north, east) = padded_bounds(self.session.config.region)
        self.map.run_map_method("fitBounds", [[south, west], [north, east]])

    def update_markers(self, positions: list[Position]) -> None:
        """Replace every robot marker with the latest positions."""
        if self.map is None:
            return
        with self.map:
            for marker in self._markers:
                self.map.remove_layer(marker)
            self._markers = [self.map.marker(latlng=(p.lat, p.lng)) for p in positions]

    # ---- Layout ----

    def build_header(self) -> None:
        with ui.row().classes("w-full items-center justify-between"):
            with ui.column().classes("gap-0"):
                ui.label("Robot Visualization").classes("text-lg font-medium")
                ui.label().bind_text_from(
                    self.state,
                    "positions",
                    backward=lambda p: f"Downtown Los Angeles - {len(p)} robots active",
                ).classes("text-sm")
            with ui.row().classes("items-center gap-2"):
                buttons = [
                    ui.button("Move Once", on_click=self.move_once)
                    .props("color=primary")
                    .mark("move"),
                    ui.button(on_click=self.toggle_auto)
                    .bind_text_from(
                        self.state,
                        "is_auto_running",
                        backward=lambda r: "Stop Auto" if r else "Start Auto",
                    )
                    .props("color=positive")
                    .mark("toggle-auto"),
                    ui.button("Reset", on_click=self.reset_robots)
                    .props("color=purple")
                    .mark("reset"),
                    ui.button("Apply changes", on_click=self.apply_changes)
                    .props("color=warning")
                    .mark("apply"),
                ]
                # Only one command sequence may be in flight at a time
                for button in buttons:
                    button.bind_enabled_from(self.state, "busy", backward=lambda b: not b)
        with ui.row().classes("items-center gap-4"):
            settings = self.state.settings
            self._number_input("meters", settings.meters, step=0.1)
            self._number_input("robot_count", settings.robot_count, step=1)
            self._number_input("interval_ms", settings.interval_ms, step=100)

    def build_error_banner(self) -> None:
        with (
            ui.card()
            .classes("w-full bg-red-100")
            .bind_visibility_from(self.state, "last_error", backward=bool),
            ui.row().classes("w-full items-center justify-between"),
        ):
            ui.label().bind_text_from(
                self.state, "last_error", backward=lambda m: m or ""
            ).classes("text-sm text-red-800")
            ui.button(icon="close", on_click=self.state.dismiss_error).props(
                "flat round dense"
            )

    def build(self) -> None:
        with ui.card().classes("w-full"):
            self.build_header()
        self.build_error_banner()

        self.map = ui.leaflet(center=MAP_CENTER, zoom=MAP_ZOOM).classes("w-full").style(
            "height: 70vh"
        )
        self.map.generic_layer(
            name="polygon",
            args=[[list(p) for p in self.session.config.region], REGION_STYLE],
        )
        self.map.on("init", lambda: self._fit_region())

        with ui.card().classes("w-full"):
            ui.label("Response Log").classes("text-md font-medium")
            self.response_log = (
                ui.log(max_lines=500)
                .classes("w-full whitespace-pre-wrap break-words")
                .style("height: 160px")
            )
        attach_ui_log(self.response_log)

        self.state.on_positions(self.update_markers)
        self.update_markers(self.state.positions)

    def teardown(self) -> None:
        if self.response_log is not None:
            detach_ui_log(self.response_log)
