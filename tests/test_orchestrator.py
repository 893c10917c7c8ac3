from __future__ import annotations

import pytest

from fleetview.services.executor import Failure, Success
from fleetview.services.orchestrator import Orchestrator

from .utils.recorder import make_positions


@pytest.fixture
def orch(recorder, state, config) -> Orchestrator:
    return Orchestrator(recorder, state, config)


def _set(state, meters=5, interval_ms=1000, robot_count=15) -> None:
    state.settings.meters.value = meters
    state.settings.interval_ms.value = interval_ms
    state.settings.robot_count.value = robot_count


# ---- Apply changes ----


@pytest.mark.unit
async def test_apply_changes_while_running_stops_resets_then_restarts(orch, recorder, state):
    """Everything succeeds: auto-run ends running and the fleet has 15 robots."""
    _set(state)
    state.is_auto_running = True

    outcome = await orch.apply_changes()

    assert outcome.ok
    assert recorder.names == ["stop_auto", "reset", "start_auto"]
    assert recorder.calls[1].args == (15,)
    assert recorder.calls[2].args == (5, 1000)
    assert state.is_auto_running is True
    assert len(state.positions) == 15
    assert state.last_error is None


@pytest.mark.unit
async def test_apply_changes_when_stopped_only_resets(orch, recorder, state):
    _set(state)
    state.is_auto_running = False

    outcome = await orch.apply_changes()

    assert isinstance(outcome, Success)
    assert recorder.names == ["reset"]
    assert state.is_auto_running is False
    assert len(state.positions) == 15


@pytest.mark.unit
async def test_apply_changes_aborts_when_stop_fails(orch, recorder, state):
    _set(state)
    state.is_auto_running = True
    state.set_positions(make_positions(4))
    recorder.fail("stop_auto", "HTTP 500: stuck")

    outcome = await orch.apply_changes()

    assert outcome == Failure("HTTP 500: stuck")
    assert recorder.names == ["stop_auto"]
    assert state.is_auto_running is True
    assert len(state.positions) == 4
    assert state.last_error == "Stop auto failed: HTTP 500: stuck"


@pytest.mark.unit
async def test_apply_changes_reset_failure_leaves_auto_run_stopped(orch, recorder, state):
    _set(state)
    state.is_auto_running = True
    state.set_positions(make_positions(4))
    recorder.fail("reset")

    outcome = await orch.apply_changes()

    assert not outcome.ok
    assert recorder.names == ["stop_auto", "reset"]
    assert state.is_auto_running is False
    assert len(state.positions) == 4
    assert state.last_error == "Reset failed: HTTP 500: boom"


@pytest.mark.unit
async def test_apply_changes_restart_failure_keeps_new_count(orch, recorder, state):
    _set(state)
    state.is_auto_running = True
    recorder.fail("start_auto", "HTTP 503: busy")

    outcome = await orch.apply_changes()

    assert outcome == Failure("HTTP 503: busy")
    assert recorder.names == ["stop_auto", "reset", "start_auto"]
    assert len(state.positions) == 15
    assert state.is_auto_running is False
    assert state.last_error == "Start auto failed: HTTP 503: busy"


@pytest.mark.unit
async def test_apply_changes_invalid_field_makes_no_calls(orch, recorder, state):
    """First failing field wins and only that field is corrected."""
    _set(state, meters=0.05, interval_ms=50, robot_count=0)
    state.is_auto_running = True

    outcome = await orch.apply_changes()

    assert outcome == Failure("Move meters must be at least 0.1")
    assert recorder.calls == []
    assert state.settings.meters.value == 0.1
    assert state.settings.interval_ms.value == 50
    assert state.settings.robot_count.value == 0
    assert state.is_auto_running is True
    assert state.last_error == "Move meters must be at least 0.1"


@pytest.mark.unit
async def test_apply_changes_validates_count(orch, recorder, state):
    _set(state, robot_count=50_000)

    outcome = await orch.apply_changes()

    assert outcome == Failure("Robot count must be at most 10000")
    assert recorder.calls == []
    assert state.settings.robot_count.value == 10_000


@pytest.mark.unit
async def test_busy_is_raised_for_the_whole_sequence(orch, recorder, state):
    _set(state)
    state.is_auto_running = True
    seen: list[bool] = []
    state.on_change(lambda: seen.append(state.busy))

    await orch.apply_changes()

    assert seen[0] is True
    assert state.busy is False


# ---- Toggle auto ----


@pytest.mark.unit
async def test_toggle_starts_when_stopped(orch, recorder, state):
    _set(state, meters=2, interval_ms=500)
    state.is_auto_running = False

    outcome = await orch.toggle_auto()

    assert outcome.ok
    assert recorder.names == ["start_auto"]
    assert recorder.calls[0].args == (2, 500)
    assert state.is_auto_running is True


@pytest.mark.unit
async def test_toggle_stops_when_running(orch, recorder, state):
    state.is_auto_running = True

    outcome = await orch.toggle_auto()

    assert outcome.ok
    assert recorder.names == ["stop_auto"]
    assert state.is_auto_running is False


@pytest.mark.unit
async def test_failed_start_leaves_flag_unchanged(orch, recorder, state):
    state.is_auto_running = False
    recorder.fail("start_auto")

    outcome = await orch.start_auto()

    assert not outcome.ok
    assert state.is_auto_running is False
    assert state.last_error == "Start auto failed: HTTP 500: boom"


@pytest.mark.unit
async def test_failed_stop_leaves_flag_unchanged(orch, recorder, state):
    state.is_auto_running = True
    recorder.fail("stop_auto")

    await orch.stop_auto()

    assert state.is_auto_running is True


@pytest.mark.unit
async def test_start_rejects_invalid_interval_without_calling(orch, recorder, state):
    _set(state, interval_ms=10)
    state.is_auto_running = False

    outcome = await orch.start_auto()

    assert outcome == Failure("Auto interval must be at least 100")
    assert recorder.calls == []
    assert state.settings.interval_ms.value == 100


@pytest.mark.unit
async def test_start_ignores_robot_count(orch, recorder, state):
    _set(state, robot_count=-1)
    state.is_auto_running = False

    outcome = await orch.start_auto()

    assert outcome.ok
    assert state.settings.robot_count.value == -1


# ---- Direct commands ----


@pytest.mark.unit
async def test_move_once_replaces_positions(orch, recorder, state):
    _set(state, meters=3)
    state.set_positions(make_positions(10))
    recorder.script("move", Success(make_positions(2, lat=34.05)))

    outcome = await orch.move_once()

    assert outcome.ok
    assert recorder.calls[0].args == (3,)
    assert state.positions == make_positions(2, lat=34.05)


@pytest.mark.unit
async def test_move_once_rejects_invalid_distance(orch, recorder, state):
    _set(state, meters=20_000)

    outcome = await orch.move_once()

    assert outcome == Failure("Move meters must be at most 10000")
    assert recorder.calls == []
    assert state.settings.meters.value == 10_000


@pytest.mark.unit
async def test_move_failure_keeps_positions(orch, recorder, state):
    state.set_positions(make_positions(3))
    recorder.fail("move")

    await orch.move_once()

    assert len(state.positions) == 3
    assert state.last_error == "Move failed: HTTP 500: boom"


@pytest.mark.unit
async def test_reset_robots_uses_count_setting(orch, recorder, state):
    _set(state, robot_count=7)

    outcome = await orch.reset_robots()

    assert outcome.ok
    assert recorder.calls[0].args == (7,)
    assert len(state.positions) == 7


@pytest.mark.unit
async def test_reset_robots_rejects_non_finite_count(orch, recorder, state):
    _set(state, robot_count=float("nan"))

    outcome = await orch.reset_robots()

    assert outcome == Failure("Robot count must be a valid number")
    assert recorder.calls == []
    assert state.settings.robot_count.value == 1
