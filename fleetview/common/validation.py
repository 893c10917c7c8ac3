from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, NamedTuple

if TYPE_CHECKING:
    from fleetview.config import FleetConfig, SettingRange

Field = Literal["meters", "interval_ms", "robot_count"]


class ValidationResult(NamedTuple):
    is_valid: bool
    value: float
    error: str | None = None


@dataclass(frozen=True)
class InputValues:
    meters: float
    interval_ms: float
    robot_count: float


@dataclass(frozen=True)
class ValidatedInputs:
    meters: float
    interval_ms: float
    count: float | None = None  # None when the count was not checked


@dataclass(frozen=True)
class FieldError:
    field: Field
    message: str
    corrected_value: float


def is_valid_number(value: object) -> bool:
    """True for finite ints/floats; bools and non-numeric values are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Constrain value to [minimum, maximum]; anything non-finite maps to minimum."""
    if not is_valid_number(value):
        return minimum
    return min(max(value, minimum), maximum)


def format_number(value: float) -> str:
    # 100.0 -> "100", 0.1 -> "0.1"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def validate_in_range(
    value: float, minimum: float, maximum: float, label: str
) -> ValidationResult:
    """
    Check value against the inclusive range [minimum, maximum].

    Returns a ValidationResult whose value is the input when valid, or the
    corrected (clamped) value with a human-readable error otherwise.
    """
    if not is_valid_number(value):
        return ValidationResult(False, minimum, f"{label} must be a valid number")
    if value < minimum:
        return ValidationResult(
            False, minimum, f"{label} must be at least {format_number(minimum)}"
        )
    if value > maximum:
        return ValidationResult(
            False, maximum, f"{label} must be at most {format_number(maximum)}"
        )
    return ValidationResult(True, value)


def validate_inputs(
    values: InputValues, config: FleetConfig, include_count: bool = False
) -> ValidatedInputs | FieldError:
    """
    Validate meters, then interval, then (optionally) robot count.

    Fail-fast: only the first invalid field is reported, in that fixed order.
    """
    checks: list[tuple[Field, float, SettingRange]] = [
        ("meters", values.meters, config.move_meters),
        ("interval_ms", values.interval_ms, config.interval_ms),
    ]
    if include_count:
        checks.append(("robot_count", values.robot_count, config.robot_count))

    validated: dict[str, float] = {}
    for name, raw, rng in checks:
        result = validate_in_range(raw, rng.minimum, rng.maximum, rng.label)
        if not result.is_valid:
            return FieldError(
                field=name, message=result.error or "", corrected_value=result.value
            )
        validated[name] = result.value

    return ValidatedInputs(
        meters=validated["meters"],
        interval_ms=validated["interval_ms"],
        count=validated.get("robot_count"),
    )
