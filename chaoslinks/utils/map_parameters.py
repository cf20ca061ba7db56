# chaoslinks/utils/map_parameters.py
# Structural validation of chaos map parameters before they are shared

from __future__ import annotations

import math
from typing import Any

from chaoslinks.constants import MAP_PARAMETER_KEYS, ORDERED_BOUNDS, STABLE_RANGES


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid parameter
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_parameters(map_type: str, params: Any) -> tuple[bool, list[str]]:
    """Check that params match the expected shape for map_type.

    Returns (is_valid, errors). A `type` key is tolerated as a discriminator.
    """
    errors: list[str] = []

    if not isinstance(params, dict):
        return False, ["Parameters must be an object"]

    expected = MAP_PARAMETER_KEYS.get(map_type)
    if expected is None:
        return False, [f"Unknown map type: {map_type}"]

    missing = [key for key in expected if key not in params]
    if missing:
        errors.append(f"Missing required parameters: {', '.join(missing)}")

    extra = [key for key in params if key not in expected and key != "type"]
    if extra:
        errors.append(f"Unexpected parameters: {', '.join(extra)}")

    for key, value in params.items():
        if key == "type":
            continue
        if not _is_number(value):
            errors.append(f"Parameter '{key}' must be a valid number, got: {type(value).__name__}")

    return not errors, errors


def check_parameter_stability(map_type: str, params: Any) -> tuple[bool, list[str]]:
    """Warn about values outside the ranges where the map is known to behave.

    Structural errors are reported as warnings too, so callers get one list.
    """
    is_valid, errors = validate_parameters(map_type, params)
    if not is_valid:
        return False, errors

    warnings: list[str] = []
    for key, (low, high) in STABLE_RANGES.get(map_type, {}).items():
        value = params[key]
        if value < low or value > high:
            warnings.append(f"{key} ({value}) is outside stable range [{low}, {high}]")

    for lower, upper in ORDERED_BOUNDS.get(map_type, []):
        if params[lower] >= params[upper]:
            warnings.append(f"{lower} must be less than {upper}")

    return not warnings, warnings
