"""Field codec for the PMTSD protocol.

This module maps the symbolic values used by the hub (``"heat"``, ``"auto"``,
``"medium"``...) to the compact numeric encoding used on the wire, and
validates setpoints against the bounds of a ThermostatProfile. Every function
is pure: unmapped values raise instead of defaulting to index 0.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any

from .const import HVAC_MODE_MAP, POWER_MAP, SPARE_FLAG_MAP
from .exceptions import InvalidEnumValueError, OutOfRangeError
from .models import STANDARD_PROFILE, ThermostatProfile


class PMTSDField(StrEnum):
    """Enumerable PMTSD fields, keyed by their wire letter."""

    POWER = "p"
    MODE = "m"
    SPEED = "s"
    SPARE = "d"


def _lookup_table(field: PMTSDField, profile: ThermostatProfile) -> dict[str, int]:
    if field is PMTSDField.POWER:
        return POWER_MAP
    if field is PMTSDField.MODE:
        return {str(mode): index for mode, index in HVAC_MODE_MAP.items()}
    if field is PMTSDField.SPEED:
        return {label: index for index, label in enumerate(profile.fan_labels)}
    return SPARE_FLAG_MAP


def decode_symbol(
    field: PMTSDField,
    value: Any,  # noqa: ANN401
    profile: ThermostatProfile = STANDARD_PROFILE,
) -> int:
    """Convert a symbolic value to its wire index.

    Args:
        field: Field the value belongs to.
        value: Symbolic text (case-insensitive) or an integer wire index.
        profile: Variant settings providing the fan labels.

    Returns:
        The numeric wire value.

    Raises:
        InvalidEnumValueError: If the value is not part of the field's table.

    """
    table = _lookup_table(field, profile)

    if isinstance(value, int) and not isinstance(value, bool):
        if value in table.values():
            return value
    elif isinstance(value, str) and value.strip().lower() in table:
        return table[value.strip().lower()]

    allowed = ", ".join(f'"{key}"' for key in table)
    error_msg = f"{field.name.lower()} must be one of {allowed}, got {value!r}"
    raise InvalidEnumValueError(error_msg)


def encode_symbol(
    field: PMTSDField,
    index: int,
    profile: ThermostatProfile = STANDARD_PROFILE,
) -> str:
    """Convert a wire index back to its symbolic value.

    Raises:
        InvalidEnumValueError: If the index is out of the field's range.

    """
    for key, value in _lookup_table(field, profile).items():
        if value == index:
            return key

    error_msg = f"{field.name.lower()} index out of range: {index!r}"
    raise InvalidEnumValueError(error_msg)


def round_setpoint(value: float, precision: int) -> int | float:
    """Round half up to the wire precision, returning an int for precision 0."""
    scale = 10**precision
    rounded = math.floor(value * scale + 0.5) / scale
    if precision == 0:
        return int(rounded)
    return rounded


def format_setpoint(value: float, precision: int) -> str:
    """Format a setpoint the way it is written into the payload."""
    if precision == 0:
        return str(int(value))
    return f"{value:.{precision}f}"


def parse_setpoint(text: str, precision: int) -> int | float | None:
    """Parse a setpoint token value, returning None if it is not numeric.

    Integer precision truncates toward zero (``"22.5"`` is 22), decimal
    precision rounds half up.
    """
    try:
        value = float(text)
    except ValueError:
        return None

    if not math.isfinite(value):
        return None

    if precision == 0:
        return math.trunc(value)
    return round_setpoint(value, precision)


def parse_reported_setpoint(
    text: str, profile: ThermostatProfile = STANDARD_PROFILE
) -> int | float | None:
    """Parse a device-reported setpoint, returning None if unusable.

    Returns:
        The parsed setpoint, or None if it is not numeric or lies outside
        the profile bounds.

    """
    value = parse_setpoint(text, profile.temp_precision)
    if value is None or not profile.min_temp <= value <= profile.max_temp:
        return None
    return value


def validate_setpoint(
    value: Any,  # noqa: ANN401
    profile: ThermostatProfile = STANDARD_PROFILE,
) -> int | float:
    """Validate a requested setpoint and round it to the wire precision.

    Args:
        value: Requested setpoint (number or numeric text).
        profile: Variant settings providing bounds and precision.

    Returns:
        The rounded setpoint.

    Raises:
        OutOfRangeError: If the value is not numeric or outside the bounds.

    """
    bounds_msg = f"setpoint must be between {profile.min_temp} and {profile.max_temp}"

    if isinstance(value, bool):
        raise OutOfRangeError(f"{bounds_msg}, got {value!r}")

    try:
        temperature = float(value)
    except (TypeError, ValueError) as err:
        raise OutOfRangeError(f"{bounds_msg}, got {value!r}") from err

    if math.isnan(temperature):
        raise OutOfRangeError(f"{bounds_msg}, got NaN")

    if temperature < profile.min_temp or temperature > profile.max_temp:
        raise OutOfRangeError(f"{bounds_msg}, got {temperature}")

    precision = profile.temp_precision
    rounded = round_setpoint(temperature, precision)

    # Half-degree bounds can round outside themselves at integer precision
    scale = 10**precision
    if rounded > profile.max_temp:
        rounded = math.floor(profile.max_temp * scale) / scale
    elif rounded < profile.min_temp:
        rounded = math.ceil(profile.min_temp * scale) / scale
    return int(rounded) if precision == 0 else rounded


def parse_index(text: str, field: PMTSDField) -> int | None:
    """Parse a numeric token value for an enumerable field.

    Returns:
        The wire index, or None if the text is not a valid index.

    """
    try:
        index = int(text)
    except ValueError:
        return None

    table = _lookup_table(field, STANDARD_PROFILE)
    if index not in table.values():
        return None
    return index
