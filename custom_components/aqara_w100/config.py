"""Per-device options for the Aqara W100 climate bridge."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

import voluptuous as vol

from .const import (
    CONF_HUB_ID,
    CONF_MAX_TARGET_TEMP,
    CONF_MIN_TARGET_TEMP,
    CONF_TEMP_PRECISION,
    DEFAULT_HUB_ID,
    TARGET_TEMP_LIMIT_MAX,
    TARGET_TEMP_LIMIT_MIN,
)
from .exceptions import MalformedIdentifierError
from .models import STANDARD_PROFILE
from .thermostat_mode import clean_identifier

if TYPE_CHECKING:
    from .models import ThermostatProfile


def hub_id_validator(value: Any) -> str:  # noqa: ANN401
    """Validate and normalise a hub identifier."""
    try:
        return clean_identifier(str(value), "hub")
    except MalformedIdentifierError as err:
        raise vol.Invalid(str(err)) from err


_TARGET_TEMP = vol.All(
    vol.Coerce(float),
    vol.Range(min=TARGET_TEMP_LIMIT_MIN, max=TARGET_TEMP_LIMIT_MAX),
)

OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_MIN_TARGET_TEMP): _TARGET_TEMP,
        vol.Optional(CONF_MAX_TARGET_TEMP): _TARGET_TEMP,
        vol.Optional(CONF_TEMP_PRECISION): vol.All(vol.Coerce(int), vol.In([0, 1])),
        vol.Optional(CONF_HUB_ID, default=DEFAULT_HUB_ID): hub_id_validator,
    }
)


def build_profile(
    options: dict[str, Any] | None,
    base: ThermostatProfile = STANDARD_PROFILE,
) -> ThermostatProfile:
    """Merge per-device options into a variant profile.

    Args:
        options: Raw options, validated against OPTIONS_SCHEMA.
        base: Profile providing the values of omitted options.

    Returns:
        The resulting ThermostatProfile.

    Raises:
        vol.Invalid: If an option is invalid or the minimum exceeds the
            maximum.

    """
    validated = OPTIONS_SCHEMA(dict(options or {}))

    min_temp = validated.get(CONF_MIN_TARGET_TEMP, base.min_temp)
    max_temp = validated.get(CONF_MAX_TARGET_TEMP, base.max_temp)
    if min_temp > max_temp:
        error_msg = (
            f"{CONF_MIN_TARGET_TEMP} ({min_temp}) must not exceed "
            f"{CONF_MAX_TARGET_TEMP} ({max_temp})"
        )
        raise vol.Invalid(error_msg)

    return dataclasses.replace(
        base,
        min_temp=min_temp,
        max_temp=max_temp,
        temp_precision=validated.get(CONF_TEMP_PRECISION, base.temp_precision),
    )
