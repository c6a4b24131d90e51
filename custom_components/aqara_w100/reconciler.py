"""State reconciliation between the logical climate state and PMTSD frames.

StateReconciler owns the ClimateState of one device. Device reports and hub
commands are both merged into a working PMTSD frame seeded from that state,
then committed back to it, so the two directions can never disagree on how
P and M combine into ``system_mode``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import HVACMode
from homeassistant.util import dt as dt_util

from .codec import (
    PMTSDField,
    decode_symbol,
    encode_symbol,
    parse_setpoint,
    validate_setpoint,
)
from .const import (
    ATTR_FAN_MODE,
    ATTR_PMTSD,
    ATTR_POWER,
    ATTR_SETPOINT,
    ATTR_SPARE_FLAG,
    ATTR_SYSTEM_MODE,
    ATTR_THERMOSTAT_ENABLED,
    CLIMATE_COMMANDS,
    HVAC_MODE_MAP,
    HVAC_MODE_REVERSE_MAP,
    MIN_SEND_INTERVAL,
    STATE_OFF,
    STATE_ON,
)
from .exceptions import (
    InvalidEnumValueError,
    OutOfRangeError,
    ThermostatDisabledError,
)
from .models import PMTSDFrame

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime

    from .models import ClimateState, PartialPMTSDFrame, ThermostatProfile

SUMMARY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_BULK_FIELDS = {
    "p": PMTSDField.POWER,
    "m": PMTSDField.MODE,
    "s": PMTSDField.SPEED,
    "d": PMTSDField.SPARE,
}


class RateLimiter:
    """Decides whether a PMTSD frame must be transmitted."""

    def __init__(self, min_interval: float = MIN_SEND_INTERVAL) -> None:
        """Initialize the rate limiter.

        Args:
            min_interval: Seconds after which an unchanged frame is resent.

        """
        self.min_interval = min_interval

    def should_transmit(
        self,
        has_changed: bool,  # noqa: FBT001
        now: float,
        last_transmit_time: float | None,
    ) -> bool:
        """Return True if a value changed or the interval has elapsed."""
        if has_changed or last_transmit_time is None:
            return True
        return now - last_transmit_time >= self.min_interval


@dataclass(slots=True)
class InboundUpdate:
    """Result of merging a device report into the logical state."""

    changes: dict[str, Any]
    summary: str
    frame: PMTSDFrame


@dataclass(slots=True)
class OutboundUpdate:
    """Result of applying a hub command to the logical state."""

    changes: dict[str, Any]
    frame: PMTSDFrame
    has_changed: bool
    should_transmit: bool


class StateReconciler:
    """Reconciles device reports and hub commands for one W100 device."""

    def __init__(
        self,
        state: ClimateState,
        profile: ThermostatProfile,
        logger: logging.Logger,
        *,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the reconciler.

        Args:
            state: Logical state owned by this reconciler.
            profile: Variant settings (precision, bounds, fan labels).
            logger: Logger receiving reconciliation messages.
            rate_limiter: Transmission gate, 5 second interval by default.
            clock: Wall-clock source in seconds.

        """
        self._state = state
        self._profile = profile
        self._logger = logger
        self._rate_limiter = rate_limiter or RateLimiter()
        self._clock = clock

    @property
    def state(self) -> ClimateState:
        """Return the logical state."""
        return self._state

    @property
    def profile(self) -> ThermostatProfile:
        """Return the variant settings."""
        return self._profile

    def seed_frame(self) -> PMTSDFrame:
        """Build a complete frame from the current logical state.

        When the device is off, M carries the remembered mode so that
        powering back on restores it.
        """
        state = self._state
        if state.system_mode == HVACMode.OFF:
            power = 1
            mode = HVAC_MODE_MAP[state.mode_memory.resolve_mode_when_off()]
        else:
            power = 0
            mode = HVAC_MODE_MAP[state.system_mode]

        return PMTSDFrame(
            p=power,
            m=mode,
            t=state.setpoint,
            s=decode_symbol(PMTSDField.SPEED, state.fan_mode, self._profile),
            d=state.spare_flag,
        )

    def snapshot(self) -> dict[str, Any]:
        """Return the published representation of the logical state."""
        state = self._state
        return {
            ATTR_THERMOSTAT_ENABLED: STATE_ON if state.thermostat_enabled else STATE_OFF,
            ATTR_SYSTEM_MODE: str(state.system_mode),
            ATTR_SETPOINT: state.setpoint,
            ATTR_FAN_MODE: state.fan_mode,
            ATTR_SPARE_FLAG: state.spare_flag,
        }

    def _commit(self, frame: PMTSDFrame) -> dict[str, Any]:
        """Write a merged frame back into the logical state."""
        state = self._state
        if frame.p == 1:
            state.system_mode = HVACMode.OFF
        else:
            state.system_mode = HVAC_MODE_REVERSE_MAP[frame.m]
            state.mode_memory.record_active(state.system_mode)

        state.setpoint = frame.t
        state.fan_mode = encode_symbol(PMTSDField.SPEED, frame.s, self._profile)
        state.spare_flag = frame.d

        return {
            ATTR_SYSTEM_MODE: str(state.system_mode),
            ATTR_SETPOINT: state.setpoint,
            ATTR_FAN_MODE: state.fan_mode,
            ATTR_SPARE_FLAG: state.spare_flag,
        }

    def apply_inbound(
        self,
        partial: PartialPMTSDFrame,
        received_at: datetime | None = None,
    ) -> InboundUpdate:
        """Merge a decoded device report into the logical state.

        Fields missing from the report keep their current value.

        Args:
            partial: Sparse frame decoded from the device report.
            received_at: Report time used in the summary, now when omitted.

        Returns:
            InboundUpdate with the updated values and the diagnostic summary.

        """
        frame = self.seed_frame()
        for name in ("p", "m", "t", "s", "d"):
            value = getattr(partial, name)
            if value is not None:
                setattr(frame, name, value)

        changes = self._commit(frame)

        timestamp = (received_at or dt_util.now()).strftime(SUMMARY_TIME_FORMAT)
        parts = [f"{key}W{value}" for key, value in partial.tokens]
        summary = "_".join([timestamp, *parts])
        self._state.last_inbound_summary = summary

        self._logger.debug(
            "Computed system_mode=%s from P=%s, M=%s",
            self._state.system_mode,
            frame.p,
            frame.m,
        )
        if partial.extras:
            self._logger.debug("Ignoring unknown PMTSD fields: %s", partial.extras)

        return InboundUpdate(changes=changes, summary=summary, frame=frame)

    def _turn_off(self, frame: PMTSDFrame) -> None:
        if self._state.system_mode != HVACMode.OFF:
            self._state.mode_memory.record_active(self._state.system_mode)
            self._logger.debug(
                "Saved last active mode %s before turning off",
                self._state.system_mode,
            )
        frame.p = 1

    def apply_outbound(
        self,
        key: str,
        value: Any,  # noqa: ANN401
    ) -> OutboundUpdate:
        """Apply a hub command to the logical state.

        Args:
            key: Command key (system_mode, power, setpoint, fan_mode,
                spare_flag or the internal pmtsd bulk key).
            value: Requested value.

        Returns:
            OutboundUpdate telling the caller whether to transmit.

        Raises:
            ThermostatDisabledError: For climate commands while thermostat
                mode is off.
            InvalidEnumValueError: If the value is not part of the field's
                lookup table, or the key is unknown.
            OutOfRangeError: If a setpoint is outside the bounds.

        """
        if key == ATTR_PMTSD:
            return self.apply_bulk(value)

        if key in CLIMATE_COMMANDS and not self._state.thermostat_enabled:
            error_msg = f"Ignoring {key} command: thermostat mode is not ON"
            raise ThermostatDisabledError(error_msg)

        previous = self.seed_frame()
        frame = replace(previous)

        if key == ATTR_SYSTEM_MODE:
            if isinstance(value, str) and value.strip().lower() == HVACMode.OFF:
                self._turn_off(frame)
            else:
                frame.m = decode_symbol(PMTSDField.MODE, value, self._profile)
                frame.p = 0
        elif key == ATTR_POWER:
            if decode_symbol(PMTSDField.POWER, value, self._profile) == 1:
                self._turn_off(frame)
            else:
                frame.p = 0
        elif key == ATTR_SETPOINT:
            frame.t = validate_setpoint(value, self._profile)
        elif key == ATTR_FAN_MODE:
            frame.s = decode_symbol(PMTSDField.SPEED, value, self._profile)
        elif key == ATTR_SPARE_FLAG:
            frame.d = decode_symbol(PMTSDField.SPARE, value, self._profile)
        else:
            error_msg = f"Unrecognized command key: {key}"
            raise InvalidEnumValueError(error_msg)

        return self._finish_outbound(key, frame, has_changed=frame != previous)

    def apply_bulk(self, values: Mapping[str, Any]) -> OutboundUpdate:
        """Apply a full or partial ``{P, M, T, S, D}`` mapping.

        Used to answer device sync requests, so the result is always
        considered changed.

        Raises:
            InvalidEnumValueError: If an enumerable field is out of range.
            OutOfRangeError: If T is not numeric.

        """
        frame = self.seed_frame()
        for raw_key, value in values.items():
            key = raw_key.lower()
            if key == "t":
                temperature = parse_setpoint(str(value), self._profile.temp_precision)
                if temperature is None:
                    error_msg = f"T must be numeric, got {value!r}"
                    raise OutOfRangeError(error_msg)
                frame.t = temperature
            elif key in _BULK_FIELDS:
                index = value if isinstance(value, int) else _parse_int(value)
                setattr(
                    frame, key, decode_symbol(_BULK_FIELDS[key], index, self._profile)
                )
            else:
                error_msg = f"Unrecognized PMTSD field: {raw_key}"
                raise InvalidEnumValueError(error_msg)

        return self._finish_outbound(ATTR_PMTSD, frame, has_changed=True)

    def _finish_outbound(
        self,
        key: str,
        frame: PMTSDFrame,
        *,
        has_changed: bool,
    ) -> OutboundUpdate:
        changes = self._commit(frame)
        should_transmit = self._rate_limiter.should_transmit(
            has_changed, self._clock(), self._state.last_transmit_time
        )
        self._logger.info(
            "Processed %s, PMTSD: %s, changed: %s, transmit: %s",
            key,
            frame,
            has_changed,
            should_transmit,
        )
        return OutboundUpdate(
            changes=changes,
            frame=frame,
            has_changed=has_changed,
            should_transmit=should_transmit,
        )

    def record_transmit(self, now: float | None = None) -> None:
        """Advance the last transmit time after a successful write."""
        self._state.last_transmit_time = self._clock() if now is None else now

    def set_thermostat_enabled(self, enabled: bool) -> dict[str, Any]:  # noqa: FBT001
        """Record the thermostat mode after a successful toggle."""
        self._state.thermostat_enabled = enabled
        return {ATTR_THERMOSTAT_ENABLED: STATE_ON if enabled else STATE_OFF}


def _parse_int(value: Any) -> Any:  # noqa: ANN401
    try:
        return int(str(value))
    except ValueError:
        return value
