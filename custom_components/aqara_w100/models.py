"""Data models for the Aqara W100 climate bridge."""

from __future__ import annotations

from dataclasses import dataclass, field

from homeassistant.components.climate import HVACMode

from .const import (
    DEFAULT_ACTIVE_MODE,
    DEFAULT_FAN_MODE,
    DEFAULT_MAX_TARGET_TEMP,
    DEFAULT_MIN_TARGET_TEMP,
    DEFAULT_SETPOINT,
    DEFAULT_SPARE_FLAG,
    DEFAULT_SYSTEM_MODE,
    FAN_LABELS_MIDDLE,
    FAN_LABELS_STANDARD,
    PMTSD_FRAME_TYPE,
)


@dataclass(frozen=True, slots=True)
class ThermostatProfile:
    """Protocol variant settings shared by every codec function.

    Attributes:
        temp_precision: Decimal places of the setpoint on the wire (0 or 1).
        min_temp: Lowest accepted setpoint.
        max_temp: Highest accepted setpoint.
        fan_labels: Symbolic fan speeds indexed by the wire value of S.
        frame_type: Frame-type marker written in byte 2 of the PMTSD header.

    """

    temp_precision: int = 0
    min_temp: float = DEFAULT_MIN_TARGET_TEMP
    max_temp: float = DEFAULT_MAX_TARGET_TEMP
    fan_labels: tuple[str, ...] = FAN_LABELS_STANDARD
    frame_type: int = PMTSD_FRAME_TYPE


STANDARD_PROFILE = ThermostatProfile()
DECIMAL_PROFILE = ThermostatProfile(
    temp_precision=1,
    min_temp=15.0,
    max_temp=30.0,
    fan_labels=FAN_LABELS_MIDDLE,
)


@dataclass(slots=True)
class PMTSDFrame:
    """The five numeric fields of a PMTSD payload."""

    p: int
    m: int
    t: int | float
    s: int
    d: int


@dataclass(slots=True)
class PartialPMTSDFrame:
    """Sparse result of decoding a device frame.

    Only fields present and valid in the payload are set. ``tokens`` keeps
    every accepted token in wire order as ``(KEY, raw value)`` pairs, and
    ``extras`` holds tokens with letters outside P/M/T/S/D.
    """

    p: int | None = None
    m: int | None = None
    t: int | float | None = None
    s: int | None = None
    d: int | None = None
    tokens: list[tuple[str, str]] = field(default_factory=list)
    extras: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """Return True if no known field was decoded."""
        return all(
            value is None for value in (self.p, self.m, self.t, self.s, self.d)
        )


@dataclass(slots=True)
class ModeMemory:
    """Remembers the last non-off operating mode of one device."""

    last_active_mode: HVACMode | None = None

    def record_active(self, mode: HVACMode) -> None:
        """Store ``mode`` as the remembered mode unless it is off."""
        if mode == HVACMode.OFF:
            return
        self.last_active_mode = HVACMode(mode)

    def resolve_mode_when_off(self) -> HVACMode:
        """Return the remembered mode, defaulting to cool."""
        return self.last_active_mode or DEFAULT_ACTIVE_MODE


@dataclass(slots=True)
class ClimateState:
    """Hub-side logical climate state of one W100 device."""

    thermostat_enabled: bool = False
    system_mode: HVACMode = DEFAULT_SYSTEM_MODE
    setpoint: int | float = DEFAULT_SETPOINT
    fan_mode: str = DEFAULT_FAN_MODE
    spare_flag: int = DEFAULT_SPARE_FLAG
    mode_memory: ModeMemory = field(default_factory=ModeMemory)
    last_transmit_time: float | None = None
    last_inbound_summary: str | None = None

    @property
    def last_active_mode(self) -> HVACMode:
        """Return the mode restored when powering on without a mode."""
        return self.mode_memory.resolve_mode_when_off()
