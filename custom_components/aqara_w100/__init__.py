"""Aqara W100 climate bridge: PMTSD codec and device state synchronisation."""

from .config import OPTIONS_SCHEMA, build_profile
from .coordinator import W100DeviceCoordinator, W100StateUpdate
from .exceptions import (
    AqaraW100Error,
    FrameEncodingError,
    InvalidEnumValueError,
    MalformedIdentifierError,
    OutOfRangeError,
    ThermostatDisabledError,
    TransportError,
    TransportUnavailableError,
)
from .frame import build_pmtsd_frame, parse_pmtsd_frame
from .models import (
    DECIMAL_PROFILE,
    STANDARD_PROFILE,
    ClimateState,
    ModeMemory,
    PMTSDFrame,
    ThermostatProfile,
)
from .reconciler import RateLimiter, StateReconciler

__all__ = [
    "DECIMAL_PROFILE",
    "OPTIONS_SCHEMA",
    "STANDARD_PROFILE",
    "AqaraW100Error",
    "ClimateState",
    "FrameEncodingError",
    "InvalidEnumValueError",
    "MalformedIdentifierError",
    "ModeMemory",
    "OutOfRangeError",
    "PMTSDFrame",
    "RateLimiter",
    "StateReconciler",
    "ThermostatDisabledError",
    "ThermostatProfile",
    "TransportError",
    "TransportUnavailableError",
    "W100DeviceCoordinator",
    "W100StateUpdate",
    "build_pmtsd_frame",
    "build_profile",
    "parse_pmtsd_frame",
]
