"""Thermostat mode channel.

Thermostat mode decides whether the W100 accepts and broadcasts PMTSD frames
(buttons drive the setpoint and the middle line of the display is shown) or
behaves as a plain sensor with button actions. It is toggled with two fixed
layout frames written to the same attribute as PMTSD frames. Neither frame
carries a checksum and neither is rate limited.

ON frame structure:
    Bytes 0-3:   Prefix (0xAA 0x71 0x32 0x44)
    Bytes 4-5:   Random transaction value
    Bytes 6-10:  Zigbee header (0x02 0x41 0x2F 0x68 0x91)
    Bytes 11-12: Random message id
    Byte 13:     Control (0x18)
    Bytes 14-21: Device identifier
    Bytes 22-23: 0x00 0x00
    Bytes 24-29: Hub identifier
    Bytes 30-55: Vendor enablement payload

OFF frame structure:
    Bytes 0-10:  Prefix (0xAA 0x71 0x1C 0x44 0x69 0x1C 0x04 0x41 0x19 0x68 0x91)
    Byte 11:     Random frame id
    Byte 12:     Random sequence
    Byte 13:     Control (0x18)
    Bytes 14-21: Device identifier
    Bytes 22-33: Zero padding
"""

from __future__ import annotations

import random
import re

from .const import (
    DEFAULT_HUB_ID,
    DEVICE_ID_LENGTH,
    HUB_ID_LENGTH,
    THERMOSTAT_CONTROL,
    THERMOSTAT_OFF_FRAME_LENGTH,
    THERMOSTAT_OFF_PREFIX,
    THERMOSTAT_ON_PREFIX,
    THERMOSTAT_ON_TAIL,
    THERMOSTAT_ON_ZIGBEE_HEADER,
)
from .exceptions import MalformedIdentifierError

_HEX_DIGITS = re.compile(r"^[0-9a-f]*$")
_EXPECTED_LENGTHS = {
    "device": DEVICE_ID_LENGTH,
    "hub": HUB_ID_LENGTH,
}


def clean_identifier(identifier: str, kind: str) -> str:
    """Normalize a device or hub identifier to plain lowercase hex.

    Strips a ``0x`` prefix and ``:`` / ``-`` separators.

    Args:
        identifier: Identifier as reported (e.g. "0x54ef441000a1b2c3").
        kind: "device" (16 hex digits) or "hub" (12 hex digits).

    Returns:
        The identifier as lowercase hex digits.

    Raises:
        MalformedIdentifierError: If the identifier has the wrong length or
            contains non-hex characters.

    """
    expected_length = _EXPECTED_LENGTHS[kind]
    cleaned = re.sub(r"[:\-]", "", str(identifier).strip().lower())
    cleaned = cleaned.removeprefix("0x")

    if len(cleaned) != expected_length or not _HEX_DIGITS.match(cleaned):
        error_msg = (
            f"{kind} identifier must contain {expected_length} hexadecimal "
            f"digits, got {identifier!r}"
        )
        raise MalformedIdentifierError(error_msg)

    return cleaned


def _random_bytes(count: int) -> bytes:
    return bytes(random.randint(0, 0xFF) for _ in range(count))  # noqa: S311


def build_thermostat_mode_on(device_id: str, hub_id: str = DEFAULT_HUB_ID) -> bytes:
    """Build the frame enabling thermostat mode.

    Args:
        device_id: Device IEEE address (16 hex digits).
        hub_id: Hub identifier (12 hex digits).

    Returns:
        Complete frame bytes.

    Raises:
        MalformedIdentifierError: If either identifier is malformed.

    """
    device = bytes.fromhex(clean_identifier(device_id, "device"))
    hub = bytes.fromhex(clean_identifier(hub_id, "hub"))

    return b"".join(
        [
            THERMOSTAT_ON_PREFIX,
            _random_bytes(2),
            THERMOSTAT_ON_ZIGBEE_HEADER,
            _random_bytes(2),
            bytes([THERMOSTAT_CONTROL]),
            device,
            bytes(2),
            hub,
            THERMOSTAT_ON_TAIL,
        ]
    )


def build_thermostat_mode_off(device_id: str) -> bytes:
    """Build the frame disabling thermostat mode.

    Args:
        device_id: Device IEEE address (16 hex digits).

    Returns:
        Complete frame bytes, zero padded to 34 bytes.

    Raises:
        MalformedIdentifierError: If the device identifier is malformed.

    """
    device = bytes.fromhex(clean_identifier(device_id, "device"))

    frame = b"".join(
        [
            THERMOSTAT_OFF_PREFIX,
            _random_bytes(2),
            bytes([THERMOSTAT_CONTROL]),
            device,
        ]
    )
    return frame.ljust(THERMOSTAT_OFF_FRAME_LENGTH, b"\x00")


def build_thermostat_mode_frame(
    enabled: bool,  # noqa: FBT001
    device_id: str,
    hub_id: str = DEFAULT_HUB_ID,
) -> bytes:
    """Build the ON or OFF thermostat mode frame."""
    if enabled:
        return build_thermostat_mode_on(device_id, hub_id)
    return build_thermostat_mode_off(device_id)
