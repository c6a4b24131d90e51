"""PMTSD frame codec.

Frames are written to, and reported from, attribute 65522 of the Lumi
manufacturer cluster. An outbound frame is a fixed 22 byte header followed
by an ASCII payload ``P{p}_M{m}_T{t}_S{s}_D{d}``.

Header structure (outbound):
    Bytes 0-1:   Magic (0xAA 0x71)
    Byte 2:      Frame-type marker (0x1F)
    Byte 3:      0x44
    Byte 4:      Random transaction counter
    Byte 5:      Checksum (sum of all other bytes, modulo 256)
    Bytes 6-8:   Sub-header (0x05 0x41 0x1C)
    Bytes 9-10:  Reserved (0x00 0x00)
    Bytes 11-16: Hub identifier
    Bytes 17-20: Command marker (0x08 0x00 0x08 0x44)
    Byte 21:     Payload length

Device reports are not guaranteed to start at a fixed offset: the decoder
looks for the trailing ``0x08 0x44`` of the command marker anywhere in the
buffer and reads the length byte and payload that follow it.
"""

from __future__ import annotations

import logging
import random

from .codec import (
    PMTSDField,
    format_setpoint,
    parse_index,
    parse_reported_setpoint,
)
from .const import (
    DEFAULT_HUB_ID,
    PMTSD_COMMAND_MARKER,
    PMTSD_HEADER_LENGTH,
    PMTSD_INBOUND_MARKER,
    PMTSD_MAGIC,
    PMTSD_MAX_PAYLOAD_LENGTH,
    PMTSD_SUB_HEADER,
)
from .exceptions import FrameEncodingError
from .models import (
    STANDARD_PROFILE,
    PartialPMTSDFrame,
    PMTSDFrame,
    ThermostatProfile,
)
from .thermostat_mode import clean_identifier

_LOGGER = logging.getLogger(__name__)

COUNTER_INDEX = 4
CHECKSUM_INDEX = 5

_INDEX_FIELDS = {
    "p": PMTSDField.POWER,
    "m": PMTSDField.MODE,
    "s": PMTSDField.SPEED,
    "d": PMTSDField.SPARE,
}


def format_payload(
    frame: PMTSDFrame, profile: ThermostatProfile = STANDARD_PROFILE
) -> str:
    """Return the ASCII payload for ``frame`` in fixed P, M, T, S, D order."""
    temperature = format_setpoint(frame.t, profile.temp_precision)
    return f"P{frame.p}_M{frame.m}_T{temperature}_S{frame.s}_D{frame.d}"


def calc_checksum(data: bytes) -> int:
    """Calculate the additive checksum of ``data``.

    Args:
        data: Frame bytes with the checksum position set to zero.

    Returns:
        Single byte checksum (sum of all bytes, modulo 256).

    """
    return sum(data) & 0xFF


def verify_checksum(frame: bytes) -> bool:
    """Check that the checksum byte matches the sum of all other bytes."""
    if len(frame) < PMTSD_HEADER_LENGTH:
        return False
    others = frame[:CHECKSUM_INDEX] + frame[CHECKSUM_INDEX + 1 :]
    return frame[CHECKSUM_INDEX] == calc_checksum(others)


def build_pmtsd_frame(
    frame: PMTSDFrame,
    profile: ThermostatProfile = STANDARD_PROFILE,
    hub_id: str = DEFAULT_HUB_ID,
    counter: int | None = None,
) -> bytes:
    """Build a checksummed PMTSD frame.

    Args:
        frame: Field values to encode.
        profile: Variant settings (setpoint precision, frame-type marker).
        hub_id: Hub identifier written into the header (12 hex digits).
        counter: Transaction counter, random when omitted.

    Returns:
        Complete frame bytes ready to be written to the attribute.

    Raises:
        MalformedIdentifierError: If the hub identifier is malformed.
        FrameEncodingError: If the payload does not fit its length byte.

    """
    payload = format_payload(frame, profile).encode("ascii")
    if len(payload) > PMTSD_MAX_PAYLOAD_LENGTH:
        error_msg = f"PMTSD payload too long: {len(payload)} bytes"
        raise FrameEncodingError(error_msg)

    hub = bytes.fromhex(clean_identifier(hub_id, "hub"))

    if counter is None:
        counter = random.randint(0, 0xFF)  # noqa: S311

    header = bytearray(PMTSD_MAGIC)
    header += bytes([profile.frame_type, 0x44, counter & 0xFF, 0x00])
    header += PMTSD_SUB_HEADER
    header += bytes([0x00, 0x00])
    header += hub
    header += PMTSD_COMMAND_MARKER
    header.append(len(payload))

    data = header + payload
    data[CHECKSUM_INDEX] = calc_checksum(data)
    return bytes(data)


def is_sync_request(data: bytes | None) -> bool:
    """Return True if the buffer is a device-initiated sync request.

    The device asks the hub to resend the full PMTSD state with a report
    ending in the command marker itself (no payload).
    """
    return bool(data) and bytes(data).endswith(PMTSD_COMMAND_MARKER)


def extract_payload(data: bytes) -> str | None:
    """Locate and decode the ASCII payload of a device report.

    Returns:
        The payload text, or None if no PMTSD payload is present.

    """
    data = bytes(data)
    marker_index = data.find(PMTSD_INBOUND_MARKER)
    if marker_index == -1:
        return None

    length_index = marker_index + len(PMTSD_INBOUND_MARKER)
    if length_index >= len(data):
        return None

    payload_start = length_index + 1
    payload_end = payload_start + data[length_index]
    if payload_end > len(data):
        return None

    try:
        return data[payload_start:payload_end].decode("ascii")
    except UnicodeDecodeError:
        _LOGGER.debug("Ignoring non-ASCII PMTSD payload: %s", data.hex())
        return None


def parse_pmtsd_frame(
    data: bytes | None, profile: ThermostatProfile = STANDARD_PROFILE
) -> PartialPMTSDFrame | None:
    """Decode a device report into a sparse PMTSD frame.

    Tokens failing validation are dropped one by one, never the whole frame:
    the device omits unchanged fields, so every field is optional.

    Args:
        data: Raw attribute buffer reported by the device.
        profile: Variant settings providing the setpoint precision.

    Returns:
        PartialPMTSDFrame with the fields present in the payload, or None if
        the buffer carries no PMTSD payload.

    """
    if not data:
        return None

    payload = extract_payload(data)
    if payload is None:
        return None

    result = PartialPMTSDFrame()
    for token in payload.split("_"):
        if len(token) < 2:  # noqa: PLR2004
            continue

        key = token[0].lower()
        raw_value = token[1:]

        if key == "t":
            temperature = parse_reported_setpoint(raw_value, profile)
            if temperature is None:
                _LOGGER.debug("Dropping invalid T value: %s", raw_value)
                continue
            result.t = temperature
        elif key in _INDEX_FIELDS:
            index = parse_index(raw_value, _INDEX_FIELDS[key])
            if index is None:
                _LOGGER.debug("Dropping invalid %s value: %s", key.upper(), raw_value)
                continue
            setattr(result, key, index)
        else:
            result.extras[key.upper()] = raw_value

        result.tokens.append((key.upper(), raw_value))

    _LOGGER.debug("Decoded PMTSD payload %s: %s", payload, result)
    return result
