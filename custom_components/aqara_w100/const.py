"""Constants for the Aqara W100 climate bridge.

This module contains the constants shared by the PMTSD codec, the
thermostat-mode channel and the device coordinator: Zigbee addressing,
frame layouts, configuration keys and the symbolic mapping tables.
"""

from homeassistant.components.climate import HVACMode
from homeassistant.components.climate.const import (
    FAN_AUTO,
    FAN_HIGH,
    FAN_LOW,
    FAN_MEDIUM,
    FAN_MIDDLE,
)

DOMAIN = "aqara_w100"

# Zigbee addressing of the vendor attribute carrying every frame
LUMI_CLUSTER_ID = 0xFCC0  # manuSpecificLumi (64704)
PMTSD_ATTRIBUTE_ID = 65522
PMTSD_ATTRIBUTE_TYPE = 0x41  # Octet string
MANUFACTURER_CODE = 4447

DEFAULT_HUB_ID = "54ef4480711a"
DEVICE_ID_LENGTH = 16
HUB_ID_LENGTH = 12

# PMTSD frame layout
PMTSD_MAGIC = bytes([0xAA, 0x71])
PMTSD_FRAME_TYPE = 0x1F
PMTSD_SUB_HEADER = bytes([0x05, 0x41, 0x1C])
PMTSD_COMMAND_MARKER = bytes([0x08, 0x00, 0x08, 0x44])
PMTSD_INBOUND_MARKER = PMTSD_COMMAND_MARKER[-2:]
PMTSD_HEADER_LENGTH = 22
PMTSD_MAX_PAYLOAD_LENGTH = 0xFF

# Thermostat mode frames (no checksum)
THERMOSTAT_ON_PREFIX = bytes.fromhex("aa713244")
THERMOSTAT_ON_ZIGBEE_HEADER = bytes.fromhex("02412f6891")
THERMOSTAT_ON_TAIL = bytes.fromhex(
    "08000844150a0109e7a9bae8b083e58a9f000000000001012a40"
)
THERMOSTAT_OFF_PREFIX = bytes.fromhex("aa711c44691c0441196891")
THERMOSTAT_CONTROL = 0x18
THERMOSTAT_OFF_FRAME_LENGTH = 34

MIN_SEND_INTERVAL = 5.0  # Seconds between unchanged PMTSD frames

# Command surface
ATTR_SYSTEM_MODE = "system_mode"
ATTR_SETPOINT = "setpoint"
ATTR_FAN_MODE = "fan_mode"
ATTR_SPARE_FLAG = "spare_flag"
ATTR_POWER = "power"
ATTR_THERMOSTAT_ENABLED = "thermostat_enabled"
ATTR_PMTSD = "pmtsd"  # Internal bulk key, used to answer sync requests
ATTR_PMTSD_SUMMARY = "pmtsd_from_w100_data"
ATTR_ACTION = "action"

CLIMATE_COMMANDS = (ATTR_SYSTEM_MODE, ATTR_SETPOINT, ATTR_FAN_MODE, ATTR_POWER)

ACTION_PMTSD_REQUEST = "W100_PMTSD_request"

STATE_ON = "ON"
STATE_OFF = "OFF"

# Per-device options
CONF_MIN_TARGET_TEMP = "min_target_temp"
CONF_MAX_TARGET_TEMP = "max_target_temp"
CONF_TEMP_PRECISION = "temp_precision"
CONF_HUB_ID = "hub_id"

DEFAULT_MIN_TARGET_TEMP = 5
DEFAULT_MAX_TARGET_TEMP = 30
TARGET_TEMP_LIMIT_MIN = -20
TARGET_TEMP_LIMIT_MAX = 60

# Logical defaults seeded on first contact
DEFAULT_SYSTEM_MODE = HVACMode.OFF
DEFAULT_SETPOINT = 15
DEFAULT_FAN_MODE = FAN_AUTO
DEFAULT_SPARE_FLAG = 0
DEFAULT_ACTIVE_MODE = HVACMode.COOL

POWER_MAP = {
    "on": 0,
    "off": 1,
}
HVAC_MODE_MAP = {
    HVACMode.COOL: 0,
    HVACMode.HEAT: 1,
    HVACMode.AUTO: 2,
}
HVAC_MODE_REVERSE_MAP = {value: key for key, value in HVAC_MODE_MAP.items()}
SPARE_FLAG_MAP = {
    "0": 0,
    "1": 1,
}

# Fan labels indexed by the wire value of S
FAN_LABELS_STANDARD = (FAN_AUTO, FAN_LOW, FAN_MEDIUM, FAN_HIGH)
FAN_LABELS_MIDDLE = (FAN_AUTO, FAN_LOW, FAN_MIDDLE, FAN_HIGH)
