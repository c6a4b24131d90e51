"""Exceptions raised by the Aqara W100 climate bridge."""


class AqaraW100Error(Exception):
    """Base exception for Aqara W100 errors."""


class InvalidEnumValueError(AqaraW100Error):
    """Exception raised when a value is not part of a field's lookup table."""


class OutOfRangeError(AqaraW100Error):
    """Exception raised when a setpoint lies outside the configured bounds."""


class ThermostatDisabledError(AqaraW100Error):
    """Exception raised for climate commands while thermostat mode is off."""


class MalformedIdentifierError(AqaraW100Error):
    """Exception raised for device or hub identifiers of the wrong length."""


class TransportError(AqaraW100Error):
    """Exception raised when writing a frame to the device fails."""


class TransportUnavailableError(TransportError):
    """Exception raised when the device has no writable endpoint."""


class FrameEncodingError(AqaraW100Error):
    """Exception raised when field values cannot be encoded into a frame."""
