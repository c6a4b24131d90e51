"""Transport seam for writing frames to a W100 device.

The bridge does not own the Zigbee stack. It writes every frame through an
endpoint object supplied by the caller and only cares whether the write
succeeded.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .const import (
    LUMI_CLUSTER_ID,
    MANUFACTURER_CODE,
    PMTSD_ATTRIBUTE_ID,
    PMTSD_ATTRIBUTE_TYPE,
)
from .exceptions import TransportError, TransportUnavailableError

_LOGGER = logging.getLogger(__name__)


class AttributeEndpoint(Protocol):
    """Writable device endpoint provided by the Zigbee integration."""

    async def write(
        self,
        cluster: int,
        attributes: dict[int, dict[str, Any]],
        *,
        manufacturer_code: int,
        disable_default_response: bool,
    ) -> None:
        """Write attribute values to the device."""


def create_attribute_payload(frame: bytes) -> dict[int, dict[str, Any]]:
    """Wrap a frame in the attribute mapping expected by the endpoint.

    Args:
        frame: Complete frame bytes.

    Returns:
        Attribute mapping for attribute 65522.

    """
    return {PMTSD_ATTRIBUTE_ID: {"value": bytes(frame), "type": PMTSD_ATTRIBUTE_TYPE}}


def is_writable(endpoint: Any) -> bool:  # noqa: ANN401
    """Check whether an endpoint supports attribute writes.

    Args:
        endpoint: Candidate endpoint object.

    Returns:
        True if the endpoint exposes a callable ``write``.

    """
    return endpoint is not None and callable(getattr(endpoint, "write", None))


async def async_write_attribute(
    endpoint: AttributeEndpoint | None,
    device_id: str,
    frame: bytes,
) -> None:
    """Write a frame to the vendor attribute of a device.

    Args:
        endpoint: Writable device endpoint.
        device_id: Device identifier, used for logging.
        frame: Complete frame bytes.

    Raises:
        TransportUnavailableError: If the endpoint cannot be written to.
        TransportError: If the write fails.

    """
    if not is_writable(endpoint):
        error_msg = f"No writable endpoint for device {device_id}"
        _LOGGER.error(error_msg)
        raise TransportUnavailableError(error_msg)

    _LOGGER.debug("Writing frame to device %s: %s", device_id, frame.hex())
    try:
        await endpoint.write(
            LUMI_CLUSTER_ID,
            create_attribute_payload(frame),
            manufacturer_code=MANUFACTURER_CODE,
            disable_default_response=True,
        )
    except TransportError:
        raise
    except Exception as err:
        error_msg = f"Failed to write frame to device {device_id}: {err}"
        raise TransportError(error_msg) from err
    _LOGGER.debug("Frame written to device %s", device_id)
