"""Per-device coordinator for the Aqara W100 climate bridge."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .api import async_write_attribute
from .const import (
    ACTION_PMTSD_REQUEST,
    ATTR_ACTION,
    ATTR_PMTSD,
    ATTR_PMTSD_SUMMARY,
    ATTR_THERMOSTAT_ENABLED,
    DEFAULT_HUB_ID,
    STATE_OFF,
    STATE_ON,
)
from .exceptions import (
    AqaraW100Error,
    InvalidEnumValueError,
    ThermostatDisabledError,
    TransportError,
)
from .frame import build_pmtsd_frame, is_sync_request, parse_pmtsd_frame
from .models import STANDARD_PROFILE, ClimateState
from .reconciler import StateReconciler
from .thermostat_mode import build_thermostat_mode_frame, clean_identifier

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from .api import AttributeEndpoint
    from .models import PMTSDFrame, ThermostatProfile

_LOGGER = logging.getLogger(__name__)


@dataclass
class W100StateUpdate:
    """Represents values published after a report or command."""

    device_id: str
    values: dict[str, Any]


class W100DeviceCoordinator:
    """Coordinates reports, commands and frame writes for one W100 device.

    Every entry point runs under a per-device lock, so state reads, frame
    construction and the transport write happen in one piece.
    """

    def __init__(
        self,
        device_id: str,
        endpoint: AttributeEndpoint | None,
        *,
        profile: ThermostatProfile = STANDARD_PROFILE,
        hub_id: str = DEFAULT_HUB_ID,
        state: ClimateState | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the coordinator.

        Args:
            device_id: IEEE address of the W100.
            endpoint: Writable endpoint of the device.
            profile: Variant settings of the device.
            hub_id: Identifier of the hub embedded in outbound frames.
            state: Existing logical state, fresh defaults when omitted.
            clock: Wall-clock source in seconds.

        Raises:
            MalformedIdentifierError: If the hub identifier is invalid.

        """
        self.device_id = device_id
        self.endpoint = endpoint
        self.hub_id = clean_identifier(hub_id, "hub")
        self._profile = profile
        self._lock = asyncio.Lock()
        self._reconciler = StateReconciler(
            state if state is not None else ClimateState(),
            profile,
            _LOGGER,
            clock=clock,
        )
        self._update_callbacks: list[Callable[[W100StateUpdate], None]] = []

    @property
    def state(self) -> ClimateState:
        """Return the logical state of the device."""
        return self._reconciler.state

    @property
    def profile(self) -> ThermostatProfile:
        """Return the variant settings of the device."""
        return self._profile

    def state_snapshot(self) -> dict[str, Any]:
        """Return the published representation of the logical state."""
        return self._reconciler.snapshot()

    def register_update_callback(
        self,
        callback: Callable[[W100StateUpdate], None],
    ) -> Callable[[], None]:
        """Register a callback for published values.

        Args:
            callback: Function to call when values are published.

        Returns:
            A function to unregister the callback.

        """
        self._update_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._update_callbacks:
                self._update_callbacks.remove(callback)

        return unregister

    def _dispatch(self, values: dict[str, Any]) -> None:
        update = W100StateUpdate(device_id=self.device_id, values=values)
        for callback in self._update_callbacks:
            try:
                callback(update)
            except Exception:
                _LOGGER.exception("Error in state update callback")

    async def _async_transmit(self, frame: PMTSDFrame) -> None:
        """Write a PMTSD frame, logging transport failures."""
        data = build_pmtsd_frame(frame, self._profile, self.hub_id)
        try:
            await async_write_attribute(self.endpoint, self.device_id, data)
        except TransportError as err:
            _LOGGER.error(
                "Failed to send PMTSD frame to device %s: %s", self.device_id, err
            )
            return
        self._reconciler.record_transmit()

    async def async_handle_attribute_report(
        self,
        data: bytes | bytearray | list[int] | None,
        received_at: datetime | None = None,
    ) -> dict[str, Any]:
        """Handle a report of the vendor attribute.

        Args:
            data: Raw attribute buffer.
            received_at: Report time, now when omitted.

        Returns:
            Values to publish. A sync request is answered with the full
            state and returns only the request action.

        """
        buffer = bytes(data) if data is not None else b""

        async with self._lock:
            if is_sync_request(buffer):
                _LOGGER.info(
                    "Device %s requested PMTSD sync, sending current state",
                    self.device_id,
                )
                values = dataclasses.asdict(self._reconciler.seed_frame())
                update = self._reconciler.apply_bulk(values)
                await self._async_transmit(update.frame)
                return {ATTR_ACTION: ACTION_PMTSD_REQUEST}

            partial = parse_pmtsd_frame(buffer, self._profile)
            if partial is None:
                _LOGGER.debug(
                    "No PMTSD payload in report from %s: %s",
                    self.device_id,
                    buffer.hex(),
                )
                return self.state_snapshot()

            inbound = self._reconciler.apply_inbound(partial, received_at)
            values = {**inbound.changes, ATTR_PMTSD_SUMMARY: inbound.summary}

        self._dispatch(values)
        return values

    async def async_set(
        self,
        key: str,
        value: Any,  # noqa: ANN401
    ) -> dict[str, Any]:
        """Apply a hub command.

        Args:
            key: Command key.
            value: Requested value.

        Returns:
            Values to publish, empty when the command was ignored.

        Raises:
            InvalidEnumValueError: If the value is not accepted for the key.
            OutOfRangeError: If a setpoint is outside the bounds.

        """
        if key == ATTR_THERMOSTAT_ENABLED:
            return await self.async_set_thermostat_enabled(_parse_enabled(value))

        async with self._lock:
            try:
                update = self._reconciler.apply_outbound(key, value)
            except ThermostatDisabledError as err:
                _LOGGER.warning("Device %s: %s", self.device_id, err)
                return {}

            if update.should_transmit:
                await self._async_transmit(update.frame)
            else:
                _LOGGER.debug(
                    "Skipping unchanged PMTSD frame for %s (rate limited)",
                    self.device_id,
                )

            values = dict(update.changes) if key != ATTR_PMTSD else {}

        if values:
            self._dispatch(values)
        return values

    async def async_set_thermostat_enabled(
        self,
        enabled: bool,  # noqa: FBT001
    ) -> dict[str, Any]:
        """Switch the device's thermostat mode on or off.

        Raises:
            MalformedIdentifierError: If the device identifier is invalid.
            TransportError: If the frame could not be written.

        """
        async with self._lock:
            frame = build_thermostat_mode_frame(enabled, self.device_id, self.hub_id)
            _LOGGER.info(
                "Setting thermostat mode %s on device %s",
                STATE_ON if enabled else STATE_OFF,
                self.device_id,
            )
            await async_write_attribute(self.endpoint, self.device_id, frame)
            values = self._reconciler.set_thermostat_enabled(enabled)

        self._dispatch(values)
        return values

    async def async_configure(self) -> dict[str, Any]:
        """Put the device in thermostat mode OFF.

        The logical state is left as is: a fresh coordinator already holds
        the defaults and a restored state must survive reconfiguration.
        Failures to reach the device are logged, not raised.
        """
        try:
            await self.async_set_thermostat_enabled(False)
        except AqaraW100Error as err:
            _LOGGER.warning(
                "Failed to disable thermostat mode on device %s: %s",
                self.device_id,
                err,
            )

        return self.state_snapshot()


def _parse_enabled(value: Any) -> bool:  # noqa: ANN401
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().upper() in (STATE_ON, STATE_OFF):
        return value.strip().upper() == STATE_ON

    error_msg = f'thermostat_enabled must be "ON" or "OFF", got {value!r}'
    raise InvalidEnumValueError(error_msg)
