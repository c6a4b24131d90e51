"""Tests for the state reconciler and rate limiter."""

import logging
import re
from collections.abc import Callable
from datetime import datetime

import pytest
from homeassistant.components.climate import HVACMode

from custom_components.aqara_w100.exceptions import (
    InvalidEnumValueError,
    OutOfRangeError,
    ThermostatDisabledError,
)
from custom_components.aqara_w100.frame import format_payload, parse_pmtsd_frame
from custom_components.aqara_w100.models import (
    DECIMAL_PROFILE,
    STANDARD_PROFILE,
    ClimateState,
    PMTSDFrame,
)
from custom_components.aqara_w100.reconciler import RateLimiter, StateReconciler

from .conftest import FakeClock

RECEIVED_AT = datetime(2025, 3, 4, 5, 6, 7)


@pytest.fixture
def reconciler(enabled_state: ClimateState, clock: FakeClock) -> StateReconciler:
    """Create a reconciler with thermostat mode ON."""
    return StateReconciler(
        enabled_state,
        STANDARD_PROFILE,
        logging.getLogger(__name__),
        clock=clock,
    )


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_first_frame_always_sent(self) -> None:
        """Test that the first frame is sent even if unchanged."""
        assert RateLimiter().should_transmit(False, 100.0, None)

    def test_changed_frame_always_sent(self) -> None:
        """Test that a changed frame bypasses the interval."""
        assert RateLimiter().should_transmit(True, 100.1, 100.0)

    def test_unchanged_frame_within_interval(self) -> None:
        """Test that an unchanged frame inside the interval is suppressed."""
        assert not RateLimiter().should_transmit(False, 104.9, 100.0)

    def test_unchanged_frame_after_interval(self) -> None:
        """Test that an unchanged frame is resent once the interval elapsed."""
        assert RateLimiter().should_transmit(False, 105.0, 100.0)

    def test_custom_interval(self) -> None:
        """Test that the interval is configurable."""
        assert RateLimiter(min_interval=1.0).should_transmit(False, 101.0, 100.0)


class TestSeedFrame:
    """Tests for seed_frame."""

    def test_off_uses_default_mode(self) -> None:
        """Test that an off device without history seeds cool."""
        reconciler = StateReconciler(
            ClimateState(), STANDARD_PROFILE, logging.getLogger(__name__)
        )
        assert reconciler.seed_frame() == PMTSDFrame(1, 0, 15, 0, 0)

    def test_active_mode(self, reconciler: StateReconciler) -> None:
        """Test that an active device seeds P0 and its mode."""
        reconciler.state.system_mode = HVACMode.AUTO
        reconciler.state.fan_mode = "high"
        assert reconciler.seed_frame() == PMTSDFrame(0, 2, 15, 3, 0)


class TestApplyOutbound:
    """Tests for apply_outbound."""

    def test_heat_from_off(self, reconciler: StateReconciler) -> None:
        """Test that selecting heat from the default state sends P0_M1."""
        update = reconciler.apply_outbound("system_mode", "heat")

        assert format_payload(update.frame) == "P0_M1_T15_S0_D0"
        assert update.has_changed
        assert update.should_transmit
        assert update.changes["system_mode"] == "heat"
        assert reconciler.state.last_active_mode == HVACMode.HEAT

    def test_off_keeps_mode_in_frame(self, reconciler: StateReconciler) -> None:
        """Test that turning off sends P1 with the remembered mode."""
        reconciler.apply_outbound("system_mode", "heat")
        update = reconciler.apply_outbound("system_mode", "off")

        assert format_payload(update.frame) == "P1_M1_T15_S0_D0"
        assert reconciler.state.system_mode == HVACMode.OFF
        assert reconciler.state.last_active_mode == HVACMode.HEAT

    def test_power_on_restores_last_mode(self, reconciler: StateReconciler) -> None:
        """Test that power on after off restores the last active mode."""
        reconciler.apply_outbound("system_mode", "heat")
        reconciler.apply_outbound("system_mode", "off")
        update = reconciler.apply_outbound("power", "on")

        assert update.frame.p == 0
        assert update.frame.m == 1
        assert reconciler.state.system_mode == HVACMode.HEAT

    def test_power_on_defaults_to_cool(self, reconciler: StateReconciler) -> None:
        """Test that power on without history selects cool."""
        update = reconciler.apply_outbound("power", "on")

        assert update.frame.m == 0
        assert reconciler.state.system_mode == HVACMode.COOL

    def test_power_off(self, reconciler: StateReconciler) -> None:
        """Test that power off records the current mode."""
        reconciler.apply_outbound("system_mode", "auto")
        update = reconciler.apply_outbound("power", "off")

        assert update.frame.p == 1
        assert reconciler.state.last_active_mode == HVACMode.AUTO

    def test_setpoint(self, reconciler: StateReconciler) -> None:
        """Test that a setpoint is validated and stored."""
        update = reconciler.apply_outbound("setpoint", 22.4)

        assert update.frame.t == 22
        assert reconciler.state.setpoint == 22

    def test_setpoint_out_of_range(self, reconciler: StateReconciler) -> None:
        """Test that an out-of-range setpoint leaves the state untouched."""
        with pytest.raises(OutOfRangeError):
            reconciler.apply_outbound("setpoint", 30.1)
        assert reconciler.state.setpoint == 15

    def test_fan_mode(self, reconciler: StateReconciler) -> None:
        """Test that the fan mode maps to S."""
        update = reconciler.apply_outbound("fan_mode", "medium")

        assert update.frame.s == 2
        assert update.changes["fan_mode"] == "medium"

    def test_invalid_fan_mode(self, reconciler: StateReconciler) -> None:
        """Test that an unknown fan mode raises instead of sending S0."""
        with pytest.raises(InvalidEnumValueError):
            reconciler.apply_outbound("fan_mode", "turbo")
        assert reconciler.state.fan_mode == "auto"

    def test_invalid_system_mode(self, reconciler: StateReconciler) -> None:
        """Test that an unknown system mode raises instead of sending M0."""
        with pytest.raises(InvalidEnumValueError):
            reconciler.apply_outbound("system_mode", "dry")

    def test_spare_flag(self, reconciler: StateReconciler) -> None:
        """Test that the spare flag maps to D."""
        update = reconciler.apply_outbound("spare_flag", "1")

        assert update.frame.d == 1
        assert reconciler.state.spare_flag == 1

    def test_unknown_key(self, reconciler: StateReconciler) -> None:
        """Test that unknown command keys raise."""
        with pytest.raises(InvalidEnumValueError, match="humidity"):
            reconciler.apply_outbound("humidity", 40)

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("system_mode", "heat"),
            ("setpoint", 22),
            ("fan_mode", "low"),
            ("power", "on"),
        ],
    )
    def test_disabled_gate(self, key: str, value: object) -> None:
        """Test that climate commands are refused while thermostat mode is off."""
        state = ClimateState()
        reconciler = StateReconciler(
            state, STANDARD_PROFILE, logging.getLogger(__name__)
        )

        with pytest.raises(ThermostatDisabledError):
            reconciler.apply_outbound(key, value)
        assert state == ClimateState()

    def test_decimal_profile(self, enabled_state: ClimateState) -> None:
        """Test that the decimal profile keeps tenths and middle fan speed."""
        reconciler = StateReconciler(
            enabled_state, DECIMAL_PROFILE, logging.getLogger(__name__)
        )
        reconciler.apply_outbound("system_mode", "heat")
        reconciler.apply_outbound("fan_mode", "middle")
        update = reconciler.apply_outbound("setpoint", 21.5)

        assert format_payload(update.frame, DECIMAL_PROFILE) == "P0_M1_T21.5_S2_D0"


class TestRateLimiting:
    """Tests for rate limiting of outbound frames."""

    def test_identical_commands_sent_once(
        self, reconciler: StateReconciler, clock: FakeClock
    ) -> None:
        """Test that an identical command 100 ms later is suppressed."""
        first = reconciler.apply_outbound("setpoint", 22)
        reconciler.record_transmit()
        clock.advance(0.1)
        second = reconciler.apply_outbound("setpoint", 22)

        assert first.should_transmit
        assert not second.has_changed
        assert not second.should_transmit

    def test_changed_commands_sent_twice(
        self, reconciler: StateReconciler, clock: FakeClock
    ) -> None:
        """Test that a changed command 100 ms later is sent."""
        reconciler.apply_outbound("setpoint", 22)
        reconciler.record_transmit()
        clock.advance(0.1)

        assert reconciler.apply_outbound("setpoint", 23).should_transmit

    def test_unchanged_resent_after_interval(
        self, reconciler: StateReconciler, clock: FakeClock
    ) -> None:
        """Test that an unchanged command is resent after five seconds."""
        reconciler.apply_outbound("setpoint", 22)
        reconciler.record_transmit()
        clock.advance(5)

        assert reconciler.apply_outbound("setpoint", 22).should_transmit

    def test_record_transmit_uses_clock(
        self, reconciler: StateReconciler, clock: FakeClock
    ) -> None:
        """Test that the transmit time comes from the injected clock."""
        reconciler.record_transmit()
        assert reconciler.state.last_transmit_time == clock.now

        reconciler.record_transmit(42.0)
        assert reconciler.state.last_transmit_time == 42.0  # noqa: PLR2004


class TestApplyBulk:
    """Tests for apply_bulk."""

    def test_bulk_always_transmits(
        self, reconciler: StateReconciler, clock: FakeClock
    ) -> None:
        """Test that bulk updates bypass the rate limiter."""
        reconciler.record_transmit()
        clock.advance(0.1)
        update = reconciler.apply_bulk({"P": 0, "M": 1, "T": 20, "S": 1, "D": 0})

        assert update.has_changed
        assert update.should_transmit
        assert format_payload(update.frame) == "P0_M1_T20_S1_D0"

    def test_bulk_partial_and_text_values(self, reconciler: StateReconciler) -> None:
        """Test that bulk values may be partial and given as text."""
        update = reconciler.apply_bulk({"m": "2", "t": "24"})

        assert update.frame.m == 2
        assert update.frame.t == 24
        assert update.frame.p == 1

    def test_bulk_not_gated(self) -> None:
        """Test that bulk updates are accepted while thermostat mode is off."""
        reconciler = StateReconciler(
            ClimateState(), STANDARD_PROFILE, logging.getLogger(__name__)
        )
        assert reconciler.apply_outbound("pmtsd", {"T": 18}).frame.t == 18

    @pytest.mark.parametrize(
        ("values", "error"),
        [
            ({"M": 5}, InvalidEnumValueError),
            ({"S": "x"}, InvalidEnumValueError),
            ({"Q": 1}, InvalidEnumValueError),
            ({"T": "warm"}, OutOfRangeError),
        ],
    )
    def test_bulk_invalid(
        self,
        reconciler: StateReconciler,
        values: dict[str, object],
        error: type[Exception],
    ) -> None:
        """Test that invalid bulk values raise."""
        with pytest.raises(error):
            reconciler.apply_bulk(values)


class TestApplyInbound:
    """Tests for apply_inbound."""

    def test_partial_report_only_touches_setpoint(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that a report with only T updates only the setpoint."""
        reconciler.apply_outbound("system_mode", "heat")
        reconciler.apply_outbound("fan_mode", "high")
        partial = parse_pmtsd_frame(report_factory("T22"))

        update = reconciler.apply_inbound(partial, RECEIVED_AT)

        assert update.changes == {
            "system_mode": "heat",
            "setpoint": 22,
            "fan_mode": "high",
            "spare_flag": 0,
        }
        assert update.summary == "2025-03-04 05:06:07_TW22"

    def test_full_report(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that a full report replaces every field and records the mode."""
        partial = parse_pmtsd_frame(report_factory("P0_M2_T24_S3_D1"))

        update = reconciler.apply_inbound(partial, RECEIVED_AT)

        assert update.changes["system_mode"] == "auto"
        assert update.changes["fan_mode"] == "high"
        assert reconciler.state.last_active_mode == HVACMode.AUTO
        assert update.summary == "2025-03-04 05:06:07_PW0_MW2_TW24_SW3_DW1"
        assert reconciler.state.last_inbound_summary == update.summary

    def test_power_off_report_keeps_memory(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that an off report keeps the remembered mode."""
        reconciler.apply_outbound("system_mode", "heat")
        partial = parse_pmtsd_frame(report_factory("P1_M0"))

        update = reconciler.apply_inbound(partial, RECEIVED_AT)

        assert update.changes["system_mode"] == "off"
        assert reconciler.state.last_active_mode == HVACMode.HEAT

    def test_report_while_off_uses_remembered_mode(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that powering on from the device restores the last mode."""
        reconciler.apply_outbound("system_mode", "heat")
        reconciler.apply_outbound("system_mode", "off")
        partial = parse_pmtsd_frame(report_factory("P0"))

        reconciler.apply_inbound(partial, RECEIVED_AT)

        assert reconciler.state.system_mode == HVACMode.HEAT

    def test_unknown_tokens_in_summary(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that unknown tokens appear in the summary in wire order."""
        partial = parse_pmtsd_frame(report_factory("X5_T21_Mbad"))

        update = reconciler.apply_inbound(partial, RECEIVED_AT)

        assert update.summary == "2025-03-04 05:06:07_XW5_TW21"
        assert reconciler.state.setpoint == 21

    def test_out_of_bounds_setpoint_ignored(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that a reported setpoint outside the bounds keeps the state."""
        reconciler.apply_inbound(parse_pmtsd_frame(report_factory("T35")))
        assert reconciler.state.setpoint == 15  # noqa: PLR2004

    def test_out_of_bounds_setpoint_ignored_decimal(
        self,
        enabled_state: ClimateState,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that the decimal profile ignores setpoints above 30."""
        reconciler = StateReconciler(
            enabled_state, DECIMAL_PROFILE, logging.getLogger(__name__)
        )
        partial = parse_pmtsd_frame(report_factory("T35.0_S1"), DECIMAL_PROFILE)

        update = reconciler.apply_inbound(partial, RECEIVED_AT)

        assert reconciler.state.setpoint == 15  # noqa: PLR2004
        assert reconciler.state.fan_mode == "low"
        assert update.summary == "2025-03-04 05:06:07_SW1"

    def test_summary_uses_current_time(
        self,
        reconciler: StateReconciler,
        report_factory: Callable[[str], bytes],
    ) -> None:
        """Test that the summary is timestamped when no time is given."""
        update = reconciler.apply_inbound(parse_pmtsd_frame(report_factory("S1")))
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}_SW1", update.summary)
