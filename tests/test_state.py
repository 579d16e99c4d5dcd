"""Tests for protocol state transitions and invariants."""

import dataclasses

import pytest

from cijprinter.errors import ErrorCode, NotFoundError, StateError
from cijprinter.state import FluidLevel, PrinterState, StateSnapshot, build_snapshot


class TestDefaults:
    """Test factory defaults and overrides."""

    def test_factory_defaults(self):
        """A fresh state matches the documented defaults."""
        s = PrinterState().snapshot()
        assert not s.jet_running and not s.hv_on
        assert s.current_message == "BESTCODE"
        assert s.print_width == 100
        assert s.product_count == 308
        assert s.print_count == 7
        assert s.custom_counters == (10, 21, 34, 45)
        assert s.ink_level is FluidLevel.FULL

    def test_snapshot_is_immutable(self):
        """Snapshots cannot be modified."""
        s = PrinterState().snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.hv_on = True

    def test_overrides_accept_json_types(self):
        """Overrides may use level names and plain message names."""
        s = build_snapshot(
            {"ink_level": "low", "messages": ["alpha", "beta"], "current_message": "beta"}
        )
        assert s.ink_level is FluidLevel.LOW
        assert s.message_names == ("ALPHA", "BETA")
        assert s.current_message == "BETA"

    def test_override_unknown_field(self):
        """Unknown override fields are rejected."""
        with pytest.raises(ValueError, match="Unknown state fields"):
            build_snapshot({"warp_drive": True})

    def test_override_current_message_must_exist(self):
        """The current message must be in the store."""
        with pytest.raises(ValueError, match="not stored"):
            build_snapshot({"current_message": "MISSING"})

    def test_ink_does_not_use_good(self):
        """GOOD is a makeup-only level."""
        with pytest.raises(ValueError):
            build_snapshot({"ink_level": "GOOD"})
        assert build_snapshot({"makeup_level": "GOOD"}).makeup_level is FluidLevel.GOOD

    @pytest.mark.parametrize(
        "overrides",
        [
            {"print_count": -5},
            {"product_count": "12"},
            {"custom_counters": [1, 2, -3, 4]},
            {"print_width": 99999},
            {"gap": -1},
            {"bold": 2.5},
            {"hv_on": 1},
            {"echo_on": "yes"},
        ],
    )
    def test_override_values_validated(self, overrides):
        """Counters, settings and flags must hold valid values."""
        with pytest.raises(ValueError):
            build_snapshot(overrides)

    def test_override_setting_bounds_inclusive(self):
        """Settings at their range limits are accepted."""
        s = build_snapshot({"print_width": 16000, "print_height": 0, "trigger_delay": 30000})
        assert (s.print_width, s.print_height, s.trigger_delay) == (16000, 0, 30000)

    def test_engine_rejects_invalid_overrides(self):
        """Invalid overrides never reach a running engine."""
        from cijprinter import PrinterEngine

        with pytest.raises(ValueError):
            PrinterEngine(overrides={"print_count": -5, "print_width": 99999})

    def test_reset_restores_initial(self):
        """reset() returns to the initial snapshot."""
        state = PrinterState({"print_count": 1})
        state.start_jet()
        state.set_setting("print_width", 500)
        state.reset()
        assert state.snapshot() == build_snapshot({"print_count": 1})


class TestJetCoupling:
    """Test the jet / HV / one-to-one coupling rules."""

    def test_hv_requires_jet(self):
        """HV cannot be enabled while the jet is stopped."""
        state = PrinterState()
        with pytest.raises(StateError) as exc_info:
            state.set_high_voltage(True)
        assert exc_info.value.code == ErrorCode.CANNOT_PRINT
        assert not state.snapshot().hv_on

    def test_hv_sets_valve(self):
        """HV and valve-300 switch together."""
        state = PrinterState()
        state.start_jet()
        state.set_high_voltage(True)
        assert state.snapshot().hv_on and state.snapshot().v300up
        state.set_high_voltage(False)
        assert not state.snapshot().hv_on and not state.snapshot().v300up

    def test_stop_jet_clears_hv_and_one_to_one(self):
        """Stopping the jet drops HV, valve-300 and one-to-one in one step."""
        state = PrinterState()
        state.start_jet()
        state.set_high_voltage(True)
        state.begin_one_to_one()
        before = state.snapshot()
        state.stop_jet()
        after = state.snapshot()
        assert before.hv_on and before.one_to_one
        assert not (after.jet_running or after.hv_on or after.v300up or after.one_to_one)

    def test_start_jet_idempotent(self):
        """Starting a running jet changes nothing."""
        state = PrinterState()
        state.start_jet()
        first = state.snapshot()
        state.start_jet()
        assert state.snapshot() == first

    def test_one_to_one_requires_jet(self):
        """One-to-one mode needs the jet running."""
        state = PrinterState()
        with pytest.raises(StateError) as exc_info:
            state.begin_one_to_one()
        assert exc_info.value.code == ErrorCode.JET_STOPPED

    def test_one_to_one_clears_photo_eye(self):
        """Entering one-to-one clears forced photo-eye and its trigger delay."""
        state = PrinterState()
        state.start_jet()
        state.set_flag("force_photo_eye", True)
        state.set_setting("trigger_delay", 250)
        state.begin_one_to_one()
        s = state.snapshot()
        assert s.one_to_one
        assert not s.force_photo_eye
        assert s.trigger_delay == 0


class TestForcePrint:
    """Test force-print preconditions and counting."""

    def test_requires_hv(self):
        """Printing without HV fails and counts nothing."""
        state = PrinterState()
        state.start_jet()
        with pytest.raises(StateError) as exc_info:
            state.force_print()
        assert exc_info.value.code == ErrorCode.HV_OFF
        assert state.snapshot().print_count == 7

    def test_increments_both_counters(self):
        """A print bumps print and product counts by one."""
        state = PrinterState()
        state.start_jet()
        state.set_high_voltage(True)
        state.force_print()
        assert state.snapshot().print_count == 8
        assert state.snapshot().product_count == 309

    def test_ink_empty_blocks_print(self):
        """Empty ink blocks printing; low levels do not."""
        state = PrinterState({"makeup_level": "EMPTY", "ink_level": "LOW"})
        state.start_jet()
        state.set_high_voltage(True)
        state.force_print()
        state.inject_metrics(ink_level="EMPTY")
        with pytest.raises(StateError) as exc_info:
            state.force_print()
        assert exc_info.value.code == ErrorCode.INK_EMPTY


class TestMessages:
    """Test the message store."""

    def test_select_case_insensitive(self):
        """Selection matches names case-insensitively."""
        state = PrinterState()
        assert state.select_message("sample") == "SAMPLE"
        assert state.snapshot().current_message == "SAMPLE"

    def test_select_missing(self):
        """Selecting an unknown message fails."""
        with pytest.raises(NotFoundError) as exc_info:
            PrinterState().select_message("NOPE")
        assert exc_info.value.code == ErrorCode.MESSAGE_NOT_FOUND

    def test_delete_current_rejected(self):
        """The selected message cannot be deleted."""
        state = PrinterState()
        with pytest.raises(StateError) as exc_info:
            state.delete_message("bestcode")
        assert exc_info.value.code == ErrorCode.DELETE_FAILED
        assert "BESTCODE" in state.snapshot().message_names

    def test_delete_other(self):
        """Other messages can be deleted."""
        state = PrinterState()
        state.delete_message("TEST")
        assert "TEST" not in state.snapshot().message_names

    def test_create_uppercases_and_rejects_duplicates(self):
        """New messages are stored upper-case and must be unique."""
        state = PrinterState()
        assert state.create_message("lot", speed=2) == "LOT"
        assert state.snapshot().find_message("LOT").speed == 2
        with pytest.raises(StateError) as exc_info:
            state.create_message("Lot")
        assert exc_info.value.code == ErrorCode.MESSAGE_EXISTS

    def test_copy_message(self):
        """Copies keep the source definition under a new name."""
        state = PrinterState()
        state.update_current_message(text="Batch 7", orientation=3)
        state.copy_message("BESTCODE", "copy1")
        copy = state.snapshot().find_message("COPY1")
        assert copy.text == "Batch 7"
        assert copy.orientation == 3

    def test_delete_logo(self):
        """Logos are deleted by case-insensitive name."""
        state = PrinterState()
        assert state.delete_logo("HIGHVOLT.BMP") == "highVolt.bmp"
        with pytest.raises(NotFoundError) as exc_info:
            state.delete_logo("highVolt.bmp")
        assert exc_info.value.code == ErrorCode.LOGO_NOT_FOUND


class TestCounters:
    """Test counter writes."""

    def test_set_each_counter(self):
        """Counter ids 0, 1-4 and 6 address print, custom and product."""
        state = PrinterState()
        state.set_counter(0, 11)
        state.set_counter(3, 33)
        state.set_counter(6, 66)
        s = state.snapshot()
        assert s.print_count == 11
        assert s.custom_counters == (10, 21, 33, 45)
        assert s.product_count == 66

    def test_unknown_counter(self):
        """Counter 5 does not exist."""
        state = PrinterState()
        with pytest.raises(NotFoundError) as exc_info:
            state.set_counter(5, 1)
        assert exc_info.value.code == ErrorCode.COUNTER_NOT_FOUND

    def test_reset_counter(self):
        """Reset sets the counter to zero."""
        state = PrinterState()
        state.reset_counter(6)
        assert state.snapshot().product_count == 0


class TestInjectMetrics:
    """Test external metric injection."""

    def test_metrics_applied(self):
        """Injected metrics show up in the snapshot."""
        state = PrinterState()
        state.inject_metrics(pressure=42, viscosity="4.5", makeup_level="GOOD")
        s = state.snapshot()
        assert s.pressure == 42
        assert s.viscosity == 4.5
        assert s.makeup_level is FluidLevel.GOOD

    def test_unknown_field(self):
        """Only metric fields may be injected."""
        with pytest.raises(ValueError):
            PrinterState().inject_metrics(hv_on=True)

    def test_runtime_hours_monotonic(self):
        """Runtime hours can only go up."""
        state = PrinterState()
        state.inject_metrics(power_hours=170.0)
        with pytest.raises(ValueError):
            state.inject_metrics(power_hours=100.0)
        assert state.snapshot().power_hours == 170.0

    def test_snapshot_type(self):
        """snapshot() returns a StateSnapshot."""
        assert isinstance(PrinterState().snapshot(), StateSnapshot)
