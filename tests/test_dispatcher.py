"""Tests for the command dispatcher (end-to-end through process())."""

import pytest

from cijprinter import ErrorCode, PrinterEngine
from cijprinter.config import EngineConfig
from cijprinter.grammar import COMMANDS
from cijprinter.transcript import Direction


class TestProcessBasics:
    """Test process() contract."""

    def test_unknown_command(self, engine):
        """Unknown codes fail with code 3 rather than raising."""
        result = engine.process("^ZZ_INVALID")
        assert not result.success
        assert result.error == ErrorCode.COMMAND_NOT_RECOGNIZED
        assert result.response == "? 3: CmdNotRec"

    def test_garbage_input(self, engine):
        """Arbitrary text never raises."""
        for line in ("", "hello", "^", "^^^", "^12", "^PW ;;;", "^CC ;", "\x00"):
            result = engine.process(line)
            assert not result.success

    def test_bare_success(self, engine):
        """Terse success is a single '>'."""
        result = engine.process("^SJ 1")
        assert result.success
        assert result.response == ">"

    def test_format_error_distinct_from_query(self, engine):
        """No argument queries; a bad argument is a format error."""
        query = engine.process("^PW")
        assert query.success
        assert query.response == "PW:100"
        bad = engine.process("^PW abc")
        assert not bad.success
        assert bad.error == ErrorCode.COMMAND_FORMAT

    def test_transcript_records_exchange(self, engine):
        """Each command records a sent and a received entry, newest first."""
        engine.process("^SU")
        history = engine.history()
        assert len(history) == 2
        assert history[0].direction is Direction.RECEIVED
        assert history[1].direction is Direction.SENT
        assert history[1].text == "^SU"

    def test_reset_clears_state_and_log(self, engine):
        """reset() restores defaults and empties the transcript."""
        engine.process("^SJ 1")
        engine.process("^PW 500")
        engine.reset()
        assert not engine.snapshot().jet_running
        assert engine.snapshot().print_width == 100
        assert engine.history() == []

    def test_instances_are_independent(self):
        """Two engines share no state."""
        a, b = PrinterEngine(), PrinterEngine()
        a.process("^SJ 1")
        assert a.snapshot().jet_running
        assert not b.snapshot().jet_running

    def test_state_not_exposed(self, engine):
        """State is read through snapshot(), not a public mutable attribute."""
        assert not hasattr(engine, "state")
        engine.inject_metrics(pressure=41)
        assert engine.snapshot().pressure == 41

    def test_debug_output(self, engine, capsys):
        """Debug mode prints TX/RX lines."""
        engine.set_debug(True)
        engine.process("^VV")
        out = capsys.readouterr().out
        assert "[CIJ] TX: ^VV" in out
        assert "RX:" in out


class TestSettings:
    """Test range-checked settings commands."""

    @pytest.mark.parametrize("code", ["PW", "PH", "PA", "DA", "DR", "DP", "RA", "GP", "SB"])
    def test_boundaries(self, engine, code):
        """min and max succeed; max + 1 fails and leaves the value unchanged."""
        command = COMMANDS[code]
        assert engine.process(f"^{code} {command.minimum}").success
        assert engine.process(f"^{code} {command.maximum}").success

        before = engine.snapshot()
        result = engine.process(f"^{code} {command.maximum + 1}")
        assert not result.success
        assert result.error == command.range_error
        assert engine.snapshot() == before

    @pytest.mark.parametrize("code", ["PW", "PH", "PA", "DA", "DR", "DP", "RA", "GP", "SB"])
    def test_below_minimum(self, engine, code):
        """min - 1 fails with the range error and nothing changes."""
        before = engine.snapshot()
        result = engine.process(f"^{code} -1")
        assert not result.success
        assert result.error == COMMANDS[code].range_error
        assert engine.snapshot() == before

    def test_width_scenario(self, engine):
        """^PW 20000 fails with a width error; the width stays at its default."""
        result = engine.process("^PW 20000")
        assert not result.success
        assert result.error == ErrorCode.INVALID_WIDTH
        assert engine.process("^PW").response == "PW:100"

    def test_width_and_height_distinguishable(self, engine):
        """Width and height range failures render different codes."""
        width = engine.process("^PW 99999").response
        height = engine.process("^PH 11").response
        assert width == "? 5: InvWidth"
        assert height == "? 6: InvHeight"

    def test_write_then_query(self, engine):
        """A written setting is reported back."""
        engine.process("^PH 5")
        assert engine.snapshot().print_height == 5
        assert engine.process("^PH").response == "PH:5"

    def test_flag_settings(self, engine):
        """UT, SA and CH write and report flags."""
        engine.process("^UT 1")
        engine.process("^SA 1")
        engine.process("^CH 1")
        s = engine.snapshot()
        assert s.utf8_mode and s.auto_align and s.allow_errors
        assert engine.process("^UT").response == "UT:1"

    def test_counters(self, engine):
        """^CC sets and ^CD clears counters; unknown ids fail."""
        assert engine.process("^CC 1;500").success
        assert engine.snapshot().custom_counters[0] == 500
        assert engine.process("^CD 1").success
        assert engine.snapshot().custom_counters[0] == 0
        result = engine.process("^CC 9;1")
        assert result.error == ErrorCode.COUNTER_NOT_FOUND


class TestJetAndPrinting:
    """Test jet, HV and print commands."""

    def test_end_to_end_print(self, engine):
        """Jet on, HV on, print once, HV off: counts move by exactly one."""
        assert engine.process("^SJ 1").success
        result = engine.process("^PR 1")
        assert result.success
        assert "HvD[1]" in engine.process("^SU").response

        before = engine.snapshot()
        assert engine.process("^PT").success
        after = engine.snapshot()
        assert after.product_count == before.product_count + 1
        assert after.print_count == before.print_count + 1

        assert engine.process("^PR 0").success
        s = engine.snapshot()
        assert not s.hv_on
        assert s.jet_running

    def test_hv_without_jet(self, engine):
        """^PR 1 with the jet stopped fails and HV stays off."""
        result = engine.process("^PR 1")
        assert not result.success
        assert result.error == ErrorCode.CANNOT_PRINT
        assert not engine.snapshot().hv_on

    def test_jet_start_idempotent(self, engine):
        """^SJ 1 twice leaves the jet running."""
        engine.process("^SJ 1")
        first = engine.snapshot()
        engine.process("^SJ 1")
        assert engine.snapshot().jet_running
        assert engine.snapshot() == first

    def test_jet_stop_coupling(self, running_engine):
        """^SJ 0 clears HV, valve-300 and one-to-one."""
        running_engine.process("^MB")
        running_engine.process("^SJ 0")
        s = running_engine.snapshot()
        assert not (s.hv_on or s.v300up or s.one_to_one or s.jet_running)

    def test_force_print_without_hv(self, engine):
        """^PT without HV fails and counts nothing."""
        engine.process("^SJ 1")
        result = engine.process("^PT")
        assert result.error == ErrorCode.HV_OFF
        assert engine.snapshot().print_count == 7

    def test_force_print_ink_empty(self, running_engine):
        """^PT with ink EMPTY fails."""
        running_engine.inject_metrics(ink_level="EMPTY")
        assert running_engine.process("^PT").error == ErrorCode.INK_EMPTY

    def test_photo_eye(self, engine):
        """^FE and ^FF toggle forced photo-eye."""
        engine.process("^FE")
        assert engine.snapshot().force_photo_eye
        engine.process("^FF")
        assert not engine.snapshot().force_photo_eye

    def test_jet_query(self, engine):
        """^SJ with no argument reports jet state."""
        assert engine.process("^SJ").response == "SJ:0"


class TestOneToOne:
    """Test one-to-one mode."""

    def test_requires_jet(self, engine):
        """^MB with the jet stopped fails with the jet-stopped code."""
        result = engine.process("^MB")
        assert result.error == ErrorCode.JET_STOPPED
        assert not engine.snapshot().one_to_one

    def test_begin_clears_photo_eye(self, engine):
        """^MB clears forced photo-eye and trigger delay."""
        engine.process("^SJ 1")
        engine.process("^FE")
        engine.process("^DP 300")
        assert engine.process("^MB").success
        s = engine.snapshot()
        assert s.one_to_one and not s.force_photo_eye and s.trigger_delay == 0

    def test_end(self, engine):
        """^ME leaves one-to-one mode."""
        engine.process("^SJ 1")
        engine.process("^MB")
        engine.process("^ME")
        assert not engine.snapshot().one_to_one


class TestMessages:
    """Test message commands."""

    def test_select_round_trip(self, engine):
        """^SM name then ^SM reports that name."""
        assert engine.process("^SM TEST").success
        assert engine.process("^SM").response == "MSG:TEST"
        assert engine.process("^GM").response == "MSG:TEST"

    def test_select_missing(self, engine):
        """Selecting an unknown message fails."""
        result = engine.process("^SM NOPE")
        assert result.error == ErrorCode.MESSAGE_NOT_FOUND
        assert engine.snapshot().current_message == "BESTCODE"

    def test_delete_guard(self, engine):
        """The current message cannot be deleted; others can."""
        result = engine.process("^DM BESTCODE")
        assert result.error == ErrorCode.DELETE_FAILED

        engine.process("^SM BESTCODE")
        assert engine.process("^DM SAMPLE").success
        listing = engine.process("^LM").response.split("\r\n")
        assert "SAMPLE" not in listing
        assert "BESTCODE (current)" in listing
        assert listing[-1] == "//EOL"

    def test_delete_missing(self, engine):
        """Deleting an unknown message fails with not-found."""
        assert engine.process("^DM NOPE").error == ErrorCode.MESSAGE_NOT_FOUND

    def test_new_and_view(self, engine):
        """^NM creates a message that ^VM can show."""
        assert engine.process("^NM 5;1;2;0;lot").success
        assert "LOT" in engine.snapshot().message_names
        response = engine.process("^VM LOT").response
        assert response == "MSG[LOT] T[5] S[1] O[2] P[0] D[]"

    def test_new_duplicate(self, engine):
        """^NM refuses existing names."""
        assert engine.process("^NM TEST").error == ErrorCode.MESSAGE_EXISTS

    def test_change_message(self, engine):
        """^CM updates the selected message definition."""
        assert engine.process("^CM s3;o7;p2").success
        definition = engine.snapshot().current_definition
        assert (definition.speed, definition.orientation, definition.print_mode) == (3, 7, 2)

    def test_change_message_out_of_range(self, engine):
        """^CM with a bad parameter value fails and changes nothing."""
        before = engine.snapshot()
        assert engine.process("^CM o8").error == ErrorCode.OUT_OF_RANGE
        assert engine.snapshot() == before

    def test_message_data_keeps_case(self, engine):
        """^MD stores text in its original case."""
        engine.process("^MD Lot 42b")
        assert engine.process("^MD").response == "MD:Lot 42b"

    def test_copy(self, engine):
        """^CF copies a message."""
        assert engine.process("^CF TEST;TEST2").success
        assert "TEST2" in engine.snapshot().message_names
        assert engine.process("^CF NOPE;X").error == ErrorCode.MESSAGE_NOT_FOUND

    def test_delete_logo(self, engine):
        """^DL removes a logo from ^LL output."""
        assert engine.process("^DL ENCODER.BMP").success
        assert "ENCODER.BMP" not in engine.process("^LL").response
        assert engine.process("^DL ENCODER.BMP").error == ErrorCode.LOGO_NOT_FOUND


class TestLogin:
    """Test the shared password gate."""

    def test_wrong_then_right(self, engine):
        """Wrong password fails; the right one (any case) logs in."""
        result = engine.process("^LG wrongpassword")
        assert result.error == ErrorCode.AUTH_FAILED
        assert not engine.snapshot().logged_in

        assert engine.process("^LG bestcode").success
        assert engine.snapshot().logged_in

    def test_missing_password(self, engine):
        """^LG without a password is a format error."""
        assert engine.process("^LG").error == ErrorCode.COMMAND_FORMAT

    def test_configured_password(self):
        """The password comes from EngineConfig."""
        engine = PrinterEngine(config=EngineConfig(password="s3cret"))
        assert engine.process("^LG S3CRET").success

    def test_logout(self, engine):
        """^LO clears the login."""
        engine.process("^LG BESTCODE")
        engine.process("^LO")
        assert not engine.snapshot().logged_in


class TestQueries:
    """Test that queries are pure reads."""

    @pytest.mark.parametrize(
        "line", ["^SU", "^CN", "^TM", "^TP", "^SD", "^LM", "^LL", "^LF", "^GM", "^MS", "^QP", "^LE", "^VM", "^HE"]
    )
    def test_queries_do_not_mutate(self, engine, line):
        """Query commands leave state untouched."""
        before = engine.snapshot()
        assert engine.process(line).success
        assert engine.snapshot() == before

    def test_date_uses_clock(self, engine):
        """^SD renders the injected clock."""
        assert engine.process("^SD").response == "2026-03-14T09:26:53"

    def test_version(self, engine):
        """^VV reports the version banner."""
        assert engine.process("^VV").response == "Remote Server v01.09.00.14 built Feb 06 2026 10:30:00"

    def test_list_errors(self, engine):
        """^LE lists derived fault conditions."""
        engine.inject_metrics(ink_level="LOW", makeup_level="EMPTY")
        assert engine.process("^LE").response == "Ink Low\r\nMakeup Empty\r\n//EOL"

    def test_help_single(self, engine):
        """^HE PW describes one command."""
        assert engine.process("^HE PW").response == "^PW 0-16000 Print Width\r\n//EOL"
        assert engine.process("^HE ZZ").error == ErrorCode.COMMAND_NOT_RECOGNIZED


class TestEchoMode:
    """Test terse/verbose switching."""

    def test_echo_on_own_response_verbose(self, engine):
        """^EN's own reply is already verbose."""
        assert engine.process("^EN").response == "Command Successful!"

    def test_echo_off_own_response_terse(self, echo_engine):
        """^EF's own reply is already terse."""
        assert echo_engine.process("^EF").response == ">"

    def test_same_error_code_both_modes(self, engine):
        """The same failure carries the same code in both renderings."""
        terse = engine.process("^PR 1")
        engine.process("^EN")
        verbose = engine.process("^PR 1")
        assert terse.error == verbose.error == ErrorCode.CANNOT_PRINT
        assert terse.response == "? 59: CantPrint"
        assert verbose.response.startswith("Error 59: Cannot print - jet not running")

    def test_verbose_value(self, echo_engine):
        """Verbose queries use labelled values."""
        assert echo_engine.process("^PW").response == "Print Width: 100"
        assert echo_engine.process("^SJ").response == "Jet Running: OFF"

    def test_verbose_success_detail(self, echo_engine):
        """Verbose successes may add a detail line."""
        assert echo_engine.process("^SJ 1").response == "Command Successful!\r\nJet starting..."
