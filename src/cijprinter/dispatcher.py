"""
Command Dispatcher.

PrinterEngine is the protocol engine for one printer session. It takes
a raw command line, resolves it against the grammar, validates the
argument, applies the state transition and renders the response in the
current echo mode:

    engine = PrinterEngine()
    result = engine.process("^SJ 1")
    result.success    # True
    result.response   # ">"

process() is synchronous and never raises for bad input; every
protocol failure comes back as a CommandResult with success=False and
the error code embedded in the response text.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import EngineConfig
from .errors import AuthenticationError, CommandError, ErrorCode
from .formatter import Listing, Outcome, View, format_response
from .grammar import COMMAND_TABLE, Command, lookup, parse_argument, split_line
from .state import SETTING_CODES, FluidLevel, PrinterState, StateSnapshot
from .transcript import Direction, LogEntry, Transcript


@dataclass(frozen=True)
class CommandResult:
    """What a transport relays back for one command."""

    success: bool
    response: str
    error: Optional[ErrorCode] = None


# Flag settings: code -> state field
FLAG_COMMANDS = {
    "UT": "utf8_mode",
    "SA": "auto_align",
    "CH": "allow_errors",
}

# Range-checked settings: code -> state field
SETTING_COMMANDS = {code: field for field, code in SETTING_CODES.items()}


class PrinterEngine:
    """
    Caret-command protocol engine for one printer session.

    Not thread-safe: callers serialise access, one engine per connection.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        overrides: Optional[dict] = None,
        clock: Callable[[], datetime] = datetime.now,
        label: str = "",
    ):
        """
        Initialize a session at factory defaults.

        Args:
            config: Engine settings (password, version banner, log size)
            overrides: State values replacing the factory defaults
            clock: Wall-clock source used for ^SD
            label: Name shown in debug output (e.g. host:port)
        """
        self.config = config or EngineConfig()
        self._state = PrinterState(overrides)
        self.transcript = Transcript(self.config.log_capacity)
        self.label = label
        self._clock = clock
        self._debug = False

        self._handlers = {
            "VV": self._view_version,
            "EN": self._echo_on,
            "EF": self._echo_off,
            "SJ": self._start_stop_jet,
            "LG": self._login,
            "LO": self._logout,
            "HE": self._help,
            "SU": self._show(View.STATUS),
            "CN": self._show(View.COUNTERS),
            "TP": self._show(View.TEMPERATURES),
            "TM": self._show(View.RUNTIME),
            "MS": self._show(View.MODE_STATUS),
            "QP": self._show(View.PRINT_SETTINGS),
            "SD": self._show_date,
            "LM": self._list_messages,
            "LL": self._list_logos,
            "LF": self._list_fonts,
            "LE": self._list_errors,
            "GM": self._current_message,
            "PR": self._print_control,
            "PT": self._force_print,
            "FE": self._force_photo_eye,
            "FF": self._force_photo_eye,
            "SM": self._select_message,
            "NM": self._new_message,
            "CM": self._change_message,
            "DM": self._delete_message,
            "DL": self._delete_logo,
            "VM": self._view_message,
            "MD": self._message_data,
            "CF": self._copy_message,
            "CC": self._change_counter,
            "CD": self._clear_counter,
            "MB": self._one_to_one_begin,
            "ME": self._one_to_one_end,
        }
        for code in FLAG_COMMANDS:
            self._handlers[code] = self._flag_setting
        for code in SETTING_COMMANDS:
            self._handlers[code] = self._numeric_setting

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            prefix = f"[CIJ {self.label}]" if self.label else "[CIJ]"
            print(f"{prefix} {message}")

    # --- Public interface ---

    def process(self, line: str) -> CommandResult:
        """
        Process one command line and return the rendered response.

        Args:
            line: Raw command text, e.g. "^PW 1500"

        Returns:
            CommandResult with the protocol-level outcome and response text
        """
        text = line.strip()
        self.transcript.record(Direction.SENT, text)
        self._log(f"TX: {text}")

        try:
            command, remainder = split_line(text)
            argument = parse_argument(command, remainder)
            outcome = self._handlers[command.code](command, argument)
        except CommandError as e:
            outcome = Outcome.failure(e.code, e.detail)

        response = format_response(outcome, verbose=self._state.snapshot().echo_on)
        self.transcript.record(Direction.RECEIVED, response)
        self._log(f"RX: {response!r}")

        return CommandResult(outcome.success, response, outcome.error)

    def snapshot(self) -> StateSnapshot:
        """Read-only view of the current state for dashboards."""
        return self._state.snapshot()

    def history(self) -> list[LogEntry]:
        """Transcript entries, newest first."""
        return self.transcript.history()

    def inject_metrics(self, **values):
        """Push simulated or measured metrics between commands."""
        self._state.inject_metrics(**values)
        self._log(f"Metrics: {values}")

    def reset(self):
        """Restore the initial state and clear the transcript."""
        self._state.reset()
        self.transcript.clear()
        self._log("Reset")

    # --- System ---

    def _view_version(self, command: Command, argument) -> Outcome:
        return Outcome.show(View.VERSION, self.config.version_banner)

    def _echo_on(self, command: Command, argument) -> Outcome:
        self._state.set_flag("echo_on", True)
        return Outcome.ack()

    def _echo_off(self, command: Command, argument) -> Outcome:
        self._state.set_flag("echo_on", False)
        return Outcome.ack()

    def _start_stop_jet(self, command: Command, start: Optional[bool]) -> Outcome:
        if start is None:
            return Outcome.value("SJ", command.label, self._state.snapshot().jet_running)
        if start:
            self._state.start_jet()
            return Outcome.ack("Jet starting...")
        self._state.stop_jet()
        return Outcome.ack("Jet stopping...")

    def _login(self, command: Command, password: str) -> Outcome:
        if password.upper() != self.config.password.upper():
            raise AuthenticationError()
        self._state.login()
        return Outcome.ack("Logged in")

    def _logout(self, command: Command, argument) -> Outcome:
        self._state.logout()
        return Outcome.ack("Logged out")

    def _help(self, command: Command, topic: Optional[str]) -> Outcome:
        if topic is None:
            return Outcome.show(View.HELP, COMMAND_TABLE)
        found = lookup(topic.lstrip("^"))
        if found is None:
            raise CommandError(
                ErrorCode.COMMAND_NOT_RECOGNIZED, f"No help for '{topic}'"
            )
        return Outcome.show(View.HELP, (found,))

    # --- Queries ---

    def _show(self, view: View):
        def handler(command: Command, argument) -> Outcome:
            return Outcome.show(view, self._state.snapshot())

        return handler

    def _show_date(self, command: Command, argument) -> Outcome:
        return Outcome.show(View.DATE, self._clock())

    def _list_messages(self, command: Command, argument) -> Outcome:
        s = self._state.snapshot()
        return Outcome.show(
            View.LISTING, Listing("Messages", s.message_names, s.current_message)
        )

    def _list_logos(self, command: Command, argument) -> Outcome:
        return Outcome.show(View.LISTING, Listing("Logos", self._state.snapshot().logos))

    def _list_fonts(self, command: Command, argument) -> Outcome:
        return Outcome.show(View.LISTING, Listing("Fonts", self._state.snapshot().fonts))

    def _list_errors(self, command: Command, argument) -> Outcome:
        return Outcome.show(View.LISTING, Listing("Errors", active_faults(self._state.snapshot())))

    def _current_message(self, command: Command, argument) -> Outcome:
        return Outcome.value("MSG", "Current Message", self._state.snapshot().current_message)

    # --- Printing ---

    def _print_control(self, command: Command, enable: Optional[bool]) -> Outcome:
        if enable is None:
            return Outcome.value("PR", command.label, self._state.snapshot().hv_on)
        self._state.set_high_voltage(enable)
        return Outcome.ack("HV Deflection ON" if enable else "HV Deflection OFF")

    def _force_print(self, command: Command, argument) -> Outcome:
        self._state.force_print()
        return Outcome.ack("Print triggered")

    def _force_photo_eye(self, command: Command, argument) -> Outcome:
        enable = command.code == "FE"
        self._state.set_flag("force_photo_eye", enable)
        return Outcome.ack("Photo Eye Enabled" if enable else "Photo Eye Disabled")

    # --- Messages ---

    def _select_message(self, command: Command, name: Optional[str]) -> Outcome:
        if name is None:
            return self._current_message(command, None)
        selected = self._state.select_message(name)
        return Outcome.ack(f"Message selected: {selected}")

    def _new_message(self, command: Command, spec) -> Outcome:
        name, params = spec
        created = self._state.create_message(name, **params)
        return Outcome.ack(f"Message created: {created}")

    def _change_message(self, command: Command, params: dict) -> Outcome:
        self._state.update_current_message(**params)
        return Outcome.ack(f"Message updated: {self._state.snapshot().current_message}")

    def _delete_message(self, command: Command, name: str) -> Outcome:
        deleted = self._state.delete_message(name)
        return Outcome.ack(f"Message deleted: {deleted}")

    def _delete_logo(self, command: Command, name: str) -> Outcome:
        deleted = self._state.delete_logo(name)
        return Outcome.ack(f"Logo deleted: {deleted}")

    def _view_message(self, command: Command, name: Optional[str]) -> Outcome:
        s = self._state.snapshot()
        if name is None:
            return Outcome.show(View.MESSAGE, s.current_definition)
        message = s.find_message(name)
        if message is None:
            raise CommandError(ErrorCode.MESSAGE_NOT_FOUND, f"Message '{name}' not found")
        return Outcome.show(View.MESSAGE, message)

    def _message_data(self, command: Command, text: Optional[str]) -> Outcome:
        if text is None:
            return Outcome.value("MD", command.label, self._state.snapshot().current_definition.text)
        self._state.update_current_message(text=text)
        return Outcome.ack()

    def _copy_message(self, command: Command, names) -> Outcome:
        source, target = names
        copied = self._state.copy_message(source, target)
        return Outcome.ack(f"Message copied: {copied}")

    # --- Settings ---

    def _flag_setting(self, command: Command, enable: Optional[bool]) -> Outcome:
        field = FLAG_COMMANDS[command.code]
        if enable is None:
            return Outcome.value(command.code, command.label, getattr(self._state.snapshot(), field))
        self._state.set_flag(field, enable)
        return Outcome.ack()

    def _numeric_setting(self, command: Command, value: Optional[int]) -> Outcome:
        field = SETTING_COMMANDS[command.code]
        if value is None:
            return Outcome.value(command.code, command.label, getattr(self._state.snapshot(), field))
        self._state.set_setting(field, value)
        return Outcome.ack(f"{command.label}: {value}")

    def _change_counter(self, command: Command, argument) -> Outcome:
        counter_id, value = argument
        self._state.set_counter(counter_id, value)
        return Outcome.ack(f"Counter {counter_id}: {value}")

    def _clear_counter(self, command: Command, counter_id: int) -> Outcome:
        self._state.reset_counter(counter_id)
        return Outcome.ack(f"Counter {counter_id}: 0")

    # --- One-to-one ---

    def _one_to_one_begin(self, command: Command, argument) -> Outcome:
        self._state.begin_one_to_one()
        return Outcome.ack("One-to-One mode ON")

    def _one_to_one_end(self, command: Command, argument) -> Outcome:
        self._state.end_one_to_one()
        return Outcome.ack("One-to-One mode OFF")


def active_faults(s: StateSnapshot) -> tuple:
    """Fault and warning conditions derived from the current state."""
    faults = []
    for name, level in (("Ink", s.ink_level), ("Makeup", s.makeup_level)):
        if level is FluidLevel.EMPTY:
            faults.append(f"{name} Empty")
        elif level is FluidLevel.LOW:
            faults.append(f"{name} Low")
    if s.jet_running and not s.hv_on:
        faults.append("HV Deflection Off")
    return tuple(faults)
