"""
Protocol State for a continuous-inkjet printer session.

The whole state is one frozen StateSnapshot. PrinterState holds the
current snapshot and every mutation entry point builds the next snapshot
and swaps it in with a single assignment, so coupled flags (jet, HV,
valve-300, one-to-one) can never be observed half-updated.

Mutation entry points are meant for the dispatcher. UI and monitoring
code read through snapshot(); metric collaborators push values through
inject_metrics().
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Optional

from .errors import ErrorCode, NotFoundError, StateError
from .grammar import COMMANDS, CUSTOM_COUNTER_IDS, PRINT_COUNTER_ID, PRODUCT_COUNTER_ID


class FluidLevel(Enum):
    """Consumable level scale. GOOD is only reported for makeup."""

    FULL = "FULL"
    GOOD = "GOOD"
    LOW = "LOW"
    EMPTY = "EMPTY"


@dataclass(frozen=True)
class MessageDefinition:
    """Stored message: name plus the per-message print parameters."""

    name: str
    template: int = 16
    speed: int = 0
    orientation: int = 0
    print_mode: int = 0
    text: str = ""


DEFAULT_MESSAGES = ("BESTCODE", "BESTCODE-AUTO", "TEST", "SAMPLE", "BC-GEN2")
DEFAULT_LOGOS = (
    "ENCODER.BMP",
    "highVolt.bmp",
    "phaseWave.bmp",
    "running_2.bmp",
    "USBdrive.bmp",
)
DEFAULT_FONTS = (
    "5 High",
    "7 High",
    "9 High",
    "12 High",
    "16 High",
    "19 High",
    "25 High",
    "32 High",
)


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable view of everything the printer reports (factory defaults)."""

    # Subsystem flags
    hv_on: bool = False
    jet_running: bool = False
    v300up: bool = False
    vlt_on: bool = False
    gut_on: bool = False
    mod_on: bool = False

    # Session flags
    echo_on: bool = False
    utf8_mode: bool = False
    one_to_one: bool = False
    force_photo_eye: bool = False
    auto_align: bool = False
    logged_in: bool = False
    allow_errors: bool = False

    # Live metrics
    modulation: int = 160
    charge: int = 65
    pressure: int = 40
    rps: float = 28.13
    phase_quality: int = 100
    viscosity: float = 4.20
    printhead_temp: float = 24.71
    electronics_temp: float = 30.78

    # Consumables
    ink_level: FluidLevel = FluidLevel.FULL
    makeup_level: FluidLevel = FluidLevel.FULL

    # Counters
    product_count: int = 308
    print_count: int = 7
    custom_counters: tuple = (10, 21, 34, 45)

    # Settings
    delay: int = 0
    reverse_delay: int = 0
    trigger_delay: int = 0
    pitch: int = 100
    print_height: int = 8
    print_width: int = 100
    repeat_count: int = 1
    gap: int = 1
    bold: int = 0

    # Runtime hours (only ever increase)
    power_hours: float = 165.0
    stream_hours: float = 120.5

    # Message store
    current_message: str = "BESTCODE"
    messages: tuple = tuple(MessageDefinition(name) for name in DEFAULT_MESSAGES)
    logos: tuple = DEFAULT_LOGOS
    fonts: tuple = DEFAULT_FONTS

    @property
    def print_ready(self) -> bool:
        """True when the printer would print on the next trigger."""
        return self.hv_on and self.jet_running

    @property
    def message_names(self) -> tuple:
        return tuple(message.name for message in self.messages)

    @property
    def current_definition(self) -> MessageDefinition:
        for message in self.messages:
            if message.name == self.current_message:
                return message
        raise LookupError(self.current_message)

    def find_message(self, name: str) -> Optional[MessageDefinition]:
        """Case-insensitive lookup in the message store."""
        wanted = name.strip().upper()
        for message in self.messages:
            if message.name.upper() == wanted:
                return message
        return None

    def counter(self, counter_id: int) -> int:
        if counter_id == PRINT_COUNTER_ID:
            return self.print_count
        if counter_id == PRODUCT_COUNTER_ID:
            return self.product_count
        if counter_id in CUSTOM_COUNTER_IDS:
            return self.custom_counters[counter_id - 1]
        raise NotFoundError(ErrorCode.COUNTER_NOT_FOUND, f"No counter {counter_id}")


FIELD_NAMES = frozenset(f.name for f in fields(StateSnapshot))

SESSION_FLAGS = frozenset(
    {"echo_on", "utf8_mode", "auto_align", "allow_errors", "force_photo_eye"}
)

# Range-checked settings: state field -> command code
SETTING_CODES = {
    "delay": "DA",
    "reverse_delay": "DR",
    "trigger_delay": "DP",
    "pitch": "PA",
    "print_height": "PH",
    "print_width": "PW",
    "repeat_count": "RA",
    "gap": "GP",
    "bold": "SB",
}
SETTING_FIELDS = frozenset(SETTING_CODES)

FLAG_FIELDS = frozenset(f.name for f in fields(StateSnapshot) if f.type is bool)
COUNT_FIELDS = frozenset({"product_count", "print_count"})

INT_METRICS = frozenset({"modulation", "charge", "pressure", "phase_quality"})
FLOAT_METRICS = frozenset(
    {"rps", "viscosity", "printhead_temp", "electronics_temp"}
)
RUNTIME_FIELDS = frozenset({"power_hours", "stream_hours"})
LEVEL_FIELDS = frozenset({"ink_level", "makeup_level"})


def build_snapshot(overrides: Optional[dict] = None) -> StateSnapshot:
    """
    Build a snapshot from factory defaults plus overrides.

    Overrides may use plain JSON types: level names as strings and
    message lists as names. The current message must be in the store.

    Raises:
        ValueError: If an override names an unknown field or is invalid
    """
    values = dict(overrides or {})
    unknown = set(values) - FIELD_NAMES
    if unknown:
        raise ValueError(f"Unknown state fields: {', '.join(sorted(unknown))}")

    for key in LEVEL_FIELDS & set(values):
        values[key] = _coerce_level(key, values[key])
    if "messages" in values:
        values["messages"] = tuple(
            m if isinstance(m, MessageDefinition) else MessageDefinition(str(m).upper())
            for m in values["messages"]
        )
    for key in ("logos", "fonts", "custom_counters"):
        if key in values:
            values[key] = tuple(values[key])
    if "current_message" in values:
        values["current_message"] = str(values["current_message"]).upper()

    for key in FLAG_FIELDS & set(values):
        if not isinstance(values[key], bool):
            raise ValueError(f"{key} must be true or false")
    for key in SETTING_FIELDS & set(values):
        _check_whole(key, values[key])
        command = COMMANDS[SETTING_CODES[key]]
        if not command.minimum <= values[key] <= command.maximum:
            raise ValueError(f"{key} must be {command.minimum}-{command.maximum}")

    snapshot = replace(StateSnapshot(), **values)
    if len(snapshot.custom_counters) != len(CUSTOM_COUNTER_IDS):
        raise ValueError("custom_counters must hold four values")
    for key in COUNT_FIELDS & set(values):
        _check_whole(key, values[key])
    for value in snapshot.custom_counters:
        _check_whole("custom_counters", value)
    if snapshot.find_message(snapshot.current_message) is None:
        raise ValueError(f"Current message {snapshot.current_message!r} is not stored")
    return snapshot


def _check_whole(key: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key} must be a non-negative integer")


def _coerce_level(key: str, value) -> FluidLevel:
    try:
        level = value if isinstance(value, FluidLevel) else FluidLevel(str(value).upper())
    except ValueError:
        raise ValueError(f"Invalid {key}: {value!r}") from None
    if key == "ink_level" and level is FluidLevel.GOOD:
        raise ValueError("ink_level does not use GOOD")
    return level


class PrinterState:
    """
    Mutable holder for one printer session's protocol state.

    Each entry point either raises a CommandError and leaves the state
    untouched, or replaces the snapshot in one step.
    """

    def __init__(self, overrides: Optional[dict] = None):
        self._initial = build_snapshot(overrides)
        self._state = self._initial

    def snapshot(self) -> StateSnapshot:
        """Return the current immutable state."""
        return self._state

    def reset(self):
        """Restore the session's initial values."""
        self._state = self._initial

    def _apply(self, **changes):
        self._state = replace(self._state, **changes)

    # --- Jet / HV / one-to-one coupling ---

    def start_jet(self):
        self._apply(jet_running=True, vlt_on=True, gut_on=True, mod_on=True)

    def stop_jet(self):
        """Stop the jet; HV, valve-300, subsystems and one-to-one drop with it."""
        self._apply(
            jet_running=False,
            hv_on=False,
            v300up=False,
            vlt_on=False,
            gut_on=False,
            mod_on=False,
            one_to_one=False,
        )

    def set_high_voltage(self, enabled: bool):
        if enabled and not self._state.jet_running:
            raise StateError(ErrorCode.CANNOT_PRINT)
        self._apply(hv_on=enabled, v300up=enabled)

    def force_print(self):
        if not self._state.hv_on:
            raise StateError(ErrorCode.HV_OFF)
        if self._state.ink_level is FluidLevel.EMPTY:
            raise StateError(ErrorCode.INK_EMPTY)
        self._apply(
            print_count=self._state.print_count + 1,
            product_count=self._state.product_count + 1,
        )

    def begin_one_to_one(self):
        if not self._state.jet_running:
            raise StateError(ErrorCode.JET_STOPPED)
        self._apply(one_to_one=True, force_photo_eye=False, trigger_delay=0)

    def end_one_to_one(self):
        self._apply(one_to_one=False)

    # --- Flags and settings ---

    def set_flag(self, name: str, value: bool):
        if name not in SESSION_FLAGS:
            raise KeyError(name)
        self._apply(**{name: bool(value)})

    def set_setting(self, name: str, value: int):
        if name not in SETTING_FIELDS:
            raise KeyError(name)
        self._apply(**{name: value})

    def login(self):
        self._apply(logged_in=True)

    def logout(self):
        self._apply(logged_in=False)

    # --- Counters ---

    def set_counter(self, counter_id: int, value: int):
        if value < 0:
            raise ValueError("Counters cannot be negative")
        self._state.counter(counter_id)  # raises for unknown ids
        if counter_id == PRINT_COUNTER_ID:
            self._apply(print_count=value)
        elif counter_id == PRODUCT_COUNTER_ID:
            self._apply(product_count=value)
        else:
            counters = list(self._state.custom_counters)
            counters[counter_id - 1] = value
            self._apply(custom_counters=tuple(counters))

    def reset_counter(self, counter_id: int):
        self.set_counter(counter_id, 0)

    # --- Message store ---

    def _require_message(self, name: str) -> MessageDefinition:
        message = self._state.find_message(name)
        if message is None:
            raise NotFoundError(
                ErrorCode.MESSAGE_NOT_FOUND, f"Message '{name}' not found"
            )
        return message

    def select_message(self, name: str) -> str:
        message = self._require_message(name)
        self._apply(current_message=message.name)
        return message.name

    def create_message(self, name: str, **params) -> str:
        name = name.upper()
        if self._state.find_message(name) is not None:
            raise StateError(ErrorCode.MESSAGE_EXISTS, f"Message '{name}' exists")
        message = MessageDefinition(name, **params)
        self._apply(messages=self._state.messages + (message,))
        return name

    def update_current_message(self, **params):
        current = self._state.current_definition
        updated = replace(current, **params)
        self._apply(
            messages=tuple(
                updated if m.name == current.name else m for m in self._state.messages
            )
        )

    def copy_message(self, source: str, target: str) -> str:
        original = self._require_message(source)
        target = target.upper()
        if self._state.find_message(target) is not None:
            raise StateError(ErrorCode.MESSAGE_EXISTS, f"Message '{target}' exists")
        self._apply(messages=self._state.messages + (replace(original, name=target),))
        return target

    def delete_message(self, name: str) -> str:
        if name.strip().upper() == self._state.current_message.upper():
            raise StateError(
                ErrorCode.DELETE_FAILED, "Cannot delete the selected message"
            )
        message = self._require_message(name)
        self._apply(messages=tuple(m for m in self._state.messages if m is not message))
        return message.name

    def delete_logo(self, name: str) -> str:
        wanted = name.strip().upper()
        for logo in self._state.logos:
            if logo.upper() == wanted:
                self._apply(logos=tuple(other for other in self._state.logos if other != logo))
                return logo
        raise NotFoundError(ErrorCode.LOGO_NOT_FOUND, f"Logo '{name}' not found")

    # --- External metric injection ---

    def inject_metrics(self, **values):
        """
        Apply externally measured or simulated values.

        Accepts live metrics, temperatures, fluid levels (names or
        FluidLevel) and runtime hours. Runtime hours may not decrease.

        Raises:
            ValueError: For unknown fields or invalid values
        """
        changes = {}
        for key, value in values.items():
            if key in INT_METRICS:
                changes[key] = int(value)
            elif key in FLOAT_METRICS:
                changes[key] = float(value)
            elif key in LEVEL_FIELDS:
                changes[key] = _coerce_level(key, value)
            elif key in RUNTIME_FIELDS:
                hours = float(value)
                if hours < getattr(self._state, key):
                    raise ValueError(f"{key} cannot decrease")
                changes[key] = hours
            else:
                raise ValueError(f"Not an injectable field: {key}")
        self._apply(**changes)
