"""
Caret-Command Grammar.

This module defines the fixed table of commands the engine recognises,
the shape of each command's argument and the valid range of numeric
arguments. It is pure data plus the tokenizer and per-shape argument
parsers; nothing here touches printer state.

Wire form of a command line:

    ^<CODE>[ <argument>]

where CODE is a short alphabetic code matched case-insensitively and the
argument (if any) is whatever follows, with surrounding whitespace
removed. Argument text keeps its original case.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ErrorCode, FormatError, RangeError, UnknownCommandError


class Category(Enum):
    """Command categories."""

    SYSTEM = "system"
    QUERY = "query"
    PRINTING = "printing"
    MESSAGE = "message"
    SETTINGS = "settings"
    ONE_TO_ONE = "one-to-one"


class ArgShape(Enum):
    """Argument shapes understood by parse_argument()."""

    NONE = "none"                # no argument accepted
    FLAG = "flag"                # 0 or 1, absent = query
    INTEGER = "integer"          # inclusive range, absent = query
    TEXT = "text"                # free text, original case
    COUNTER_VALUE = "counter"    # id;value
    COUNTER_ID = "counter-id"    # id
    NAME_PAIR = "name-pair"      # src;dst
    MESSAGE_SPEC = "message"     # t;s;o;p;name or name
    PARAMS = "params"            # t#;s#;o#;p# (any subset)


@dataclass(frozen=True)
class Command:
    """One row of the command table."""

    code: str
    category: Category
    label: str
    description: str
    shape: ArgShape = ArgShape.NONE
    required: bool = False
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    range_error: ErrorCode = ErrorCode.OUT_OF_RANGE

    @property
    def has_range(self) -> bool:
        return self.minimum is not None and self.maximum is not None

    def usage(self) -> str:
        """Short usage string for help output and format errors."""
        hints = {
            ArgShape.NONE: "",
            ArgShape.FLAG: " 0|1",
            ArgShape.INTEGER: f" {self.minimum}-{self.maximum}",
            ArgShape.TEXT: " text",
            ArgShape.COUNTER_VALUE: " id;value",
            ArgShape.COUNTER_ID: " id",
            ArgShape.NAME_PAIR: " source;target",
            ArgShape.MESSAGE_SPEC: " t;s;o;p;name",
            ArgShape.PARAMS: " t#;s#;o#;p#",
        }
        return f"^{self.code}{hints[self.shape]}"


# Message definition parameters: key -> (field name, min, max)
MESSAGE_PARAMS = {
    "t": ("template", 0, 16),
    "s": ("speed", 0, 3),
    "o": ("orientation", 0, 7),
    "p": ("print_mode", 0, 3),
}

# Counter ids: 0 = print count, 1-4 = custom counters, 6 = product count
PRINT_COUNTER_ID = 0
CUSTOM_COUNTER_IDS = (1, 2, 3, 4)
PRODUCT_COUNTER_ID = 6

MAX_DELAY = 4_000_000_000

MESSAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-.]+$")

_LINE_PATTERN = re.compile(r"^\^([A-Za-z]+)(.*)$", re.DOTALL)
_INTEGER_PATTERN = re.compile(r"^\d+$")
_SIGNED_PATTERN = re.compile(r"^[+-]?\d+$")
_PARAM_PATTERN = re.compile(r"^([A-Za-z])\s*(\d+)$")


def _cmd(code, category, label, description, **kwargs) -> Command:
    return Command(code, category, label, description, **kwargs)


_S = Category.SYSTEM
_Q = Category.QUERY
_P = Category.PRINTING
_M = Category.MESSAGE
_C = Category.SETTINGS
_O = Category.ONE_TO_ONE

COMMAND_TABLE = (
    # System
    _cmd("VV", _S, "View Version", "Report the software version"),
    _cmd("EN", _S, "Echo On", "Verbose responses for all following commands"),
    _cmd("EF", _S, "Echo Off", "Terse responses for all following commands"),
    _cmd("SJ", _S, "Jet Running", "Start (1) or stop (0) the ink jet",
         shape=ArgShape.FLAG),
    _cmd("UT", _S, "UTF-8 Mode", "Enable or disable UTF-8 text mode",
         shape=ArgShape.FLAG),
    _cmd("LG", _S, "Login", "Log in with the shared password",
         shape=ArgShape.TEXT, required=True),
    _cmd("LO", _S, "Logout", "End the logged-in session"),
    _cmd("HE", _S, "Help", "List commands, or describe one command",
         shape=ArgShape.TEXT),
    # Query
    _cmd("SU", _Q, "Status Update", "Report metrics, levels and subsystem flags"),
    _cmd("CN", _Q, "Count Query", "Report product, print and custom counters"),
    _cmd("TM", _Q, "Run Time", "Report power-on and ink-stream hours"),
    _cmd("TP", _Q, "Temperatures", "Report printhead and electronics temperature"),
    _cmd("SD", _Q, "System Date", "Report the current date and time"),
    _cmd("LM", _Q, "List Messages", "List stored messages"),
    _cmd("LL", _Q, "List Logos", "List stored logos"),
    _cmd("LF", _Q, "List Fonts", "List available fonts"),
    _cmd("LE", _Q, "List Errors", "List active fault and warning conditions"),
    _cmd("GM", _Q, "Current Message", "Report the selected message"),
    _cmd("MS", _Q, "Mode Status", "Report one-to-one, photo-eye and text modes"),
    _cmd("QP", _Q, "Print Settings", "Report the print settings summary"),
    # Printing
    _cmd("PR", _P, "HV Deflection", "Enable (1) or disable (0) HV deflection",
         shape=ArgShape.FLAG),
    _cmd("PT", _P, "Force Print", "Trigger one print"),
    _cmd("FE", _P, "Force Photo Eye On", "Force the photo-eye trigger on"),
    _cmd("FF", _P, "Force Photo Eye Off", "Release the forced photo-eye trigger"),
    # Message
    _cmd("SM", _M, "Select Message", "Select a stored message for printing",
         shape=ArgShape.TEXT),
    _cmd("NM", _M, "New Message", "Create a message",
         shape=ArgShape.MESSAGE_SPEC, required=True),
    _cmd("CM", _M, "Change Message", "Change the selected message definition",
         shape=ArgShape.PARAMS, required=True),
    _cmd("DM", _M, "Delete Message", "Delete a stored message",
         shape=ArgShape.TEXT, required=True),
    _cmd("DL", _M, "Delete Logo", "Delete a stored logo",
         shape=ArgShape.TEXT, required=True),
    _cmd("VM", _M, "View Message", "Show a message definition",
         shape=ArgShape.TEXT),
    _cmd("MD", _M, "Message Data", "Set or report the selected message text",
         shape=ArgShape.TEXT),
    _cmd("CF", _M, "Copy Message", "Copy a stored message under a new name",
         shape=ArgShape.NAME_PAIR, required=True),
    # Settings
    _cmd("DA", _C, "Delay", "Product detect to print delay",
         shape=ArgShape.INTEGER, minimum=0, maximum=MAX_DELAY,
         range_error=ErrorCode.INVALID_DELAY),
    _cmd("DR", _C, "Reverse Delay", "Delay used when printing in reverse",
         shape=ArgShape.INTEGER, minimum=0, maximum=MAX_DELAY,
         range_error=ErrorCode.INVALID_DELAY),
    _cmd("DP", _C, "Trigger Delay", "Photo-eye trigger delay",
         shape=ArgShape.INTEGER, minimum=0, maximum=30000,
         range_error=ErrorCode.INVALID_TRIGGER_DELAY),
    _cmd("PA", _C, "Pitch", "Distance between repeated prints",
         shape=ArgShape.INTEGER, minimum=0, maximum=MAX_DELAY,
         range_error=ErrorCode.INVALID_PITCH),
    _cmd("PH", _C, "Print Height", "Print height",
         shape=ArgShape.INTEGER, minimum=0, maximum=10,
         range_error=ErrorCode.INVALID_HEIGHT),
    _cmd("PW", _C, "Print Width", "Print width",
         shape=ArgShape.INTEGER, minimum=0, maximum=16000,
         range_error=ErrorCode.INVALID_WIDTH),
    _cmd("RA", _C, "Repeat Count", "Number of repeats in repeat mode",
         shape=ArgShape.INTEGER, minimum=0, maximum=30000,
         range_error=ErrorCode.INVALID_REPEAT),
    _cmd("GP", _C, "Gap", "Gap between characters",
         shape=ArgShape.INTEGER, minimum=0, maximum=9,
         range_error=ErrorCode.INVALID_GAP),
    _cmd("SB", _C, "Bold", "Bold weight",
         shape=ArgShape.INTEGER, minimum=0, maximum=9,
         range_error=ErrorCode.INVALID_BOLD),
    _cmd("SA", _C, "Auto Align", "Enable or disable auto-align",
         shape=ArgShape.FLAG),
    _cmd("CH", _C, "Allow Errors", "Enable or disable fault checking",
         shape=ArgShape.FLAG),
    _cmd("CC", _C, "Change Counter", "Set a counter to a value",
         shape=ArgShape.COUNTER_VALUE, required=True),
    _cmd("CD", _C, "Clear Counter", "Reset a counter to zero",
         shape=ArgShape.COUNTER_ID, required=True),
    # One-to-one
    _cmd("MB", _O, "One-to-One Begin", "Enter one-to-one print mode"),
    _cmd("ME", _O, "One-to-One End", "Leave one-to-one print mode"),
)

COMMANDS = {command.code: command for command in COMMAND_TABLE}

_CODE_LENGTHS = sorted({len(code) for code in COMMANDS}, reverse=True)


def lookup(code: str) -> Optional[Command]:
    """Return the command for a code, or None if it is not in the table."""
    return COMMANDS.get(code.upper())


def split_line(line: str) -> tuple[Command, str]:
    """
    Split a raw line into its command and argument text.

    The code is the longest known code that prefixes the run of letters
    following the caret, so both "^PR 1" and "^PR1" resolve to PR.

    Raises:
        UnknownCommandError: If the line has no caret code or the code
            is not in the table
    """
    match = _LINE_PATTERN.match(line.strip())
    if not match:
        raise UnknownCommandError(f"Unrecognized input: '{line.strip()}'")

    letters = match.group(1).upper()
    for length in _CODE_LENGTHS:
        command = COMMANDS.get(letters[:length])
        if command is not None:
            remainder = line.strip()[1 + length:].strip()
            return command, remainder

    raise UnknownCommandError(f"Unknown command '^{letters}'")


def parse_argument(command: Command, text: str):
    """
    Parse the argument text for a command according to its shape.

    Returns None when no argument was supplied and the command allows
    that (query form). The returned type depends on the shape:

        FLAG           bool
        INTEGER        int
        TEXT           str
        COUNTER_VALUE  (counter_id, value)
        COUNTER_ID     counter_id
        NAME_PAIR      (source, target)
        MESSAGE_SPEC   (name, {field: value})
        PARAMS         {field: value}

    Raises:
        FormatError: If the argument is missing but required, or malformed
        RangeError: If a numeric argument is outside its declared range
    """
    text = text.strip()
    if not text:
        if command.required:
            raise FormatError(f"Usage: {command.usage()}")
        return None

    if command.shape is ArgShape.NONE:
        raise FormatError(f"^{command.code} takes no argument")

    if command.shape is ArgShape.FLAG:
        if text not in ("0", "1"):
            raise FormatError(f"Usage: {command.usage()}")
        return text == "1"

    if command.shape is ArgShape.INTEGER:
        value = _parse_int(text, command, signed=True)
        if command.has_range and not command.minimum <= value <= command.maximum:
            raise RangeError(
                command.range_error,
                f"{command.label} must be {command.minimum}-{command.maximum}",
            )
        return value

    if command.shape is ArgShape.TEXT:
        return text

    if command.shape is ArgShape.COUNTER_VALUE:
        parts = [p for p in re.split(r"[;\s]+", text) if p]
        if len(parts) != 2:
            raise FormatError(f"Usage: {command.usage()}")
        return _parse_int(parts[0], command), _parse_int(parts[1], command)

    if command.shape is ArgShape.COUNTER_ID:
        return _parse_int(text, command)

    if command.shape is ArgShape.NAME_PAIR:
        parts = [p.strip() for p in text.split(";")]
        if len(parts) != 2 or not all(_is_message_name(p) for p in parts):
            raise FormatError(f"Usage: {command.usage()}")
        return parts[0], parts[1]

    if command.shape is ArgShape.MESSAGE_SPEC:
        return _parse_message_spec(text, command)

    if command.shape is ArgShape.PARAMS:
        return _parse_params(text.split(";"), command)

    raise FormatError(f"Usage: {command.usage()}")


def _parse_int(text: str, command: Command, signed: bool = False) -> int:
    text = text.strip()
    pattern = _SIGNED_PATTERN if signed else _INTEGER_PATTERN
    if not pattern.match(text):
        raise FormatError(f"Usage: {command.usage()}")
    return int(text)


def _is_message_name(text: str) -> bool:
    return bool(MESSAGE_NAME_PATTERN.match(text))


def _check_param(key: str, value: int) -> None:
    field, low, high = MESSAGE_PARAMS[key]
    if not low <= value <= high:
        raise RangeError(ErrorCode.OUT_OF_RANGE, f"{field} must be {low}-{high}")


def _parse_message_spec(text: str, command: Command):
    parts = [p.strip() for p in text.split(";")]

    if len(parts) == 1:
        if not _is_message_name(parts[0]):
            raise FormatError(f"Usage: {command.usage()}")
        return parts[0], {}

    # Positional form: t;s;o;p;name (empty positions keep defaults)
    if len(parts) != 5 or not _is_message_name(parts[4]):
        raise FormatError(f"Usage: {command.usage()}")

    values = {}
    for key, raw in zip("tsop", parts[:4]):
        if not raw:
            continue
        value = _parse_int(raw, command)
        _check_param(key, value)
        values[MESSAGE_PARAMS[key][0]] = value
    return parts[4], values


def _parse_params(tokens: list[str], command: Command) -> dict:
    values = {}
    for token in tokens:
        token = token.strip()
        if not token:
            continue
        match = _PARAM_PATTERN.match(token)
        if not match or match.group(1).lower() not in MESSAGE_PARAMS:
            raise FormatError(f"Usage: {command.usage()}")
        key = match.group(1).lower()
        value = int(match.group(2))
        _check_param(key, value)
        values[MESSAGE_PARAMS[key][0]] = value

    if not values:
        raise FormatError(f"Usage: {command.usage()}")
    return values
