"""
Error taxonomy for the caret-command protocol.

Every failure the engine can report has one stable numeric code. The
terse rendering shows the short label, the verbose rendering the long
message; both are looked up from the same ErrorCode member so the two
modes never disagree.
"""

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Protocol error codes."""

    COMMAND_FORMAT = 2
    COMMAND_NOT_RECOGNIZED = 3
    OUT_OF_RANGE = 4
    INVALID_WIDTH = 5
    INVALID_HEIGHT = 6
    INVALID_PITCH = 7
    DELETE_FAILED = 8
    INVALID_DELAY = 9
    INVALID_TRIGGER_DELAY = 10
    INVALID_REPEAT = 11
    INVALID_GAP = 12
    INVALID_BOLD = 13
    MESSAGE_NOT_FOUND = 14
    LOGO_NOT_FOUND = 15
    COUNTER_NOT_FOUND = 16
    MESSAGE_EXISTS = 17
    AUTH_FAILED = 20
    JET_STOPPED = 58
    CANNOT_PRINT = 59
    HV_OFF = 60
    INK_EMPTY = 61

    @property
    def short(self) -> str:
        return _LABELS[self][0]

    @property
    def long(self) -> str:
        return _LABELS[self][1]


_LABELS = {
    ErrorCode.COMMAND_FORMAT: ("CmdFormat", "Invalid command format"),
    ErrorCode.COMMAND_NOT_RECOGNIZED: ("CmdNotRec", "Command not recognized"),
    ErrorCode.OUT_OF_RANGE: ("OutOfRange", "Value out of range"),
    ErrorCode.INVALID_WIDTH: ("InvWidth", "Invalid print width"),
    ErrorCode.INVALID_HEIGHT: ("InvHeight", "Invalid print height"),
    ErrorCode.INVALID_PITCH: ("InvPitch", "Invalid pitch"),
    ErrorCode.DELETE_FAILED: ("DelFailed", "Failed to delete message"),
    ErrorCode.INVALID_DELAY: ("InvDelay", "Invalid delay"),
    ErrorCode.INVALID_TRIGGER_DELAY: ("InvTrigDly", "Invalid trigger delay"),
    ErrorCode.INVALID_REPEAT: ("InvRepeat", "Invalid repeat count"),
    ErrorCode.INVALID_GAP: ("InvGap", "Invalid gap"),
    ErrorCode.INVALID_BOLD: ("InvBold", "Invalid bold"),
    ErrorCode.MESSAGE_NOT_FOUND: ("MsgNotFnd", "Message not found"),
    ErrorCode.LOGO_NOT_FOUND: ("LogoNotFnd", "Logo not found"),
    ErrorCode.COUNTER_NOT_FOUND: ("CntNotFnd", "Counter not found"),
    ErrorCode.MESSAGE_EXISTS: ("MsgExists", "Message already exists"),
    ErrorCode.AUTH_FAILED: ("AuthFail", "Authentication failed"),
    ErrorCode.JET_STOPPED: ("JetStopped", "Jet is not running"),
    ErrorCode.CANNOT_PRINT: ("CantPrint", "Cannot print - jet not running"),
    ErrorCode.HV_OFF: ("HVOff", "Cannot print - HV deflection not enabled"),
    ErrorCode.INK_EMPTY: ("InkEmpty", "Cannot print - ink empty"),
}


# --- Exception Classes ---


class CommandError(Exception):
    """Base exception for protocol-level command failures.

    Raised inside the engine and converted to an error response by
    PrinterEngine.process(); never propagated to callers.
    """

    def __init__(self, code: ErrorCode, detail: Optional[str] = None):
        super().__init__(detail or code.long)
        self.code = code
        self.detail = detail


class FormatError(CommandError):
    """Malformed or missing argument."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(ErrorCode.COMMAND_FORMAT, detail)


class UnknownCommandError(CommandError):
    """Code not present in the command table."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(ErrorCode.COMMAND_NOT_RECOGNIZED, detail)


class RangeError(CommandError):
    """Numeric argument outside its declared range."""

    pass


class NotFoundError(CommandError):
    """Referenced message, logo or counter does not exist."""

    pass


class StateError(CommandError):
    """Operation not allowed in the current printer state."""

    pass


class AuthenticationError(CommandError):
    """Login password mismatch."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(ErrorCode.AUTH_FAILED, detail)
