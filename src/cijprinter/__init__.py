"""Caret-command protocol engine for continuous-inkjet printers."""

__version__ = "0.1.0"

from .config import EngineConfig, PrinterProfile, load_config, load_profiles
from .dispatcher import CommandResult, PrinterEngine
from .errors import CommandError, ErrorCode
from .fleet import PrinterFleet
from .formatter import Outcome, View, format_response
from .grammar import COMMANDS, ArgShape, Category, Command, lookup
from .responses import CounterReport, MessageList, StatusReport, Temperatures, parse_version
from .state import FluidLevel, MessageDefinition, StateSnapshot
from .transcript import Direction, LogEntry, Transcript

__all__ = [
    "PrinterEngine",
    "CommandResult",
    "PrinterFleet",
    "EngineConfig",
    "PrinterProfile",
    "load_config",
    "load_profiles",
    "CommandError",
    "ErrorCode",
    "Outcome",
    "View",
    "format_response",
    "COMMANDS",
    "ArgShape",
    "Category",
    "Command",
    "lookup",
    "StatusReport",
    "Temperatures",
    "CounterReport",
    "MessageList",
    "parse_version",
    "FluidLevel",
    "MessageDefinition",
    "StateSnapshot",
    "Direction",
    "LogEntry",
    "Transcript",
]
