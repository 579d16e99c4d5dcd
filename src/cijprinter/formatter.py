"""
Response Formatter.

Handlers never build wire text themselves. They return an Outcome (what
happened plus the data to show) and format_response() renders it in one
of the two protocol modes:

    terse    compact machine-oriented tokens (">", "? 5: InvWidth", "PW:100")
    verbose  the "echo" mode, human-readable labelled lines

Multi-line responses are joined with CRLF. Terse lists end with //EOL.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .errors import ErrorCode

CRLF = "\r\n"
END_OF_LIST = "//EOL"
CURRENT_MARK = " (current)"

TERSE_OK = ">"
VERBOSE_OK = "Command Successful!"


class View(Enum):
    """What kind of payload an Outcome carries."""

    ACK = "ack"
    ERROR = "error"
    VALUE = "value"
    STATUS = "status"
    COUNTERS = "counters"
    TEMPERATURES = "temperatures"
    RUNTIME = "runtime"
    DATE = "date"
    VERSION = "version"
    LISTING = "listing"
    MESSAGE = "message"
    MODE_STATUS = "mode-status"
    PRINT_SETTINGS = "print-settings"
    HELP = "help"


@dataclass(frozen=True)
class Value:
    """A single reported value (setting, flag or name)."""

    key: str
    label: str
    value: Any


@dataclass(frozen=True)
class Listing:
    """An ordered list of names, optionally with one marked current."""

    title: str
    items: tuple
    current: Optional[str] = None


@dataclass(frozen=True)
class Outcome:
    """Result of one command, independent of the rendering mode."""

    success: bool = True
    view: View = View.ACK
    payload: Any = None
    error: Optional[ErrorCode] = None
    detail: Optional[str] = None

    @classmethod
    def ack(cls, detail: Optional[str] = None) -> "Outcome":
        return cls(detail=detail)

    @classmethod
    def value(cls, key: str, label: str, value: Any) -> "Outcome":
        return cls(view=View.VALUE, payload=Value(key, label, value))

    @classmethod
    def show(cls, view: View, payload: Any) -> "Outcome":
        return cls(view=view, payload=payload)

    @classmethod
    def failure(cls, error: ErrorCode, detail: Optional[str] = None) -> "Outcome":
        return cls(success=False, view=View.ERROR, error=error, detail=detail)


def format_response(outcome: Outcome, verbose: bool) -> str:
    """Render an outcome in verbose (echo) or terse mode."""
    renderer = _RENDERERS[outcome.view]
    lines = renderer(outcome, verbose)
    return CRLF.join(lines)


# --- Renderers (each returns a list of lines) ---


def _render_ack(outcome: Outcome, verbose: bool) -> list[str]:
    if not verbose:
        return [TERSE_OK]
    lines = [VERBOSE_OK]
    if outcome.detail:
        lines.append(outcome.detail)
    return lines


def _render_error(outcome: Outcome, verbose: bool) -> list[str]:
    code = outcome.error
    if not verbose:
        return [f"? {int(code)}: {code.short}"]
    lines = [f"Error {int(code)}: {code.long}"]
    if outcome.detail:
        lines.append(outcome.detail)
    return lines


def _flag(value: bool, verbose: bool) -> str:
    if verbose:
        return "ON" if value else "OFF"
    return "1" if value else "0"


def _bit(value: bool) -> int:
    return 1 if value else 0


def _render_value(outcome: Outcome, verbose: bool) -> list[str]:
    item = outcome.payload
    value = _flag(item.value, verbose) if isinstance(item.value, bool) else item.value
    if verbose:
        return [f"{item.label}: {value}"]
    return [f"{item.key}:{value}"]


def _render_status(outcome: Outcome, verbose: bool) -> list[str]:
    s = outcome.payload
    subsystems = (
        f"V300UP: {_bit(s.v300up)} VLT_ON: {_bit(s.vlt_on)} "
        f"GUT_ON: {_bit(s.gut_on)} MOD_ON: {_bit(s.mod_on)}"
    )
    ready = "Ready" if s.print_ready else "Not ready"
    if verbose:
        return [
            f"STATUS: Modulation[{s.modulation}] Charge[{s.charge}] "
            f"Pressure[{s.pressure}] RPS[{s.rps:.2f}]",
            f"PhaseQual[{s.phase_quality}%] AllowErrors[{_bit(s.allow_errors)}] "
            f"HVDeflection[{_bit(s.hv_on)}] Viscosity[{s.viscosity:.2f}]",
            f"Ink Level: {s.ink_level.value}",
            f"Makeup Level: {s.makeup_level.value}",
            subsystems,
            f"Print Status: {ready}",
            f"Message: {s.current_message}",
        ]
    return [
        f"Mod[{s.modulation}] Chg[{s.charge}] Prs[{s.pressure}] RPS[{s.rps:.2f}] "
        f"PhQ[{s.phase_quality}%] Err[{_bit(s.allow_errors)}] HvD[{_bit(s.hv_on)}] "
        f"Vis[{s.viscosity:.2f}]",
        f"INK: {s.ink_level.value} MAKEUP: {s.makeup_level.value}",
        subsystems,
        f"PRINT: {ready}",
        f"MSG: {s.current_message}",
    ]


def _render_counters(outcome: Outcome, verbose: bool) -> list[str]:
    s = outcome.payload
    c1, c2, c3, c4 = s.custom_counters
    if verbose:
        return [
            "COUNT QUERY:",
            f"Product Count: {s.product_count}",
            f"Print Count: {s.print_count}",
            f"Counter 1: {c1}",
            f"Counter 2: {c2}",
            f"Counter 3: {c3}",
            f"Counter 4: {c4}",
        ]
    return [
        f"PC[{s.product_count}] PrC[{s.print_count}] "
        f"C1[{c1}] C2[{c2}] C3[{c3}] C4[{c4}]"
    ]


def _render_temperatures(outcome: Outcome, verbose: bool) -> list[str]:
    s = outcome.payload
    if verbose:
        return [
            f"TEMPS: Printhead[{s.printhead_temp:.2f}°C] "
            f"Electric[{s.electronics_temp:.2f}°C]"
        ]
    return [f"P[{s.printhead_temp:.2f}] E[{s.electronics_temp:.2f}]"]


def _render_runtime(outcome: Outcome, verbose: bool) -> list[str]:
    s = outcome.payload
    if verbose:
        return [
            f"Power Hours: {s.power_hours:.1f}",
            f"Stream Hours: {s.stream_hours:.1f}",
        ]
    return [f"PWR[{s.power_hours:.1f}] STR[{s.stream_hours:.1f}]"]


def _render_date(outcome: Outcome, verbose: bool) -> list[str]:
    now: datetime = outcome.payload
    if verbose:
        return [f"Date: {now:%Y-%m-%d}", f"Time: {now:%H:%M:%S}"]
    return [now.isoformat(timespec="seconds")]


def _render_version(outcome: Outcome, verbose: bool) -> list[str]:
    if verbose:
        return [f"Software Version: {outcome.payload}"]
    return [outcome.payload]


def _render_listing(outcome: Outcome, verbose: bool) -> list[str]:
    listing: Listing = outcome.payload

    def mark(item):
        return item + CURRENT_MARK if item == listing.current else item

    if verbose:
        lines = [f"{listing.title} ({len(listing.items)}):"]
        lines.extend(f"{i}. {mark(item)}" for i, item in enumerate(listing.items, 1))
        return lines
    return [mark(item) for item in listing.items] + [END_OF_LIST]


def _render_message(outcome: Outcome, verbose: bool) -> list[str]:
    m = outcome.payload
    if verbose:
        return [
            f"Message: {m.name}",
            f"Template: {m.template}",
            f"Speed: {m.speed}",
            f"Orientation: {m.orientation}",
            f"Print Mode: {m.print_mode}",
            f"Data: {m.text}",
        ]
    return [
        f"MSG[{m.name}] T[{m.template}] S[{m.speed}] O[{m.orientation}] "
        f"P[{m.print_mode}] D[{m.text}]"
    ]


def _render_mode_status(outcome: Outcome, verbose: bool) -> list[str]:
    s = outcome.payload
    if verbose:
        return [
            f"One-to-One: {_flag(s.one_to_one, True)}",
            f"Force Photo Eye: {_flag(s.force_photo_eye, True)}",
            f"Trigger Delay: {s.trigger_delay}",
            f"Auto Align: {_flag(s.auto_align, True)}",
            f"UTF-8 Mode: {_flag(s.utf8_mode, True)}",
        ]
    return [
        f"OTO[{_bit(s.one_to_one)}] FPE[{_bit(s.force_photo_eye)}] "
        f"TD[{s.trigger_delay}] AA[{_bit(s.auto_align)}] UTF8[{_bit(s.utf8_mode)}]"
    ]


def _render_print_settings(outcome: Outcome, verbose: bool) -> list[str]:
    s = outcome.payload
    m = s.current_definition
    fields = [
        ("Width", "Print Width", s.print_width),
        ("Height", "Print Height", s.print_height),
        ("Delay", "Delay", s.delay),
        ("ReverseDelay", "Reverse Delay", s.reverse_delay),
        ("Rotation", "Orientation", m.orientation),
        ("Bold", "Bold", s.bold),
        ("Speed", "Speed", m.speed),
        ("Gap", "Gap", s.gap),
        ("Pitch", "Pitch", s.pitch),
        ("Repeat", "Repeat Count", s.repeat_count),
    ]
    if verbose:
        return [f"{label}: {value}" for _, label, value in fields]
    return [",".join(f"{key}:{value}" for key, _, value in fields)]


def _render_help(outcome: Outcome, verbose: bool) -> list[str]:
    commands = outcome.payload
    if verbose:
        return [
            f"{command.usage()} - {command.label}: {command.description}"
            for command in commands
        ]
    return [f"{command.usage()} {command.label}" for command in commands] + [END_OF_LIST]


_RENDERERS = {
    View.ACK: _render_ack,
    View.ERROR: _render_error,
    View.VALUE: _render_value,
    View.STATUS: _render_status,
    View.COUNTERS: _render_counters,
    View.TEMPERATURES: _render_temperatures,
    View.RUNTIME: _render_runtime,
    View.DATE: _render_date,
    View.VERSION: _render_version,
    View.LISTING: _render_listing,
    View.MESSAGE: _render_message,
    View.MODE_STATUS: _render_mode_status,
    View.PRINT_SETTINGS: _render_print_settings,
    View.HELP: _render_help,
}
