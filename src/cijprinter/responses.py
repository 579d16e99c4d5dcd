"""
Response Parsers for caret-command replies.

A driver talking to a real printer (or to PrinterEngine) gets text back.
These parsers turn ^SU, ^TP, ^CN, ^LM and ^VV replies into dataclasses.
They accept both the terse and the verbose (echo) variants, plus the
token spellings seen on different firmware:

    ^SU terse:   Mod[160] Chg[65] Prs[40] RPS[28.13] PhQ[100%] Err[0] HvD[0] Vis[4.20]
                 INK: FULL MAKEUP: FULL
                 V300UP: 0 VLT_ON: 0 GUT_ON: 0 MOD_ON: 0
                 PRINT: Not ready
                 MSG: BESTCODE
    ^SU verbose: STATUS: Modulation[160] Charge[65] Pressure[40] RPS[28.13] ...

Each parse() returns None when the text is not recognisable.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .formatter import CURRENT_MARK, END_OF_LIST

LEVELS = ("FULL", "GOOD", "LOW", "EMPTY", "UNKNOWN")


def _extract(text: str, *patterns: str) -> Optional[str]:
    """Return the first group of the first pattern that matches."""
    for pattern in patterns:
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            return match.group(1)
    return None


def _map_level(raw: Optional[str]) -> str:
    """Map a level token to FULL/GOOD/LOW/EMPTY/UNKNOWN.

    Some firmware reports numeric levels: 0=EMPTY, 1=LOW, 2=GOOD, 3=FULL.
    """
    if not raw:
        return "UNKNOWN"
    upper = raw.strip().upper()
    if upper in LEVELS:
        return upper
    if upper.isdigit():
        number = int(upper)
        if number >= 3:
            return "FULL"
        return ("EMPTY", "LOW", "GOOD")[number]
    return "UNKNOWN"


@dataclass
class StatusReport:
    """Parsed ^SU response."""

    modulation: int
    charge: int
    pressure: int
    rps: float
    phase_quality: int
    viscosity: float
    hv_deflection: bool
    allow_errors: bool
    ink_level: str
    makeup_level: str
    v300up: bool
    vlt_on: bool
    gut_on: bool
    mod_on: bool
    print_ready: bool
    current_message: Optional[str] = None
    raw_text: str = ""

    @classmethod
    def parse(cls, text: str) -> Optional["StatusReport"]:
        """
        Parse a ^SU response in either rendering.

        Args:
            text: Raw response text

        Returns:
            StatusReport instance or None if the text is not a status block
        """
        looks_like_status = re.search(
            r"status|\bmod\s*\[|\bink\s*[:\[\s]|\bmakeup\s*[:\[\s]|modulation",
            text,
            re.IGNORECASE,
        )
        if not looks_like_status:
            return None

        def number(*patterns: str) -> str:
            return _extract(text, *patterns) or "0"

        def bit(*patterns: str) -> bool:
            return _extract(text, *patterns) == "1"

        hv = bit(r"HVDeflection\[\s*(\d)\s*\]", r"\bHvD\[\s*(\d)\s*\]")

        # Print Status line wins; HVDeflection alone can be 1 with the jet off
        raw_ready = _extract(text, r"Print\s*Status\s*:\s*([\w ]+)", r"\bPRINT\s*:\s*([\w ]+)")
        if raw_ready is not None:
            raw_ready = raw_ready.strip()
            ready = raw_ready == "1" or (
                bool(re.search(r"ready", raw_ready, re.IGNORECASE))
                and not re.search(r"not\s+ready", raw_ready, re.IGNORECASE)
            )
        else:
            ready = hv

        message = _extract(
            text,
            r"\bMessage\s*:\s*(.+)",
            r"\bMSG\s*:\s*(.+)",
            r"\bMessage\[\s*(.+?)\s*\]",
            r"\bMsg\[\s*(.+?)\s*\]",
        )

        return cls(
            modulation=int(number(r"Modulation\[\s*(\d+)\s*\]", r"\bMod\[\s*(\d+)\s*\]")),
            charge=int(number(r"Charge\[\s*(\d+)\s*\]", r"\bChg\[\s*(\d+)\s*\]")),
            pressure=int(number(r"Pressure\[\s*(\d+)", r"\bPrs\[\s*(\d+)")),
            rps=float(number(r"RPS\[\s*([\d.]+)\s*\]")),
            phase_quality=int(
                number(r"PhaseQual\[\s*(\d+)\s*%?\s*\]", r"\bPhQ\[\s*(\d+)\s*%?\s*\]")
            ),
            viscosity=float(
                number(r"Viscosity\[\s*([\d.]+)\s*\]", r"\bVis\[\s*([\d.]+)\s*\]")
            ),
            hv_deflection=hv,
            allow_errors=bit(r"AllowErrors\[\s*(\d)\s*\]", r"\bErr\[\s*(\d)\s*\]"),
            ink_level=_map_level(
                _extract(text, r"INK\s*Level\s*:\s*(\w+)", r"INK\s*:\s*(\w+)",
                         r"INK\s*\[\s*(\w+)\s*\]")
            ),
            makeup_level=_map_level(
                _extract(text, r"MAKEUP\s*Level\s*:\s*(\w+)", r"MAKEUP\s*:\s*(\w+)",
                         r"MAKEUP\s*\[\s*(\w+)\s*\]", r"\bMKP\s*:\s*(\w+)")
            ),
            v300up=bit(r"V300UP\s*:\s*(\d)"),
            vlt_on=bit(r"(?:VLT|MLT)_ON\s*:\s*(\d)"),
            gut_on=bit(r"GUT_ON\s*:\s*(\d)"),
            mod_on=bit(r"MOD_ON\s*:\s*(\d)"),
            print_ready=ready,
            current_message=message.strip() if message else None,
            raw_text=text,
        )


@dataclass
class Temperatures:
    """Parsed ^TP response."""

    printhead: float
    electronics: float

    @classmethod
    def parse(cls, text: str) -> Optional["Temperatures"]:
        """Parse "P[24.71] E[30.78]" or "TEMPS: Printhead[24.71°C] Electric[30.78°C]"."""
        printhead = _extract(text, r"Printhead\[\s*([\d.]+)") or _extract_exact(
            text, r"\bP\[\s*([\d.]+)"
        )
        electronics = _extract(text, r"Electric\[\s*([\d.]+)") or _extract_exact(
            text, r"\bE\[\s*([\d.]+)"
        )
        if printhead is None and electronics is None:
            return None
        return cls(
            printhead=float(printhead or 0),
            electronics=float(electronics or 0),
        )


def _extract_exact(text: str, pattern: str) -> Optional[str]:
    # Case-sensitive: single-letter terse tokens must not match words
    match = re.search(pattern, text)
    return match.group(1) if match else None


@dataclass
class CounterReport:
    """Parsed ^CN response."""

    product_count: int
    print_count: int
    custom: tuple

    @classmethod
    def parse(cls, text: str) -> Optional["CounterReport"]:
        """Parse "PC[308] PrC[7] C1[10] ..." or the verbose COUNT QUERY block."""
        product = _extract(text, r"Product\s+Count\s*:\s*(\d+)", r"\bPC\[\s*(\d+)\s*\]")
        printed = _extract(text, r"Print\s+Count\s*:\s*(\d+)", r"\bPrC\[\s*(\d+)\s*\]")
        if product is None or printed is None:
            return None
        custom = tuple(
            int(_extract(text, rf"Counter\s+{i}\s*:\s*(\d+)", rf"\bC{i}\[\s*(\d+)\s*\]") or 0)
            for i in range(1, 5)
        )
        return cls(product_count=int(product), print_count=int(printed), custom=custom)


_LIST_HEADER = re.compile(r"^Messages\s*\(\d+\):")


@dataclass
class MessageList:
    """Parsed ^LM response."""

    names: list
    current: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "MessageList":
        """Parse a message list; an empty reply yields an empty list."""
        names = []
        current = None
        lines = [line.strip() for line in text.split("\r\n")]
        # Only the verbose form (with its "Messages (n):" header) numbers lines
        numbered = any(_LIST_HEADER.match(line) for line in lines)
        for line in lines:
            if not line or line == END_OF_LIST or _LIST_HEADER.match(line):
                continue
            if numbered:
                line = re.sub(r"^\d+\.\s*", "", line, count=1)
            if line.endswith(CURRENT_MARK):
                line = line[: -len(CURRENT_MARK)].strip()
                current = line
            names.append(line)
        return cls(names=names, current=current)


def parse_version(text: str) -> Optional[str]:
    """Extract "v01.09.00.14" from a ^VV reply."""
    match = re.search(r"v(\d+\.\d+\.\d+\.\d+)", text)
    return f"v{match.group(1)}" if match else None
