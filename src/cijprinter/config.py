"""
Engine configuration and printer profiles.

Stored as JSON under ~/.config/cijprinter/:

    config.json    engine settings (shared password, version banner,
                   transcript capacity)
    printers.json  list of printer profiles, each with state overrides

Missing or unreadable files fall back to the built-in defaults.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from .state import build_snapshot
from .transcript import DEFAULT_CAPACITY

# Config directory location
CONFIG_DIR = Path.home() / ".config" / "cijprinter"
CONFIG_FILE = CONFIG_DIR / "config.json"
PROFILES_FILE = CONFIG_DIR / "printers.json"

DEFAULT_PORT = 23


@dataclass
class EngineConfig:
    """Per-engine settings."""

    password: str = "BESTCODE"
    version: str = "v01.09.00.14"
    build_date: str = "Feb 06 2026 10:30:00"
    log_capacity: int = DEFAULT_CAPACITY

    @property
    def version_banner(self) -> str:
        return f"Remote Server {self.version} built {self.build_date}"


@dataclass
class PrinterProfile:
    """A named printer with its own initial state."""

    id: int
    name: str
    host: str
    port: int = DEFAULT_PORT
    overrides: dict = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.host}:{self.port}"


DEFAULT_PROFILES = (
    PrinterProfile(
        1, "Printer 1", "192.168.1.55",
        overrides={"current_message": "BESTCODE", "print_count": 1247,
                   "product_count": 5832},
    ),
    PrinterProfile(
        2, "Printer 2", "192.168.1.56",
        overrides={"current_message": "TEST", "print_count": 892,
                   "product_count": 3421, "makeup_level": "LOW"},
    ),
    PrinterProfile(
        3, "Line A - Primary", "192.168.1.100",
        overrides={"current_message": "SAMPLE", "print_count": 45892,
                   "product_count": 128456, "ink_level": "LOW",
                   "makeup_level": "GOOD"},
    ),
    PrinterProfile(
        4, "Line B - Secondary", "192.168.1.101",
        overrides={"current_message": "BC-GEN2", "print_count": 234,
                   "product_count": 1089, "makeup_level": "EMPTY",
                   "allow_errors": True},
    ),
    PrinterProfile(
        5, "Printer 5", "192.168.1.57",
        overrides={"current_message": "TEST", "print_count": 5621,
                   "product_count": 18432},
    ),
    PrinterProfile(
        6, "Printer 6", "192.168.1.58",
        overrides={"current_message": "SAMPLE", "print_count": 9834,
                   "product_count": 42156, "makeup_level": "GOOD"},
    ),
)


def _read_json(path: Path):
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        # Unreadable file - treat as missing
        return None


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load engine settings, falling back to defaults.

    Args:
        path: Config file to read. Default ~/.config/cijprinter/config.json

    Returns:
        EngineConfig with any stored values applied.
    """
    data = _read_json(path or CONFIG_FILE)
    if not isinstance(data, dict):
        return EngineConfig()

    defaults = EngineConfig()
    known = {k: v for k, v in data.items() if k in EngineConfig.__dataclass_fields__}

    # Wrong-typed values fall back to the default for that key
    for key in ("password", "version", "build_date"):
        if key in known and not isinstance(known[key], str):
            known[key] = getattr(defaults, key)
    capacity = known.get("log_capacity", defaults.log_capacity)
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        known["log_capacity"] = defaults.log_capacity

    return EngineConfig(**known)


def save_config(config: EngineConfig, path: Optional[Path] = None) -> None:
    """Write engine settings, creating the config directory."""
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(config), indent=2))


def load_profiles(path: Optional[Path] = None) -> list[PrinterProfile]:
    """Load printer profiles.

    Returns the built-in profiles if the file is missing or unreadable.

    Raises:
        ValueError: If a stored profile has invalid state overrides
    """
    data = _read_json(path or PROFILES_FILE)
    if not isinstance(data, list):
        return list(DEFAULT_PROFILES)

    profiles = []
    try:
        for item in data:
            profiles.append(
                PrinterProfile(
                    id=int(item["id"]),
                    name=item["name"],
                    host=item["host"],
                    port=int(item.get("port", DEFAULT_PORT)),
                    overrides=dict(item.get("overrides", {})),
                )
            )
    except (KeyError, TypeError, ValueError):
        return list(DEFAULT_PROFILES)

    for profile in profiles:
        build_snapshot(profile.overrides)  # validate early
    return profiles


def save_profiles(profiles: list[PrinterProfile], path: Optional[Path] = None) -> None:
    """Write printer profiles, creating the config directory."""
    path = path or PROFILES_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([asdict(p) for p in profiles], indent=2))


def find_profile(profiles: list[PrinterProfile], name: str) -> Optional[PrinterProfile]:
    """Find a profile by name (case-insensitive), id or host."""
    wanted = name.strip().lower()
    for profile in profiles:
        if wanted in (profile.name.lower(), str(profile.id), profile.host, profile.key):
            return profile
    return None
