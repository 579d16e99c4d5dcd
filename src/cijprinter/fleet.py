"""
Multi-printer session manager.

Holds one independent PrinterEngine per printer profile, keyed by
host:port, so a simulator or test harness can stand in for a whole
production line. Engines share nothing; each keeps its own state and
transcript.
"""

from typing import Optional

from .config import EngineConfig, PrinterProfile, DEFAULT_PORT, load_profiles
from .dispatcher import CommandResult, PrinterEngine
from .state import StateSnapshot


class PrinterFleet:
    """A set of emulated printers addressed by host and port."""

    def __init__(
        self,
        profiles: Optional[list[PrinterProfile]] = None,
        config: Optional[EngineConfig] = None,
    ):
        """
        Create one engine per profile.

        Args:
            profiles: Printer profiles (default: load_profiles())
            config: Engine settings shared by every printer
        """
        self.config = config or EngineConfig()
        self.profiles = list(profiles) if profiles is not None else load_profiles()
        self._engines: dict[str, PrinterEngine] = {}

        for profile in self.profiles:
            if profile.key in self._engines:
                raise ValueError(f"Duplicate printer address {profile.key}")
            self._engines[profile.key] = PrinterEngine(
                config=self.config, overrides=profile.overrides, label=profile.key
            )

    def set_debug(self, enabled: bool):
        """Enable/disable debug output on every engine."""
        for engine in self._engines.values():
            engine.set_debug(enabled)

    def engine_for(self, host: str, port: Optional[int] = None) -> Optional[PrinterEngine]:
        """
        Find the engine for an address.

        Tries host:port first (port defaults to 23), then the first
        printer on the same host.
        """
        engine = self._engines.get(f"{host}:{port or DEFAULT_PORT}")
        if engine is not None:
            return engine
        for key, engine in self._engines.items():
            if key.startswith(f"{host}:"):
                return engine
        return None

    def engine_by_id(self, printer_id: int) -> Optional[PrinterEngine]:
        for profile in self.profiles:
            if profile.id == printer_id:
                return self._engines[profile.key]
        return None

    def is_emulated(self, host: str, port: Optional[int] = None) -> bool:
        return self.engine_for(host, port) is not None

    def process(self, host: str, port: int, line: str) -> Optional[CommandResult]:
        """Run a command on one printer; None if no printer has that address."""
        engine = self.engine_for(host, port)
        if engine is None:
            return None
        return engine.process(line)

    def snapshots(self) -> dict[str, StateSnapshot]:
        """Current state of every printer, keyed by host:port."""
        return {key: engine.snapshot() for key, engine in self._engines.items()}

    def reset_all(self):
        """Return every printer to its profile's initial state."""
        for engine in self._engines.values():
            engine.reset()

    def __len__(self) -> int:
        return len(self._engines)

    def __iter__(self):
        return iter(self.profiles)
