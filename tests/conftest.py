"""
Pytest configuration for protocol engine tests.

Provides engine fixtures with a fixed clock and helpers for running
command sequences.
"""

from datetime import datetime

import pytest

from cijprinter import PrinterEngine

FIXED_NOW = datetime(2026, 3, 14, 9, 26, 53)


@pytest.fixture
def engine():
    """Fresh engine at factory defaults with a fixed clock."""
    return PrinterEngine(clock=lambda: FIXED_NOW)


@pytest.fixture
def echo_engine(engine):
    """Engine already switched to verbose (echo) mode."""
    engine.process("^EN")
    return engine


@pytest.fixture
def running_engine(engine):
    """Engine with the jet running and HV deflection on."""
    assert engine.process("^SJ 1").success
    assert engine.process("^PR 1").success
    return engine
