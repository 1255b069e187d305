"""Test fixtures for Asciiforge.

All fixtures are in-memory: every test gets its own ProjectEngine.
"""

import pytest

from asciiforge import Cell, ProjectEngine


@pytest.fixture
def engine() -> ProjectEngine:
    """Fresh engine with a small flat project (20x10)."""
    engine = ProjectEngine()
    engine.new_project(width=20, height=10, name='Test')
    return engine


@pytest.fixture
def layered_engine(engine: ProjectEngine) -> ProjectEngine:
    """Engine switched to layered mode with one layer and a clean history."""
    engine.layers.add_layer('Background')
    engine.clear_history()
    engine.mark_clean()
    return engine


@pytest.fixture
def events(engine: ProjectEngine) -> list:
    """Records every change notification as (kind, payload)."""
    received = []
    engine.on_change(lambda kind, payload: received.append((kind, payload)))
    return received


@pytest.fixture
def star() -> Cell:
    return Cell(char='*', color='#FF0000')
