"""
Asciiforge - in-memory document engine for character-grid art and animation
"""

from .config import Settings, settings
from .engine import ProjectEngine
from .exceptions import DocumentFormatError, EngineError, HistoryCorruptError
from .formats import FormatVersion, decode_session, detect_format_version
from .grid import EMPTY_CELL, Cell, CellGrid, cell_key, parse_cell_key
from .history import History, HistoryEntry, HistoryInfo
from .regions import FillOptions, find_matching_cells
from .state import ProjectState

__all__ = [
    # Engine
    "ProjectEngine",
    "ProjectState",
    # Grid
    "Cell",
    "CellGrid",
    "EMPTY_CELL",
    "cell_key",
    "parse_cell_key",
    # Regions
    "FillOptions",
    "find_matching_cells",
    # History
    "History",
    "HistoryEntry",
    "HistoryInfo",
    # Formats
    "FormatVersion",
    "detect_format_version",
    "decode_session",
    # Configuration
    "Settings",
    "settings",
    # Errors
    "EngineError",
    "DocumentFormatError",
    "HistoryCorruptError",
]
