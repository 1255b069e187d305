"""
Grid primitives - cells, coordinate keys and bounds.

Grids are sparse: a ``CellGrid`` maps ``"x,y"`` keys to ``Cell`` values and
a missing key means the empty cell. The empty cell is never stored, so every
write goes through ``write_cell`` which stores or deletes accordingly.

Cells are frozen models and may be shared between grids and snapshots.
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Canvas limits (characters)
MIN_WIDTH = 4
MAX_WIDTH = 200
MIN_HEIGHT = 4
MAX_HEIGHT = 100

DEFAULT_CHAR = ' '
DEFAULT_COLOR = '#FFFFFF'
TRANSPARENT = 'transparent'

HEX_COLOR_PATTERN = r'^#[0-9A-Fa-f]{6}$'
BG_COLOR_PATTERN = r'^(#[0-9A-Fa-f]{6}|transparent)$'

CELL_KEY_PATTERN = r'^\d+,\d+$'
_KEY_RE = re.compile(r'^(\d+),(\d+)$')


class Cell(BaseModel):
    """
    A single character position on the canvas.

    Serializes to:
    {
        "char": "@",
        "color": "#FFFFFF",
        "bgColor": "transparent"
    }
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra='ignore',
    )

    char: str = Field(default=DEFAULT_CHAR, min_length=1, max_length=1)
    color: str = Field(default=DEFAULT_COLOR, pattern=HEX_COLOR_PATTERN)
    bg_color: str = Field(default=TRANSPARENT, alias='bgColor', pattern=BG_COLOR_PATTERN)

    def is_empty(self) -> bool:
        """Check if this cell equals the empty cell."""
        return (
            self.char == DEFAULT_CHAR
            and self.color == DEFAULT_COLOR
            and self.bg_color == TRANSPARENT
        )

    def to_api_dict(self) -> dict[str, str]:
        """Convert to the camelCase wire format."""
        return self.model_dump(by_alias=True)


EMPTY_CELL = Cell()

CellGrid = dict[str, Cell]


def cell_key(x: int, y: int) -> str:
    """Create a cell key from coordinates."""
    return f"{x},{y}"


def parse_cell_key(key: str) -> tuple[int, int]:
    """
    Parse a cell key back into coordinates.

    Raises:
        ValueError: If the key is not of the form ``"x,y"`` with
            non-negative integers.
    """
    match = _KEY_RE.match(key)
    if match is None:
        raise ValueError(f"Invalid cell key: {key!r}")
    return int(match.group(1)), int(match.group(2))


def is_valid_key(key: str) -> bool:
    """Check if a string is a well-formed cell key."""
    return _KEY_RE.match(key) is not None


def is_in_bounds(x: int, y: int, width: int, height: int) -> bool:
    """Check if coordinates are within canvas bounds."""
    return 0 <= x < width and 0 <= y < height


def clamp_dimensions(width: int, height: int) -> tuple[int, int]:
    """Clamp canvas dimensions to the supported range."""
    return (
        max(MIN_WIDTH, min(MAX_WIDTH, int(width))),
        max(MIN_HEIGHT, min(MAX_HEIGHT, int(height))),
    )


def write_cell(grid: CellGrid, key: str, cell: Cell) -> None:
    """Store a cell, or delete the key when the cell is empty."""
    if cell.is_empty():
        grid.pop(key, None)
    else:
        grid[key] = cell


def clip_grid(grid: CellGrid, width: int, height: int) -> CellGrid:
    """Return a copy of the grid without cells outside the given bounds."""
    clipped: CellGrid = {}
    for key, cell in grid.items():
        x, y = parse_cell_key(key)
        if x < width and y < height:
            clipped[key] = cell
    return clipped


def grid_to_dict(grid: CellGrid) -> dict[str, dict[str, str]]:
    """Project a grid to plain JSON-compatible dicts."""
    return {key: cell.to_api_dict() for key, cell in grid.items()}


def grid_from_dict(data: dict[str, Any]) -> CellGrid:
    """
    Build a grid from serialized cell data.

    Accepts ``Cell`` instances or dicts. Empty cells are dropped.

    Raises:
        ValueError: On malformed keys.
        pydantic.ValidationError: On malformed cells.
    """
    grid: CellGrid = {}
    for key, value in data.items():
        if not is_valid_key(key):
            raise ValueError(f"Invalid cell key: {key!r}")
        cell = value if isinstance(value, Cell) else Cell.model_validate(value)
        if not cell.is_empty():
            grid[key] = cell
    return grid
