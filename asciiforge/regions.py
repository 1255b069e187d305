"""
Region algorithms over a cell grid.

Both the paint bucket and the magic-wand selection resolve their target
cells through ``find_matching_cells``:

- contiguous: 4-connected breadth-first flood from the seed
- global: scan of every in-bounds cell

A cell joins the region when it matches the seed cell on every enabled
match flag. With no flags enabled every reachable cell matches.
"""

from collections import deque
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from .grid import Cell, cell_key, is_in_bounds


class FillOptions(BaseModel):
    """Matching options for fill and selection-by-match."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    contiguous: bool = Field(default=True)
    match_char: bool = Field(default=False, alias='matchChar')
    match_color: bool = Field(default=False, alias='matchColor')
    match_bg_color: bool = Field(default=False, alias='matchBgColor')


def cell_matcher(target: Cell, options: FillOptions) -> Callable[[Cell], bool]:
    """Build the match predicate for a seed cell."""

    def matches(cell: Cell) -> bool:
        if options.match_char and cell.char != target.char:
            return False
        if options.match_color and cell.color != target.color:
            return False
        if options.match_bg_color and cell.bg_color != target.bg_color:
            return False
        return True

    return matches


def find_matching_cells(
    get_cell: Callable[[int, int], Cell],
    x: int,
    y: int,
    width: int,
    height: int,
    options: FillOptions | None = None,
) -> list[str]:
    """
    Collect the keys of all cells matching the seed at (x, y).

    Args:
        get_cell: Cell accessor for in-bounds coordinates
        x: Seed X coordinate
        y: Seed Y coordinate
        width: Canvas width
        height: Canvas height
        options: Match options (defaults to contiguous, no predicates)

    Returns:
        Matching cell keys in discovery order. Empty if the seed is out
        of bounds.
    """
    options = options or FillOptions()
    if not is_in_bounds(x, y, width, height):
        return []

    matches = cell_matcher(get_cell(x, y), options)
    result: list[str] = []

    if not options.contiguous:
        for cy in range(height):
            for cx in range(width):
                if matches(get_cell(cx, cy)):
                    result.append(cell_key(cx, cy))
        return result

    visited: set[tuple[int, int]] = {(x, y)}
    queue: deque[tuple[int, int]] = deque([(x, y)])
    while queue:
        cx, cy = queue.popleft()
        if not matches(get_cell(cx, cy)):
            continue
        result.append(cell_key(cx, cy))
        for nx, ny in ((cx - 1, cy), (cx + 1, cy), (cx, cy - 1), (cx, cy + 1)):
            if (nx, ny) in visited or not is_in_bounds(nx, ny, width, height):
                continue
            visited.add((nx, ny))
            queue.append((nx, ny))
    return result


def rectangle_keys(x0: int, y0: int, x1: int, y1: int) -> list[str]:
    """Keys of every cell in the inclusive rectangle (x0, y0)-(x1, y1)."""
    left, right = min(x0, x1), max(x0, x1)
    top, bottom = min(y0, y1), max(y0, y1)
    return [
        cell_key(x, y)
        for y in range(top, bottom + 1)
        for x in range(left, right + 1)
    ]
