"""
Derived preview queries over grids.

Pure functions for read-only consumers of ``ProjectEngine.snapshot()``:
canvas summaries, plain-text rendering, grid diffs and an animation overview.
None of them touch engine state.
"""

from collections import Counter
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .grid import Cell, CellGrid, cell_key, parse_cell_key
from .layers import Frame

UNDERLAY_CHAR = '·'

ChangeKind = Literal['added', 'removed', 'modified']


class _PreviewModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_api_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode='json')


class BoundingBox(_PreviewModel):
    min_x: int = Field(alias='minX')
    min_y: int = Field(alias='minY')
    max_x: int = Field(alias='maxX')
    max_y: int = Field(alias='maxY')

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1


class CharCount(_PreviewModel):
    char: str
    count: int


class GridSummary(_PreviewModel):
    """Compact overview of one grid."""

    width: int
    height: int
    is_empty: bool = Field(alias='isEmpty')
    cell_count: int = Field(alias='cellCount')
    bounding_box: Optional[BoundingBox] = Field(default=None, alias='boundingBox')
    top_characters: list[CharCount] = Field(default_factory=list, alias='topCharacters')


class Bounds(_PreviewModel):
    x: int
    y: int
    width: int
    height: int


class AsciiRender(_PreviewModel):
    bounds: Optional[Bounds] = Field(default=None)
    ascii: str = Field(default='')

    @property
    def is_empty(self) -> bool:
        return self.bounds is None


class CellChange(_PreviewModel):
    x: int
    y: int
    before: Optional[Cell] = Field(default=None)
    after: Optional[Cell] = Field(default=None)
    change: ChangeKind


class DiffSummary(_PreviewModel):
    added: int = 0
    removed: int = 0
    modified: int = 0


class GridDiff(_PreviewModel):
    total_diffs: int = Field(alias='totalDiffs')
    truncated: bool
    summary: DiffSummary
    diffs: list[CellChange]


class Transition(_PreviewModel):
    from_frame: int = Field(alias='fromFrame')
    to_frame: int = Field(alias='toFrame')
    cells_changed: int = Field(alias='cellsChanged')


class AnimationDescription(_PreviewModel):
    frame_count: int = Field(alias='frameCount')
    total_duration_ms: int = Field(alias='totalDurationMs')
    average_frame_duration_ms: int = Field(alias='averageFrameDurationMs')
    transitions: list[Transition]
    total_cell_changes: int = Field(alias='totalCellChanges')
    most_active_transition: Optional[Transition] = Field(default=None, alias='mostActiveTransition')

    @property
    def is_static(self) -> bool:
        return self.total_cell_changes == 0


def bounding_box(grid: CellGrid) -> Optional[BoundingBox]:
    """Smallest rectangle containing every stored cell, or None if empty."""
    if not grid:
        return None
    xs, ys = zip(*(parse_cell_key(key) for key in grid))
    return BoundingBox(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))


def summarize_grid(grid: CellGrid, width: int, height: int, top: int = 5) -> GridSummary:
    """Cell count, bounding box and most used characters of a grid."""
    counts = Counter(cell.char for cell in grid.values())
    return GridSummary(
        width=width,
        height=height,
        is_empty=not grid,
        cell_count=len(grid),
        bounding_box=bounding_box(grid),
        top_characters=[CharCount(char=char, count=count) for char, count in counts.most_common(top)],
    )


def render_ascii(
    grid: CellGrid,
    width: int,
    height: int,
    region: Optional[tuple[int, int, int, int]] = None,
    trim_empty: bool = True,
    underlay: Optional[CellGrid] = None,
) -> AsciiRender:
    """
    Render a grid as plain text, one line per row.

    Args:
        grid: Cells to render
        width: Canvas width
        height: Canvas height
        region: (x, y, width, height) to render. Defaults to the content
            bounding box when ``trim_empty`` is set, else the whole canvas.
        trim_empty: Crop to the content when no region is given
        underlay: Previous frame. Its cells show as a dim dot where the
            rendered grid is empty.

    Returns:
        The rendered text and its bounds (no bounds for an empty grid)
    """
    box = bounding_box(grid)
    if box is None:
        return AsciiRender()

    if region is not None:
        x0, y0, w, h = region
    elif trim_empty:
        x0, y0, w, h = box.min_x, box.min_y, box.width, box.height
    else:
        x0, y0, w, h = 0, 0, width, height

    lines = []
    for y in range(y0, y0 + h):
        row = []
        for x in range(x0, x0 + w):
            key = cell_key(x, y)
            cell = grid.get(key)
            if cell is not None:
                row.append(cell.char)
            elif underlay is not None and key in underlay:
                row.append(UNDERLAY_CHAR)
            else:
                row.append(' ')
        lines.append(''.join(row))
    return AsciiRender(bounds=Bounds(x=x0, y=y0, width=w, height=h), ascii='\n'.join(lines))


def _row_major(key: str) -> tuple[int, int]:
    x, y = parse_cell_key(key)
    return y, x


def diff_grids(before: CellGrid, after: CellGrid, max_cells: int = 100) -> GridDiff:
    """
    Cells that differ between two grids, in row-major order.

    The summary counts every difference; the diff list is truncated to
    ``max_cells`` entries.
    """
    changes: list[CellChange] = []
    summary = DiffSummary()
    for key in sorted(before.keys() | after.keys(), key=_row_major):
        old, new = before.get(key), after.get(key)
        if old == new:
            continue
        if old is None:
            kind = 'added'
        elif new is None:
            kind = 'removed'
        else:
            kind = 'modified'
        setattr(summary, kind, getattr(summary, kind) + 1)
        if len(changes) < max_cells:
            x, y = parse_cell_key(key)
            changes.append(CellChange(x=x, y=y, before=old, after=new, change=kind))

    total = summary.added + summary.removed + summary.modified
    return GridDiff(
        total_diffs=total,
        truncated=total > max_cells,
        summary=summary,
        diffs=changes,
    )


def describe_animation(frames: Sequence[Frame]) -> AnimationDescription:
    """Timing and per-transition change counts of a flat frame sequence."""
    total_duration = sum(frame.duration for frame in frames)
    transitions = [
        Transition(
            from_frame=index,
            to_frame=index + 1,
            cells_changed=diff_grids(frames[index].data, frames[index + 1].data, max_cells=0).total_diffs,
        )
        for index in range(len(frames) - 1)
    ]
    total_changes = sum(t.cells_changed for t in transitions)
    most_active = max(transitions, key=lambda t: t.cells_changed) if transitions else None
    return AnimationDescription(
        frame_count=len(frames),
        total_duration_ms=total_duration,
        average_frame_duration_ms=round(total_duration / len(frames)) if frames else 0,
        transitions=transitions,
        total_cell_changes=total_changes,
        most_active_transition=most_active,
    )
