"""
Canvas editing on the active grid.

The active grid is the current frame in flat mode. In layered mode it is the
content frame of the active layer that covers the current timeline position;
locked layers and positions without content reject edits.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Mapping, Optional, Union

from pydantic import ValidationError

from asciiforge.grid import (
    EMPTY_CELL,
    Cell,
    CellGrid,
    cell_key,
    clamp_dimensions,
    clip_grid,
    is_in_bounds,
    parse_cell_key,
    write_cell,
)
from asciiforge.regions import FillOptions, find_matching_cells

from .snapshots import content_scope, frame_scope

if TYPE_CHECKING:
    from .manager import ProjectEngine

logger = logging.getLogger(__name__)

CellInput = Union[Cell, Mapping[str, Any]]
FlipDirection = Literal['horizontal', 'vertical']


@dataclass
class ActiveGrid:
    """The grid currently receiving edits and its history scope."""

    owner: Any
    scope: str

    @property
    def data(self) -> CellGrid:
        return self.owner.data


def to_cell(value: CellInput) -> Optional[Cell]:
    """Coerce a cell or cell dict, returning None when invalid."""
    if isinstance(value, Cell):
        return value
    try:
        return Cell.model_validate(value)
    except ValidationError as e:
        logger.warning(f"Rejected cell {value!r}: {e}")
        return None


class CanvasEditor:
    """Cell-level editing of the active grid."""

    def __init__(self, engine: 'ProjectEngine'):
        self._engine = engine

    @property
    def state(self):
        return self._engine.state

    def active_grid(self) -> Optional[ActiveGrid]:
        """Resolve the grid edits currently go to, or None if editing is not possible."""
        state = self.state
        if not state.is_layer_mode:
            frame = state.current_frame
            return ActiveGrid(owner=frame, scope=frame_scope(frame.id))
        layer = state.active_layer
        if layer is None or layer.locked:
            return None
        content_frame = layer.content_frame_at(state.current_frame_index)
        if content_frame is None:
            return None
        return ActiveGrid(owner=content_frame, scope=content_scope(layer.id, content_frame.id))

    def get_grid(self) -> CellGrid:
        """Copy of the active grid (empty when there is none)."""
        target = self.active_grid()
        return dict(target.data) if target else {}

    def get_cell(self, x: int, y: int) -> Optional[Cell]:
        """
        Get the cell at a position of the active grid.

        Returns:
            The stored cell, EMPTY_CELL for unset positions, or None when the
            position is out of bounds
        """
        if not is_in_bounds(x, y, self.state.width, self.state.height):
            return None
        target = self.active_grid()
        if target is None:
            return EMPTY_CELL
        return target.data.get(cell_key(x, y), EMPTY_CELL)

    def set_cell(self, x: int, y: int, cell: CellInput, record_history: bool = True) -> bool:
        """Write one cell. Returns False when out of bounds or not editable."""
        cell = to_cell(cell)
        if cell is None or not is_in_bounds(x, y, self.state.width, self.state.height):
            return False
        target = self.active_grid()
        if target is None:
            return False

        def mutate():
            write_cell(target.data, cell_key(x, y), cell)
            return True

        return self._engine.commit(
            'set_cell', f"Set cell ({x}, {y})", [target.scope], mutate,
            record_history=record_history,
            payload={'x': x, 'y': y, 'cell': cell.to_api_dict()},
        )

    def set_cells(self, cells: Mapping[str, CellInput], record_history: bool = True) -> int:
        """
        Write many cells as one operation.

        Args:
            cells: Mapping of ``"x,y"`` keys to cells. Malformed keys,
                out-of-bounds positions and invalid cells are skipped.

        Returns:
            Number of cells written
        """
        target = self.active_grid()
        if target is None:
            return 0
        valid: dict[str, Cell] = {}
        for key, value in cells.items():
            try:
                x, y = parse_cell_key(key)
            except ValueError:
                continue
            cell = to_cell(value)
            if cell is not None and is_in_bounds(x, y, self.state.width, self.state.height):
                valid[key] = cell
        if not valid:
            return 0

        def mutate():
            for key, cell in valid.items():
                write_cell(target.data, key, cell)
            return len(valid)

        return self._engine.commit(
            'set_cells', lambda count: f"Set {count} cells", [target.scope], mutate,
            record_history=record_history,
            payload=lambda count: {'count': count},
        )

    def clear_cell(self, x: int, y: int, record_history: bool = True) -> bool:
        if not is_in_bounds(x, y, self.state.width, self.state.height):
            return False
        target = self.active_grid()
        if target is None:
            return False

        def mutate():
            target.data.pop(cell_key(x, y), None)
            return True

        return self._engine.commit(
            'clear_cell', f"Clear cell ({x}, {y})", [target.scope], mutate,
            record_history=record_history,
            payload={'x': x, 'y': y},
        )

    def clear_canvas(self, record_history: bool = True) -> bool:
        """Remove every cell from the active grid."""
        target = self.active_grid()
        if target is None:
            return False

        def mutate():
            target.data.clear()
            return True

        return self._engine.commit(
            'clear_canvas', "Clear canvas", [target.scope], mutate,
            record_history=record_history,
        )

    def paste_text(
        self,
        text: str,
        x: int = 0,
        y: int = 0,
        color: str = '#FFFFFF',
        bg_color: str = 'transparent',
        preserve_spaces: bool = False,
        record_history: bool = True,
    ) -> int:
        """
        Paste a multi-line text block with its top-left corner at (x, y).

        Spaces are transparent unless ``preserve_spaces`` is set. Characters
        falling outside the canvas are dropped.

        Returns:
            Number of characters placed
        """
        cells: dict[str, dict[str, str]] = {}
        for row, line in enumerate(text.split('\n')):
            for col, char in enumerate(line):
                if char == ' ' and not preserve_spaces:
                    continue
                px, py = x + col, y + row
                if px < 0 or py < 0:
                    continue
                cells[cell_key(px, py)] = {'char': char, 'color': color, 'bgColor': bg_color}
        return self.set_cells(cells, record_history=record_history)

    def resize(self, width: int, height: int, record_history: bool = True) -> tuple[int, int]:
        """
        Resize the canvas, clipping every flat frame and content frame.

        Dimensions are clamped to the supported range.

        Returns:
            The applied (width, height)
        """
        width, height = clamp_dimensions(width, height)

        def mutate():
            state = self.state
            state.width, state.height = width, height
            for frame in state.frames:
                frame.data = clip_grid(frame.data, width, height)
            for layer in state.layers:
                for content_frame in layer.content_frames:
                    content_frame.data = clip_grid(content_frame.data, width, height)
            return width, height

        return self._engine.commit(
            'resize_canvas', f"Resize canvas to {width}x{height}", ['canvas', 'grids'], mutate,
            record_history=record_history,
            payload={'width': width, 'height': height},
        )

    def fill_region(
        self,
        x: int,
        y: int,
        cell: CellInput,
        options: Optional[FillOptions] = None,
        record_history: bool = True,
    ) -> int:
        """
        Flood fill (contiguous) or global fill from a seed position.

        Returns:
            Number of cells filled (0 when the seed is out of bounds)
        """
        cell = to_cell(cell)
        target = self.active_grid()
        if cell is None or target is None:
            return 0
        keys = find_matching_cells(
            self.get_cell, x, y, self.state.width, self.state.height, options
        )
        if not keys:
            return 0

        def mutate():
            for key in keys:
                write_cell(target.data, key, cell)
            return len(keys)

        return self._engine.commit(
            'fill_region', lambda count: f"Fill {count} cells", [target.scope], mutate,
            record_history=record_history,
            payload=lambda count: {'x': x, 'y': y, 'cellsFilled': count},
        )

    def shift_content(
        self,
        dx: int,
        dy: int,
        wrap: bool = False,
        record_history: bool = True,
    ) -> Optional[tuple[int, int]]:
        """
        Translate every cell of the active grid.

        Args:
            dx: Horizontal offset (positive moves right)
            dy: Vertical offset (positive moves down)
            wrap: Wrap cells around the canvas edges instead of dropping them

        Returns:
            (cells shifted, cells lost), or None when not editable
        """
        target = self.active_grid()
        if target is None:
            return None
        width, height = self.state.width, self.state.height

        def mutate():
            shifted: CellGrid = {}
            lost = 0
            for key, value in target.data.items():
                cx, cy = parse_cell_key(key)
                nx, ny = cx + dx, cy + dy
                if wrap:
                    nx, ny = nx % width, ny % height
                if is_in_bounds(nx, ny, width, height):
                    shifted[cell_key(nx, ny)] = value
                else:
                    lost += 1
            target.owner.data = shifted
            return len(shifted), lost

        return self._engine.commit(
            'shift_content', f"Shift content by ({dx}, {dy})", [target.scope], mutate,
            record_history=record_history,
            payload=lambda result: {'dx': dx, 'dy': dy, 'cellsShifted': result[0], 'cellsLost': result[1]},
        )

    def flip_region(
        self,
        direction: FlipDirection,
        region: Optional[tuple[int, int, int, int]] = None,
        record_history: bool = True,
    ) -> Optional[int]:
        """
        Mirror cells inside a region.

        Args:
            direction: 'horizontal' mirrors left/right, 'vertical' top/bottom
            region: (x, y, width, height), defaults to the whole canvas.
                Clipped to the canvas.

        Returns:
            Number of cells flipped (0 leaves no history entry), or None when
            not editable or the region is empty
        """
        if direction not in ('horizontal', 'vertical'):
            return None
        target = self.active_grid()
        if target is None:
            return None
        rx, ry, rw, rh = region or (0, 0, self.state.width, self.state.height)
        left, top = max(0, rx), max(0, ry)
        right = min(self.state.width, rx + rw)
        bottom = min(self.state.height, ry + rh)
        if left >= right or top >= bottom:
            return None

        def mutate():
            inside: list[tuple[int, int, Cell]] = []
            for key in list(target.data):
                cx, cy = parse_cell_key(key)
                if left <= cx < right and top <= cy < bottom:
                    inside.append((cx, cy, target.data.pop(key)))
            for cx, cy, value in inside:
                if direction == 'horizontal':
                    cx = left + (right - 1) - cx
                else:
                    cy = top + (bottom - 1) - cy
                target.data[cell_key(cx, cy)] = value
            return len(inside)

        return self._engine.commit(
            'flip_region', f"Flip {direction}", [target.scope], mutate,
            record_history=record_history,
            payload={'direction': direction},
        )
