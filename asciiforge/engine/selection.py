"""Selection tool - rectangle and match-based selections over the active grid."""

import logging
from typing import TYPE_CHECKING, Any, Literal, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from asciiforge.grid import (
    DEFAULT_CHAR,
    DEFAULT_COLOR,
    TRANSPARENT,
    Cell,
    is_in_bounds,
    write_cell,
)
from asciiforge.regions import FillOptions, find_matching_cells
from asciiforge.state import CellSetSelection, Point, RectangleSelection, Selection

if TYPE_CHECKING:
    from .manager import ProjectEngine

logger = logging.getLogger(__name__)

SelectionOperation = Literal['clear', 'fill', 'recolor']

_selection_adapter = TypeAdapter(Selection)


class SelectionTool:
    """
    Holds at most one selection and applies edits to the selected cells.

    Selecting is not an edit: it notifies listeners but is neither recorded
    in history nor marks the document dirty.
    """

    def __init__(self, engine: 'ProjectEngine'):
        self._engine = engine

    @property
    def state(self):
        return self._engine.state

    def get_selection(self) -> Optional[Union[RectangleSelection, CellSetSelection]]:
        return self.state.selection

    def has_selection(self) -> bool:
        return self.state.selection is not None

    def set_selection(self, selection: Union[RectangleSelection, CellSetSelection, Mapping[str, Any], None]) -> bool:
        """Replace the selection. Dicts are validated against the selection union."""
        if selection is not None and not isinstance(selection, (RectangleSelection, CellSetSelection)):
            try:
                selection = _selection_adapter.validate_python(selection)
            except ValidationError as e:
                logger.warning(f"Rejected selection: {e}")
                return False
        self.state.selection = selection
        self._engine.notify('set_selection', {
            'selection': selection.model_dump() if selection is not None else None,
        })
        return True

    def clear_selection(self) -> bool:
        """Deselect. Returns True if there was a selection."""
        had_selection = self.state.selection is not None
        self.set_selection(None)
        return had_selection

    def select_rectangle(self, x: int, y: int, width: int, height: int) -> Optional[RectangleSelection]:
        """
        Select a rectangle given by its top-left corner and size.

        The rectangle is clamped to the canvas.
        """
        if width < 1 or height < 1:
            return None
        canvas_width, canvas_height = self.state.width, self.state.height
        left = max(0, min(x, canvas_width - 1))
        top = max(0, min(y, canvas_height - 1))
        width = min(width, canvas_width - left)
        height = min(height, canvas_height - top)
        selection = RectangleSelection(
            start=Point(x=left, y=top),
            end=Point(x=left + width - 1, y=top + height - 1),
        )
        self.set_selection(selection)
        return selection

    def select_by_match(
        self,
        x: int,
        y: int,
        match_char: bool = False,
        match_color: bool = True,
        match_bg_color: bool = False,
        contiguous: bool = True,
    ) -> Optional[CellSetSelection]:
        """
        Magic-wand selection of the cells matching the one at (x, y).

        Returns:
            The new selection, or None when the seed is out of bounds
        """
        if not is_in_bounds(x, y, self.state.width, self.state.height):
            return None
        options = FillOptions(
            contiguous=contiguous,
            match_char=match_char,
            match_color=match_color,
            match_bg_color=match_bg_color,
        )
        keys = find_matching_cells(
            self._engine.canvas.get_cell, x, y, self.state.width, self.state.height, options
        )
        selection = CellSetSelection(cells=keys)
        self.set_selection(selection)
        return selection

    def selected_keys(self) -> list[str]:
        """Keys covered by the selection that lie inside the canvas."""
        selection = self.state.selection
        if selection is None:
            return []
        return selection.keys(self.state.width, self.state.height)

    def apply_to_selection(
        self,
        operation: SelectionOperation,
        char: str | None = None,
        color: str | None = None,
        bg_color: str | None = None,
        record_history: bool = True,
    ) -> Optional[int]:
        """
        Apply an edit to every selected cell as one operation.

        Operations:
            clear: remove every selected cell
            fill: write ``char`` (default '@') with the given colors
            recolor: change the colors of non-empty selected cells

        Returns:
            Number of cells affected, or None when there is no selection, the
            active grid is not editable or the arguments are invalid
        """
        if operation not in ('clear', 'fill', 'recolor') or self.state.selection is None:
            return None
        target = self._engine.canvas.active_grid()
        if target is None:
            return None
        keys = self.selected_keys()

        try:
            fill_cell = Cell(
                char=char or '@',
                color=color or DEFAULT_COLOR,
                bg_color=bg_color or TRANSPARENT,
            ) if operation == 'fill' else None
            updates: dict[str, Optional[Cell]] = {}
            for key in keys:
                if operation == 'clear':
                    updates[key] = None
                elif operation == 'fill':
                    updates[key] = fill_cell
                else:
                    current = target.data.get(key)
                    if current is None or (current.char == DEFAULT_CHAR and current.bg_color == TRANSPARENT):
                        continue
                    updates[key] = Cell(
                        char=current.char,
                        color=color or current.color,
                        bg_color=bg_color or current.bg_color,
                    )
        except ValidationError as e:
            logger.warning(f"Rejected selection {operation}: {e}")
            return None
        if not updates:
            return 0

        def mutate():
            for key, cell in updates.items():
                if cell is None:
                    target.data.pop(key, None)
                else:
                    write_cell(target.data, key, cell)
            return len(updates)

        return self._engine.commit(
            'apply_to_selection', lambda count: f"{operation.capitalize()} {count} selected cells",
            [target.scope], mutate,
            record_history=record_history,
            payload=lambda count: {'operation': operation, 'cellsAffected': count},
        )

    def delete_selection_content(self, record_history: bool = True) -> Optional[int]:
        """
        Remove the stored cells inside the selection.

        Returns:
            Number of cells deleted, or None without a selection or editable grid
        """
        if self.state.selection is None:
            return None
        target = self._engine.canvas.active_grid()
        if target is None:
            return None
        stored = [key for key in self.selected_keys() if key in target.data]

        def mutate():
            for key in stored:
                del target.data[key]
            return len(stored)

        return self._engine.commit(
            'delete_selection_content', lambda count: f"Delete {count} selected cells",
            [target.scope], mutate,
            record_history=record_history,
            payload=lambda count: {'cellsDeleted': count},
        )
