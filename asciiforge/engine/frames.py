"""
Flat timeline - ordered frames, each with its own grid.

Structural changes (add, delete, duplicate, move, interpolate) snapshot the
whole frame list. Name and duration edits only snapshot the frame's
properties, grid edits only its grid.
"""

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asciiforge.config import settings
from asciiforge.grid import (
    BG_COLOR_PATTERN,
    EMPTY_CELL,
    HEX_COLOR_PATTERN,
    Cell,
    CellGrid,
    cell_key,
    grid_from_dict,
    is_in_bounds,
    parse_cell_key,
    write_cell,
)
from asciiforge.layers import Frame, MAX_FRAME_DURATION, MIN_FRAME_DURATION

from .snapshots import frame_props_scope, frame_scope

if TYPE_CHECKING:
    from .manager import ProjectEngine

logger = logging.getLogger(__name__)

Region = tuple[int, int, int, int]


class CellModification(BaseModel):
    """
    One cell edit applied by ``copy_frame_and_modify``.

    Unset fields keep the current cell's value. ``clear`` removes the cell.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    x: int
    y: int
    char: Optional[str] = Field(default=None, min_length=1, max_length=1)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    bg_color: Optional[str] = Field(default=None, alias='bgColor', pattern=BG_COLOR_PATTERN)
    clear: bool = Field(default=False)

    def apply(self, grid: CellGrid) -> None:
        key = cell_key(self.x, self.y)
        if self.clear:
            grid.pop(key, None)
            return
        current = grid.get(key, EMPTY_CELL)
        write_cell(grid, key, Cell(
            char=self.char if self.char is not None else current.char,
            color=self.color if self.color is not None else current.color,
            bg_color=self.bg_color if self.bg_color is not None else current.bg_color,
        ))


def clamp_duration(duration: float) -> int:
    return max(MIN_FRAME_DURATION, min(MAX_FRAME_DURATION, int(duration)))


class FlatTimeline:
    """Frame list operations of the flat animation model."""

    def __init__(self, engine: 'ProjectEngine'):
        self._engine = engine

    @property
    def state(self):
        return self._engine.state

    def _valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.state.frames)

    def _clamp_current(self) -> None:
        state = self.state
        state.current_frame_index = max(0, min(state.current_frame_index, len(state.frames) - 1))

    def list_frames(self) -> list[Frame]:
        return list(self.state.frames)

    def add_frame(
        self,
        at_index: int | None = None,
        data: Optional[Mapping[str, Any]] = None,
        duration: int | None = None,
        record_history: bool = True,
    ) -> Optional[Frame]:
        """
        Insert a new frame.

        Args:
            at_index: Insert position in ``[0, len]``, defaults to the end
            data: Initial cells (``"x,y"`` -> cell)
            duration: Duration in ms (clamped), defaults to the configured value

        Returns:
            The new frame, or None for an invalid index or invalid cell data
        """
        frames = self.state.frames
        index = len(frames) if at_index is None else at_index
        if not 0 <= index <= len(frames):
            return None
        try:
            grid = grid_from_dict(dict(data or {}))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Rejected frame data: {e}")
            return None
        frame = Frame(
            name=f"Frame {len(frames) + 1}",
            duration=clamp_duration(duration if duration is not None else settings.DEFAULT_FRAME_DURATION),
            data=grid,
        )

        def mutate():
            self.state.frames.insert(index, frame)
            return frame

        return self._engine.commit(
            'add_frame', f"Add frame at index {index}", ['frames'], mutate,
            record_history=record_history,
            payload={'index': index, 'frameId': frame.id},
        )

    def delete_frame(self, index: int, record_history: bool = True) -> bool:
        """Delete a frame. The last remaining frame cannot be deleted."""
        if not self._valid_index(index) or len(self.state.frames) == 1:
            return False

        def mutate():
            del self.state.frames[index]
            self._clamp_current()
            return True

        return self._engine.commit(
            'delete_frame', f"Delete frame {index}", ['frames'], mutate,
            record_history=record_history,
            payload={'index': index},
        )

    def duplicate_frame(self, index: int, record_history: bool = True) -> Optional[Frame]:
        """Copy a frame and insert the copy right after it."""
        if not self._valid_index(index):
            return None
        source = self.state.frames[index]
        copy = Frame(
            name=f"{source.name} (copy)",
            duration=source.duration,
            data=dict(source.data),
        )

        def mutate():
            self.state.frames.insert(index + 1, copy)
            return copy

        return self._engine.commit(
            'duplicate_frame', f"Duplicate frame {index}", ['frames'], mutate,
            record_history=record_history,
            payload={'index': index + 1, 'frameId': copy.id},
        )

    def go_to_frame(self, index: int) -> bool:
        """
        Move the playhead.

        In layered mode the bound is the timeline duration, otherwise the
        frame count. Navigation is not recorded and does not dirty the
        document.
        """
        state = self.state
        limit = state.timeline.duration_frames if state.is_layer_mode else len(state.frames)
        if not 0 <= index < limit:
            return False
        state.current_frame_index = index
        self._engine.notify('go_to_frame', {'index': index})
        return True

    def set_frame_duration(self, index: int, duration: int, record_history: bool = True) -> bool:
        if not self._valid_index(index):
            return False
        frame = self.state.frames[index]
        duration = clamp_duration(duration)

        def mutate():
            frame.duration = duration
            return True

        return self._engine.commit(
            'set_frame_duration', f"Set frame {index} duration to {duration}ms",
            [frame_props_scope(frame.id)], mutate,
            record_history=record_history,
            payload={'index': index, 'duration': duration},
        )

    def set_frame_name(self, index: int, name: str, record_history: bool = True) -> bool:
        if not self._valid_index(index):
            return False
        frame = self.state.frames[index]

        def mutate():
            frame.name = name
            return True

        return self._engine.commit(
            'set_frame_name', f'Rename frame {index} to "{name}"',
            [frame_props_scope(frame.id)], mutate,
            record_history=record_history,
            payload={'index': index, 'name': name},
        )

    def move_frame(self, from_index: int, to_index: int, record_history: bool = True) -> bool:
        """Reorder a frame. The current frame index follows the frame it pointed at."""
        if not self._valid_index(from_index) or not self._valid_index(to_index):
            return False
        if from_index == to_index:
            return False

        def mutate():
            frames = self.state.frames
            current = frames[self.state.current_frame_index]
            frames.insert(to_index, frames.pop(from_index))
            self.state.current_frame_index = frames.index(current)
            return True

        return self._engine.commit(
            'move_frame', f"Move frame {from_index} to {to_index}", ['frames'], mutate,
            record_history=record_history,
            payload={'from': from_index, 'to': to_index},
        )

    def copy_frame_and_modify(
        self,
        source_index: int,
        modifications: Sequence[Union[CellModification, Mapping[str, Any]]],
        name: str | None = None,
        duration: int | None = None,
        record_history: bool = True,
    ) -> Optional[Frame]:
        """
        Duplicate a frame, edit cells on the copy and select it.

        Out-of-bounds modifications are skipped. The whole operation is one
        history entry.

        Returns:
            The new frame, or None for an invalid index or modification
        """
        if not self._valid_index(source_index):
            return None
        try:
            mods = [
                m if isinstance(m, CellModification) else CellModification.model_validate(m)
                for m in modifications
            ]
        except ValidationError as e:
            logger.warning(f"Rejected frame modifications: {e}")
            return None
        width, height = self.state.width, self.state.height

        def mutate():
            frame = self.duplicate_frame(source_index)
            new_index = source_index + 1
            self.state.current_frame_index = new_index
            for mod in mods:
                if is_in_bounds(mod.x, mod.y, width, height):
                    mod.apply(frame.data)
            if name:
                self.set_frame_name(new_index, name)
            if duration:
                self.set_frame_duration(new_index, duration)
            return frame

        return self._engine.commit(
            'copy_frame_and_modify', f"Copy frame {source_index} with modifications",
            ['frames'], mutate,
            record_history=record_history,
            payload=lambda frame: {
                'index': source_index + 1,
                'frameId': frame.id,
                'totalFrames': len(self.state.frames),
            },
        )

    def copy_region(
        self,
        source_index: int,
        target_index: int,
        region: Region,
        target_position: tuple[int, int] | None = None,
        overwrite: bool = True,
        record_history: bool = True,
    ) -> Optional[int]:
        """
        Copy the cells of a region from one frame to another.

        Args:
            source_index: Frame to copy from
            target_index: Frame to copy into
            region: Source (x, y, width, height)
            target_position: Top-left of the paste, defaults to the region origin
            overwrite: Replace cells already stored in the target

        Returns:
            Number of cells copied, or None for an invalid frame index
        """
        if not self._valid_index(source_index) or not self._valid_index(target_index):
            return None
        rx, ry, rw, rh = region
        tx, ty = target_position if target_position is not None else (rx, ry)
        dx, dy = tx - rx, ty - ry
        source = self.state.frames[source_index]
        target = self.state.frames[target_index]
        width, height = self.state.width, self.state.height

        copies: dict[str, Cell] = {}
        for key, value in source.data.items():
            x, y = parse_cell_key(key)
            if not (rx <= x < rx + rw and ry <= y < ry + rh):
                continue
            nx, ny = x + dx, y + dy
            if not is_in_bounds(nx, ny, width, height):
                continue
            new_key = cell_key(nx, ny)
            if not overwrite and new_key in target.data:
                continue
            copies[new_key] = value

        def mutate():
            target.data.update(copies)
            return len(copies)

        return self._engine.commit(
            'copy_region', f"Copy region from frame {source_index} to {target_index}",
            [frame_scope(target.id)], mutate,
            record_history=record_history,
            payload={'targetIndex': target_index, 'cellsCopied': len(copies)},
        )

    def interpolate_frames(
        self,
        start_index: int,
        end_index: int,
        steps: int,
        record_history: bool = True,
    ) -> Optional[list[Frame]]:
        """
        Generate in-between frames by threshold cross-fade.

        A generated frame at progress ``t = i / (steps + 1)`` takes every cell
        from the start frame while ``t < 0.5`` and from the end frame after.
        Frames are inserted directly after the earlier of the two frames and
        use the mean of both durations.

        Returns:
            The generated frames, or None for invalid arguments
        """
        if not self._valid_index(start_index) or not self._valid_index(end_index):
            return None
        if start_index == end_index or steps < 1:
            return None
        frame_a = self.state.frames[start_index]
        frame_b = self.state.frames[end_index]
        duration = clamp_duration(round((frame_a.duration + frame_b.duration) / 2))
        insert_at = min(start_index, end_index) + 1

        generated: list[Frame] = []
        for i in range(1, steps + 1):
            t = i / (steps + 1)
            source = frame_a if t < 0.5 else frame_b
            generated.append(Frame(
                name=f"Interpolated {i}/{steps}",
                duration=duration,
                data=dict(source.data),
            ))

        def mutate():
            self.state.frames[insert_at:insert_at] = generated
            return generated

        return self._engine.commit(
            'interpolate_frames', f"Interpolate {steps} frames", ['frames'], mutate,
            record_history=record_history,
            payload={'framesCreated': len(generated), 'index': insert_at},
        )
