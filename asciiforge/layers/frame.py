"""
Frame classes for both animation models.

- Frame: flat-model animation step with its own grid and a duration in
  milliseconds
- ContentFrame: time-bounded grid segment owned by a layer, placed on the
  shared timeline by start frame and frame count
"""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from asciiforge.grid import CellGrid, grid_from_dict

MIN_FRAME_DURATION = 10
MAX_FRAME_DURATION = 60000


class Frame(BaseModel):
    """
    Flat-model frame.

    Serialization format:
    {
        "id": "uuid",
        "name": "Frame 1",
        "duration": 100,
        "data": {"3,4": {"char": "@", "color": "#FFFFFF", "bgColor": "transparent"}},
        "thumbnail": "..."   (optional)
    }
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(default='Frame 1')
    duration: int = Field(default=100, ge=MIN_FRAME_DURATION, le=MAX_FRAME_DURATION)
    data: CellGrid = Field(default_factory=dict)
    thumbnail: Optional[str] = Field(default=None)

    @field_validator('data', mode='before')
    @classmethod
    def _validate_data(cls, value: Any) -> CellGrid:
        return grid_from_dict(value or {})

    @classmethod
    def migrate(cls, data: dict[str, Any], index: int = 0) -> dict[str, Any]:
        """
        Fill in fields that older documents may omit.

        Args:
            data: Serialized frame data
            index: Position of the frame (for the default name)

        Returns:
            Migrated frame data
        """
        data = dict(data)
        data['id'] = data.get('id') or str(uuid.uuid4())
        data['name'] = data.get('name') or f'Frame {index + 1}'
        duration = data.get('duration')
        if duration is None:
            duration = 100
        data['duration'] = max(MIN_FRAME_DURATION, min(MAX_FRAME_DURATION, int(duration)))
        data['data'] = data.get('data') or {}
        return data


class ContentFrame(BaseModel):
    """
    Layer content segment covering ``[start_frame, start_frame + duration_frames)``.

    Serialization format:
    {
        "id": "uuid",
        "name": "Frame 1",
        "startFrame": 0,
        "durationFrames": 1,
        "data": {...},
        "hidden": false   (optional)
    }
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(default='Frame 1')
    start_frame: int = Field(default=0, ge=0, alias='startFrame')
    duration_frames: int = Field(default=1, ge=1, alias='durationFrames')
    data: CellGrid = Field(default_factory=dict)
    hidden: Optional[bool] = Field(default=None)

    @field_validator('data', mode='before')
    @classmethod
    def _validate_data(cls, value: Any) -> CellGrid:
        return grid_from_dict(value or {})

    @property
    def end_frame(self) -> int:
        """Exclusive end of the interval."""
        return self.start_frame + self.duration_frames

    def contains(self, frame: int) -> bool:
        """Check if the timeline position falls inside this segment."""
        return self.start_frame <= frame < self.end_frame

    def overlaps(self, start: int, end: int) -> bool:
        """Check if ``[start, end)`` intersects this segment."""
        return start < self.end_frame and end > self.start_frame
