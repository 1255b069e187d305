"""
Project state - the live document plus editor-side settings.

A document is in layered mode as soon as it has at least one layer; the flat
frame list is then kept but no longer drives editing.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import settings
from .grid import BG_COLOR_PATTERN, CELL_KEY_PATTERN, HEX_COLOR_PATTERN, is_in_bounds, parse_cell_key
from .layers import Frame, Layer, LayerGroup, Number, TimelineConfig, number_between
from .regions import rectangle_keys


class ToolState(BaseModel):
    """Active drawing tool settings (carried data, persisted in both formats)."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    active_tool: str = Field(default='pencil', alias='activeTool')
    selected_color: str = Field(default='#FFFFFF', alias='selectedColor', pattern=HEX_COLOR_PATTERN)
    selected_bg_color: str = Field(default='transparent', alias='selectedBgColor', pattern=BG_COLOR_PATTERN)
    selected_character: str = Field(default='@', alias='selectedCharacter', min_length=1, max_length=1)
    paint_bucket_contiguous: bool = Field(default=True, alias='paintBucketContiguous')
    rectangle_filled: bool = Field(default=False, alias='rectangleFilled')


class TypographySettings(BaseModel):
    """Display typography (carried data)."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    font_size: number_between(8, 32) = Field(default=16, alias='fontSize')
    character_spacing: number_between(0, 10) = Field(default=0, alias='characterSpacing')
    line_spacing: number_between(0, 10) = Field(default=0, alias='lineSpacing')
    selected_font_id: str = Field(default='jetbrains-mono', alias='selectedFontId')


class Point(BaseModel):
    x: int
    y: int


class RectangleSelection(BaseModel):
    """Rectangle selection with inclusive corners."""

    type: Literal['rectangle'] = 'rectangle'
    start: Point
    end: Point

    def keys(self, width: int, height: int) -> list[str]:
        """Keys of the rectangle clipped to a ``width`` x ``height`` canvas."""
        left = max(min(self.start.x, self.end.x), 0)
        top = max(min(self.start.y, self.end.y), 0)
        right = min(max(self.start.x, self.end.x), width - 1)
        bottom = min(max(self.start.y, self.end.y), height - 1)
        if left > right or top > bottom:
            return []
        return rectangle_keys(left, top, right, bottom)


class CellSetSelection(BaseModel):
    """Explicit set of selected cell keys."""

    type: Literal['cells'] = 'cells'
    cells: list[Annotated[str, Field(pattern=CELL_KEY_PATTERN)]] = Field(default_factory=list)

    def keys(self, width: int, height: int) -> list[str]:
        keys = []
        for key in dict.fromkeys(self.cells):
            x, y = parse_cell_key(key)
            if is_in_bounds(x, y, width, height):
                keys.append(key)
        return keys


Selection = Annotated[
    Union[RectangleSelection, CellSetSelection],
    Field(discriminator='type'),
]


class ProjectState(BaseModel):
    """The live document owned by a ProjectEngine."""

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
    )

    # Project metadata
    name: str = Field(default='Untitled Project')
    description: str = Field(default='')
    file_path: Optional[str] = Field(default=None)
    is_dirty: bool = Field(default=False)

    # Canvas
    width: int = Field(default_factory=lambda: settings.DEFAULT_CANVAS_WIDTH)
    height: int = Field(default_factory=lambda: settings.DEFAULT_CANVAS_HEIGHT)
    background_color: str = Field(default='#000000')
    show_grid: bool = Field(default=True)

    # Flat animation
    frames: list[Frame] = Field(default_factory=lambda: [
        Frame(name='Frame 1', duration=settings.DEFAULT_FRAME_DURATION)
    ])
    current_frame_index: int = Field(default=0)
    frame_rate: Number = Field(default_factory=lambda: settings.DEFAULT_FRAME_RATE)
    looping: bool = Field(default=True)

    # Layered timeline
    layers: list[Layer] = Field(default_factory=list)
    layer_groups: list[LayerGroup] = Field(default_factory=list)
    active_layer_id: Optional[str] = Field(default=None)
    timeline: TimelineConfig = Field(default_factory=lambda: TimelineConfig(
        frame_rate=settings.DEFAULT_FRAME_RATE,
        duration_frames=settings.DEFAULT_TIMELINE_DURATION,
    ))

    # Editor settings
    tool_state: ToolState = Field(default_factory=ToolState)
    typography: TypographySettings = Field(default_factory=TypographySettings)
    selection: Optional[Selection] = Field(default=None)

    @property
    def is_layer_mode(self) -> bool:
        return len(self.layers) > 0

    @property
    def current_frame(self) -> Frame:
        return self.frames[self.current_frame_index]

    def get_frame(self, frame_id: str) -> Optional[Frame]:
        for frame in self.frames:
            if frame.id == frame_id:
                return frame
        return None

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def get_layer_index(self, layer_id: str) -> int:
        for index, layer in enumerate(self.layers):
            if layer.id == layer_id:
                return index
        return -1

    def get_group(self, group_id: str) -> Optional[LayerGroup]:
        for group in self.layer_groups:
            if group.id == group_id:
                return group
        return None

    @property
    def active_layer(self) -> Optional[Layer]:
        if not self.active_layer_id:
            return None
        return self.get_layer(self.active_layer_id)

    def cell_count(self) -> int:
        """Stored cells on the grid currently being edited."""
        if self.is_layer_mode:
            layer = self.active_layer
            content_frame = layer.content_frame_at(self.current_frame_index) if layer else None
            return len(content_frame.data) if content_frame else 0
        return len(self.current_frame.data)
