"""
Layer - drawing surface of the layered timeline model.

A layer owns:
- contentFrames: non-overlapping grid segments, kept sorted by start frame
- propertyTracks: at most one track per transform property
- staticProperties: property values used when a property has no keyframes

Uses Pydantic v2 with camelCase aliases for the persisted v2 format.
"""

import uuid
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .frame import ContentFrame
from .timeline import EasingCurve, Number, interpolate_keyframes, number_between

PropertyPath = Literal[
    'transform.position.x',
    'transform.position.y',
    'transform.scale.x',
    'transform.scale.y',
    'transform.rotation',
    'transform.anchorPoint.x',
    'transform.anchorPoint.y',
]

PROPERTY_PATHS: tuple[str, ...] = get_args(PropertyPath)

ANCHOR_X = 'transform.anchorPoint.x'
ANCHOR_Y = 'transform.anchorPoint.y'


def property_defaults(canvas_width: int, canvas_height: int) -> dict[str, Number]:
    """Fallback values for properties with neither keyframes nor a static value."""
    return {
        'transform.position.x': 0,
        'transform.position.y': 0,
        'transform.scale.x': 1,
        'transform.scale.y': 1,
        'transform.rotation': 0,
        ANCHOR_X: canvas_width // 2,
        ANCHOR_Y: canvas_height // 2,
    }


class Keyframe(BaseModel):
    """A timed value sample on a property track."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    frame: int = Field(default=0, ge=0)
    value: Number = Field(default=0)
    easing: EasingCurve = Field(default_factory=EasingCurve)


class PropertyTrack(BaseModel):
    """Keyframes of one animatable property, sorted and unique per frame."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    property_path: PropertyPath = Field(alias='propertyPath')
    keyframes: list[Keyframe] = Field(default_factory=list)
    loop_keyframes: bool = Field(default=False, alias='loopKeyframes')

    def model_post_init(self, __context: Any) -> None:
        """Enforce ordering and frame uniqueness on load."""
        by_frame: dict[int, Keyframe] = {}
        for keyframe in self.keyframes:
            by_frame[keyframe.frame] = keyframe
        self.keyframes = sorted(by_frame.values(), key=lambda kf: kf.frame)

    def get_keyframe(self, keyframe_id: str) -> Optional[Keyframe]:
        for keyframe in self.keyframes:
            if keyframe.id == keyframe_id:
                return keyframe
        return None

    def set_keyframe(self, keyframe: Keyframe) -> None:
        """Insert a keyframe, replacing any other keyframe at the same frame."""
        self.keyframes = [
            kf for kf in self.keyframes
            if kf.frame != keyframe.frame and kf.id != keyframe.id
        ]
        self.keyframes.append(keyframe)
        self.keyframes.sort(key=lambda kf: kf.frame)

    def value_at(self, frame: float) -> float:
        """Effective value at a timeline position."""
        return interpolate_keyframes(self.keyframes, frame, loop=self.loop_keyframes)


class Layer(BaseModel):
    """
    Layered-model drawing surface.

    Serialization format:
    {
        "id": "uuid",
        "name": "Layer 1",
        "visible": true,
        "solo": false,
        "locked": false,
        "opacity": 100,
        "contentFrames": [...],
        "propertyTracks": [...],
        "staticProperties": {"transform.anchorPoint.x": 40, ...},
        "parentGroupId": "uuid",          (optional)
        "syncKeyframesToFrames": false    (optional)
    }
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(default='Layer 1')
    visible: bool = Field(default=True)
    solo: bool = Field(default=False)
    locked: bool = Field(default=False)
    opacity: number_between(0, 100) = Field(default=100)

    content_frames: list[ContentFrame] = Field(default_factory=list, alias='contentFrames')
    property_tracks: list[PropertyTrack] = Field(default_factory=list, alias='propertyTracks')
    static_properties: dict[str, Number] = Field(default_factory=dict, alias='staticProperties')

    parent_group_id: Optional[str] = Field(default=None, alias='parentGroupId')
    sync_keyframes_to_frames: Optional[bool] = Field(default=None, alias='syncKeyframesToFrames')

    @model_validator(mode='after')
    def _check_segments_and_tracks(self) -> 'Layer':
        """Reject overlapping content frames and repeated property tracks."""
        ordered = sorted(self.content_frames, key=lambda cf: cf.start_frame)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start_frame < previous.end_frame:
                raise ValueError(
                    f"Content frames {previous.id!r} and {current.id!r} overlap"
                )
        seen: set[str] = set()
        for track in self.property_tracks:
            if track.property_path in seen:
                raise ValueError(f"Duplicate property track for {track.property_path}")
            seen.add(track.property_path)
        return self

    def model_post_init(self, __context: Any) -> None:
        """Keep content frames ordered by start frame."""
        self.sort_content_frames()

    def sort_content_frames(self) -> None:
        self.content_frames.sort(key=lambda cf: cf.start_frame)

    def get_content_frame(self, content_frame_id: str) -> Optional[ContentFrame]:
        for content_frame in self.content_frames:
            if content_frame.id == content_frame_id:
                return content_frame
        return None

    def content_frame_at(self, frame: int) -> Optional[ContentFrame]:
        """
        Get the visible content frame covering a timeline position.

        Hidden content frames are skipped. At most one frame qualifies
        because segments never overlap.
        """
        for content_frame in self.content_frames:
            if content_frame.hidden:
                continue
            if content_frame.contains(frame):
                return content_frame
        return None

    def overlaps(self, start: int, duration: int, exclude_id: Optional[str] = None) -> bool:
        """Check if ``[start, start + duration)`` collides with a sibling segment."""
        end = start + duration
        return any(
            cf.overlaps(start, end)
            for cf in self.content_frames
            if cf.id != exclude_id
        )

    def get_track(self, property_path: str) -> Optional[PropertyTrack]:
        for track in self.property_tracks:
            if track.property_path == property_path:
                return track
        return None

    def get_track_by_id(self, track_id: str) -> Optional[PropertyTrack]:
        for track in self.property_tracks:
            if track.id == track_id:
                return track
        return None

    def duplicate(self) -> 'Layer':
        """Deep copy with fresh ids for the layer and everything it owns."""
        copy = self.model_copy(deep=True)
        copy.id = str(uuid.uuid4())
        for content_frame in copy.content_frames:
            content_frame.id = str(uuid.uuid4())
        for track in copy.property_tracks:
            track.id = str(uuid.uuid4())
            for keyframe in track.keyframes:
                keyframe.id = str(uuid.uuid4())
        return copy

    @classmethod
    def create_default(cls, name: str, canvas_width: int, canvas_height: int) -> 'Layer':
        """New layer with one empty content frame covering ``[0, 1)``."""
        return cls(
            name=name,
            content_frames=[ContentFrame(name='Frame 1', start_frame=0, duration_frames=1)],
            static_properties={
                ANCHOR_X: canvas_width // 2,
                ANCHOR_Y: canvas_height // 2,
            },
        )

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the v2 wire format (unset optional fields omitted)."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)
