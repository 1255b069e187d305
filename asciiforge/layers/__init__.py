"""
Document models for both animation models.

Model Hierarchy:
    Frame             flat-model step (own grid, duration in ms)
    Layer             layered-model surface
    ├── ContentFrame  time-bounded grid segment
    └── PropertyTrack keyframed transform property
        └── Keyframe
    LayerGroup        non-owning grouping of layers
    TimelineConfig    shared clock of the layered model
"""

from .frame import ContentFrame, Frame, MAX_FRAME_DURATION, MIN_FRAME_DURATION
from .layer import (
    Keyframe,
    Layer,
    PROPERTY_PATHS,
    PropertyPath,
    PropertyTrack,
    property_defaults,
)
from .layer_group import LayerGroup
from .timeline import (
    EasingCurve,
    EasingType,
    MAX_FRAME_RATE,
    MIN_FRAME_RATE,
    FrameRate,
    Number,
    TimelineConfig,
    cubic_bezier,
    evaluate_easing,
    interpolate_keyframes,
    number_between,
)

__all__ = [
    # Frames
    'Frame',
    'ContentFrame',
    'MIN_FRAME_DURATION',
    'MAX_FRAME_DURATION',
    # Layers
    'Layer',
    'Keyframe',
    'PropertyTrack',
    'PropertyPath',
    'PROPERTY_PATHS',
    'property_defaults',
    'LayerGroup',
    # Timeline
    'TimelineConfig',
    'EasingCurve',
    'EasingType',
    'MIN_FRAME_RATE',
    'MAX_FRAME_RATE',
    'Number',
    'FrameRate',
    'number_between',
    'cubic_bezier',
    'evaluate_easing',
    'interpolate_keyframes',
]
