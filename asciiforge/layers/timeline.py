"""
Timeline clock and keyframe interpolation.

Interpolation between two keyframes uses the easing curve of the earlier
keyframe:

- hold: step function, the earlier value is kept until the next keyframe
- linear: straight blend
- ease-in / ease-out / ease-in-out: the CSS cubic beziers
  (.42, 0, 1, 1), (0, 0, .58, 1) and (.42, 0, .58, 1)
- custom: cubic bezier from ``controlPoints = [x1, y1, x2, y2]``
- bounce: ease-out bounce

Interpolated values are rounded half up to the nearest integer. Queries
before the first keyframe or after the last one return the endpoint value,
unless the track loops, in which case later frames wrap into the keyed span.
"""

import math
from enum import Enum
from typing import Annotated, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

MIN_FRAME_RATE = 1
MAX_FRAME_RATE = 120

# Ints stay ints through load and save.
Number = Union[int, float]


def number_between(ge, le):
    """Int-or-float field type limited to [ge, le]."""
    return Union[Annotated[int, Field(ge=ge, le=le)], Annotated[float, Field(ge=ge, le=le)]]


FrameRate = number_between(MIN_FRAME_RATE, MAX_FRAME_RATE)


class EasingType(str, Enum):
    """Easing curve identifiers."""
    LINEAR = "linear"
    HOLD = "hold"
    EASE_IN = "ease-in"
    EASE_OUT = "ease-out"
    EASE_IN_OUT = "ease-in-out"
    BOUNCE = "bounce"
    CUSTOM = "custom"


class EasingCurve(BaseModel):
    """Interpolation shape between a keyframe and the next one."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
        use_enum_values=True,
    )

    type: EasingType = Field(default=EasingType.LINEAR)
    control_points: Optional[list[Number]] = Field(
        default=None, alias='controlPoints', min_length=4, max_length=4
    )


class TimelineConfig(BaseModel):
    """Shared clock of the layered model."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    frame_rate: FrameRate = Field(default=12, alias='frameRate')
    duration_frames: int = Field(default=12, ge=1, alias='durationFrames')

    def extend_to(self, end_frame: int) -> bool:
        """
        Grow the duration to cover ``end_frame`` (exclusive).

        Returns:
            True if the duration changed
        """
        if end_frame > self.duration_frames:
            self.duration_frames = end_frame
            return True
        return False


_PRESET_BEZIERS = {
    EasingType.EASE_IN.value: (0.42, 0.0, 1.0, 1.0),
    EasingType.EASE_OUT.value: (0.0, 0.0, 0.58, 1.0),
    EasingType.EASE_IN_OUT.value: (0.42, 0.0, 0.58, 1.0),
}


def _bezier_coord(p1: float, p2: float, s: float) -> float:
    # One axis of a cubic bezier with P0 = 0 and P3 = 1
    inv = 1.0 - s
    return 3 * inv * inv * s * p1 + 3 * inv * s * s * p2 + s * s * s


def cubic_bezier(x1: float, y1: float, x2: float, y2: float, t: float) -> float:
    """
    Evaluate a CSS-style cubic bezier timing function at progress ``t``.

    Solves x(s) = t for the curve parameter by bisection, then returns y(s).
    """
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    lo, hi = 0.0, 1.0
    s = t
    for _ in range(50):
        s = (lo + hi) / 2
        x = _bezier_coord(x1, x2, s)
        if abs(x - t) < 1e-7:
            break
        if x < t:
            lo = s
        else:
            hi = s
    return _bezier_coord(y1, y2, s)


def bounce_out(t: float) -> float:
    """Standard ease-out bounce."""
    n1, d1 = 7.5625, 2.75
    if t < 1 / d1:
        return n1 * t * t
    if t < 2 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


def evaluate_easing(easing: EasingCurve, t: float) -> float:
    """
    Map linear progress ``t`` in [0, 1] through an easing curve.

    Hold curves return 0 (the earlier value) for every t below 1.
    """
    kind = easing.type
    if isinstance(kind, EasingType):
        kind = kind.value
    if kind == EasingType.HOLD.value:
        return 0.0 if t < 1.0 else 1.0
    if kind in _PRESET_BEZIERS:
        return cubic_bezier(*_PRESET_BEZIERS[kind], t)
    if kind == EasingType.CUSTOM.value and easing.control_points:
        return cubic_bezier(*easing.control_points, t)
    if kind == EasingType.BOUNCE.value:
        return bounce_out(t)
    return t


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return math.floor(value + 0.5)


def interpolate_keyframes(keyframes: Sequence, frame: float, loop: bool = False) -> float:
    """
    Evaluate a sorted keyframe list at a timeline position.

    Args:
        keyframes: Keyframes sorted by frame (objects with frame, value, easing)
        frame: Timeline position
        loop: Wrap positions past the last keyframe into the keyed span

    Returns:
        The effective value (0 for an empty list)
    """
    if not keyframes:
        return 0
    first, last = keyframes[0], keyframes[-1]
    span = last.frame - first.frame
    if loop and span > 0 and frame > last.frame:
        frame = first.frame + (frame - first.frame) % span

    if frame <= first.frame:
        return first.value
    if frame >= last.frame:
        return last.value

    for prev, nxt in zip(keyframes, keyframes[1:]):
        if prev.frame <= frame < nxt.frame:
            if prev.easing.type in (EasingType.HOLD, EasingType.HOLD.value):
                return prev.value
            t = (frame - prev.frame) / (nxt.frame - prev.frame)
            eased = evaluate_easing(prev.easing, t)
            return round_half_up(prev.value + (nxt.value - prev.value) * eased)
    return last.value
