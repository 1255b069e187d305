"""Tests for easing, keyframe interpolation and the timeline clock."""

import pytest

from asciiforge.layers import (
    EasingCurve,
    EasingType,
    Keyframe,
    PropertyTrack,
    TimelineConfig,
    cubic_bezier,
    evaluate_easing,
    interpolate_keyframes,
)
from asciiforge.layers.timeline import bounce_out, round_half_up

POSITION_X = 'transform.position.x'


def keyframes(*points, easing='linear'):
    return [Keyframe(frame=f, value=v, easing=EasingCurve(type=easing)) for f, v in points]


class TestEasing:
    """Tests for easing curves."""

    def test_linear(self):
        assert evaluate_easing(EasingCurve(), 0.25) == 0.25

    def test_hold(self):
        curve = EasingCurve(type='hold')
        assert evaluate_easing(curve, 0.0) == 0.0
        assert evaluate_easing(curve, 0.99) == 0.0
        assert evaluate_easing(curve, 1.0) == 1.0

    def test_ease_in_starts_slow(self):
        assert evaluate_easing(EasingCurve(type=EasingType.EASE_IN), 0.5) < 0.5

    def test_ease_out_starts_fast(self):
        assert evaluate_easing(EasingCurve(type='ease-out'), 0.5) > 0.5

    def test_ease_in_out_symmetric(self):
        assert evaluate_easing(EasingCurve(type='ease-in-out'), 0.5) == pytest.approx(0.5, abs=1e-4)

    def test_custom_bezier(self):
        """A (0, 0, 1, 1) bezier is the identity."""
        curve = EasingCurve(type='custom', controlPoints=[0, 0, 1, 1])
        assert evaluate_easing(curve, 0.3) == pytest.approx(0.3, abs=1e-4)

    def test_custom_without_points_is_linear(self):
        assert evaluate_easing(EasingCurve(type='custom'), 0.3) == 0.3

    def test_bounce_endpoints(self):
        assert bounce_out(0.0) == 0.0
        assert bounce_out(1.0) == pytest.approx(1.0)

    def test_bezier_endpoints(self):
        assert cubic_bezier(0.42, 0, 1, 1, 0.0) == 0.0
        assert cubic_bezier(0.42, 0, 1, 1, 1.0) == 1.0

    def test_round_half_up(self):
        assert round_half_up(1.5) == 2
        assert round_half_up(2.5) == 3
        assert round_half_up(-0.5) == 0


class TestInterpolateKeyframes:
    """Tests for interpolate_keyframes."""

    def test_empty(self):
        assert interpolate_keyframes([], 3) == 0

    def test_linear_values(self):
        """Keyframes 0 -> 100 over frames 0..10."""
        kfs = keyframes((0, 0), (10, 100))
        assert [interpolate_keyframes(kfs, f) for f in (0, 5, 10, 15)] == [0, 50, 100, 100]

    def test_before_first(self):
        assert interpolate_keyframes(keyframes((4, 7), (8, 9)), 0) == 7

    def test_hold_keeps_earlier_value(self):
        kfs = keyframes((0, 0), (10, 100), easing='hold')
        assert interpolate_keyframes(kfs, 9) == 0
        assert interpolate_keyframes(kfs, 10) == 100

    def test_rounds_half_up(self):
        assert interpolate_keyframes(keyframes((0, 0), (2, 3)), 1) == 2

    def test_loop_wraps(self):
        kfs = keyframes((0, 0), (10, 100))
        assert interpolate_keyframes(kfs, 15, loop=True) == 50
        assert interpolate_keyframes(kfs, 20, loop=True) == 0


class TestPropertyTrack:
    def test_one_keyframe_per_frame(self):
        track = PropertyTrack(property_path=POSITION_X)
        track.set_keyframe(Keyframe(frame=5, value=1))
        track.set_keyframe(Keyframe(frame=0, value=2))
        track.set_keyframe(Keyframe(frame=5, value=3))
        assert [(kf.frame, kf.value) for kf in track.keyframes] == [(0, 2), (5, 3)]

    def test_load_deduplicates(self):
        track = PropertyTrack.model_validate({
            'propertyPath': POSITION_X,
            'keyframes': [{'frame': 3, 'value': 1}, {'frame': 1, 'value': 2}, {'frame': 3, 'value': 4}],
        })
        assert [(kf.frame, kf.value) for kf in track.keyframes] == [(1, 2), (3, 4)]


class TestTimelineConfig:
    def test_extend_to(self):
        timeline = TimelineConfig(duration_frames=12)
        assert not timeline.extend_to(10)
        assert timeline.extend_to(30)
        assert timeline.duration_frames == 30


class TestLayerProperties:
    """Effective transform values through the engine."""

    def test_defaults(self, layered_engine):
        layer = layered_engine.layers.get_active_layer()
        props = layered_engine.layers.get_layer_properties(layer.id)
        assert props[POSITION_X].value == 0
        assert not props[POSITION_X].is_keyframed
        assert props['transform.scale.x'].value == 1
        assert props['transform.anchorPoint.x'].value == 10
        assert props['transform.anchorPoint.y'].value == 5

    def test_unknown_layer(self, layered_engine):
        assert layered_engine.layers.get_layer_properties('missing') is None

    def test_keyframed_position(self, layered_engine):
        engine = layered_engine
        layer = engine.layers.get_active_layer()
        engine.layers.add_keyframe(layer.id, POSITION_X, 0, 0)
        engine.layers.add_keyframe(layer.id, POSITION_X, 10, 100)
        engine.layers.set_timeline_duration(20)

        values = []
        for frame in (0, 5, 10, 15):
            engine.frames.go_to_frame(frame)
            values.append(engine.layers.get_layer_properties(layer.id)[POSITION_X].value)
        assert values == [0, 50, 100, 100]
        assert engine.layers.get_layer_properties(layer.id)[POSITION_X].keyframe_count == 2

    def test_add_keyframe_creates_track_once(self, layered_engine, events):
        engine = layered_engine
        layer = engine.layers.get_active_layer()
        events.clear()

        keyframe = engine.layers.add_keyframe(layer.id, POSITION_X, 3, 7, easing={'type': 'ease-in'})
        assert keyframe is not None
        assert keyframe.easing.type == 'ease-in'
        assert len(engine.history) == 1
        assert [kind for kind, _ in events] == ['add_keyframe']

        engine.undo()
        assert engine.layers.get_layer(layer.id).get_track(POSITION_X) is None

    def test_add_keyframe_extends_timeline(self, layered_engine):
        layer = layered_engine.layers.get_active_layer()
        layered_engine.layers.add_keyframe(layer.id, POSITION_X, 30, 1)
        assert layered_engine.state.timeline.duration_frames == 31

    def test_add_keyframe_rejects_bad_input(self, layered_engine):
        layer = layered_engine.layers.get_active_layer()
        assert layered_engine.layers.add_keyframe(layer.id, 'transform.skew', 0, 1) is None
        assert layered_engine.layers.add_keyframe(layer.id, POSITION_X, -1, 1) is None
        assert layered_engine.layers.add_keyframe(layer.id, POSITION_X, 0, 1, easing={'type': 'wobble'}) is None
        assert not layered_engine.can_undo()

    def test_update_keyframe_replaces_occupant(self, layered_engine):
        engine = layered_engine
        layer = engine.layers.get_active_layer()
        first = engine.layers.add_keyframe(layer.id, POSITION_X, 0, 0)
        engine.layers.add_keyframe(layer.id, POSITION_X, 5, 50)
        track = engine.layers.get_layer(layer.id).get_track(POSITION_X)

        assert engine.layers.update_keyframe(layer.id, track.id, first.id, frame=5, value=9)
        assert [(kf.frame, kf.value) for kf in track.keyframes] == [(5, 9)]

    def test_remove_keyframe_and_track(self, layered_engine):
        engine = layered_engine
        layer = engine.layers.get_active_layer()
        keyframe = engine.layers.add_keyframe(layer.id, POSITION_X, 0, 0)
        track = engine.layers.get_layer(layer.id).get_track(POSITION_X)

        assert engine.layers.remove_keyframe(layer.id, track.id, keyframe.id)
        assert track.keyframes == []
        assert engine.layers.remove_property_track(layer.id, track.id)
        assert engine.layers.get_layer(layer.id).property_tracks == []

    def test_add_property_track_once(self, layered_engine):
        layer = layered_engine.layers.get_active_layer()
        assert layered_engine.layers.add_property_track(layer.id, 'transform.rotation') is not None
        assert layered_engine.layers.add_property_track(layer.id, 'transform.rotation') is None


class TestClock:
    def test_frame_rate_clamped(self, layered_engine):
        assert layered_engine.layers.set_frame_rate(500) == 120
        assert layered_engine.state.timeline.frame_rate == 120
        assert layered_engine.state.frame_rate == 120
        layered_engine.undo()
        assert layered_engine.state.timeline.frame_rate == 12

    def test_shrinking_duration_clamps_playhead(self, layered_engine):
        layered_engine.frames.go_to_frame(10)
        assert layered_engine.layers.set_timeline_duration(4) == 4
        assert layered_engine.state.current_frame_index == 3
