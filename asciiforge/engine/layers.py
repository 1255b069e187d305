"""
Layer timeline - layers, content frames, keyframes and groups.

Structural edits (adding, removing, reordering and grouping layers)
snapshot the whole layer stack. Edits inside one layer snapshot that layer,
plus the timeline clock when they can extend it.
"""

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asciiforge.config import settings
from asciiforge.grid import grid_from_dict
from asciiforge.layers import (
    ContentFrame,
    EasingCurve,
    Keyframe,
    Layer,
    LayerGroup,
    MAX_FRAME_RATE,
    MIN_FRAME_RATE,
    Number,
    PROPERTY_PATHS,
    PropertyTrack,
    property_defaults,
)

from .snapshots import content_scope, layer_scope

if TYPE_CHECKING:
    from .manager import ProjectEngine

logger = logging.getLogger(__name__)

EasingInput = Union[EasingCurve, Mapping[str, Any]]


class PropertyValue(BaseModel):
    """Effective value of one transform property at the current frame."""

    model_config = ConfigDict(populate_by_name=True)

    value: Number
    is_keyframed: bool = Field(alias='isKeyframed')
    keyframe_count: int = Field(alias='keyframeCount')


def _to_easing(easing: Optional[EasingInput]) -> EasingCurve:
    if easing is None:
        return EasingCurve()
    if isinstance(easing, EasingCurve):
        return easing
    return EasingCurve.model_validate(easing)


class LayerTimeline:
    """Operations of the layered animation model."""

    def __init__(self, engine: 'ProjectEngine'):
        self._engine = engine

    @property
    def state(self):
        return self._engine.state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_layers(self) -> list[Layer]:
        return list(self.state.layers)

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        return self.state.get_layer(layer_id)

    def get_active_layer(self) -> Optional[Layer]:
        return self.state.active_layer

    def get_active_content_frame(self) -> Optional[ContentFrame]:
        layer = self.state.active_layer
        if layer is None:
            return None
        return layer.content_frame_at(self.state.current_frame_index)

    def get_groups(self) -> list[LayerGroup]:
        return list(self.state.layer_groups)

    def get_layer_properties(self, layer_id: str) -> Optional[dict[str, PropertyValue]]:
        """
        Effective transform values of a layer at the current frame.

        Keyframed properties are interpolated, others use the static value,
        then the default (anchor defaults to the canvas centre).

        Returns:
            Mapping of property path to value, or None for an unknown layer
        """
        layer = self.state.get_layer(layer_id)
        if layer is None:
            return None
        defaults = property_defaults(self.state.width, self.state.height)
        result: dict[str, PropertyValue] = {}
        for path in PROPERTY_PATHS:
            track = layer.get_track(path)
            if track is not None and track.keyframes:
                result[path] = PropertyValue(
                    value=track.value_at(self.state.current_frame_index),
                    is_keyframed=True,
                    keyframe_count=len(track.keyframes),
                )
            elif path in layer.static_properties:
                result[path] = PropertyValue(
                    value=layer.static_properties[path], is_keyframed=False, keyframe_count=0
                )
            else:
                result[path] = PropertyValue(value=defaults[path], is_keyframed=False, keyframe_count=0)
        return result

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def add_layer(self, name: str | None = None, record_history: bool = True) -> Layer:
        """
        Append a layer with one empty content frame and make it active.

        Adding the first layer switches the document to layered mode.
        """
        state = self.state
        layer = Layer.create_default(
            name or f"Layer {len(state.layers) + 1}", state.width, state.height
        )

        def mutate():
            state.layers.append(layer)
            state.active_layer_id = layer.id
            if state.timeline.duration_frames < 1:
                state.timeline.duration_frames = settings.DEFAULT_TIMELINE_DURATION
            state.current_frame_index = min(state.current_frame_index, state.timeline.duration_frames - 1)
            return layer

        return self._engine.commit(
            'add_layer', f"Add layer {layer.name}", ['layers'], mutate,
            record_history=record_history,
            payload={'layerId': layer.id, 'name': layer.name},
        )

    def remove_layer(self, layer_id: str, record_history: bool = True) -> bool:
        """Remove a layer. The last layer cannot be removed."""
        state = self.state
        index = state.get_layer_index(layer_id)
        if index < 0 or len(state.layers) <= 1:
            return False

        def mutate():
            del state.layers[index]
            for group in state.layer_groups:
                group.remove_child(layer_id)
            state.layer_groups = [g for g in state.layer_groups if g.child_layer_ids]
            if state.active_layer_id == layer_id:
                state.active_layer_id = state.layers[min(index, len(state.layers) - 1)].id
            return True

        return self._engine.commit(
            'remove_layer', f"Remove layer {layer_id}", ['layers'], mutate,
            record_history=record_history,
            payload={'layerId': layer_id},
        )

    def duplicate_layer(self, layer_id: str, record_history: bool = True) -> Optional[Layer]:
        """Deep-copy a layer above the source and make the copy active."""
        state = self.state
        index = state.get_layer_index(layer_id)
        if index < 0:
            return None
        source = state.layers[index]
        copy = source.duplicate()
        copy.name = f"{source.name} (copy)"

        def mutate():
            state.layers.insert(index + 1, copy)
            state.active_layer_id = copy.id
            group = state.get_group(copy.parent_group_id) if copy.parent_group_id else None
            if group is not None:
                group.child_layer_ids.append(copy.id)
            return copy

        return self._engine.commit(
            'duplicate_layer', f"Duplicate layer {source.name}", ['layers'], mutate,
            record_history=record_history,
            payload={'layerId': copy.id, 'sourceId': layer_id},
        )

    def set_active_layer(self, layer_id: str) -> bool:
        """Select the layer receiving canvas edits. Not recorded in history."""
        if self.state.get_layer(layer_id) is None:
            return False
        self.state.active_layer_id = layer_id
        self._engine.notify('set_active_layer', {'layerId': layer_id})
        return True

    def _update_layer(self, kind: str, description: str, layer_id: str, apply, record_history: bool,
                      payload: dict[str, Any]) -> bool:
        layer = self.state.get_layer(layer_id)
        if layer is None:
            return False

        def mutate():
            apply(layer)
            return True

        return self._engine.commit(
            kind, description, [layer_scope(layer_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, **payload},
        )

    def rename_layer(self, layer_id: str, name: str, record_history: bool = True) -> bool:
        return self._update_layer(
            'rename_layer', f'Rename layer to "{name}"', layer_id,
            lambda layer: setattr(layer, 'name', name), record_history, {'name': name},
        )

    def set_layer_visibility(self, layer_id: str, visible: bool, record_history: bool = True) -> bool:
        return self._update_layer(
            'set_layer_visibility', f"{'Show' if visible else 'Hide'} layer", layer_id,
            lambda layer: setattr(layer, 'visible', visible), record_history, {'visible': visible},
        )

    def set_layer_solo(self, layer_id: str, solo: bool, record_history: bool = True) -> bool:
        return self._update_layer(
            'set_layer_solo', f"{'Solo' if solo else 'Unsolo'} layer", layer_id,
            lambda layer: setattr(layer, 'solo', solo), record_history, {'solo': solo},
        )

    def set_layer_locked(self, layer_id: str, locked: bool, record_history: bool = True) -> bool:
        return self._update_layer(
            'set_layer_locked', f"{'Lock' if locked else 'Unlock'} layer", layer_id,
            lambda layer: setattr(layer, 'locked', locked), record_history, {'locked': locked},
        )

    def set_layer_opacity(self, layer_id: str, opacity: Number, record_history: bool = True) -> bool:
        opacity = max(0, min(100, opacity))
        return self._update_layer(
            'set_layer_opacity', f"Set layer opacity to {opacity}", layer_id,
            lambda layer: setattr(layer, 'opacity', opacity), record_history, {'opacity': opacity},
        )

    def reorder_layers(self, from_index: int, to_index: int, record_history: bool = True) -> bool:
        """Move a layer in the paint order. Same-index moves are rejected."""
        layers = self.state.layers
        if not (0 <= from_index < len(layers) and 0 <= to_index < len(layers)):
            return False
        if from_index == to_index:
            return False

        def mutate():
            layers.insert(to_index, layers.pop(from_index))
            return True

        return self._engine.commit(
            'reorder_layers', f"Move layer {from_index} to {to_index}", ['layers'], mutate,
            record_history=record_history,
            payload={'from': from_index, 'to': to_index},
        )

    # ------------------------------------------------------------------
    # Content frames
    # ------------------------------------------------------------------

    def add_content_frame(
        self,
        layer_id: str,
        start_frame: int,
        duration_frames: int,
        data: Optional[Mapping[str, Any]] = None,
        record_history: bool = True,
    ) -> Optional[ContentFrame]:
        """
        Place a new content frame on a layer.

        Returns:
            The content frame, or None for an unknown layer, a negative
            start, invalid data or an overlap with an existing segment
        """
        layer = self.state.get_layer(layer_id)
        if layer is None or start_frame < 0:
            return None
        duration_frames = max(1, duration_frames)
        if layer.overlaps(start_frame, duration_frames):
            logger.debug(f"Content frame [{start_frame}, {start_frame + duration_frames}) overlaps on {layer_id}")
            return None
        try:
            grid = grid_from_dict(dict(data or {}))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Rejected content frame data: {e}")
            return None
        content_frame = ContentFrame(
            name=f"Frame {len(layer.content_frames) + 1}",
            start_frame=start_frame,
            duration_frames=duration_frames,
            data=grid,
        )

        def mutate():
            layer.content_frames.append(content_frame)
            layer.sort_content_frames()
            self.state.timeline.extend_to(content_frame.end_frame)
            return content_frame

        return self._engine.commit(
            'add_content_frame', f"Add content frame at {start_frame}",
            [layer_scope(layer_id), 'timeline'], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'contentFrameId': content_frame.id},
        )

    def remove_content_frame(self, layer_id: str, content_frame_id: str, record_history: bool = True) -> bool:
        layer = self.state.get_layer(layer_id)
        if layer is None or layer.get_content_frame(content_frame_id) is None:
            return False

        def mutate():
            layer.content_frames = [cf for cf in layer.content_frames if cf.id != content_frame_id]
            return True

        return self._engine.commit(
            'remove_content_frame', "Remove content frame", [layer_scope(layer_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'contentFrameId': content_frame_id},
        )

    def update_content_frame_data(
        self,
        layer_id: str,
        content_frame_id: str,
        data: Mapping[str, Any],
        record_history: bool = True,
    ) -> bool:
        """Replace the grid of a content frame."""
        layer = self.state.get_layer(layer_id)
        content_frame = layer.get_content_frame(content_frame_id) if layer else None
        if content_frame is None:
            return False
        try:
            grid = grid_from_dict(dict(data))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Rejected content frame data: {e}")
            return False

        def mutate():
            content_frame.data = grid
            return True

        return self._engine.commit(
            'update_content_frame_data', "Update content frame",
            [content_scope(layer_id, content_frame_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'contentFrameId': content_frame_id},
        )

    def update_content_frame_timing(
        self,
        layer_id: str,
        content_frame_id: str,
        start_frame: int,
        duration_frames: int,
        record_history: bool = True,
    ) -> bool:
        """Move or resize a content frame. Rejected if it would overlap a sibling."""
        layer = self.state.get_layer(layer_id)
        content_frame = layer.get_content_frame(content_frame_id) if layer else None
        if content_frame is None or start_frame < 0:
            return False
        duration_frames = max(1, duration_frames)
        if layer.overlaps(start_frame, duration_frames, exclude_id=content_frame_id):
            return False

        def mutate():
            content_frame.start_frame = start_frame
            content_frame.duration_frames = duration_frames
            layer.sort_content_frames()
            self.state.timeline.extend_to(content_frame.end_frame)
            return True

        return self._engine.commit(
            'update_content_frame_timing', f"Retime content frame to {start_frame}+{duration_frames}",
            [layer_scope(layer_id), 'timeline'], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'contentFrameId': content_frame_id},
        )

    def set_content_frame_hidden(
        self,
        layer_id: str,
        content_frame_id: str,
        hidden: bool,
        record_history: bool = True,
    ) -> bool:
        layer = self.state.get_layer(layer_id)
        content_frame = layer.get_content_frame(content_frame_id) if layer else None
        if content_frame is None:
            return False

        def mutate():
            content_frame.hidden = hidden or None
            return True

        return self._engine.commit(
            'set_content_frame_hidden', f"{'Hide' if hidden else 'Show'} content frame",
            [layer_scope(layer_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'contentFrameId': content_frame_id, 'hidden': hidden},
        )

    # ------------------------------------------------------------------
    # Property tracks and keyframes
    # ------------------------------------------------------------------

    def add_property_track(
        self,
        layer_id: str,
        property_path: str,
        record_history: bool = True,
    ) -> Optional[PropertyTrack]:
        """Create the track for a property. None if unknown or already present."""
        layer = self.state.get_layer(layer_id)
        if layer is None or property_path not in PROPERTY_PATHS:
            return None
        if layer.get_track(property_path) is not None:
            return None
        track = PropertyTrack(property_path=property_path)

        def mutate():
            layer.property_tracks.append(track)
            return track

        return self._engine.commit(
            'add_property_track', f"Add track {property_path}", [layer_scope(layer_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'trackId': track.id, 'propertyPath': property_path},
        )

    def remove_property_track(self, layer_id: str, track_id: str, record_history: bool = True) -> bool:
        layer = self.state.get_layer(layer_id)
        if layer is None or layer.get_track_by_id(track_id) is None:
            return False

        def mutate():
            layer.property_tracks = [t for t in layer.property_tracks if t.id != track_id]
            return True

        return self._engine.commit(
            'remove_property_track', "Remove property track", [layer_scope(layer_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'trackId': track_id},
        )

    def add_keyframe(
        self,
        layer_id: str,
        property_path: str,
        frame: int,
        value: Number,
        easing: Optional[EasingInput] = None,
        record_history: bool = True,
    ) -> Optional[Keyframe]:
        """
        Set a keyframe, creating the property track on demand.

        A keyframe already at ``frame`` is replaced. The timeline grows to
        include the frame.
        """
        layer = self.state.get_layer(layer_id)
        if layer is None or property_path not in PROPERTY_PATHS or frame < 0:
            return None
        try:
            curve = _to_easing(easing)
        except ValidationError as e:
            logger.warning(f"Rejected easing {easing!r}: {e}")
            return None
        keyframe = Keyframe(frame=frame, value=value, easing=curve)

        def mutate():
            track = layer.get_track(property_path)
            if track is None:
                track = self.add_property_track(layer_id, property_path)
            track.set_keyframe(keyframe)
            self.state.timeline.extend_to(frame + 1)
            return keyframe

        return self._engine.commit(
            'add_keyframe', f"Keyframe {property_path} at {frame}",
            [layer_scope(layer_id), 'timeline'], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'keyframeId': keyframe.id, 'frame': frame, 'value': value},
        )

    def remove_keyframe(
        self,
        layer_id: str,
        track_id: str,
        keyframe_id: str,
        record_history: bool = True,
    ) -> bool:
        layer = self.state.get_layer(layer_id)
        track = layer.get_track_by_id(track_id) if layer else None
        if track is None or track.get_keyframe(keyframe_id) is None:
            return False

        def mutate():
            track.keyframes = [kf for kf in track.keyframes if kf.id != keyframe_id]
            return True

        return self._engine.commit(
            'remove_keyframe', "Remove keyframe", [layer_scope(layer_id)], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'trackId': track_id, 'keyframeId': keyframe_id},
        )

    def update_keyframe(
        self,
        layer_id: str,
        track_id: str,
        keyframe_id: str,
        frame: int | None = None,
        value: Optional[Number] = None,
        easing: Optional[EasingInput] = None,
        record_history: bool = True,
    ) -> bool:
        """
        Change a keyframe's frame, value or easing.

        Moving onto a frame occupied by another keyframe replaces that
        keyframe.
        """
        layer = self.state.get_layer(layer_id)
        track = layer.get_track_by_id(track_id) if layer else None
        keyframe = track.get_keyframe(keyframe_id) if track else None
        if keyframe is None or (frame is not None and frame < 0):
            return False
        try:
            curve = _to_easing(easing) if easing is not None else None
        except ValidationError as e:
            logger.warning(f"Rejected easing {easing!r}: {e}")
            return False

        def mutate():
            if frame is not None:
                keyframe.frame = frame
                self.state.timeline.extend_to(frame + 1)
            if value is not None:
                keyframe.value = value
            if curve is not None:
                keyframe.easing = curve
            track.set_keyframe(keyframe)
            return True

        return self._engine.commit(
            'update_keyframe', "Update keyframe", [layer_scope(layer_id), 'timeline'], mutate,
            record_history=record_history,
            payload={'layerId': layer_id, 'trackId': track_id, 'keyframeId': keyframe_id},
        )

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(
        self,
        name: str | None = None,
        layer_ids: Optional[list[str]] = None,
        record_history: bool = True,
    ) -> LayerGroup:
        """
        Group layers. Unknown ids are ignored; layers leave their previous group.
        """
        state = self.state
        members = [lid for lid in dict.fromkeys(layer_ids or []) if state.get_layer(lid) is not None]
        group = LayerGroup(
            name=name or f"Group {len(state.layer_groups) + 1}",
            child_layer_ids=members,
        )

        def mutate():
            for other in state.layer_groups:
                for lid in members:
                    other.remove_child(lid)
            state.layer_groups = [g for g in state.layer_groups if g.child_layer_ids]
            state.layer_groups.append(group)
            for lid in members:
                state.get_layer(lid).parent_group_id = group.id
            return group

        return self._engine.commit(
            'create_group', f"Create group {group.name}", ['layers'], mutate,
            record_history=record_history,
            payload={'groupId': group.id, 'layerIds': members},
        )

    def ungroup_layers(self, group_id: str, record_history: bool = True) -> bool:
        """Dissolve a group. Its layers are kept."""
        state = self.state
        group = state.get_group(group_id)
        if group is None:
            return False

        def mutate():
            for lid in group.child_layer_ids:
                layer = state.get_layer(lid)
                if layer is not None:
                    layer.parent_group_id = None
            state.layer_groups = [g for g in state.layer_groups if g.id != group_id]
            return True

        return self._engine.commit(
            'ungroup_layers', f"Ungroup {group.name}", ['layers'], mutate,
            record_history=record_history,
            payload={'groupId': group_id},
        )

    # ------------------------------------------------------------------
    # Timeline clock
    # ------------------------------------------------------------------

    def set_frame_rate(self, fps: Number, record_history: bool = True) -> Number:
        """Set the playback rate (clamped), mirrored into the flat frame rate."""
        fps = max(MIN_FRAME_RATE, min(MAX_FRAME_RATE, fps))

        def mutate():
            self.state.timeline.frame_rate = fps
            self.state.frame_rate = fps
            return fps

        return self._engine.commit(
            'set_frame_rate', f"Set frame rate to {fps}", ['timeline'], mutate,
            record_history=record_history,
            payload={'frameRate': fps},
        )

    def set_timeline_duration(self, frames: int, record_history: bool = True) -> int:
        """Set the timeline length (at least 1 frame)."""
        frames = max(1, int(frames))

        def mutate():
            state = self.state
            state.timeline.duration_frames = frames
            if state.is_layer_mode:
                state.current_frame_index = min(state.current_frame_index, frames - 1)
            return frames

        return self._engine.commit(
            'set_timeline_duration', f"Set timeline duration to {frames}", ['timeline'], mutate,
            record_history=record_history,
            payload={'durationFrames': frames},
        )
