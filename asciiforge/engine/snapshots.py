"""
Snapshot capture and restore for history entries.

A snapshot is a JSON-compatible dict keyed by scope. Each scope names one
part of the document:

    canvas                    width and height
    meta                      project name and description
    tools                     tool state and typography
    frames                    all flat frames plus the current frame index
    frame:<frameId>           the grid of one flat frame
    frame-props:<frameId>     name and duration of one flat frame
    layers                    layers, groups, active layer, timeline and
                              current frame index
    layer:<layerId>           one layer (content frames, tracks, flags)
    timeline                  the timeline clock
    content:<layerId>:<cfId>  the grid of one content frame
    grids                     every flat frame grid and content frame grid

Restoring a scope that references a frame or layer which no longer exists
raises ``HistoryCorruptError``.
"""

from typing import Any, Iterable

from asciiforge.exceptions import HistoryCorruptError
from asciiforge.grid import grid_from_dict, grid_to_dict
from asciiforge.layers import ContentFrame, Frame, Layer, LayerGroup, TimelineConfig
from asciiforge.state import ProjectState, ToolState, TypographySettings


def frame_scope(frame_id: str) -> str:
    return f"frame:{frame_id}"


def frame_props_scope(frame_id: str) -> str:
    return f"frame-props:{frame_id}"


def layer_scope(layer_id: str) -> str:
    return f"layer:{layer_id}"


def content_scope(layer_id: str, content_frame_id: str) -> str:
    return f"content:{layer_id}:{content_frame_id}"


def _dump(model) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode='json')


def _require_frame(state: ProjectState, frame_id: str) -> Frame:
    frame = state.get_frame(frame_id)
    if frame is None:
        raise HistoryCorruptError(f"Snapshot references missing frame {frame_id}")
    return frame


def _require_layer(state: ProjectState, layer_id: str) -> Layer:
    layer = state.get_layer(layer_id)
    if layer is None:
        raise HistoryCorruptError(f"Snapshot references missing layer {layer_id}")
    return layer


def _require_content_frame(state: ProjectState, layer_id: str, content_frame_id: str) -> ContentFrame:
    content_frame = _require_layer(state, layer_id).get_content_frame(content_frame_id)
    if content_frame is None:
        raise HistoryCorruptError(
            f"Snapshot references missing content frame {content_frame_id} on layer {layer_id}"
        )
    return content_frame


def _capture_scope(state: ProjectState, scope: str) -> Any:
    if scope == 'canvas':
        return {'width': state.width, 'height': state.height}
    if scope == 'meta':
        return {'name': state.name, 'description': state.description}
    if scope == 'tools':
        return {'tools': _dump(state.tool_state), 'typography': _dump(state.typography)}
    if scope == 'frames':
        return {
            'frames': [_dump(frame) for frame in state.frames],
            'currentFrameIndex': state.current_frame_index,
        }
    if scope == 'layers':
        return {
            'layers': [_dump(layer) for layer in state.layers],
            'layerGroups': [_dump(group) for group in state.layer_groups],
            'activeLayerId': state.active_layer_id,
            'timeline': _dump(state.timeline),
            'currentFrameIndex': state.current_frame_index,
            'frameRate': state.frame_rate,
        }
    if scope == 'timeline':
        return {'timeline': _dump(state.timeline), 'frameRate': state.frame_rate}
    if scope == 'grids':
        return {
            'frames': {frame.id: grid_to_dict(frame.data) for frame in state.frames},
            'content': {
                layer.id: {cf.id: grid_to_dict(cf.data) for cf in layer.content_frames}
                for layer in state.layers
            },
        }

    kind, _, ref = scope.partition(':')
    if kind == 'frame':
        return grid_to_dict(_require_frame(state, ref).data)
    if kind == 'frame-props':
        frame = _require_frame(state, ref)
        return {'name': frame.name, 'duration': frame.duration}
    if kind == 'layer':
        return _dump(_require_layer(state, ref))
    if kind == 'content':
        layer_id, _, content_frame_id = ref.partition(':')
        return grid_to_dict(_require_content_frame(state, layer_id, content_frame_id).data)
    raise ValueError(f"Unknown snapshot scope: {scope!r}")


def capture(state: ProjectState, scopes: Iterable[str]) -> dict[str, Any]:
    """
    Capture the given scopes of a document.

    Args:
        state: Live document
        scopes: Scope names (see module docstring)

    Returns:
        JSON-compatible snapshot keyed by scope
    """
    return {scope: _capture_scope(state, scope) for scope in scopes}


def _restore_scope(state: ProjectState, scope: str, value: Any) -> None:
    if scope == 'canvas':
        state.width = value['width']
        state.height = value['height']
        return
    if scope == 'meta':
        state.name = value['name']
        state.description = value['description']
        return
    if scope == 'tools':
        state.tool_state = ToolState.model_validate(value['tools'])
        state.typography = TypographySettings.model_validate(value['typography'])
        return
    if scope == 'frames':
        state.frames = [Frame.model_validate(frame) for frame in value['frames']]
        state.current_frame_index = value['currentFrameIndex']
        return
    if scope == 'layers':
        state.layers = [Layer.model_validate(layer) for layer in value['layers']]
        state.layer_groups = [LayerGroup.model_validate(group) for group in value['layerGroups']]
        state.active_layer_id = value['activeLayerId']
        state.timeline = TimelineConfig.model_validate(value['timeline'])
        state.current_frame_index = value['currentFrameIndex']
        state.frame_rate = value['frameRate']
        return
    if scope == 'timeline':
        state.timeline = TimelineConfig.model_validate(value['timeline'])
        state.frame_rate = value['frameRate']
        return
    if scope == 'grids':
        for frame_id, grid in value['frames'].items():
            _require_frame(state, frame_id).data = grid_from_dict(grid)
        for layer_id, content_frames in value['content'].items():
            for content_frame_id, grid in content_frames.items():
                _require_content_frame(state, layer_id, content_frame_id).data = grid_from_dict(grid)
        return

    kind, _, ref = scope.partition(':')
    if kind == 'frame':
        _require_frame(state, ref).data = grid_from_dict(value)
        return
    if kind == 'frame-props':
        frame = _require_frame(state, ref)
        frame.name = value['name']
        frame.duration = value['duration']
        return
    if kind == 'layer':
        index = state.get_layer_index(ref)
        if index < 0:
            raise HistoryCorruptError(f"Snapshot references missing layer {ref}")
        state.layers[index] = Layer.model_validate(value)
        return
    if kind == 'content':
        layer_id, _, content_frame_id = ref.partition(':')
        _require_content_frame(state, layer_id, content_frame_id).data = grid_from_dict(value)
        return
    raise HistoryCorruptError(f"Unknown snapshot scope: {scope!r}")


def restore(state: ProjectState, snapshot: dict[str, Any]) -> None:
    """
    Write a snapshot back into a document.

    Whole-collection scopes are restored before scopes that reference
    individual frames or layers inside them.

    Raises:
        HistoryCorruptError: If the snapshot references a missing frame,
            layer or content frame, or an unknown scope
    """
    ordered = sorted(snapshot.items(), key=lambda item: ':' in item[0])
    for scope, value in ordered:
        _restore_scope(state, scope, value)
