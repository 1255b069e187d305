"""Asciiforge engine.

ProjectEngine owns the live document and its history; the component APIs
are exposed as attributes:

    engine.canvas     CanvasEditor    cell edits, fill, resize on the active grid
    engine.frames     FlatTimeline    flat frame list
    engine.layers     LayerTimeline   layers, content frames, keyframes, groups
    engine.selection  SelectionTool   rectangle and match selections
"""

from .canvas import ActiveGrid, CanvasEditor
from .frames import CellModification, FlatTimeline
from .layers import LayerTimeline, PropertyValue
from .manager import ProjectEngine
from .selection import SelectionTool

__all__ = [
    'ProjectEngine',
    'CanvasEditor',
    'ActiveGrid',
    'FlatTimeline',
    'CellModification',
    'LayerTimeline',
    'PropertyValue',
    'SelectionTool',
]
