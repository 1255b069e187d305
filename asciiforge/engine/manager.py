"""
ProjectEngine - owner of the live document and its undo history.

Every mutating operation of the component APIs runs through ``commit``:

1. capture the affected scopes (before)
2. run the mutation
3. capture the same scopes (after), push one history entry
4. mark the document dirty and notify listeners once

Commits nest. Only the outermost commit records history and notifies, so a
composite operation built from primitives yields a single entry.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError

from asciiforge.config import settings
from asciiforge.exceptions import DocumentFormatError
from asciiforge.formats import (
    AnimationSettings,
    CanvasSettings,
    FormatVersion,
    SessionData,
    SessionDataV2,
    TimelineSettings,
    decode_session,
    detect_format_version,
    read_session_file,
    write_session_file,
)
from asciiforge.grid import clamp_dimensions
from asciiforge.history import History, HistoryEntry, HistoryInfo
from asciiforge.layers import Frame, TimelineConfig
from asciiforge.state import ProjectState, ToolState

from . import snapshots
from .canvas import CanvasEditor
from .frames import FlatTimeline
from .layers import LayerTimeline
from .selection import SelectionTool

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, dict[str, Any]], None]
LoadResult = tuple[bool, Optional[str]]


class ProjectEngine:
    """In-memory document engine for character-grid art and animation."""

    def __init__(self, max_history_size: int | None = None):
        self.state = ProjectState()
        self.history = History(self._apply_snapshot, max_size=max_history_size)
        self._listeners: list[ChangeListener] = []
        self._depth = 0

        self.canvas = CanvasEditor(self)
        self.frames = FlatTimeline(self)
        self.layers = LayerTimeline(self)
        self.selection = SelectionTool(self)

    # ------------------------------------------------------------------
    # Commit machinery
    # ------------------------------------------------------------------

    @property
    def in_commit(self) -> bool:
        return self._depth > 0

    def commit(
        self,
        kind: str,
        description: Union[str, Callable[[Any], str]],
        scopes: Iterable[str],
        mutation: Callable[[], Any],
        record_history: bool = True,
        payload: Union[dict[str, Any], Callable[[Any], dict[str, Any]], None] = None,
    ) -> Any:
        """
        Run a mutation as one logical operation.

        Args:
            kind: Operation identifier (stored in history, passed to listeners)
            description: Human-readable label, or a callable building it
                from the mutation result
            scopes: Snapshot scopes the mutation may touch
            mutation: Callable performing the change. A falsy return value
                means the operation was rejected and left the state untouched.
            record_history: Whether to push a history entry
            payload: Listener payload, or a callable building it from the result

        Returns:
            The mutation result
        """
        outermost = self._depth == 0
        scopes = list(scopes)
        before = snapshots.capture(self.state, scopes) if outermost else None

        self._depth += 1
        try:
            result = mutation()
        except Exception:
            if before is not None:
                snapshots.restore(self.state, before)
            raise
        finally:
            self._depth -= 1

        if not result or not outermost:
            return result

        label = description(result) if callable(description) else description
        if record_history:
            self.history.push(HistoryEntry(
                kind=kind,
                description=label,
                before=before,
                after=snapshots.capture(self.state, scopes),
            ))
            logger.debug(f"Committed {kind}: {label}")
        self.state.is_dirty = True

        data = payload(result) if callable(payload) else dict(payload or {})
        data.setdefault('description', label)
        self.notify(kind, data)
        return result

    def _apply_snapshot(self, snapshot: dict[str, Any]) -> None:
        snapshots.restore(self.state, snapshot)
        self._normalize()

    def _normalize(self) -> None:
        """Re-establish pointer invariants after a bulk state replacement."""
        state = self.state
        if state.is_layer_mode:
            if state.active_layer is None:
                state.active_layer_id = state.layers[-1].id
            state.current_frame_index = max(
                0, min(state.current_frame_index, state.timeline.duration_frames - 1)
            )
        else:
            state.active_layer_id = None
            state.current_frame_index = max(0, min(state.current_frame_index, len(state.frames) - 1))

    # ------------------------------------------------------------------
    # Change listeners
    # ------------------------------------------------------------------

    def on_change(self, handler: ChangeListener) -> None:
        """Register a listener called as ``handler(kind, payload)`` after each operation."""
        if handler not in self._listeners:
            self._listeners.append(handler)

    def remove_listener(self, handler: ChangeListener) -> bool:
        if handler in self._listeners:
            self._listeners.remove(handler)
            return True
        return False

    def notify(self, kind: str, payload: dict[str, Any] | None = None) -> None:
        """Call every listener once. Listener failures are logged and skipped."""
        if self.in_commit:
            return
        payload = payload or {}
        for handler in list(self._listeners):
            try:
                handler(kind, payload)
            except Exception as e:
                logger.warning(f"Change listener {handler!r} failed on {kind}: {e}")

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """Revert the last recorded operation. Returns False if there is none."""
        info = self.history.info()
        if not self.history.undo():
            return False
        self.state.is_dirty = True
        self.notify('undo', {'description': info.undo_description})
        return True

    def redo(self) -> bool:
        """Re-apply the last reverted operation. Returns False if there is none."""
        info = self.history.info()
        if not self.history.redo():
            return False
        self.state.is_dirty = True
        self.notify('redo', {'description': info.redo_description})
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def history_info(self) -> HistoryInfo:
        return self.history.info()

    def clear_history(self) -> None:
        self.history.clear()

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------

    @property
    def is_dirty(self) -> bool:
        return self.state.is_dirty

    def mark_clean(self) -> None:
        self.state.is_dirty = False

    def snapshot(self) -> ProjectState:
        """Deep copy of the live document for read-only consumers."""
        return self.state.model_copy(deep=True)

    def set_project_name(self, name: str, record_history: bool = True) -> bool:
        name = name.strip()
        if not name:
            return False

        def mutate():
            self.state.name = name
            return True

        return self.commit(
            'set_project_name', f"Rename project to {name}", ['meta'], mutate,
            record_history=record_history,
            payload={'name': name},
        )

    def set_tool_state(self, record_history: bool = True, **updates: Any) -> bool:
        """
        Update active tool settings.

        Accepts snake_case or camelCase field names (e.g. ``active_tool`` or
        ``activeTool``). Invalid values are rejected without changes.
        """
        merged = self.state.tool_state.model_dump()
        merged.update(updates)
        try:
            tool_state = ToolState.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Rejected tool state update: {e}")
            return False

        def mutate():
            self.state.tool_state = tool_state
            return True

        return self.commit(
            'set_tool_state', "Change tool settings", ['tools'], mutate,
            record_history=record_history,
            payload={'toolState': tool_state.model_dump(by_alias=True)},
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _replace_state(self, state: ProjectState) -> None:
        self.state = state
        self._normalize()
        self.history.clear()
        self.state.is_dirty = False

    def new_project(
        self,
        width: int | None = None,
        height: int | None = None,
        name: str | None = None,
    ) -> ProjectState:
        """Replace the document with a fresh flat project."""
        width, height = clamp_dimensions(
            width if width is not None else settings.DEFAULT_CANVAS_WIDTH,
            height if height is not None else settings.DEFAULT_CANVAS_HEIGHT,
        )
        state = ProjectState(width=width, height=height)
        if name:
            state.name = name
        self._replace_state(state)
        logger.info(f"New project '{state.name}' ({width}x{height})")
        self.notify('new_project', {'width': width, 'height': height, 'name': state.name})
        return self.state

    def load_flat(self, data: dict[str, Any]) -> LoadResult:
        """Load a flat (v1) document. History is cleared on success."""
        try:
            session = SessionData.from_api_dict(data)
        except DocumentFormatError as e:
            logger.warning(f"Rejected flat document: {e}")
            return False, str(e)
        self._load_session(session)
        return True, None

    def load_layered(self, data: dict[str, Any]) -> LoadResult:
        """Load a layered (v2) document. History is cleared on success."""
        try:
            session = SessionDataV2.from_api_dict(data)
        except DocumentFormatError as e:
            logger.warning(f"Rejected layered document: {e}")
            return False, str(e)
        self._load_session(session)
        return True, None

    def load(self, raw: Any) -> LoadResult:
        """Detect the format of a raw document and load it."""
        try:
            session = decode_session(raw)
        except DocumentFormatError as e:
            logger.warning(f"Rejected document: {e}")
            return False, str(e)
        self._load_session(session)
        return True, None

    def detect_format_version(self, raw: Any) -> FormatVersion:
        return detect_format_version(raw)

    def _load_session(self, session: Union[SessionData, SessionDataV2]) -> None:
        state = ProjectState(
            width=session.canvas.width,
            height=session.canvas.height,
            background_color=session.canvas.canvas_background_color,
            show_grid=session.canvas.show_grid,
        )
        if session.name:
            state.name = session.name
        state.description = session.description or ''
        if session.tools is not None:
            state.tool_state = session.tools
        if session.typography is not None:
            state.typography = session.typography

        if isinstance(session, SessionDataV2):
            state.layers = session.layers
            state.layer_groups = session.layer_groups
            state.timeline = TimelineConfig(
                frame_rate=session.timeline.frame_rate,
                duration_frames=session.timeline.duration_frames,
            )
            state.frame_rate = session.timeline.frame_rate
            if session.timeline.looping is not None:
                state.looping = session.timeline.looping
            state.active_layer_id = session.layers[0].id
        else:
            animation = session.animation
            state.frames = animation.frames
            state.current_frame_index = animation.current_frame_index
            if animation.frame_rate is not None:
                state.frame_rate = animation.frame_rate
            if animation.looping is not None:
                state.looping = animation.looping

        self._replace_state(state)
        logger.info(
            f"Loaded {session.FORMAT.value} project '{state.name}' "
            f"({state.width}x{state.height})"
        )
        self.notify('load', {'format': session.FORMAT.value, 'name': state.name})

    def _canvas_settings(self) -> CanvasSettings:
        return CanvasSettings(
            width=self.state.width,
            height=self.state.height,
            canvas_background_color=self.state.background_color,
            show_grid=self.state.show_grid,
        )

    def serialize_flat(self) -> dict[str, Any]:
        """Serialize to the flat (v1) format."""
        state = self.state
        session = SessionData(
            name=state.name,
            description=state.description or None,
            canvas=self._canvas_settings(),
            animation=AnimationSettings(
                frames=state.frames,
                current_frame_index=min(state.current_frame_index, len(state.frames) - 1),
                frame_rate=state.frame_rate,
                looping=state.looping,
            ),
            tools=state.tool_state,
            typography=state.typography,
        )
        return session.to_api_dict()

    def serialize_layered(self) -> dict[str, Any]:
        """
        Serialize to the layered (v2) format.

        Raises:
            DocumentFormatError: If the document has no layers
        """
        state = self.state
        if not state.is_layer_mode:
            raise DocumentFormatError("Layered format requires at least one layer")
        session = SessionDataV2(
            name=state.name,
            description=state.description or None,
            canvas=self._canvas_settings(),
            timeline=TimelineSettings(
                frame_rate=state.timeline.frame_rate,
                duration_frames=state.timeline.duration_frames,
                looping=state.looping,
            ),
            layers=state.layers,
            layer_groups=state.layer_groups,
            tools=state.tool_state,
            typography=state.typography,
        )
        return session.to_api_dict()

    def serialize(self) -> dict[str, Any]:
        """Serialize in the format matching the current mode."""
        if self.state.is_layer_mode:
            return self.serialize_layered()
        return self.serialize_flat()

    def save(self, path: Union[str, Path]) -> Path:
        """
        Write the document to a project file and mark it clean.

        The project file extension is appended when missing.
        """
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(settings.PROJECT_FILE_EXTENSION)
        written = write_session_file(path, self.serialize())
        self.state.file_path = str(written)
        self.state.is_dirty = False
        self.notify('save', {'path': str(written)})
        return written

    def open(self, path: Union[str, Path]) -> LoadResult:
        """Load a project file. The file path is remembered on success."""
        try:
            raw = read_session_file(path)
        except DocumentFormatError as e:
            logger.warning(f"Could not open project: {e}")
            return False, str(e)
        ok, error = self.load(raw)
        if ok:
            self.state.file_path = str(path)
        return ok, error

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    @property
    def is_layer_mode(self) -> bool:
        return self.state.is_layer_mode

    @property
    def current_frame(self) -> Optional[Frame]:
        if self.state.is_layer_mode:
            return None
        return self.state.current_frame
