"""
Session documents - the two persisted project formats.

Flat format (v1):
{
    "version": "1.0.0",
    "name": "My Art",
    "description": "...",          (optional)
    "canvas": {"width": 80, "height": 24, "canvasBackgroundColor": "#000000", "showGrid": true},
    "animation": {"frames": [...], "currentFrameIndex": 0, "frameRate": 12, "looping": true},
    "tools": {...},
    "typography": {...}
}

Layered format (v2):
{
    "version": "2.0.0",
    "name": "My Art",
    "canvas": {...},
    "timeline": {"frameRate": 12, "durationFrames": 24, "looping": true},
    "layers": [...],
    "layerGroups": [...],
    "tools": {...},
    "typography": {...}
}

Both are plain JSON and stored in ``.asciimtn`` files.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asciiforge.exceptions import DocumentFormatError
from asciiforge.grid import HEX_COLOR_PATTERN, MAX_HEIGHT, MAX_WIDTH, MIN_HEIGHT, MIN_WIDTH
from asciiforge.layers import Frame, FrameRate, Layer, LayerGroup, Number
from asciiforge.state import ToolState, TypographySettings

logger = logging.getLogger(__name__)

FLAT_VERSION = '1.0.0'
LAYERED_VERSION = '2.0.0'


class FormatVersion(str, Enum):
    """Persisted document format identifiers."""
    FLAT = "flat"
    LAYERED = "layered"
    UNKNOWN = "unknown"


class CanvasSettings(BaseModel):
    """Canvas section shared by both formats."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    width: int = Field(ge=MIN_WIDTH, le=MAX_WIDTH)
    height: int = Field(ge=MIN_HEIGHT, le=MAX_HEIGHT)
    canvas_background_color: str = Field(
        default='#000000', alias='canvasBackgroundColor', pattern=HEX_COLOR_PATTERN
    )
    show_grid: bool = Field(default=True, alias='showGrid')


class AnimationSettings(BaseModel):
    """Flat-format animation section."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    frames: list[Frame] = Field(min_length=1)
    current_frame_index: int = Field(default=0, ge=0, alias='currentFrameIndex')
    frame_rate: Optional[Number] = Field(default=None, alias='frameRate')
    looping: Optional[bool] = Field(default=None)


class TimelineSettings(BaseModel):
    """Layered-format timeline section."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    frame_rate: FrameRate = Field(default=12, alias='frameRate')
    duration_frames: int = Field(default=12, ge=1, alias='durationFrames')
    looping: Optional[bool] = Field(default=None)


class _SessionBase(BaseModel):

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
    )

    FORMAT: ClassVar[FormatVersion] = FormatVersion.UNKNOWN

    name: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    canvas: CanvasSettings
    tools: Optional[ToolState] = Field(default=None)
    typography: Optional[TypographySettings] = Field(default=None)

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON structure (unset fields omitted)."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)

    @classmethod
    def migrate(cls, data: dict[str, Any]) -> dict[str, Any]:
        return data

    @classmethod
    def from_api_dict(cls, data: dict[str, Any]):
        """
        Validate a persisted document.

        Raises:
            DocumentFormatError: If the document does not match the schema
        """
        try:
            return cls.model_validate(cls.migrate(data))
        except (ValidationError, ValueError, TypeError) as e:
            raise DocumentFormatError(f"Invalid {cls.FORMAT.value} document: {e}") from e


class SessionData(_SessionBase):
    """Flat (v1) project document."""

    FORMAT: ClassVar[FormatVersion] = FormatVersion.FLAT

    version: str = Field(default=FLAT_VERSION)
    animation: AnimationSettings

    @classmethod
    def migrate(cls, data: dict[str, Any]) -> dict[str, Any]:
        """
        Fill in frame fields that older documents omit.

        Args:
            data: Serialized document

        Returns:
            Migrated document
        """
        data = dict(data)
        animation = data.get('animation')
        if isinstance(animation, dict):
            animation = dict(animation)
            frames = animation.get('frames') or []
            animation['frames'] = [
                Frame.migrate(frame, index) if isinstance(frame, dict) else frame
                for index, frame in enumerate(frames)
            ]
            data['animation'] = animation
        return data


class SessionDataV2(_SessionBase):
    """Layered (v2) project document."""

    FORMAT: ClassVar[FormatVersion] = FormatVersion.LAYERED

    version: str = Field(default=LAYERED_VERSION)
    timeline: TimelineSettings = Field(default_factory=TimelineSettings)
    layers: list[Layer] = Field(min_length=1)
    layer_groups: list[LayerGroup] = Field(default_factory=list, alias='layerGroups')


AnySession = Union[SessionData, SessionDataV2]


def detect_format_version(raw: Any) -> FormatVersion:
    """
    Determine which format a raw document uses.

    The explicit ``version`` field decides first ("2.x" with layers is
    layered, "1.x" is flat). Documents without a usable version fall back to
    structure: ``layers`` plus a version marker means layered, an
    ``animation`` section means flat.
    """
    if not isinstance(raw, dict):
        return FormatVersion.UNKNOWN

    version = raw.get('version')
    if isinstance(version, str):
        major = version.split('.', 1)[0]
        if major == '2' and 'layers' in raw:
            return FormatVersion.LAYERED
        if major == '1' and 'animation' in raw:
            return FormatVersion.FLAT

    if 'layers' in raw and version is not None:
        return FormatVersion.LAYERED
    if 'animation' in raw:
        return FormatVersion.FLAT
    return FormatVersion.UNKNOWN


_SESSION_CLASSES: dict[FormatVersion, type[_SessionBase]] = {
    FormatVersion.FLAT: SessionData,
    FormatVersion.LAYERED: SessionDataV2,
}


def decode_session(raw: Any) -> AnySession:
    """
    Decode a raw document into the matching session model.

    Raises:
        DocumentFormatError: If the format is unknown or the document is invalid
    """
    version = detect_format_version(raw)
    session_class = _SESSION_CLASSES.get(version)
    if session_class is None:
        raise DocumentFormatError("Unrecognized document format")
    return session_class.from_api_dict(raw)


def read_session_file(path: Union[str, Path]) -> dict[str, Any]:
    """
    Read a JSON project file.

    Raises:
        DocumentFormatError: If the file cannot be read or is not JSON
    """
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise DocumentFormatError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"{path} is not valid JSON: {e}") from e


def write_session_file(path: Union[str, Path], data: dict[str, Any]) -> Path:
    """
    Write a project document as indented JSON.

    Creates parent directories as needed.

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding='utf-8')
    logger.info(f"Wrote project file {path}")
    return path
