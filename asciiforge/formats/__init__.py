"""Asciiforge file formats.

This module contains the persisted document models and file I/O helpers.
"""

from .session import (
    AnimationSettings,
    AnySession,
    CanvasSettings,
    FLAT_VERSION,
    FormatVersion,
    LAYERED_VERSION,
    SessionData,
    SessionDataV2,
    TimelineSettings,
    decode_session,
    detect_format_version,
    read_session_file,
    write_session_file,
)

__all__ = [
    # Documents
    'SessionData',
    'SessionDataV2',
    'AnySession',
    'CanvasSettings',
    'AnimationSettings',
    'TimelineSettings',
    'FLAT_VERSION',
    'LAYERED_VERSION',
    # Detection
    'FormatVersion',
    'detect_format_version',
    'decode_session',
    # File I/O
    'read_session_file',
    'write_session_file',
]
