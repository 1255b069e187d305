"""Exception classes for the document engine."""


class EngineError(Exception):
    """Base exception for engine errors."""

    pass


class DocumentFormatError(EngineError):
    """Raised when a persisted document cannot be decoded."""

    pass


class HistoryCorruptError(EngineError):
    """Raised when the history stack no longer matches the document."""

    pass
