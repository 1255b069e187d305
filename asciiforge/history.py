"""
History - linear undo/redo stack of serializable commands.

Each entry stores the affected parts of the document before and after the
change as JSON-compatible snapshots. Undo applies ``before``, redo applies
``after``; the apply callback is supplied by the owner of the document.

Pushing after an undo discards the redo branch. When the stack exceeds its
capacity the oldest entry is dropped and the cursor moves with it.
"""

import logging
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import settings
from .exceptions import HistoryCorruptError

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]


class HistoryEntry(BaseModel):
    """A reversible record of one committed mutation."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    kind: str
    description: str = Field(default='')
    timestamp: float = Field(default_factory=time.time)
    before: Snapshot = Field(default_factory=dict)
    after: Snapshot = Field(default_factory=dict)


class HistoryInfo(BaseModel):
    """Undo/redo availability summary."""

    model_config = ConfigDict(populate_by_name=True)

    can_undo: bool = Field(alias='canUndo')
    can_redo: bool = Field(alias='canRedo')
    undo_description: Optional[str] = Field(default=None, alias='undoDescription')
    redo_description: Optional[str] = Field(default=None, alias='redoDescription')


class History:
    """Undo/redo stack with a cursor pointing at the last applied entry."""

    def __init__(
        self,
        apply: Callable[[Snapshot], None],
        max_size: int | None = None,
    ):
        self._apply = apply
        self._max_size = max(1, max_size or settings.MAX_HISTORY_SIZE)
        self._entries: list[HistoryEntry] = []
        self._cursor = -1

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> list[HistoryEntry]:
        """Entries oldest first (copy of the list)."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _check_cursor(self) -> None:
        if not -1 <= self._cursor < len(self._entries):
            raise HistoryCorruptError(
                f"History cursor {self._cursor} outside stack of {len(self._entries)}"
            )

    def push(self, entry: HistoryEntry) -> None:
        """Append an entry, dropping any redo branch and evicting overflow."""
        self._check_cursor()
        if self._cursor < len(self._entries) - 1:
            dropped = len(self._entries) - 1 - self._cursor
            del self._entries[self._cursor + 1:]
            logger.debug(f"Discarded {dropped} redo entries")
        self._entries.append(entry)
        self._cursor = len(self._entries) - 1
        if len(self._entries) > self._max_size:
            self._entries.pop(0)
            self._cursor -= 1

    def can_undo(self) -> bool:
        return self._cursor >= 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def undo(self) -> bool:
        """
        Revert the entry at the cursor.

        Returns:
            True if an entry was reverted, False if there was nothing to undo
        """
        self._check_cursor()
        if not self.can_undo():
            return False
        entry = self._entries[self._cursor]
        self._apply(entry.before)
        self._cursor -= 1
        logger.debug(f"Undo: {entry.description}")
        return True

    def redo(self) -> bool:
        """
        Re-apply the entry after the cursor.

        Returns:
            True if an entry was re-applied, False if there was nothing to redo
        """
        self._check_cursor()
        if not self.can_redo():
            return False
        entry = self._entries[self._cursor + 1]
        self._apply(entry.after)
        self._cursor += 1
        logger.debug(f"Redo: {entry.description}")
        return True

    def info(self) -> HistoryInfo:
        can_undo = self.can_undo()
        can_redo = self.can_redo()
        return HistoryInfo(
            can_undo=can_undo,
            can_redo=can_redo,
            undo_description=self._entries[self._cursor].description if can_undo else None,
            redo_description=self._entries[self._cursor + 1].description if can_redo else None,
        )

    def clear(self) -> None:
        self._entries = []
        self._cursor = -1

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize all entries (for inspection or persistence)."""
        return [entry.model_dump(mode='json') for entry in self._entries]
