"""Tests for the undo/redo history stack."""

import pytest

from asciiforge import History, HistoryCorruptError, HistoryEntry


class Document:
    """Minimal document whose state is a single dict."""

    def __init__(self):
        self.values = {}
        self.history = History(self.apply, max_size=3)

    def apply(self, snapshot):
        self.values = dict(snapshot)

    def set(self, key, value):
        before = dict(self.values)
        self.values[key] = value
        self.history.push(HistoryEntry(
            kind='set', description=f"Set {key}", before=before, after=dict(self.values),
        ))


class TestHistory:
    """Tests for History."""

    def test_empty_history(self):
        doc = Document()
        assert not doc.history.can_undo()
        assert not doc.history.can_redo()
        assert doc.history.undo() is False
        assert doc.history.redo() is False

    def test_undo_redo_inverse(self):
        """Undo then redo returns to the same state."""
        doc = Document()
        doc.set('a', 1)
        doc.set('b', 2)
        after = dict(doc.values)

        assert doc.history.undo()
        assert doc.values == {'a': 1}
        assert doc.history.redo()
        assert doc.values == after

    def test_push_truncates_redo_branch(self):
        doc = Document()
        doc.set('a', 1)
        doc.set('b', 2)
        doc.history.undo()
        doc.set('c', 3)

        assert not doc.history.can_redo()
        assert len(doc.history) == 2
        assert doc.history.entries[-1].description == 'Set c'

    def test_capacity_evicts_oldest(self):
        """Pushing past capacity drops the oldest entry."""
        doc = Document()
        for index in range(5):
            doc.set(f"k{index}", index)

        assert len(doc.history) == 3
        assert doc.history.cursor == 2
        assert [e.description for e in doc.history.entries] == ['Set k2', 'Set k3', 'Set k4']

        while doc.history.undo():
            pass
        assert doc.values == {'k0': 0, 'k1': 1}

    def test_info(self):
        doc = Document()
        doc.set('a', 1)
        doc.set('b', 2)
        doc.history.undo()

        info = doc.history.info()
        assert info.can_undo
        assert info.can_redo
        assert info.undo_description == 'Set a'
        assert info.redo_description == 'Set b'
        assert info.model_dump(by_alias=True)['canRedo'] is True

    def test_clear(self):
        doc = Document()
        doc.set('a', 1)
        doc.history.clear()
        assert len(doc.history) == 0
        assert not doc.history.can_undo()

    def test_cursor_outside_stack_is_corrupt(self):
        doc = Document()
        doc.set('a', 1)
        doc.history._cursor = 5
        with pytest.raises(HistoryCorruptError):
            doc.history.undo()

    def test_failed_apply_keeps_cursor(self):
        """A failing apply leaves the cursor where it was."""
        def apply(snapshot):
            raise HistoryCorruptError("gone")

        history = History(apply)
        history.push(HistoryEntry(kind='x', description='x'))
        with pytest.raises(HistoryCorruptError):
            history.undo()
        assert history.cursor == 0

    def test_failed_redo_keeps_cursor(self):
        broken = []

        def apply(snapshot):
            if broken:
                raise HistoryCorruptError("gone")

        history = History(apply)
        history.push(HistoryEntry(kind='x', description='x'))
        assert history.undo()
        broken.append(True)
        with pytest.raises(HistoryCorruptError):
            history.redo()
        assert history.cursor == -1
        assert history.can_redo()

    def test_to_list(self):
        doc = Document()
        doc.set('a', 1)
        entries = doc.history.to_list()
        assert entries[0]['kind'] == 'set'
        assert entries[0]['after'] == {'a': 1}
