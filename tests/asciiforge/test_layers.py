"""Tests for layers, content frames and groups."""

import pytest


@pytest.fixture
def layer(layered_engine):
    return layered_engine.layers.get_layers()[0]


def empty_layer(engine, layer):
    """Remove the default [0, 1) content frame of a layer."""
    engine.layers.remove_content_frame(layer.id, layer.content_frames[0].id)
    return layer


class TestLayerMode:
    """Adding the first layer switches the document to layered mode."""

    def test_first_layer(self, engine):
        assert not engine.is_layer_mode
        layer = engine.layers.add_layer()
        assert engine.is_layer_mode
        assert layer.name == 'Layer 1'
        assert engine.state.active_layer_id == layer.id
        assert engine.current_frame is None

    def test_default_layer_content(self, layer, layered_engine):
        assert len(layer.content_frames) == 1
        content_frame = layer.content_frames[0]
        assert (content_frame.start_frame, content_frame.duration_frames) == (0, 1)
        assert layered_engine.layers.get_active_content_frame() is content_frame

    def test_undo_first_layer_returns_to_flat(self, engine):
        engine.layers.add_layer()
        engine.undo()
        assert not engine.is_layer_mode
        assert engine.state.active_layer_id is None
        assert engine.current_frame is not None

    def test_canvas_edits_go_to_content_frame(self, layered_engine, layer, star):
        assert layered_engine.canvas.set_cell(1, 1, star)
        assert '1,1' in layer.content_frames[0].data
        assert layered_engine.state.frames[0].data == {}

    def test_no_content_at_position(self, layered_engine, star):
        """Positions without a content frame reject edits."""
        layered_engine.frames.go_to_frame(5)
        assert not layered_engine.canvas.set_cell(1, 1, star)
        assert layered_engine.canvas.get_cell(1, 1).is_empty()

    def test_locked_layer_rejects_edits(self, layered_engine, layer, star):
        layered_engine.layers.set_layer_locked(layer.id, True)
        assert not layered_engine.canvas.set_cell(1, 1, star)


class TestLayers:
    """Tests for layer stack operations."""

    def test_add_layer_names(self, layered_engine):
        second = layered_engine.layers.add_layer()
        assert second.name == 'Layer 2'
        assert layered_engine.layers.get_active_layer() is second

    def test_remove_layer(self, layered_engine, layer):
        second = layered_engine.layers.add_layer()
        assert layered_engine.layers.remove_layer(second.id)
        assert layered_engine.state.active_layer_id == layer.id

    def test_cannot_remove_last_layer(self, layered_engine, layer):
        assert not layered_engine.layers.remove_layer(layer.id)
        assert not layered_engine.layers.remove_layer('missing')

    def test_duplicate_layer(self, layered_engine, layer, star):
        layered_engine.canvas.set_cell(0, 0, star)
        copy = layered_engine.layers.duplicate_layer(layer.id)

        assert copy.name == 'Background (copy)'
        assert copy.id != layer.id
        assert copy.content_frames[0].id != layer.content_frames[0].id
        assert copy.content_frames[0].data == layer.content_frames[0].data
        assert layered_engine.state.layers[1] is copy
        assert layered_engine.state.active_layer_id == copy.id

    def test_set_active_layer_not_recorded(self, layered_engine, layer):
        layered_engine.layers.add_layer()
        entries = len(layered_engine.history)
        layered_engine.mark_clean()

        assert layered_engine.layers.set_active_layer(layer.id)
        assert len(layered_engine.history) == entries
        assert not layered_engine.is_dirty
        assert not layered_engine.layers.set_active_layer('missing')

    def test_layer_flags(self, layered_engine, layer):
        assert layered_engine.layers.rename_layer(layer.id, 'Sky')
        assert layered_engine.layers.set_layer_visibility(layer.id, False)
        assert layered_engine.layers.set_layer_solo(layer.id, True)
        assert layered_engine.layers.set_layer_opacity(layer.id, 150)

        current = layered_engine.layers.get_layer(layer.id)
        assert current.name == 'Sky'
        assert not current.visible
        assert current.solo
        assert current.opacity == 100

        layered_engine.undo()
        layered_engine.undo()
        layered_engine.undo()
        assert layered_engine.layers.get_layer(layer.id).visible
        assert layered_engine.layers.get_layer(layer.id).name == 'Sky'

    def test_reorder_layers(self, layered_engine, layer):
        second = layered_engine.layers.add_layer()
        assert layered_engine.layers.reorder_layers(0, 1)
        assert [item.id for item in layered_engine.state.layers] == [second.id, layer.id]
        assert not layered_engine.layers.reorder_layers(1, 1)
        assert not layered_engine.layers.reorder_layers(0, 2)


class TestContentFrames:
    """Content frames never overlap on a layer."""

    def test_overlap_rejected(self, layered_engine, layer):
        empty_layer(layered_engine, layer)
        first = layered_engine.layers.add_content_frame(layer.id, 0, 5)
        assert first is not None
        assert layered_engine.layers.add_content_frame(layer.id, 3, 5) is None

        adjacent = layered_engine.layers.add_content_frame(layer.id, 5, 3)
        assert adjacent is not None
        assert [cf.id for cf in layer.content_frames] == [first.id, adjacent.id]

    def test_invalid_placement(self, layered_engine, layer):
        assert layered_engine.layers.add_content_frame(layer.id, -1, 2) is None
        assert layered_engine.layers.add_content_frame('missing', 4, 2) is None
        assert layered_engine.layers.add_content_frame(layer.id, 4, 2, data={'x': {}}) is None

    def test_timeline_grows(self, layered_engine, layer):
        layered_engine.layers.add_content_frame(layer.id, 10, 10)
        assert layered_engine.state.timeline.duration_frames == 20
        layered_engine.undo()
        assert layered_engine.state.timeline.duration_frames == 12

    def test_kept_sorted(self, layered_engine, layer):
        late = layered_engine.layers.add_content_frame(layer.id, 8, 2)
        early = layered_engine.layers.add_content_frame(layer.id, 2, 2)
        assert [cf.id for cf in layer.content_frames][1:] == [early.id, late.id]

    def test_update_timing(self, layered_engine, layer):
        moved = layered_engine.layers.add_content_frame(layer.id, 4, 2)
        assert not layered_engine.layers.update_content_frame_timing(layer.id, moved.id, 0, 2)
        assert layered_engine.layers.update_content_frame_timing(layer.id, moved.id, 5, 3)
        assert (moved.start_frame, moved.duration_frames) == (5, 3)

    def test_update_data(self, layered_engine, layer):
        content_frame = layer.content_frames[0]
        assert layered_engine.layers.update_content_frame_data(
            layer.id, content_frame.id, {'2,2': {'char': '%'}}
        )
        assert layered_engine.canvas.get_cell(2, 2).char == '%'
        layered_engine.undo()
        assert content_frame.data == {}

    def test_hidden_content_frame_not_active(self, layered_engine, layer):
        content_frame = layer.content_frames[0]
        assert layered_engine.layers.set_content_frame_hidden(layer.id, content_frame.id, True)
        assert layered_engine.layers.get_active_content_frame() is None
        layered_engine.layers.set_content_frame_hidden(layer.id, content_frame.id, False)
        assert content_frame.hidden is None


class TestGroups:
    """Groups reference layers without owning them."""

    def test_create_group(self, layered_engine, layer):
        second = layered_engine.layers.add_layer()
        group = layered_engine.layers.create_group('Scene', [layer.id, second.id, 'missing'])

        assert group.child_layer_ids == [layer.id, second.id]
        assert layer.parent_group_id == group.id
        assert layered_engine.layers.get_groups() == [group]

    def test_regrouping_moves_layer(self, layered_engine, layer):
        first = layered_engine.layers.create_group('A', [layer.id])
        second = layered_engine.layers.create_group('B', [layer.id])
        groups = layered_engine.layers.get_groups()
        assert [g.id for g in groups] == [second.id]
        assert first.id not in [g.id for g in groups]

    def test_removing_layer_drops_empty_group(self, layered_engine, layer):
        second = layered_engine.layers.add_layer()
        layered_engine.layers.create_group('Solo', [second.id])
        layered_engine.layers.remove_layer(second.id)
        assert layered_engine.layers.get_groups() == []

    def test_ungroup(self, layered_engine, layer):
        group = layered_engine.layers.create_group('G', [layer.id])
        assert layered_engine.layers.ungroup_layers(group.id)
        assert layered_engine.layers.get_layer(layer.id).parent_group_id is None
        assert layered_engine.layers.get_groups() == []
        assert len(layered_engine.state.layers) == 1

    def test_duplicate_joins_group(self, layered_engine, layer):
        group = layered_engine.layers.create_group('G', [layer.id])
        copy = layered_engine.layers.duplicate_layer(layer.id)
        assert layered_engine.state.get_group(group.id).child_layer_ids == [layer.id, copy.id]
