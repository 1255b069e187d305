"""Tests for cell-level canvas editing."""

from asciiforge import EMPTY_CELL, Cell, FillOptions, ProjectEngine


class TestCells:
    """Tests for reading and writing single cells."""

    def test_set_and_get(self, engine, star):
        assert engine.canvas.set_cell(3, 4, star)
        assert engine.canvas.get_cell(3, 4) == star
        assert engine.state.cell_count() == 1

    def test_unset_cell_is_empty(self, engine):
        assert engine.canvas.get_cell(0, 0) is EMPTY_CELL

    def test_out_of_bounds(self, engine, star):
        assert engine.canvas.get_cell(20, 0) is None
        assert not engine.canvas.set_cell(20, 0, star)
        assert not engine.canvas.set_cell(0, -1, star)
        assert not engine.can_undo()

    def test_writing_empty_cell_removes_it(self, engine, star):
        """The grid never stores empty cells."""
        engine.canvas.set_cell(1, 1, star)
        engine.canvas.set_cell(1, 1, {'char': ' '})
        assert engine.current_frame.data == {}

    def test_set_cell_from_dict(self, engine):
        assert engine.canvas.set_cell(0, 0, {'char': '#', 'bgColor': '#0000FF'})
        assert engine.canvas.get_cell(0, 0).bg_color == '#0000FF'

    def test_invalid_cell_rejected(self, engine):
        assert not engine.canvas.set_cell(0, 0, {'char': 'too long'})
        assert engine.current_frame.data == {}

    def test_set_cells_skips_invalid_entries(self, engine, star):
        count = engine.canvas.set_cells({
            '0,0': star,
            '1,0': {'char': 'x'},
            'nope': star,
            '50,0': star,
            '2,0': {'color': 'red'},
        })
        assert count == 2
        assert set(engine.current_frame.data) == {'0,0', '1,0'}
        assert len(engine.history) == 1

    def test_set_cells_nothing_valid(self, engine):
        assert engine.canvas.set_cells({'99,99': {'char': 'x'}}) == 0
        assert not engine.can_undo()

    def test_clear_cell_and_canvas(self, engine, star):
        engine.canvas.set_cells({'0,0': star, '1,1': star})
        assert engine.canvas.clear_cell(0, 0)
        assert set(engine.current_frame.data) == {'1,1'}
        assert engine.canvas.clear_canvas()
        assert engine.current_frame.data == {}

    def test_get_grid_is_copy(self, engine, star):
        engine.canvas.set_cell(0, 0, star)
        grid = engine.canvas.get_grid()
        grid.clear()
        assert '0,0' in engine.current_frame.data


class TestUndoScenario:
    """Three edits on a 40x20 canvas, fully undone and redone."""

    def test_three_cells(self):
        engine = ProjectEngine()
        engine.new_project(40, 20)
        cells = {(0, 0): Cell(char='a'), (39, 19): Cell(char='b'), (10, 5): Cell(char='c')}
        for (x, y), cell in cells.items():
            engine.canvas.set_cell(x, y, cell)
        full = dict(engine.current_frame.data)
        assert len(full) == 3

        for _ in range(3):
            assert engine.undo()
        assert engine.current_frame.data == {}
        assert not engine.undo()

        for _ in range(3):
            assert engine.redo()
        assert engine.current_frame.data == full
        assert not engine.redo()

    def test_edit_after_undo_drops_redo(self, engine, star):
        engine.canvas.set_cell(0, 0, star)
        engine.canvas.set_cell(1, 0, star)
        engine.undo()
        engine.canvas.set_cell(2, 0, star)
        assert not engine.can_redo()
        assert set(engine.current_frame.data) == {'0,0', '2,0'}


class TestPasteText:
    def test_paste_multiline(self, engine):
        count = engine.canvas.paste_text("ab\n c", x=2, y=3, color='#00FF00')
        assert count == 3
        assert engine.canvas.get_cell(2, 3).char == 'a'
        assert engine.canvas.get_cell(3, 4).char == 'c'
        assert engine.canvas.get_cell(2, 4) is EMPTY_CELL
        assert engine.canvas.get_cell(3, 3).color == '#00FF00'

    def test_paste_clips_at_edge(self, engine):
        assert engine.canvas.paste_text("xyz", x=18, y=0) == 2


class TestResize:
    """Resizing clips every grid and is undoable."""

    def test_resize_clips(self, engine, star):
        engine.canvas.set_cells({'0,0': star, '15,0': star, '0,8': star})
        assert engine.canvas.resize(10, 5) == (10, 5)
        assert (engine.state.width, engine.state.height) == (10, 5)
        assert set(engine.current_frame.data) == {'0,0'}

    def test_resize_clamped(self, engine):
        assert engine.canvas.resize(1, 1000) == (4, 100)

    def test_resize_undo_restores_cells(self, engine, star):
        engine.canvas.set_cell(15, 0, star)
        engine.canvas.resize(10, 5)
        engine.undo()
        assert (engine.state.width, engine.state.height) == (20, 10)
        assert '15,0' in engine.current_frame.data

    def test_resize_clips_content_frames(self, layered_engine, star):
        layered_engine.canvas.set_cell(15, 0, star)
        layered_engine.canvas.resize(10, 10)
        assert layered_engine.layers.get_active_content_frame().data == {}


class TestFill:
    """Tests for paint-bucket fill."""

    def test_fill_empty_canvas(self, engine, star):
        assert engine.canvas.fill_region(0, 0, star) == 200
        assert len(engine.history) == 1

    def test_fill_stops_at_wall(self, engine, star):
        engine.canvas.set_cells({f"5,{y}": {'char': '#'} for y in range(10)})
        filled = engine.canvas.fill_region(0, 0, star, FillOptions(match_char=True))
        assert filled == 50
        assert engine.canvas.get_cell(4, 9) == star
        assert engine.canvas.get_cell(6, 0) is EMPTY_CELL

    def test_fill_out_of_bounds(self, engine, star):
        assert engine.canvas.fill_region(25, 0, star) == 0
        assert not engine.can_undo()


class TestShiftAndFlip:
    def test_shift_drops_cells(self, engine, star):
        engine.canvas.set_cells({'0,0': star, '19,0': star})
        assert engine.canvas.shift_content(1, 0) == (1, 1)
        assert set(engine.current_frame.data) == {'1,0'}

    def test_shift_wraps(self, engine, star):
        engine.canvas.set_cell(19, 9, star)
        assert engine.canvas.shift_content(1, 1, wrap=True) == (1, 0)
        assert set(engine.current_frame.data) == {'0,0'}

    def test_flip_horizontal(self, engine, star):
        engine.canvas.set_cell(0, 2, star)
        assert engine.canvas.flip_region('horizontal') == 1
        assert set(engine.current_frame.data) == {'19,2'}

    def test_flip_vertical_region(self, engine, star):
        engine.canvas.set_cells({'1,1': star, '8,8': star})
        assert engine.canvas.flip_region('vertical', region=(0, 0, 4, 4)) == 1
        assert set(engine.current_frame.data) == {'1,2', '8,8'}

    def test_flip_invalid(self, engine):
        assert engine.canvas.flip_region('diagonal') is None
        assert engine.canvas.flip_region('horizontal', region=(30, 30, 2, 2)) is None
