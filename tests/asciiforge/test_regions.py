"""Tests for flood fill and match-based region search."""

from asciiforge.grid import EMPTY_CELL, Cell, cell_key
from asciiforge.regions import FillOptions, find_matching_cells, rectangle_keys


def accessor(grid):
    return lambda x, y: grid.get(cell_key(x, y), EMPTY_CELL)


def wall_grid(wall_x=5, height=10):
    return {cell_key(wall_x, y): Cell(char='#') for y in range(height)}


class TestFindMatchingCells:
    """Tests for find_matching_cells."""

    def test_empty_canvas_fills_everything(self):
        """A flood on an empty 10x10 canvas reaches all 100 cells."""
        keys = find_matching_cells(accessor({}), 0, 0, 10, 10)
        assert len(keys) == 100
        assert len(set(keys)) == 100

    def test_no_predicates_crosses_walls(self):
        """Without match flags every reachable cell matches, walls included."""
        keys = find_matching_cells(accessor(wall_grid()), 0, 0, 10, 10)
        assert len(keys) == 100

    def test_wall_splits_region(self):
        """Matching on the character stops at a wall of other characters."""
        options = FillOptions(match_char=True)
        keys = find_matching_cells(accessor(wall_grid()), 0, 0, 10, 10, options)
        assert len(keys) == 50
        assert all(int(key.split(',')[0]) < 5 for key in keys)

    def test_global_mode_ignores_connectivity(self):
        options = FillOptions(match_char=True, contiguous=False)
        keys = find_matching_cells(accessor(wall_grid()), 0, 0, 10, 10, options)
        assert len(keys) == 90
        assert cell_key(5, 0) not in keys

    def test_seed_on_wall(self):
        """Seeding on the wall selects only the wall."""
        options = FillOptions(match_char=True)
        keys = find_matching_cells(accessor(wall_grid()), 5, 3, 10, 10, options)
        assert sorted(keys) == sorted(cell_key(5, y) for y in range(10))

    def test_out_of_bounds_seed(self):
        assert find_matching_cells(accessor({}), 10, 0, 10, 10) == []
        assert find_matching_cells(accessor({}), -1, 0, 10, 10) == []

    def test_color_match(self):
        grid = {
            cell_key(0, 0): Cell(char='a', color='#FF0000'),
            cell_key(1, 0): Cell(char='b', color='#FF0000'),
            cell_key(2, 0): Cell(char='c', color='#00FF00'),
        }
        options = FillOptions(match_color=True)
        keys = find_matching_cells(accessor(grid), 0, 0, 4, 4, options)
        assert sorted(keys) == ['0,0', '1,0']

    def test_options_accept_camel_case(self):
        options = FillOptions.model_validate({'matchChar': True, 'matchBgColor': True, 'contiguous': False})
        assert options.match_char
        assert options.match_bg_color
        assert not options.contiguous


class TestRectangleKeys:
    def test_corners_in_any_order(self):
        assert rectangle_keys(1, 1, 0, 0) == ['0,0', '1,0', '0,1', '1,1']

    def test_single_cell(self):
        assert rectangle_keys(3, 4, 3, 4) == ['3,4']
