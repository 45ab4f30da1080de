import random

import tag2cloud.bitgrid
import tag2cloud.config
import tag2cloud.placement


BoundaryMode = tag2cloud.config.BoundaryMode
PlacementConfig = tag2cloud.config.PlacementConfig
FULL_WORD = tag2cloud.config.FULL_WORD
FREE_WORD = tag2cloud.config.FREE_WORD


#============================================
def solid_mask(width: int, height: int, pixel_ratio: int = 4) -> tag2cloud.bitgrid.OccupancyGrid:
	"""
	Build a tag mask with every cell occupied.
	"""
	mask = tag2cloud.bitgrid.create_grid(width, height, pixel_ratio)
	for cell_y in range(mask.cell_rows):
		for cell_x in range(mask.cell_columns):
			mask.set_cell(cell_x, cell_y, True)
	return mask


#============================================
def global_grid(mode: BoundaryMode, width: int = 200, height: int = 200) -> tag2cloud.bitgrid.OccupancyGrid:
	"""
	Build an empty global grid.
	"""
	return tag2cloud.bitgrid.create_grid(width, height, 4, FREE_WORD, False, mode)


#============================================
def test_place_then_collide_at_same_position() -> None:
	"""
	A merged mask always collides with itself afterwards.
	"""
	grid = global_grid(BoundaryMode.STRICT)
	mask = solid_mask(40, 24)
	assert tag2cloud.placement.try_place(grid, mask, 80, 88, BoundaryMode.STRICT)
	assert not tag2cloud.placement.try_place(grid, mask, 80, 88, BoundaryMode.STRICT)
	assert grid.count_occupied() == 10 * 6


#============================================
def test_failed_placement_leaves_grid_untouched() -> None:
	"""
	A collision returns False without mutating the grid.
	"""
	grid = global_grid(BoundaryMode.STRICT)
	first = solid_mask(40, 24)
	assert tag2cloud.placement.try_place(grid, first, 80, 88, BoundaryMode.STRICT)
	snapshot = grid.copy()
	second = solid_mask(16, 16)
	for x, y in ((84, 80), (110, 100), (68, 96), (200, 0), (-8, 0)):
		assert not tag2cloud.placement.try_place(grid, second, x, y, BoundaryMode.STRICT)
		assert grid == snapshot


#============================================
def test_unaligned_offset_spans_word_boundary() -> None:
	"""
	A mask starting at cell 27 lands on cells 27-36 across two words.
	"""
	grid = tag2cloud.bitgrid.create_grid(256, 32, 4, FREE_WORD, False, BoundaryMode.STRICT)
	mask = solid_mask(40, 8)
	assert tag2cloud.placement.try_place(grid, mask, 27 * 4 + 3, 5, BoundaryMode.STRICT)
	for cell_y in range(grid.cell_rows):
		for cell_x in range(grid.cell_columns):
			expected = 1 <= cell_y <= 2 and 27 <= cell_x <= 36
			assert grid.is_set(cell_x, cell_y) == expected


#============================================
def test_adjacent_masks_do_not_collide() -> None:
	"""
	Masks that touch without sharing a cell both fit.
	"""
	grid = global_grid(BoundaryMode.STRICT)
	mask = solid_mask(40, 24)
	assert tag2cloud.placement.try_place(grid, mask, 20, 20, BoundaryMode.STRICT)
	assert tag2cloud.placement.try_place(grid, mask, 60, 20, BoundaryMode.STRICT)
	assert tag2cloud.placement.try_place(grid, mask, 20, 44, BoundaryMode.STRICT)
	assert not tag2cloud.placement.try_place(grid, mask, 56, 40, BoundaryMode.STRICT)


#============================================
def test_strict_mode_rejects_overhang() -> None:
	"""
	Strict grids treat everything outside the canvas as occupied.
	"""
	grid = global_grid(BoundaryMode.STRICT)
	mask = solid_mask(16, 16)
	snapshot = grid.copy()
	assert not tag2cloud.placement.try_place(grid, mask, -4, 40, BoundaryMode.STRICT)
	assert not tag2cloud.placement.try_place(grid, mask, 192, 40, BoundaryMode.STRICT)
	assert not tag2cloud.placement.try_place(grid, mask, 40, 188, BoundaryMode.STRICT)
	assert not tag2cloud.placement.try_place(grid, mask, 40, -4, BoundaryMode.STRICT)
	assert grid == snapshot
	assert tag2cloud.placement.try_place(grid, mask, 184, 184, BoundaryMode.STRICT)


#============================================
def test_permissive_mode_allows_overhang() -> None:
	"""
	Permissive grids accept overhang and keep only in-range cells.
	"""
	grid = global_grid(BoundaryMode.PERMISSIVE)
	mask = solid_mask(16, 16)
	assert tag2cloud.placement.try_place(grid, mask, -8, -8, BoundaryMode.PERMISSIVE)
	assert grid.count_occupied() == 4
	assert grid.is_set(0, 0) and grid.is_set(1, 1)
	assert tag2cloud.placement.try_place(grid, mask, 192, 100, BoundaryMode.PERMISSIVE)
	assert grid.count_occupied() == 4 + 8


#============================================
def test_place_starts_at_canvas_center() -> None:
	"""
	An empty canvas takes the first tag at its center.
	"""
	config = PlacementConfig(width=200, height=200, pixel_ratio=4)
	grid = global_grid(config.mode)
	mask = solid_mask(40, 24)
	position = tag2cloud.placement.place(grid, mask, config, random.Random(1))
	assert position == (80, 88)


#============================================
def test_place_spirals_around_occupied_center() -> None:
	"""
	A second tag lands next to the first without overlap.
	"""
	config = PlacementConfig(width=200, height=200, pixel_ratio=4)
	grid = global_grid(config.mode)
	mask = solid_mask(40, 24)
	first = tag2cloud.placement.place(grid, mask, config, random.Random(2))
	second = tag2cloud.placement.place(grid, mask, config, random.Random(2))
	assert first == (80, 88)
	assert second is not None
	x, y = second
	overlap_x = x < 80 + 40 and 80 < x + 40
	overlap_y = y < 88 + 24 and 88 < y + 24
	assert not (overlap_x and overlap_y)
	assert 0 <= x <= 160 and 0 <= y <= 176


#============================================
def test_place_reports_exhaustion() -> None:
	"""
	A fully occupied canvas yields None.
	"""
	config = PlacementConfig(width=200, height=200, pixel_ratio=4)
	grid = tag2cloud.bitgrid.create_grid(200, 200, 4, FULL_WORD, False, config.mode)
	snapshot = grid.copy()
	mask = solid_mask(16, 16)
	assert tag2cloud.placement.place(grid, mask, config, random.Random(3)) is None
	assert grid == snapshot


#============================================
def test_search_limit() -> None:
	"""
	The ring bound covers the farthest canvas edge in cells.
	"""
	config = PlacementConfig(width=200, height=100, pixel_ratio=4)
	assert tag2cloud.placement.compute_search_limit(80, 38, config) == 31
