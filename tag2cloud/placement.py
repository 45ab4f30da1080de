"""
Collision test, merge and spiral search for tag masks.
"""

# Standard Library
import random

# local repo modules
import tag2cloud as t2c
import tag2cloud.bitgrid
import tag2cloud.config


OccupancyGrid = t2c.bitgrid.OccupancyGrid
BoundaryMode = t2c.config.BoundaryMode
PlacementConfig = t2c.config.PlacementConfig

WORD_BITS = t2c.config.WORD_BITS
WORD_MASK = t2c.config.WORD_MASK


#============================================
def compute_cell_origin(x: float, y: float, pixel_ratio: int) -> tuple[int, int, int]:
	"""
	Convert a pixel position into grid coordinates.

	Args:
		x: Pixel x of the mask's top-left corner.
		y: Pixel y of the mask's top-left corner.
		pixel_ratio: Pixels per cell side.

	Returns:
		Tuple of (cell_y, word_x, bit_offset).
	"""
	cell_x = int(x // pixel_ratio)
	cell_y = int(y // pixel_ratio)
	return (cell_y, cell_x // WORD_BITS, cell_x % WORD_BITS)


#============================================
def collides(
	grid: OccupancyGrid,
	mask: OccupancyGrid,
	x: float,
	y: float,
	mode: BoundaryMode,
) -> bool:
	"""
	Test whether a mask placed at a pixel position overlaps the grid.

	Args:
		grid: Global occupancy grid.
		mask: Tag mask.
		x: Pixel x of the mask's top-left corner.
		y: Pixel y of the mask's top-left corner.
		mode: Boundary mode for cells outside the grid.

	Returns:
		True on overlap.
	"""
	cell_y, word_x, bit_offset = compute_cell_origin(x, y, grid.pixel_ratio)
	out_word = mode.out_word()
	back_shift = WORD_BITS - bit_offset
	for i, mask_words in enumerate(mask.rows):
		row = cell_y + i
		for j, mask_word in enumerate(mask_words):
			if not mask_word:
				continue
			current = grid.word(row, word_x + j, out_word)
			window = (current << bit_offset) & WORD_MASK
			if bit_offset:
				following = grid.word(row, word_x + j + 1, out_word)
				window |= following >> back_shift
			if window & mask_word:
				return True
	return False


#============================================
def merge_mask(grid: OccupancyGrid, mask: OccupancyGrid, x: float, y: float) -> None:
	"""
	OR a mask into the grid at a pixel position, dropping cells outside.
	"""
	cell_y, word_x, bit_offset = compute_cell_origin(x, y, grid.pixel_ratio)
	back_shift = WORD_BITS - bit_offset
	for i, mask_words in enumerate(mask.rows):
		row = cell_y + i
		if row < 0 or row >= len(grid.rows):
			continue
		grid_words = grid.rows[row]
		word_count = len(grid_words)
		for j, mask_word in enumerate(mask_words):
			if not mask_word:
				continue
			column = word_x + j
			if 0 <= column < word_count:
				grid_words[column] |= mask_word >> bit_offset
			if bit_offset and 0 <= column + 1 < word_count:
				grid_words[column + 1] |= (mask_word << back_shift) & WORD_MASK


#============================================
def try_place(
	grid: OccupancyGrid,
	mask: OccupancyGrid,
	x: float,
	y: float,
	mode: BoundaryMode,
) -> bool:
	"""
	Place a mask if it fits, merging it into the grid.

	The grid is only written after the whole mask has been tested.

	Args:
		grid: Global occupancy grid.
		mask: Tag mask.
		x: Pixel x of the mask's top-left corner.
		y: Pixel y of the mask's top-left corner.
		mode: Boundary mode for cells outside the grid.

	Returns:
		True if the mask was placed.
	"""
	if collides(grid, mask, x, y, mode):
		return False
	merge_mask(grid, mask, x, y)
	return True


#============================================
def compute_search_limit(start_x: int, start_y: int, config: PlacementConfig) -> int:
	"""
	Compute the ring bound for the spiral search.
	"""
	reach = max(start_x, config.width - start_x, start_y, config.height - start_y)
	return int(reach / config.pixel_ratio + 1)


#============================================
def place(
	grid: OccupancyGrid,
	mask: OccupancyGrid,
	config: PlacementConfig,
	rng: random.Random | None = None,
) -> tuple[int, int] | None:
	"""
	Search outward from the canvas center for a free position.

	The search walks rectangular rings whose vertical legs are scaled
	by the canvas aspect ratio, and stops at the first fit.

	Args:
		grid: Global occupancy grid, merged into on success.
		mask: Tag mask.
		config: Placement configuration.
		rng: Random source for the initial spiral directions.

	Returns:
		Top-left pixel position, or None when the search is exhausted.
	"""
	if rng is None:
		rng = random.Random()
	width = config.width
	height = config.height
	pixel_ratio = config.pixel_ratio
	mode = config.mode
	mask_width = mask.width
	mask_height = mask.height

	start_x = int((width - mask_width) / 2)
	start_y = int((height - mask_height) / 2)
	if try_place(grid, mask, start_x, start_y, mode):
		return (start_x, start_y)

	end_len = compute_search_limit(start_x, start_y, config)
	x = start_x
	y = start_y
	x_dir = 1 if rng.random() < 0.5 else -1
	y_dir = 1 if rng.random() < 0.5 else -1
	aspect = height / width

	step = 1
	while step // 2 < end_len:
		if y < -mask_height or y > height:
			x += x_dir * pixel_ratio * step
		else:
			for _ in range(step):
				x += x_dir * pixel_ratio
				if x < -mask_width or x > width:
					continue
				if try_place(grid, mask, x, y, mode):
					return (x, y)
		x_dir = -x_dir

		rest = int(step * aspect)
		if x < -mask_width or x > width:
			y += y_dir * pixel_ratio * rest
		else:
			for _ in range(rest):
				y += y_dir * pixel_ratio
				if y < -mask_height or y > height:
					continue
				if try_place(grid, mask, x, y, mode):
					return (x, y)
		y_dir = -y_dir
		step += 1
	return None
