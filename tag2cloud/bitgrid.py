"""
Downsampled occupancy grids packed into 32-bit words.

Each row is a list of unsigned 32-bit words. Column c of a row is stored in
word c // 32 at bit 31 - c % 32, so the leftmost cell of a word is its most
significant bit.
"""

# Standard Library
import dataclasses
import math

# local repo modules
import tag2cloud as t2c
import tag2cloud.config


BoundaryMode = t2c.config.BoundaryMode

WORD_BITS = t2c.config.WORD_BITS
WORD_MASK = t2c.config.WORD_MASK
FREE_WORD = t2c.config.FREE_WORD
FULL_WORD = t2c.config.FULL_WORD


@dataclasses.dataclass
class OccupancyGrid:
	width: int
	height: int
	pixel_ratio: int
	rows: list[list[int]]

	@property
	def cell_columns(self) -> int:
		return math.ceil(self.width / self.pixel_ratio)

	@property
	def cell_rows(self) -> int:
		return len(self.rows)

	@property
	def words_per_row(self) -> int:
		if not self.rows:
			return 0
		return len(self.rows[0])

	#============================================
	def word(self, row: int, column: int, out_word: int) -> int:
		"""
		Read one word, or the boundary value when outside the grid.

		Args:
			row: Cell row index.
			column: Word column index.
			out_word: Value reported outside the grid.

		Returns:
			Word value.
		"""
		if row < 0 or row >= len(self.rows):
			return out_word
		words = self.rows[row]
		if column < 0 or column >= len(words):
			return out_word
		return words[column]

	#============================================
	def is_set(self, cell_x: int, cell_y: int) -> bool:
		"""
		Check whether a single cell is occupied.
		"""
		words = self.rows[cell_y]
		bit = WORD_BITS - 1 - cell_x % WORD_BITS
		return bool((words[cell_x // WORD_BITS] >> bit) & 1)

	#============================================
	def set_cell(self, cell_x: int, cell_y: int, occupied: bool) -> None:
		"""
		Set or clear a single cell.
		"""
		words = self.rows[cell_y]
		index = cell_x // WORD_BITS
		bit = 1 << (WORD_BITS - 1 - cell_x % WORD_BITS)
		if occupied:
			words[index] |= bit
		else:
			words[index] &= ~bit & WORD_MASK

	#============================================
	def count_occupied(self) -> int:
		"""
		Count occupied cells inside the true grid width.
		"""
		total = 0
		for cell_y in range(self.cell_rows):
			for cell_x in range(self.cell_columns):
				if self.is_set(cell_x, cell_y):
					total += 1
		return total

	#============================================
	def copy(self) -> "OccupancyGrid":
		return OccupancyGrid(
			width=self.width,
			height=self.height,
			pixel_ratio=self.pixel_ratio,
			rows=[list(words) for words in self.rows],
		)


#============================================
def compute_tail_word(fill: int, tail_offset: int, for_tag: bool, mode: BoundaryMode) -> int:
	"""
	Compute the last word of a row.

	Bits past the true width are forced to the boundary state for the
	global grid, and left alone for tag masks.

	Args:
		fill: Fill word for the row.
		tail_offset: Number of real cells in the last word (0 means all 32).
		for_tag: True when building a tag mask.
		mode: Boundary mode.

	Returns:
		Tail word value.
	"""
	if for_tag or tail_offset == 0:
		return fill
	if mode is BoundaryMode.STRICT:
		return fill | (WORD_MASK >> tail_offset)
	return fill & ((WORD_MASK << (WORD_BITS - tail_offset)) & WORD_MASK)


#============================================
def create_grid(
	width: int,
	height: int,
	pixel_ratio: int,
	fill: int = FREE_WORD,
	for_tag: bool = True,
	mode: BoundaryMode = BoundaryMode.STRICT,
) -> OccupancyGrid:
	"""
	Create an occupancy grid covering a pixel area.

	Args:
		width: Pixel width.
		height: Pixel height.
		pixel_ratio: Pixels per cell side.
		fill: FREE_WORD or FULL_WORD.
		for_tag: True for a tag mask, False for the global grid.
		mode: Boundary mode used for the tail bits of the global grid.

	Returns:
		OccupancyGrid.
	"""
	cell_columns = math.ceil(width / pixel_ratio)
	cell_rows = math.ceil(height / pixel_ratio)
	word_count = math.ceil(cell_columns / WORD_BITS)
	tail_word = compute_tail_word(fill, cell_columns % WORD_BITS, for_tag, mode)

	rows: list[list[int]] = []
	for _ in range(cell_rows):
		words = [fill] * word_count
		if word_count > 0:
			words[-1] = tail_word
		rows.append(words)
	return OccupancyGrid(width=width, height=height, pixel_ratio=pixel_ratio, rows=rows)


#============================================
def format_word(value: int) -> str:
	"""
	Format a word as a 32-character binary string.
	"""
	return format(value & WORD_MASK, "032b")


#============================================
def format_grid(grid: OccupancyGrid | None) -> str:
	"""
	Dump a grid as binary text, one line per row.

	Args:
		grid: Grid to dump.

	Returns:
		Multi-line string, each line suffixed with its row index.
	"""
	if grid is None:
		return ""
	lines = []
	for index, words in enumerate(grid.rows):
		lines.append("".join(format_word(word) for word in words) + f"_{index}")
	return "\n".join(lines)
