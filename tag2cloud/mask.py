"""
Build occupancy masks from rasterized pixels.
"""

# Standard Library
import pathlib
import typing

# PIP3 modules
import PIL.Image
import PIL.ImageDraw

# local repo modules
import tag2cloud as t2c
import tag2cloud.bitgrid
import tag2cloud.config
import tag2cloud.raster


OccupancyGrid = t2c.bitgrid.OccupancyGrid
BoundaryMode = t2c.config.BoundaryMode
PlacementConfig = t2c.config.PlacementConfig
TextRasterizer = t2c.raster.TextRasterizer

FREE_WORD = t2c.config.FREE_WORD
FULL_WORD = t2c.config.FULL_WORD
TAG_OPACITY_THRESHOLD = t2c.config.TAG_OPACITY_THRESHOLD
TAG_LIGHT_THRESHOLD = t2c.config.TAG_LIGHT_THRESHOLD
TAG_MASK_COLOR = t2c.config.TAG_MASK_COLOR


class OversizedTagError(Exception):
	"""
	A tag's rotated bounding box does not fit on the canvas.
	"""

	def __init__(self, text: str, width: int, height: int, canvas_width: int, canvas_height: int):
		super().__init__(
			f"Tag {text!r} needs {width}x{height} px, canvas is {canvas_width}x{canvas_height} px"
		)
		self.text = text
		self.width = width
		self.height = height


class MaskSourceError(Exception):
	"""
	The mask image could not be loaded.
	"""


#============================================
def cell_has_ink(
	data: bytes,
	stride: int,
	x0: int,
	x1: int,
	y0: int,
	y1: int,
	opacity_threshold: int,
	light_threshold: int,
) -> bool:
	"""
	Check whether any pixel of a block counts as ink.

	Args:
		data: Raw RGBA bytes.
		stride: Bytes per image row.
		x0: First pixel column.
		x1: Pixel column end (exclusive).
		y0: First pixel row.
		y1: Pixel row end (exclusive).
		opacity_threshold: Minimum alpha for ink.
		light_threshold: Maximum R+G+B for ink.

	Returns:
		True if the block contains ink.
	"""
	for y in range(y0, y1):
		row_start = y * stride
		for pos in range(row_start + x0 * 4, row_start + x1 * 4, 4):
			if data[pos + 3] < opacity_threshold:
				continue
			if data[pos] + data[pos + 1] + data[pos + 2] > light_threshold:
				continue
			return True
	return False


#============================================
def downsample_ink(
	image: PIL.Image.Image,
	pixel_ratio: int,
	opacity_threshold: int,
	light_threshold: int,
	fill: int = FREE_WORD,
	for_tag: bool = True,
	mode: BoundaryMode = BoundaryMode.STRICT,
) -> OccupancyGrid:
	"""
	Downsample an image into a grid of ink cells.

	With a free fill, ink cells become occupied. With a full fill, ink
	cells become free, so the ink outlines where tags may go.

	Args:
		image: Source image.
		pixel_ratio: Pixels per cell side.
		opacity_threshold: Minimum alpha for ink.
		light_threshold: Maximum R+G+B for ink.
		fill: FREE_WORD or FULL_WORD.
		for_tag: True for a tag mask.
		mode: Boundary mode for the global grid tail bits.

	Returns:
		OccupancyGrid.
	"""
	if image.mode != "RGBA":
		image = image.convert("RGBA")
	width, height = image.size
	data = image.tobytes()
	stride = width * 4
	grid = t2c.bitgrid.create_grid(width, height, pixel_ratio, fill, for_tag, mode)
	mark_occupied = fill == FREE_WORD

	for cell_y in range(grid.cell_rows):
		y0 = cell_y * pixel_ratio
		y1 = min(y0 + pixel_ratio, height)
		for cell_x in range(grid.cell_columns):
			x0 = cell_x * pixel_ratio
			x1 = min(x0 + pixel_ratio, width)
			if cell_has_ink(data, stride, x0, x1, y0, y1, opacity_threshold, light_threshold):
				grid.set_cell(cell_x, cell_y, mark_occupied)
	return grid


#============================================
def build_tag_mask(
	rasterizer: TextRasterizer,
	text: str,
	font_size: int,
	angle: float,
	config: PlacementConfig,
) -> OccupancyGrid:
	"""
	Build the ink mask of one rotated tag.

	Args:
		rasterizer: Text rasterizer.
		text: Tag text.
		font_size: Font size in pixels.
		angle: Rotation in degrees.
		config: Placement configuration.

	Returns:
		Tag mask sized to the rotated bounding box.

	Raises:
		OversizedTagError: When the box is larger than the canvas.
	"""
	box = rasterizer.measure(text, font_size, angle, config.padding)
	if box.width > config.width or box.height > config.height:
		raise OversizedTagError(text, box.width, box.height, config.width, config.height)
	raster = rasterizer.rasterize(text, font_size, angle, TAG_MASK_COLOR, config.padding, box=box)
	return downsample_ink(
		raster.image,
		config.pixel_ratio,
		TAG_OPACITY_THRESHOLD,
		TAG_LIGHT_THRESHOLD,
		FREE_WORD,
		True,
		config.mode,
	)


#============================================
def open_mask_image(
	source: "str | pathlib.Path | PIL.Image.Image",
	width: int,
	height: int,
) -> PIL.Image.Image:
	"""
	Load a mask image and stretch it over the canvas.

	Args:
		source: Image path or open image.
		width: Canvas width.
		height: Canvas height.

	Returns:
		RGBA image at canvas size.

	Raises:
		MaskSourceError: When the image cannot be read.
	"""
	if isinstance(source, PIL.Image.Image):
		image = source
	else:
		try:
			image = PIL.Image.open(pathlib.Path(source))
			image.load()
		except OSError as error:
			raise MaskSourceError(f"Cannot load mask image {source}: {error}") from error
	image = image.convert("RGBA")
	if image.size != (width, height):
		image = image.resize((width, height), PIL.Image.Resampling.BILINEAR)
	return image


#============================================
def build_initial_grid(config: PlacementConfig, mask_image: PIL.Image.Image | None = None) -> OccupancyGrid:
	"""
	Build the global grid a new cloud starts from.

	Args:
		config: Placement configuration.
		mask_image: Canvas sized mask image, or None for an empty canvas.

	Returns:
		OccupancyGrid.
	"""
	if mask_image is None:
		return t2c.bitgrid.create_grid(
			config.width,
			config.height,
			config.pixel_ratio,
			FREE_WORD,
			False,
			config.mode,
		)
	return downsample_ink(
		mask_image,
		config.pixel_ratio,
		config.opacity_threshold,
		config.light_threshold,
		FULL_WORD,
		False,
		config.mode,
	)


#============================================
def load_mask_grid(config: PlacementConfig) -> OccupancyGrid:
	"""
	Load the configured mask image and build the global grid from it.

	Raises:
		MaskSourceError: When the image cannot be read.
	"""
	image = open_mask_image(config.mask_image, config.width, config.height)
	return build_initial_grid(config, image)


#============================================
def build_shape_grid(
	draw_callback: typing.Callable[[PIL.ImageDraw.ImageDraw], None],
	config: PlacementConfig,
) -> OccupancyGrid:
	"""
	Build the global grid from a caller-drawn silhouette.

	Args:
		draw_callback: Receives an ImageDraw over a transparent canvas.
		config: Placement configuration.

	Returns:
		OccupancyGrid where only drawn cells are free.
	"""
	image = PIL.Image.new("RGBA", (config.width, config.height), (0, 0, 0, 0))
	draw = PIL.ImageDraw.Draw(image)
	draw_callback(draw)
	return downsample_ink(
		image,
		config.pixel_ratio,
		TAG_OPACITY_THRESHOLD,
		TAG_LIGHT_THRESHOLD,
		FULL_WORD,
		False,
		config.mode,
	)
