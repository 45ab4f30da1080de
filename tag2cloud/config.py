"""
Shared configuration, constants and tag records.
"""

# Standard Library
import dataclasses
import enum
import math
import pathlib


WORD_BITS = 32
WORD_MASK = 0xFFFFFFFF
FREE_WORD = 0
FULL_WORD = WORD_MASK

DEFAULT_WIDTH = 200
DEFAULT_HEIGHT = 200
DEFAULT_PIXEL_RATIO = 4
DEFAULT_LIGHT_THRESHOLD = (255 * 3) // 2
DEFAULT_OPACITY_THRESHOLD = 255
DEFAULT_MIN_FONT_SIZE = 10
DEFAULT_MAX_FONT_SIZE = 100
DEFAULT_ANGLE_FROM = -60.0
DEFAULT_ANGLE_TO = 60.0
DEFAULT_ANGLE_COUNT = 3
DEFAULT_FAMILY = "DejaVuSans.ttf"
DEFAULT_PDF_FONT = "Helvetica"
DEFAULT_PADDING = 5
DEFAULT_CUT = True
DEFAULT_BACKGROUND = "#FFFFFF"
YIELD_INTERVAL = 0.1

# ink rule for tag glyphs and caller-drawn shapes: any visible pixel
TAG_OPACITY_THRESHOLD = 2
TAG_LIGHT_THRESHOLD = 255 * 3
TAG_MASK_COLOR = "#000000"

PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 10


#============================================
def round_half_up(value: float) -> int:
	"""
	Round to the nearest integer, halves going up.
	"""
	return int(math.floor(value + 0.5))


class BoundaryMode(enum.Enum):
	STRICT = "strict"
	PERMISSIVE = "permissive"

	#============================================
	def out_word(self) -> int:
		"""
		Word value reported for cells outside the grid.
		"""
		if self is BoundaryMode.STRICT:
			return FULL_WORD
		return FREE_WORD


@dataclasses.dataclass
class PlacementConfig:
	width: int = DEFAULT_WIDTH
	height: int = DEFAULT_HEIGHT
	pixel_ratio: int = DEFAULT_PIXEL_RATIO
	cut: bool = DEFAULT_CUT
	padding: float = DEFAULT_PADDING
	mask_image: "str | pathlib.Path | PIL.Image.Image | None" = None
	light_threshold: int = DEFAULT_LIGHT_THRESHOLD
	opacity_threshold: int = DEFAULT_OPACITY_THRESHOLD
	min_font_size: int = DEFAULT_MIN_FONT_SIZE
	max_font_size: int = DEFAULT_MAX_FONT_SIZE
	angle_from: float = DEFAULT_ANGLE_FROM
	angle_to: float = DEFAULT_ANGLE_TO
	angle_count: int = DEFAULT_ANGLE_COUNT
	family: str = DEFAULT_FAMILY
	yield_interval: float = YIELD_INTERVAL
	seed: int | None = None
	background: str | None = DEFAULT_BACKGROUND

	def __post_init__(self) -> None:
		self.pixel_ratio = round_half_up(max(self.pixel_ratio, 1))

	@property
	def mode(self) -> BoundaryMode:
		if self.cut:
			return BoundaryMode.STRICT
		return BoundaryMode.PERMISSIVE

	#============================================
	def validate(self) -> None:
		"""
		Reject settings the layout cannot work with.

		Raises:
			ValueError: When a field is out of range.
		"""
		if self.width <= 0 or self.height <= 0:
			raise ValueError(f"Canvas size must be positive, got {self.width}x{self.height}")
		if self.angle_count < 1:
			raise ValueError(f"angle_count must be at least 1, got {self.angle_count}")
		if self.min_font_size > self.max_font_size:
			raise ValueError(
				f"min_font_size {self.min_font_size} exceeds max_font_size {self.max_font_size}"
			)
		if self.padding < 0:
			raise ValueError(f"padding must not be negative, got {self.padding}")


@dataclasses.dataclass
class Tag:
	text: str
	weight: float
	angle: float | None = None
	color: str | None = None


@dataclasses.dataclass
class TagResult:
	text: str
	weight: float
	angle: float
	font_size: int
	color: str
	x: float = math.nan
	y: float = math.nan
	rendered: bool = False
	width: int = 0
	height: int = 0

	#============================================
	def to_dict(self) -> dict:
		"""
		Convert to a JSON friendly dictionary.

		Returns:
			Dictionary with NaN coordinates replaced by None.
		"""
		data = dataclasses.asdict(self)
		if not self.rendered:
			data["x"] = None
			data["y"] = None
		return data
