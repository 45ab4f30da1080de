"""
Text measurement and rasterization with Pillow.
"""

# Standard Library
import dataclasses
import functools
import math

# PIP3 modules
import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont

# local repo modules
import tag2cloud as t2c
import tag2cloud.config


DEFAULT_FAMILY = t2c.config.DEFAULT_FAMILY


@dataclasses.dataclass
class TagBox:
	text_width: float
	ascent: int
	descent: int
	width: int
	height: int


@dataclasses.dataclass
class RasterizedTag:
	image: PIL.Image.Image
	box: TagBox

	@property
	def width(self) -> int:
		return self.box.width

	@property
	def height(self) -> int:
		return self.box.height


#============================================
@functools.lru_cache(maxsize=128)
def load_font(family: str, size: int) -> PIL.ImageFont.FreeTypeFont | PIL.ImageFont.ImageFont:
	"""
	Load a font, falling back to the Pillow default font.

	Args:
		family: TrueType font file name or path.
		size: Font size in pixels.

	Returns:
		Pillow font object.
	"""
	size = max(1, int(size))
	try:
		return PIL.ImageFont.truetype(family, size)
	except OSError:
		return PIL.ImageFont.load_default(size=size)


#============================================
def font_metrics(font: PIL.ImageFont.FreeTypeFont | PIL.ImageFont.ImageFont) -> tuple[int, int]:
	"""
	Get ascent and descent for a font.

	Returns:
		Tuple of (ascent, descent) in pixels.
	"""
	if hasattr(font, "getmetrics"):
		ascent, descent = font.getmetrics()
		return (ascent, descent)
	bbox = font.getbbox("Ay")
	return (bbox[3], 0)


#============================================
def compute_rotated_box(
	text_width: float,
	line_height: float,
	angle: float,
	padding: float,
) -> tuple[int, int]:
	"""
	Compute the bounding box of padded text rotated by an angle.

	Args:
		text_width: Measured text width.
		line_height: Ascent plus descent.
		angle: Rotation in degrees, counter-clockwise.
		padding: Padding added to both dimensions.

	Returns:
		Tuple of (width, height) in whole pixels.
	"""
	theta = math.radians(-angle)
	sin_theta = math.sin(theta)
	cos_theta = math.cos(theta)
	width = text_width + padding
	height = line_height + padding
	# rounding first keeps cos(90) noise from adding a pixel
	box_width = math.ceil(round(abs(height * sin_theta) + abs(width * cos_theta), 6))
	box_height = math.ceil(round(abs(height * cos_theta) + abs(width * sin_theta), 6))
	return (box_width, box_height)


class TextRasterizer:
	"""
	Draw padded, rotated tag text onto transparent RGBA images.
	"""

	def __init__(self, family: str = DEFAULT_FAMILY):
		self.family = family

	#============================================
	def measure(self, text: str, font_size: int, angle: float, padding: float) -> TagBox:
		"""
		Measure a tag without drawing it.

		Args:
			text: Tag text.
			font_size: Font size in pixels.
			angle: Rotation in degrees.
			padding: Stroke width around the glyphs.

		Returns:
			TagBox with the rotated bounding box size.
		"""
		font = load_font(self.family, font_size)
		text_width = font.getlength(text)
		ascent, descent = font_metrics(font)
		width, height = compute_rotated_box(text_width, ascent + descent, angle, padding)
		return TagBox(
			text_width=text_width,
			ascent=ascent,
			descent=descent,
			width=width,
			height=height,
		)

	#============================================
	def rasterize(
		self,
		text: str,
		font_size: int,
		angle: float,
		color: str,
		padding: float,
		box: TagBox | None = None,
	) -> RasterizedTag:
		"""
		Draw a tag into an image the size of its rotated bounding box.

		Args:
			text: Tag text.
			font_size: Font size in pixels.
			angle: Rotation in degrees, counter-clockwise.
			color: Fill and stroke color.
			padding: Stroke width around the glyphs.
			box: Measurement from measure(), when already known.

		Returns:
			RasterizedTag.
		"""
		if box is None:
			box = self.measure(text, font_size, angle, padding)
		font = load_font(self.family, font_size)
		line_height = box.ascent + box.descent
		plain_width = max(1, math.ceil(box.text_width + padding))
		plain_height = max(1, math.ceil(line_height + padding))

		plain = PIL.Image.new("RGBA", (plain_width, plain_height), (0, 0, 0, 0))
		draw = PIL.ImageDraw.Draw(plain)
		origin_x = (plain_width - box.text_width) / 2.0
		origin_y = (plain_height - line_height) / 2.0
		stroke_width = int(round(padding / 2.0))
		draw.text(
			(origin_x, origin_y),
			text,
			font=font,
			fill=color,
			stroke_width=stroke_width,
			stroke_fill=color,
		)

		rotated = plain
		if angle:
			rotated = plain.rotate(angle, resample=PIL.Image.Resampling.BICUBIC, expand=True)
		left = (rotated.width - box.width) // 2
		top = (rotated.height - box.height) // 2
		image = rotated.crop((left, top, left + box.width, top + box.height))
		return RasterizedTag(image=image, box=box)
