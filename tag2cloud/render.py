"""
Rendering of placed tags to PNG and PDF.
"""

# Standard Library
import functools
import json
import pathlib
import typing

# PIP3 modules
import PIL.Image
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfbase.ttfonts
import reportlab.pdfgen.canvas

# local repo modules
import tag2cloud as t2c
import tag2cloud.config
import tag2cloud.raster


PlacementConfig = t2c.config.PlacementConfig
TagResult = t2c.config.TagResult
TextRasterizer = t2c.raster.TextRasterizer

DEFAULT_PDF_FONT = t2c.config.DEFAULT_PDF_FONT
PROGRESS_BAR_WIDTH = t2c.config.PROGRESS_BAR_WIDTH
PDF_FONT_PREFIX = "TagCloud-"


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end="\r")


#============================================
def parse_hex_color(value: str) -> tuple[float, float, float]:
	"""
	Parse a hex color string into RGB floats.

	Args:
		value: Color string like "#AABBCC".

	Returns:
		Tuple of (r, g, b) in 0.0-1.0 range.
	"""
	if not value or not value.startswith("#") or len(value) != 7:
		return (0.0, 0.0, 0.0)
	red = int(value[1:3], 16) / 255.0
	green = int(value[3:5], 16) / 255.0
	blue = int(value[5:7], 16) / 255.0
	return (red, green, blue)


#============================================
@functools.lru_cache(maxsize=16)
def register_pdf_font(family: str, fallback: str = DEFAULT_PDF_FONT) -> str:
	"""
	Register the TrueType font used for placement with reportlab.

	Args:
		family: Font family passed to the text rasterizer.
		fallback: Standard PDF font used when the TrueType file is unusable.

	Returns:
		Registered font name, or the fallback.
	"""
	font_path = getattr(t2c.raster.load_font(family, 12), "path", None)
	if not isinstance(font_path, (str, pathlib.Path)) or not pathlib.Path(font_path).is_file():
		return fallback
	font_name = PDF_FONT_PREFIX + pathlib.Path(font_path).stem
	try:
		font = reportlab.pdfbase.ttfonts.TTFont(font_name, str(font_path))
	except reportlab.pdfbase.ttfonts.TTFError:
		return fallback
	reportlab.pdfbase.pdfmetrics.registerFont(font)
	return font_name


class CloudRenderer:
	"""
	Draws placed tags and dispatches click notifications.
	"""

	def __init__(
		self,
		config: PlacementConfig,
		rasterizer: TextRasterizer | None = None,
		pdf_font: str | None = None,
	):
		self.config = config
		self.rasterizer = rasterizer or TextRasterizer(config.family)
		self.pdf_font = pdf_font
		self.listeners: list[typing.Callable[[TagResult], None]] = []
		self.results: list[TagResult] = []
		self.image = self.new_canvas()

	def new_canvas(self) -> PIL.Image.Image:
		background = self.config.background or (0, 0, 0, 0)
		return PIL.Image.new("RGBA", (self.config.width, self.config.height), background)

	#============================================
	def layout(self, results: list[TagResult]) -> None:
		"""
		Draw every rendered tag of a batch onto the canvas.

		Args:
			results: Tag results, unrendered ones are skipped.
		"""
		for result in results:
			if not result.rendered:
				continue
			self.results.append(result)
			self.draw_tag(result)

	#============================================
	def draw_tag(self, result: TagResult) -> None:
		"""
		Draw one tag centered on its placement.
		"""
		raster = self.rasterizer.rasterize(
			result.text,
			result.font_size,
			result.angle,
			result.color,
			0,
		)
		left = int(round(result.x - raster.width / 2.0))
		top = int(round(result.y - raster.height / 2.0))
		self.image.paste(raster.image, (left, top), raster.image)

	def clear(self) -> None:
		self.results = []
		self.image = self.new_canvas()

	#============================================
	def on_click(self, listener: typing.Callable[[TagResult], None]) -> typing.Callable[[], None]:
		"""
		Register a click listener.

		Args:
			listener: Called with the clicked TagResult.

		Returns:
			Function that unregisters the listener.
		"""
		if not callable(listener):
			return lambda: None
		self.listeners.append(listener)

		def unsubscribe() -> None:
			self.off_click(listener)

		return unsubscribe

	def off_click(self, listener: typing.Callable[[TagResult], None]) -> None:
		if listener in self.listeners:
			self.listeners.remove(listener)

	def click(self, result: TagResult) -> None:
		for listener in list(self.listeners):
			listener(result)

	#============================================
	def hit_test(self, x: float, y: float) -> TagResult | None:
		"""
		Find the topmost rendered tag whose box contains a point.

		Args:
			x: Canvas x.
			y: Canvas y.

		Returns:
			TagResult or None.
		"""
		for result in reversed(self.results):
			if abs(x - result.x) <= result.width / 2.0 and abs(y - result.y) <= result.height / 2.0:
				return result
		return None

	#============================================
	def save_image(self, output_path: pathlib.Path) -> None:
		"""
		Save the raster canvas; JPEG output drops the alpha channel.
		"""
		image = self.image
		if output_path.suffix.lower() in (".jpg", ".jpeg"):
			image = image.convert("RGB")
		image.save(str(output_path))

	#============================================
	def save_pdf(self, output_path: pathlib.Path) -> None:
		"""
		Write the placed tags as vector text in a PDF page.

		Args:
			output_path: Output PDF path.
		"""
		width = self.config.width
		height = self.config.height
		pdf_font = self.pdf_font or register_pdf_font(self.rasterizer.family)
		pdf = reportlab.pdfgen.canvas.Canvas(str(output_path), pagesize=(width, height))
		if self.config.background:
			red, green, blue = parse_hex_color(self.config.background)
			pdf.setFillColorRGB(red, green, blue)
			pdf.rect(0, 0, width, height, stroke=0, fill=1)

		for result in self.results:
			font_size = result.font_size
			ascent = reportlab.pdfbase.pdfmetrics.getAscent(pdf_font) * font_size / 1000.0
			descent = reportlab.pdfbase.pdfmetrics.getDescent(pdf_font) * font_size / 1000.0
			red, green, blue = parse_hex_color(result.color)
			pdf.saveState()
			pdf.translate(result.x, height - result.y)
			pdf.rotate(result.angle)
			pdf.setFillColorRGB(red, green, blue)
			pdf.setFont(pdf_font, font_size)
			pdf.drawCentredString(0, -(ascent + descent) / 2.0, result.text)
			pdf.restoreState()
		pdf.save()

	#============================================
	def save(self, output_path: pathlib.Path) -> None:
		"""
		Save as PDF or raster image depending on the suffix.
		"""
		if output_path.suffix.lower() == ".pdf":
			self.save_pdf(output_path)
			return
		self.save_image(output_path)


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	config: PlacementConfig,
	results: list[TagResult],
	elapsed_sec: float,
) -> None:
	"""
	Write a manifest JSON file.

	Args:
		manifest_path: Output path.
		config: Placement configuration.
		results: Tag results in placement order.
		elapsed_sec: Layout time in seconds.
	"""
	rendered = sum(1 for result in results if result.rendered)
	mask_image = config.mask_image
	if mask_image is not None and not isinstance(mask_image, (str, pathlib.Path)):
		mask_image = "<image>"
	data = {
		"total_tags": len(results),
		"rendered_tags": rendered,
		"unrendered_tags": len(results) - rendered,
		"elapsed_sec": round(elapsed_sec, 3),
		"layout": {
			"width": config.width,
			"height": config.height,
			"pixel_ratio": config.pixel_ratio,
			"cut": config.cut,
			"padding": config.padding,
			"min_font_size": config.min_font_size,
			"max_font_size": config.max_font_size,
			"angle_from": config.angle_from,
			"angle_to": config.angle_to,
			"angle_count": config.angle_count,
			"family": config.family,
			"mask_image": None if mask_image is None else str(mask_image),
			"seed": config.seed,
		},
		"tags": [result.to_dict() for result in results],
	}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
