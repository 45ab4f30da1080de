import json
import pathlib

import fitz
import PIL.Image
import pytest

import tag2cloud.config
import tag2cloud.raster
import tag2cloud.render

import solid_rasterizer


PlacementConfig = tag2cloud.config.PlacementConfig
TagResult = tag2cloud.config.TagResult
CloudRenderer = tag2cloud.render.CloudRenderer

DPI = 144
INK_THRESHOLD = 128


#============================================
def placed(text: str, x: float, y: float, width: int = 40, height: int = 24, color: str = "#000000") -> TagResult:
	"""
	Build a rendered result centered at (x, y).
	"""
	return TagResult(
		text=text,
		weight=1,
		angle=0,
		font_size=20,
		color=color,
		x=x,
		y=y,
		rendered=True,
		width=width,
		height=height,
	)


#============================================
def make_renderer(**overrides) -> CloudRenderer:
	"""
	Build a 200x200 renderer drawing solid boxes.
	"""
	config = PlacementConfig(width=200, height=200, **overrides)
	return CloudRenderer(config, rasterizer=solid_rasterizer.SolidRasterizer())


#============================================
def _render_pdf_first_page(path: pathlib.Path) -> PIL.Image.Image:
	"""
	Render the first page of a PDF to an image.

	Args:
		path: PDF path.

	Returns:
		PIL image.
	"""
	document = fitz.open(path)
	page = document[0]
	scale = DPI / 72.0
	matrix = fitz.Matrix(scale, scale)
	pixmap = page.get_pixmap(matrix=matrix, alpha=False)
	image = PIL.Image.frombytes("RGB", [pixmap.width, pixmap.height], pixmap.samples)
	document.close()
	return image


#============================================
def test_parse_hex_color() -> None:
	"""
	Hex strings map to unit floats; junk falls back to black.
	"""
	assert tag2cloud.render.parse_hex_color("#FF0000") == (1.0, 0.0, 0.0)
	assert tag2cloud.render.parse_hex_color("#000000") == (0.0, 0.0, 0.0)
	assert tag2cloud.render.parse_hex_color("red") == (0.0, 0.0, 0.0)
	assert tag2cloud.render.parse_hex_color("") == (0.0, 0.0, 0.0)


#============================================
def test_layout_draws_rendered_tags_only() -> None:
	"""
	Rendered tags are pasted centered; unrendered ones are skipped.
	"""
	renderer = make_renderer()
	missing = TagResult(text="gone", weight=1, angle=0, font_size=20, color="#000000")
	renderer.layout([placed("a", 100, 100), missing])
	assert [result.text for result in renderer.results] == ["a"]
	assert renderer.image.getpixel((100, 100)) == (0, 0, 0, 255)
	assert renderer.image.getpixel((80, 88)) == (0, 0, 0, 255)
	assert renderer.image.getpixel((79, 100)) == (255, 255, 255, 255)
	assert renderer.image.getpixel((10, 10)) == (255, 255, 255, 255)


#============================================
def test_transparent_background() -> None:
	"""
	No background color leaves the canvas transparent.
	"""
	renderer = make_renderer(background=None)
	assert renderer.image.getpixel((0, 0)) == (0, 0, 0, 0)


#============================================
def test_clear_resets_canvas() -> None:
	"""
	clear() forgets results and repaints the background.
	"""
	renderer = make_renderer()
	renderer.layout([placed("a", 100, 100)])
	renderer.clear()
	assert renderer.results == []
	assert renderer.image.getpixel((100, 100)) == (255, 255, 255, 255)


#============================================
def test_click_listeners_and_unsubscribe() -> None:
	"""
	Listeners receive clicked tags until they unsubscribe.
	"""
	renderer = make_renderer()
	first = placed("a", 100, 100)
	renderer.layout([first])
	seen = []
	unsubscribe = renderer.on_click(seen.append)
	other = []
	renderer.on_click(other.append)
	renderer.click(first)
	assert seen == [first]
	assert other == [first]
	unsubscribe()
	renderer.click(first)
	assert seen == [first]
	assert other == [first, first]
	renderer.off_click(other.append)
	renderer.click(first)
	assert len(other) == 2
	assert renderer.on_click("not callable")() is None


#============================================
def test_hit_test_prefers_topmost() -> None:
	"""
	The most recently drawn tag under the point wins.
	"""
	renderer = make_renderer()
	bottom = placed("bottom", 100, 100)
	top = placed("top", 110, 100)
	renderer.layout([bottom, top])
	assert renderer.hit_test(110, 100) is top
	assert renderer.hit_test(82, 100) is bottom
	assert renderer.hit_test(5, 5) is None


#============================================
def test_save_png_and_jpeg(tmp_path: pathlib.Path) -> None:
	"""
	PNG keeps the canvas as-is; JPEG output is flattened to RGB.
	"""
	renderer = make_renderer()
	renderer.layout([placed("a", 100, 100)])
	png_path = tmp_path / "cloud.png"
	renderer.save(png_path)
	with PIL.Image.open(png_path) as image:
		assert image.size == (200, 200)
		assert image.mode == "RGBA"
	jpeg_path = tmp_path / "cloud.jpg"
	renderer.save(jpeg_path)
	with PIL.Image.open(jpeg_path) as image:
		assert image.mode == "RGB"


#============================================
def test_save_pdf_has_text_and_ink(tmp_path: pathlib.Path) -> None:
	"""
	The PDF page is canvas sized and shows the tag text.
	"""
	renderer = make_renderer()
	renderer.layout([placed("Hello", 100, 100, color="#000000")])
	path = tmp_path / "cloud.pdf"
	renderer.save(path)

	document = fitz.open(path)
	page = document[0]
	assert (round(page.rect.width), round(page.rect.height)) == (200, 200)
	assert "Hello" in page.get_text()
	document.close()

	gray = _render_pdf_first_page(path).convert("L")
	ink = sum(1 for value in gray.getdata() if value < INK_THRESHOLD)
	assert ink > 0


#============================================
def test_write_manifest(tmp_path: pathlib.Path) -> None:
	"""
	The manifest lists counts, layout settings and every tag.
	"""
	config = PlacementConfig(width=200, height=100, seed=5)
	missing = TagResult(text="gone", weight=1, angle=0, font_size=10, color="#000000")
	results = [placed("a", 100, 50), missing]
	path = tmp_path / "manifest.json"
	tag2cloud.render.write_manifest(path, config, results, 0.1234)
	data = json.loads(path.read_text(encoding="utf-8"))
	assert data["total_tags"] == 2
	assert data["rendered_tags"] == 1
	assert data["unrendered_tags"] == 1
	assert data["elapsed_sec"] == 0.123
	assert data["layout"]["width"] == 200
	assert data["layout"]["seed"] == 5
	assert data["layout"]["mask_image"] is None
	assert data["tags"][0]["text"] == "a"
	assert data["tags"][1]["x"] is None


#============================================
def test_manifest_names_in_memory_mask(tmp_path: pathlib.Path) -> None:
	"""
	An in-memory mask image is recorded by a placeholder.
	"""
	config = PlacementConfig(mask_image=PIL.Image.new("RGBA", (4, 4)))
	path = tmp_path / "manifest.json"
	tag2cloud.render.write_manifest(path, config, [], 0.0)
	data = json.loads(path.read_text(encoding="utf-8"))
	assert data["layout"]["mask_image"] == "<image>"
	assert data["tags"] == []


#============================================
def test_pdf_font_falls_back_without_truetype_file() -> None:
	"""
	An unresolvable family falls back to the standard PDF font.
	"""
	assert tag2cloud.render.register_pdf_font("no-such-family.ttf") == "Helvetica"
	assert tag2cloud.render.register_pdf_font("no-such-family.ttf", "Courier") == "Courier"


#============================================
def test_pdf_embeds_placement_font(tmp_path: pathlib.Path) -> None:
	"""
	When the placement font is a TrueType file, the PDF uses it too.
	"""
	family = tag2cloud.config.DEFAULT_FAMILY
	font_path = getattr(tag2cloud.raster.load_font(family, 12), "path", None)
	if not isinstance(font_path, str) or not pathlib.Path(font_path).is_file():
		pytest.skip(f"{family} is not installed")
	font_name = tag2cloud.render.register_pdf_font(family)
	assert font_name.startswith(tag2cloud.render.PDF_FONT_PREFIX)

	renderer = make_renderer()
	renderer.layout([placed("Hello", 100, 100)])
	path = tmp_path / "cloud.pdf"
	renderer.save(path)
	document = fitz.open(path)
	fonts = document[0].get_fonts()
	text = document[0].get_text()
	document.close()
	assert fonts
	assert not any("Helvetica" in font[3] for font in fonts)
	assert "Hello" in text


#============================================
def test_explicit_pdf_font_is_used(tmp_path: pathlib.Path) -> None:
	"""
	A named standard font overrides the placement font.
	"""
	config = PlacementConfig(width=200, height=200)
	renderer = CloudRenderer(config, rasterizer=solid_rasterizer.SolidRasterizer(), pdf_font="Courier")
	renderer.layout([placed("Hello", 100, 100)])
	path = tmp_path / "cloud.pdf"
	renderer.save(path)
	document = fitz.open(path)
	fonts = document[0].get_fonts()
	document.close()
	assert any("Courier" in font[3] for font in fonts)
