"""
CLI entry points for tag cloud rendering.
"""

# Standard Library
import argparse
import asyncio
import json
import pathlib
import time

# local repo modules
import tag2cloud as t2c
import tag2cloud.cloud
import tag2cloud.config
import tag2cloud.render


PlacementConfig = t2c.config.PlacementConfig
Tag = t2c.config.Tag

DEFAULT_WIDTH = t2c.config.DEFAULT_WIDTH
DEFAULT_HEIGHT = t2c.config.DEFAULT_HEIGHT
DEFAULT_PIXEL_RATIO = t2c.config.DEFAULT_PIXEL_RATIO
DEFAULT_LIGHT_THRESHOLD = t2c.config.DEFAULT_LIGHT_THRESHOLD
DEFAULT_OPACITY_THRESHOLD = t2c.config.DEFAULT_OPACITY_THRESHOLD
DEFAULT_MIN_FONT_SIZE = t2c.config.DEFAULT_MIN_FONT_SIZE
DEFAULT_MAX_FONT_SIZE = t2c.config.DEFAULT_MAX_FONT_SIZE
DEFAULT_ANGLE_FROM = t2c.config.DEFAULT_ANGLE_FROM
DEFAULT_ANGLE_TO = t2c.config.DEFAULT_ANGLE_TO
DEFAULT_ANGLE_COUNT = t2c.config.DEFAULT_ANGLE_COUNT
DEFAULT_FAMILY = t2c.config.DEFAULT_FAMILY
DEFAULT_PADDING = t2c.config.DEFAULT_PADDING
DEFAULT_BACKGROUND = t2c.config.DEFAULT_BACKGROUND


#============================================
def parse_tag_fields(fields: list[str], line_number: int) -> Tag:
	"""
	Build a tag from the fields of one text line.

	Args:
		fields: text, weight and optional angle and color.
		line_number: Line number for error messages.

	Returns:
		Tag.
	"""
	fields = [field.strip() for field in fields]
	if len(fields) < 2 or not fields[0]:
		raise ValueError(f"Line {line_number}: expected 'text, weight[, angle[, color]]'")
	try:
		weight = float(fields[1])
		angle = None
		if len(fields) > 2 and fields[2]:
			angle = float(fields[2])
	except ValueError as error:
		raise ValueError(f"Line {line_number}: {error}") from error
	color = None
	if len(fields) > 3 and fields[3]:
		color = fields[3]
	return Tag(text=fields[0], weight=weight, angle=angle, color=color)


#============================================
def parse_tags(text: str) -> list[Tag]:
	"""
	Parse tags from JSON or delimited text.

	JSON input is a list of objects with text, weight and optional angle
	and color. Text input has one tag per line, tab or comma separated;
	blank lines and lines starting with '#' are skipped.

	Args:
		text: File contents.

	Returns:
		List of tags.
	"""
	stripped = text.strip()
	if stripped.startswith("["):
		entries = json.loads(stripped)
		tags: list[Tag] = []
		for index, entry in enumerate(entries, start=1):
			if "text" not in entry or "weight" not in entry:
				raise ValueError(f"Entry {index}: text and weight are required")
			tags.append(
				Tag(
					text=str(entry["text"]),
					weight=float(entry["weight"]),
					angle=None if entry.get("angle") is None else float(entry["angle"]),
					color=None if entry.get("color") is None else str(entry["color"]),
				)
			)
		return tags

	tags = []
	for line_number, line in enumerate(text.splitlines(), start=1):
		if not line.strip() or line.lstrip().startswith("#"):
			continue
		separator = "\t" if "\t" in line else ","
		tags.append(parse_tag_fields(line.split(separator), line_number))
	return tags


#============================================
def load_tags(path: pathlib.Path) -> list[Tag]:
	"""
	Read a tags file.
	"""
	return parse_tags(path.read_text(encoding="utf-8"))


#============================================
def build_config(args: argparse.Namespace) -> PlacementConfig:
	"""
	Build placement config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		PlacementConfig.
	"""
	config = PlacementConfig(
		width=args.width,
		height=args.height,
		pixel_ratio=args.pixel_ratio,
		cut=args.cut,
		padding=args.padding,
		mask_image=args.mask_image,
		light_threshold=args.light_threshold,
		opacity_threshold=args.opacity_threshold,
		min_font_size=args.min_font_size,
		max_font_size=args.max_font_size,
		angle_from=args.angle_from,
		angle_to=args.angle_to,
		angle_count=args.angle_count,
		family=args.family,
		seed=args.seed,
		background=args.background or None,
	)
	return config


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Lay out weighted tags as a tag cloud image.")
	parser.add_argument("tags_path", help="Tags file (JSON list or 'text,weight' lines).")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", required=True, help="Output PNG or PDF path.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")
	output_group.add_argument("-b", "--background", dest="background", default=DEFAULT_BACKGROUND, help="Background color, empty for transparent.")
	output_group.add_argument("--pdf-font", dest="pdf_font", default=None, help="Standard PDF font name; default embeds the placement font.")

	canvas_group = parser.add_argument_group("Canvas")
	canvas_group.add_argument("-W", "--width", dest="width", type=int, default=DEFAULT_WIDTH, help="Canvas width in pixels.")
	canvas_group.add_argument("-H", "--height", dest="height", type=int, default=DEFAULT_HEIGHT, help="Canvas height in pixels.")
	canvas_group.add_argument("-r", "--pixel-ratio", dest="pixel_ratio", type=int, default=DEFAULT_PIXEL_RATIO, help="Pixels per grid cell side.")
	canvas_group.add_argument("-c", "--cut", dest="cut", action="store_true", help="Keep tags fully inside the canvas.")
	canvas_group.add_argument("-C", "--no-cut", dest="cut", action="store_false", help="Let tags run past the canvas edges.")
	canvas_group.add_argument("-k", "--mask-image", dest="mask_image", default=None, help="Image whose dark area shapes the cloud.")
	canvas_group.add_argument("--light-threshold", dest="light_threshold", type=int, default=DEFAULT_LIGHT_THRESHOLD, help="Max R+G+B of mask ink.")
	canvas_group.add_argument("--opacity-threshold", dest="opacity_threshold", type=int, default=DEFAULT_OPACITY_THRESHOLD, help="Min alpha of mask ink.")

	text_group = parser.add_argument_group("Text")
	text_group.add_argument("-f", "--family", dest="family", default=DEFAULT_FAMILY, help="TrueType font file.")
	text_group.add_argument("--min-font", dest="min_font_size", type=int, default=DEFAULT_MIN_FONT_SIZE, help="Font size of the lightest tag.")
	text_group.add_argument("--max-font", dest="max_font_size", type=int, default=DEFAULT_MAX_FONT_SIZE, help="Font size of the heaviest tag.")
	text_group.add_argument("--angle-from", dest="angle_from", type=float, default=DEFAULT_ANGLE_FROM, help="First rotation angle in degrees.")
	text_group.add_argument("--angle-to", dest="angle_to", type=float, default=DEFAULT_ANGLE_TO, help="Last rotation angle in degrees.")
	text_group.add_argument("--angle-count", dest="angle_count", type=int, default=DEFAULT_ANGLE_COUNT, help="Number of rotation angles.")
	text_group.add_argument("-p", "--padding", dest="padding", type=float, default=DEFAULT_PADDING, help="Stroke padding around glyphs.")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument("-s", "--seed", dest="seed", type=int, default=None, help="Random seed for angles, colors and spiral directions.")
	behavior_group.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Print placement progress.")

	parser.set_defaults(cut=True, verbose=False)

	args = parser.parse_args(argv)
	return args


#============================================
def run_pipeline(args: argparse.Namespace) -> None:
	"""
	Load tags, lay them out and write the output files.

	Args:
		args: Parsed argparse namespace.
	"""
	print("Tag cloud pipeline")
	print(f"Tags file: {args.tags_path}")
	print(f"Output: {args.output_path}")
	print(f"Canvas: {args.width}x{args.height} px, pixel ratio {args.pixel_ratio}")
	print(f"Keep inside canvas: {args.cut}")
	if args.mask_image:
		print(f"Mask image: {args.mask_image}")
	if args.seed is not None:
		print(f"Seed: {args.seed}")

	start_time = time.perf_counter()
	tags = load_tags(pathlib.Path(args.tags_path))
	print(f"Tags loaded: {len(tags)}")

	config = build_config(args)
	renderer = t2c.render.CloudRenderer(config, pdf_font=args.pdf_font)
	cloud = t2c.cloud.TagCloud(config, rasterizer=renderer.rasterizer, renderer=renderer, verbose=args.verbose)
	layout_start = time.perf_counter()
	results = asyncio.run(cloud.draw(tags))
	layout_end = time.perf_counter()
	rendered = sum(1 for result in results if result.rendered)
	print(f"Tags rendered: {rendered}")
	print(f"Tags unrendered: {len(results) - rendered}")

	output_path = pathlib.Path(args.output_path)
	renderer.save(output_path)
	print(f"Output written: {output_path}")

	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = f"{output_path}.json"
	t2c.render.write_manifest(
		pathlib.Path(manifest_path),
		config,
		results,
		layout_end - layout_start,
	)

	total_time = time.perf_counter() - start_time
	print(
		"Timing: layout={:.2f}s total={:.2f}s".format(
			layout_end - layout_start,
			total_time,
		)
	)
	print(f"Manifest written: {manifest_path}")


#============================================
def main() -> None:
	"""
	Main entry point.
	"""
	args = parse_args()
	run_pipeline(args)
