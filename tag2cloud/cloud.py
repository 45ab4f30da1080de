"""
Tag cloud layout: font sizing, angles, colors and batch placement.
"""

# Standard Library
import asyncio
import dataclasses
import math
import random
import time
import typing

# PIP3 modules
import PIL.ImageColor
import PIL.ImageDraw

# local repo modules
import tag2cloud as t2c
import tag2cloud.bitgrid
import tag2cloud.config
import tag2cloud.mask
import tag2cloud.placement
import tag2cloud.raster
import tag2cloud.render


OccupancyGrid = t2c.bitgrid.OccupancyGrid
PlacementConfig = t2c.config.PlacementConfig
Tag = t2c.config.Tag
TagResult = t2c.config.TagResult
TextRasterizer = t2c.raster.TextRasterizer
CloudRenderer = t2c.render.CloudRenderer
OversizedTagError = t2c.mask.OversizedTagError
round_half_up = t2c.config.round_half_up

PROGRESS_UPDATE_EVERY = t2c.config.PROGRESS_UPDATE_EVERY


@dataclasses.dataclass
class WeightRange:
	min_weight: float = math.inf
	max_weight: float = -math.inf

	def observe(self, weight: float) -> None:
		if weight > self.max_weight:
			self.max_weight = weight
		if weight < self.min_weight:
			self.min_weight = weight

	def reset(self) -> None:
		self.min_weight = math.inf
		self.max_weight = -math.inf

	#============================================
	def font_size(self, weight: float, min_font_size: int, max_font_size: int) -> int:
		"""
		Map a weight linearly onto the font size range.

		Args:
			weight: Tag weight.
			min_font_size: Size for the lightest tag.
			max_font_size: Size for the heaviest tag.

		Returns:
			Font size in pixels; the midpoint when all weights are equal.
		"""
		spread = self.max_weight - self.min_weight
		if spread > 0:
			share = (weight - self.min_weight) / spread
			return round_half_up(min_font_size + (max_font_size - min_font_size) * share)
		return round_half_up((max_font_size + min_font_size) / 2.0)


@dataclasses.dataclass
class DrawStats:
	total: int = 0
	rendered: int = 0
	oversized: int = 0
	bad_color: int = 0
	exhausted: int = 0
	yields: int = 0
	elapsed_sec: float = 0.0


class TagCloud:
	"""
	Places weighted tags on a canvas without overlap.

	One cloud owns one occupancy grid. Batches passed to draw() are
	serialized, and a batch yields to the event loop whenever it has
	run longer than config.yield_interval.
	"""

	def __init__(
		self,
		config: PlacementConfig | None = None,
		rasterizer: TextRasterizer | None = None,
		renderer: CloudRenderer | None = None,
		verbose: bool = False,
	):
		if config is None:
			config = PlacementConfig()
		config.validate()
		self.config = config
		self.rasterizer = rasterizer or TextRasterizer(config.family)
		self.renderer = renderer
		self.verbose = verbose
		self.rng = random.Random(config.seed)
		self.weight_range = WeightRange()
		self.last_stats = DrawStats()
		self.grid: OccupancyGrid | None = None
		self._lock: asyncio.Lock | None = None
		self._lock_loop: asyncio.AbstractEventLoop | None = None
		self._busy = False
		self.init_grid()

	#============================================
	def init_grid(self) -> None:
		"""
		Build the starting grid, deferring mask image loading to draw().
		"""
		if self.config.mask_image is None:
			self.grid = t2c.mask.build_initial_grid(self.config)
		else:
			self.grid = None

	async def ensure_grid(self) -> None:
		if self.grid is not None:
			return
		if self.config.mask_image is None:
			self.init_grid()
			return
		self.grid = await asyncio.to_thread(t2c.mask.load_mask_grid, self.config)

	def get_lock(self) -> asyncio.Lock:
		loop = asyncio.get_running_loop()
		if self._lock is None or self._lock_loop is not loop:
			self._lock = asyncio.Lock()
			self._lock_loop = loop
		return self._lock

	def check_idle(self, action: str) -> None:
		if self._busy:
			raise RuntimeError(f"Cannot {action} while a draw batch is running")

	#============================================
	async def draw(self, tags: typing.Sequence[Tag]) -> list[TagResult]:
		"""
		Place a batch of tags.

		Args:
			tags: Tags to place.

		Returns:
			One TagResult per tag, heaviest first. Equal weights keep
			their input order.

		Raises:
			MaskSourceError: When the configured mask image cannot be loaded.
		"""
		if not tags:
			return []
		async with self.get_lock():
			self._busy = True
			try:
				await self.ensure_grid()
				for tag in tags:
					self.weight_range.observe(tag.weight)
				return await self.perform_draw(tags)
			finally:
				self._busy = False

	#============================================
	async def perform_draw(self, tags: typing.Sequence[Tag]) -> list[TagResult]:
		"""
		Place tags heaviest first, yielding to the event loop on a deadline.
		"""
		sorted_tags = sorted(tags, key=lambda tag: -tag.weight)
		stats = DrawStats(total=len(sorted_tags))
		self.last_stats = stats
		start_time = time.perf_counter()
		interval = self.config.yield_interval
		results: list[TagResult] = []
		partial: list[TagResult] = []

		deadline = start_time + interval
		for index, tag in enumerate(sorted_tags, start=1):
			result = self.handle_tag(tag, stats)
			results.append(result)
			partial.append(result)
			if self.verbose and (index % PROGRESS_UPDATE_EVERY == 0 or index == stats.total):
				t2c.render.print_progress("Tags", index, stats.total)
			if time.perf_counter() > deadline:
				self.layout(partial)
				partial = []
				stats.yields += 1
				await asyncio.sleep(0)
				deadline = time.perf_counter() + interval
		self.layout(partial)

		stats.elapsed_sec = time.perf_counter() - start_time
		if self.verbose:
			print()
			print(f"Tags placed: {stats.rendered}/{stats.total}")
			if stats.oversized:
				print(f"Oversized tags: {stats.oversized}")
			if stats.exhausted:
				print(f"Tags without space: {stats.exhausted}")
			if stats.bad_color:
				print(f"Tags with unknown colors: {stats.bad_color}")
			print(f"Timing: layout={stats.elapsed_sec:.2f}s yields={stats.yields}")
		return results

	def layout(self, results: list[TagResult]) -> None:
		if self.renderer is not None and results:
			self.renderer.layout(results)

	#============================================
	def pick_angle(self) -> float:
		"""
		Pick one of angle_count evenly spaced angles.
		"""
		config = self.config
		if config.angle_count == 1:
			return config.angle_from
		bucket = int(self.rng.random() * config.angle_count)
		return config.angle_from + bucket / (config.angle_count - 1) * (config.angle_to - config.angle_from)

	def pick_color(self) -> str:
		value = int(0xFFFF00 * self.rng.random()) + 0x1000000
		return "#" + format(value, "x")[1:]

	#============================================
	def handle_tag(self, tag: Tag, stats: DrawStats) -> TagResult:
		"""
		Size, style and place one tag.

		Args:
			tag: Input tag.
			stats: Batch counters to update.

		Returns:
			TagResult, rendered only when the color parses and a free
			position was found.
		"""
		config = self.config
		font_size = self.weight_range.font_size(tag.weight, config.min_font_size, config.max_font_size)
		angle = tag.angle if tag.angle is not None else self.pick_angle()
		color = tag.color if tag.color is not None else self.pick_color()
		result = TagResult(
			text=tag.text,
			weight=tag.weight,
			angle=angle,
			font_size=font_size,
			color=color,
		)

		try:
			PIL.ImageColor.getrgb(color)
		except ValueError:
			stats.bad_color += 1
			return result

		try:
			mask = t2c.mask.build_tag_mask(self.rasterizer, tag.text, font_size, angle, config)
		except OversizedTagError:
			stats.oversized += 1
			return result

		position = t2c.placement.place(self.grid, mask, config, self.rng)
		if position is None:
			stats.exhausted += 1
			return result

		x, y = position
		result.x = int(x + mask.width / 2)
		result.y = int(y + mask.height / 2)
		result.width = mask.width
		result.height = mask.height
		result.rendered = True
		stats.rendered += 1
		return result

	#============================================
	def clear(self) -> None:
		"""
		Drop every placement and rebuild the starting grid.

		The weight range starts over as well.
		"""
		self.check_idle("clear")
		if self.renderer is not None:
			self.renderer.clear()
		self.weight_range.reset()
		self.init_grid()

	#============================================
	def configure(self, config: PlacementConfig) -> None:
		"""
		Switch to new settings and start over with an empty cloud.

		Args:
			config: Replacement placement configuration.

		Raises:
			ValueError: When the config is invalid; the old one stays.
			RuntimeError: When a draw batch is running.
		"""
		self.check_idle("configure")
		config.validate()
		if self.rasterizer.family == self.config.family:
			self.rasterizer.family = config.family
		if self.renderer is not None and hasattr(self.renderer, "config"):
			self.renderer.config = config
		self.config = config
		self.rng = random.Random(config.seed)
		self.clear()

	#============================================
	def shape(self, draw_callback: typing.Callable[[PIL.ImageDraw.ImageDraw], None]) -> None:
		"""
		Replace the grid with a caller-drawn silhouette.

		Args:
			draw_callback: Draws on a transparent canvas; only the drawn
				area stays free for tags.
		"""
		self.check_idle("reshape")
		self.grid = t2c.mask.build_shape_grid(draw_callback, self.config)

	def destroy(self) -> None:
		self.check_idle("destroy")
		if self.renderer is not None:
			self.renderer.listeners.clear()
		self.renderer = None
		self.grid = None
