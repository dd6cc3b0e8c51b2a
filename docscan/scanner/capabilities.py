# (c) Copyright Datacraft, 2026
"""Scanner capability models and resolution of requested settings."""
import logging
from bisect import bisect_left
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Sequence

from .errors import CapabilityError

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4

# Resolutions offered when a device only reports a continuous range.
COMMON_RESOLUTIONS = (75, 100, 150, 200, 300, 400, 600, 1200, 2400, 4800, 9600)


class ColorMode(str, Enum):
	"""Color modes accepted on the command line."""
	COLOR = 'color'
	GRAYSCALE = 'grayscale'
	LINEART = 'lineart'


class PixelDataType(str, Enum):
	"""Pixel representation emitted by the device."""
	RGB = 'rgb'
	GRAY = 'gray'
	BW = 'bw'


class BitDepth(IntEnum):
	DEPTH_1 = 1
	DEPTH_8 = 8


_MODE_ALIASES = {
	'color': ColorMode.COLOR,
	'colour': ColorMode.COLOR,
	'grayscale': ColorMode.GRAYSCALE,
	'gray': ColorMode.GRAYSCALE,
	'grey': ColorMode.GRAYSCALE,
	'lineart': ColorMode.LINEART,
	'bw': ColorMode.LINEART,
	'monochrome': ColorMode.LINEART,
}

_PIXEL_FORMATS = {
	ColorMode.COLOR: (PixelDataType.RGB, BitDepth.DEPTH_8),
	ColorMode.GRAYSCALE: (PixelDataType.GRAY, BitDepth.DEPTH_8),
	ColorMode.LINEART: (PixelDataType.BW, BitDepth.DEPTH_1),
}


def parse_color_mode(mode: str | None) -> ColorMode:
	"""
	Case-insensitive color mode lookup.

	Unknown or empty strings map to color rather than raising, so that a
	mistyped mode still produces a scan.
	"""
	key = (mode or '').strip().lower()
	color_mode = _MODE_ALIASES.get(key)
	if color_mode is None:
		if key:
			logger.warning(f"Unknown color mode '{mode}', using color")
		return ColorMode.COLOR
	return color_mode


def resolve_color_mode(mode: str | None) -> tuple[PixelDataType, BitDepth]:
	"""Map a color mode string to its pixel data type and bit depth."""
	return _PIXEL_FORMATS[parse_color_mode(mode)]


def resolve_resolution(desired: int, supported: Sequence[int]) -> int:
	"""
	Pick the smallest supported resolution at or above `desired`.

	Falls back to the largest supported value when `desired` exceeds all of
	them.

	Raises:
		CapabilityError: the device reported no resolutions
	"""
	values = sorted(supported)
	if not values:
		raise CapabilityError("Device reports no supported resolutions")
	index = bisect_left(values, desired)
	if index == len(values):
		return values[-1]
	return values[index]


def mm_to_units(value_mm: float, units_per_inch: float) -> float:
	"""Convert millimetres to a device's native geometry unit."""
	return value_mm * units_per_inch / MM_PER_INCH


@dataclass(frozen=True)
class DeviceCapabilities:
	"""Immutable capability snapshot taken when a device is discovered."""
	resolutions: tuple[int, ...] = ()
	has_feeder: bool = False
	pixel_types: tuple[PixelDataType, ...] = (PixelDataType.RGB, PixelDataType.GRAY)
	bit_depths: tuple[int, ...] = (8,)
	# Native geometry unit: 72 = points, 300 = eSCL, 25.4 = millimetres
	units_per_inch: float = 72.0
	max_width: float | None = None  # mm
	max_height: float | None = None  # mm

	def __post_init__(self):
		object.__setattr__(self, 'resolutions', tuple(sorted(set(self.resolutions))))

	@property
	def max_resolution(self) -> int | None:
		return self.resolutions[-1] if self.resolutions else None

	def supports_pixel_type(self, pixel_type: PixelDataType) -> bool:
		return pixel_type in self.pixel_types

	@classmethod
	def from_sane(cls, device_options: list[dict[str, Any]]) -> "DeviceCapabilities":
		"""Build capabilities from SANE option descriptors."""
		resolutions: tuple[int, ...] = ()
		has_feeder = False
		pixel_types: list[PixelDataType] = []
		bit_depths: tuple[int, ...] = (8,)
		max_width = None
		max_height = None

		mode_map = {
			'color': PixelDataType.RGB,
			'gray': PixelDataType.GRAY,
			'lineart': PixelDataType.BW,
			'halftone': PixelDataType.BW,
		}

		for opt in device_options:
			name = opt.get('name') or ''
			constraint = opt.get('constraint')

			if name == 'resolution':
				if isinstance(constraint, list):
					resolutions = tuple(int(value) for value in constraint)
				elif isinstance(constraint, tuple) and len(constraint) == 3:
					# (min, max, step)
					low, high = int(constraint[0]), int(constraint[1])
					resolutions = tuple(
						value for value in COMMON_RESOLUTIONS if low <= value <= high
					) or (low, high)

			elif name == 'mode' and isinstance(constraint, list):
				for mode in constraint:
					pixel_type = mode_map.get(str(mode).lower())
					if pixel_type and pixel_type not in pixel_types:
						pixel_types.append(pixel_type)

			elif name == 'source' and isinstance(constraint, list):
				has_feeder = any(
					'adf' in str(s).lower() or 'feeder' in str(s).lower()
					for s in constraint
				)

			elif name == 'depth' and isinstance(constraint, list):
				bit_depths = tuple(int(value) for value in constraint)

			elif name == 'br-x' and isinstance(constraint, tuple):
				max_width = float(constraint[1])

			elif name == 'br-y' and isinstance(constraint, tuple):
				max_height = float(constraint[1])

		return cls(
			resolutions=resolutions,
			has_feeder=has_feeder,
			pixel_types=tuple(pixel_types) or (PixelDataType.RGB,),
			bit_depths=bit_depths,
			units_per_inch=MM_PER_INCH,
			max_width=max_width,
			max_height=max_height,
		)

	@classmethod
	def from_escl(cls, data: dict[str, Any]) -> "DeviceCapabilities":
		"""Build capabilities from parsed eSCL ScannerCapabilities data."""
		sources = data.get('InputSources', [])

		pixel_types: list[PixelDataType] = []
		bit_depths: set[int] = set()
		mode_map = {
			'RGB24': (PixelDataType.RGB, 8),
			'Grayscale8': (PixelDataType.GRAY, 8),
			'BlackAndWhite1': (PixelDataType.BW, 1),
		}
		for mode in data.get('ColorModes', []):
			if mode in mode_map:
				pixel_type, depth = mode_map[mode]
				if pixel_type not in pixel_types:
					pixel_types.append(pixel_type)
				bit_depths.add(depth)

		max_width = None
		max_height = None
		platen = data.get('PlatenInputCaps') or {}
		if 'MaxWidth' in platen:
			max_width = platen['MaxWidth'] * MM_PER_INCH / 300
		if 'MaxHeight' in platen:
			max_height = platen['MaxHeight'] * MM_PER_INCH / 300

		return cls(
			resolutions=tuple(data.get('Resolutions', [])),
			has_feeder='Feeder' in sources,
			pixel_types=tuple(pixel_types) or (PixelDataType.RGB,),
			bit_depths=tuple(sorted(bit_depths)) or (8,),
			units_per_inch=300.0,
			max_width=max_width,
			max_height=max_height,
		)
