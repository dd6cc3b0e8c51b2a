# (c) Copyright Datacraft, 2026
"""
Paper size classification for feeder scans.

Feeder-equipped devices are configured with a paper size category instead of
an explicit scan rectangle. The requested page width and height are matched
against a table of standard sizes; pages that match nothing are bucketed by
area.
"""
from enum import Enum

DEFAULT_TOLERANCE_MM = 2.0


class DocumentCategory(str, Enum):
	"""Standard paper size categories."""
	A0 = 'a0'
	A1 = 'a1'
	A2 = 'a2'
	A3 = 'a3'
	A4 = 'a4'
	A5 = 'a5'
	A6 = 'a6'
	US_TABLOID = 'us-tabloid'
	US_LEGAL = 'us-legal'
	US_LETTER = 'us-letter'
	US_EXECUTIVE = 'us-executive'
	ISO_B5 = 'iso-b5'
	JIS_B4 = 'jis-b4'
	JIS_B5 = 'jis-b5'
	JIS_B6 = 'jis-b6'

	@property
	def short_mm(self) -> float:
		return _DIMENSIONS[self][0]

	@property
	def long_mm(self) -> float:
		return _DIMENSIONS[self][1]

	@property
	def area(self) -> float:
		return self.short_mm * self.long_mm


# (short side, long side) in millimetres, largest area first.
STANDARD_SIZES: list[tuple[DocumentCategory, float, float]] = [
	(DocumentCategory.A0, 841.0, 1189.0),
	(DocumentCategory.A1, 594.0, 841.0),
	(DocumentCategory.A2, 420.0, 594.0),
	(DocumentCategory.A3, 297.0, 420.0),
	(DocumentCategory.US_TABLOID, 279.4, 431.8),
	(DocumentCategory.JIS_B4, 257.0, 364.0),
	(DocumentCategory.US_LEGAL, 215.9, 355.6),
	(DocumentCategory.A4, 210.0, 297.0),
	(DocumentCategory.US_LETTER, 215.9, 279.4),
	(DocumentCategory.US_EXECUTIVE, 184.15, 266.7),
	(DocumentCategory.JIS_B5, 182.0, 257.0),
	(DocumentCategory.ISO_B5, 176.0, 250.0),
	(DocumentCategory.A5, 148.0, 210.0),
	(DocumentCategory.JIS_B6, 128.0, 182.0),
	(DocumentCategory.A6, 105.0, 148.0),
]

_DIMENSIONS = {category: (short, long) for category, short, long in STANDARD_SIZES}

# Area buckets for unmatched pages: (exclusive lower bound, category).
# The last bucket catches everything small.
FALLBACK_BUCKETS: list[tuple[float, DocumentCategory]] = [
	(DocumentCategory.A4.area, DocumentCategory.A3),
	(DocumentCategory.A5.area, DocumentCategory.A4),
	(DocumentCategory.A6.area, DocumentCategory.A5),
	(0.0, DocumentCategory.A6),
]


def match_standard_size(
	width: float,
	height: float,
	tolerance: float = DEFAULT_TOLERANCE_MM,
) -> DocumentCategory | None:
	"""Return the first table entry within tolerance on both sides, if any."""
	short_side, long_side = min(width, height), max(width, height)
	for category, short_ref, long_ref in STANDARD_SIZES:
		if abs(short_side - short_ref) <= tolerance and abs(long_side - long_ref) <= tolerance:
			return category
	return None


def classify_by_area(width: float, height: float) -> DocumentCategory:
	"""
	Coarse area bucket for pages that match no standard size.

	This is an approximation: a 300x300 mm page is reported as A3 even though
	it does not fit an A3 sheet. Use it only to pick a reasonable feeder
	setting.
	"""
	area = width * height
	for lower_bound, category in FALLBACK_BUCKETS:
		if area > lower_bound:
			return category
	return FALLBACK_BUCKETS[-1][1]


def classify(
	width: float,
	height: float,
	tolerance: float = DEFAULT_TOLERANCE_MM,
) -> DocumentCategory:
	"""
	Map a page size in millimetres to a paper size category.

	Orientation does not matter. When no standard size is within `tolerance`
	the page is classified by area (see `classify_by_area`).
	"""
	category = match_standard_size(width, height, tolerance)
	if category is not None:
		return category
	return classify_by_area(width, height)
