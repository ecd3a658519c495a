"""
Report Document Assembler (Functional Core)

Pure function - no drawing library, no file I/O.
Input: aggregated dataset + chart rasters + ordering options.
Output: ``ReportDocument``, a list of physical pages, each a tuple of
drawing instructions, plus the target filename.

Package Location: src/iris_mobility/reports/layout.py

Coordinates are millimetres on an A4 portrait page with the origin at the
top-left corner; the renderer converts to its own coordinate system.

Page order:
    1. Cover page (header band, period line, four stat boxes).
    2. Chart pages, one or more per raster.  A raster is scaled to the
       content width; when that makes it taller than the content height it
       is cut into horizontal bands, one per page.  Band ``i`` shows
       ``min(content_height, remaining)`` millimetres and takes
       ``band_height / scaled_height * raster_height`` source pixels; the
       last band takes the exact remainder so the bands sum to the raster
       height with nothing cropped or repeated.
    3. Table pages: direction ranking, speeding by day, risk by hour,
       frequency by hour - each only when its data is non-empty (risk needs
       all 24 hours).  The
       vertical cursor carries across tables; rows that do not fit continue
       on a new page under a repeated header.

Every page ends with the footer ``"{product} • Page {n}/{total}"``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..analysis.aggregate import KMH_PER_MPH, hour_label, round_half_away
from ..analysis.models import AggregatedDataset
from ..errors import InvalidDataset
from .capture import ChartRaster

# ---------------------------------------------------------------------------
# Geometry (mm)
# ---------------------------------------------------------------------------

PAGE_WIDTH: float = 210.0
PAGE_HEIGHT: float = 297.0
MARGIN: float = 6.0
CONTENT_WIDTH: float = PAGE_WIDTH - MARGIN * 2
CONTENT_HEIGHT: float = PAGE_HEIGHT - MARGIN * 2

HEADER_BAND_HEIGHT: float = 28.0
STAT_BOX_GAP: float = 3.0
STAT_BOX_HEIGHT: float = 20.0
STAT_VALUE_MAX_CHARS: int = 14
STAT_VALUE_KEEP_CHARS: int = 12

MIN_RASTER_PX: int = 200

TABLE_TOP: float = MARGIN + 2
TABLE_BOTTOM: float = PAGE_HEIGHT - MARGIN - 4
HEADER_ROW_HEIGHT: float = 7.0
ROW_HEIGHT: Dict[int, float] = {9: 6.0, 8: 5.5}

# Remaining-space thresholds before a table forces a new page.
_SPEEDING_THRESHOLD: float = 40.0
_HOURLY_THRESHOLD: float = 50.0

FOOTER_OFFSET: float = 5.0

# ---------------------------------------------------------------------------
# Colours (RGB 0-255)
# ---------------------------------------------------------------------------

NAVY = (10, 49, 97)
RED = (179, 25, 66)
SLATE = (100, 116, 139)
INK = (15, 23, 42)
HEADING = (30, 41, 59)
MUTED = (100, 100, 100)
FOOTER_GREY = (148, 163, 184)
BOX_BORDER = (226, 232, 240)
BOX_FILL = (248, 250, 252)
ROSE_FILL = (254, 242, 242)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

RANGE_LABELS = {'daily': 'Daily', 'weekly': 'Weekly', 'monthly': 'Monthly'}

_AVG_MPH = re.compile(r'avg\s+(\d+)\s+mph')
_DASH_SEPARATOR = re.compile(r'\s*[–—]\s*')
_WHITESPACE = re.compile(r'\s')

_REQUIRED_NUMERIC = ('total_vehicles', 'over_limit_count', 'avg_speed_mph')

Color = Tuple[int, int, int]


# ---------------------------------------------------------------------------
# Drawing instructions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FillRect:
    x: float
    y: float
    width: float
    height: float
    color: Color


@dataclass(frozen=True)
class StrokeRect:
    x: float
    y: float
    width: float
    height: float
    color: Color
    line_width: float = 0.25


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float
    color: Color = BLACK
    bold: bool = False


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Color
    line_width: float = 0.35


@dataclass(frozen=True)
class ImageBand:
    """
    Draw rows ``[src_y, src_y + src_height)`` of raster ``raster_index`` into
    the box ``(x, y, width, height)``.
    """

    raster_index: int
    x: float
    y: float
    width: float
    height: float
    src_y: float
    src_height: float


@dataclass(frozen=True)
class TableBlock:
    """A grid table (or the part of one that fits on the current page)."""

    x: float
    y: float
    width: float
    header: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]
    header_color: Color
    font_size: float
    row_height: float
    header_height: float = HEADER_ROW_HEIGHT
    stripe_color: Optional[Color] = BOX_FILL

    @property
    def height(self) -> float:
        return self.header_height + self.row_height * len(self.rows)


Instruction = Union[FillRect, StrokeRect, Text, Line, ImageBand, TableBlock]


@dataclass(frozen=True)
class Page:
    kind: str
    instructions: Tuple[Instruction, ...]


@dataclass(frozen=True)
class ReportDocument:
    filename: str
    title: str
    pages: Tuple[Page, ...]
    page_width: float = PAGE_WIDTH
    page_height: float = PAGE_HEIGHT

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def pages_of_kind(self, kind: str) -> List[Page]:
        return [p for p in self.pages if p.kind == kind]


@dataclass(frozen=True)
class ReportOptions:
    report_type: str = 'weekly'
    selected_date: Optional[str] = None
    selected_intersection: Optional[str] = None
    product_name: str = 'IRIS Mobility'


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_report(
    dataset: Union[AggregatedDataset, Mapping[str, Any]],
    chart_rasters: Sequence[ChartRaster] = (),
    options: Optional[ReportOptions] = None,
) -> ReportDocument:
    """
    Lay out the complete report document.

    Args:
        dataset: ``AggregatedDataset`` or a mapping shaped like
            ``AggregatedDataset.to_dict()``.  Missing table series are
            treated as empty.
        chart_rasters: Captured charts in page order.  Rasters smaller than
            200 px on either side are ignored as failed captures.
        options: Report type, optional selected date and intersection.

    Returns:
        ``ReportDocument``.  Never fails because imagery or table data is
        missing.

    Raises:
        InvalidDataset: If a required numeric field is missing or invalid.
    """
    options = options or ReportOptions()
    data = _coerce_dataset(dataset)

    builder = _PageBuilder()
    _layout_cover(builder, data, options)
    _layout_charts(builder, chart_rasters or ())
    _layout_tables(builder, data)

    pages = builder.finish(options.product_name)
    range_label = RANGE_LABELS.get(options.report_type, options.report_type.title())

    return ReportDocument(
        filename=report_filename(options.report_type, data.get('date_range_label')),
        title=f"{options.product_name} – {range_label} Traffic Report",
        pages=pages,
    )


def report_filename(report_type: str, date_range_label: Optional[str]) -> str:
    """
    ``traffic-report-{report_type}-{label}`` with dash separators collapsed
    and whitespace removed from the label.
    """
    label = date_range_label or 'report'
    label = _DASH_SEPARATOR.sub('-', label)
    label = _WHITESPACE.sub('', label)
    return f'traffic-report-{report_type}-{label}'


def truncate_stat(value: str) -> str:
    """Ellipsize stat-box values longer than 14 characters to 12 + ``…``."""
    if len(value) > STAT_VALUE_MAX_CHARS:
        return value[:STAT_VALUE_KEEP_CHARS] + '…'
    return value


def slice_bands(raster_height: float, scaled_height: float) -> List[Tuple[float, float, float]]:
    """
    Split a scaled raster into page bands.

    Args:
        raster_height: Source height in pixels.
        scaled_height: Height in mm after scaling to the content width.

    Returns:
        List of ``(band_height_mm, src_y_px, src_height_px)``; one entry when
        the image fits on a page.
    """
    if scaled_height <= CONTENT_HEIGHT:
        return [(scaled_height, 0.0, float(raster_height))]

    n_bands = max(1, math.ceil(scaled_height / CONTENT_HEIGHT - 1e-9))
    bands = []
    consumed = 0.0
    for i in range(n_bands):
        band_height = min(CONTENT_HEIGHT, scaled_height - i * CONTENT_HEIGHT)
        if i == n_bands - 1:
            src_height = raster_height - consumed
        else:
            src_height = (band_height / scaled_height) * raster_height
        bands.append((band_height, consumed, src_height))
        consumed += src_height
    return bands


# ---------------------------------------------------------------------------
# Page builder
# ---------------------------------------------------------------------------

class _PageBuilder:
    """Collects instructions per page; the cursor belongs to the table pass."""

    def __init__(self) -> None:
        self._pages: List[Tuple[str, List[Instruction]]] = []

    def new_page(self, kind: str) -> None:
        self._pages.append((kind, []))

    def add(self, instruction: Instruction) -> None:
        self._pages[-1][1].append(instruction)

    def finish(self, product_name: str) -> Tuple[Page, ...]:
        total = len(self._pages)
        pages = []
        for n, (kind, instructions) in enumerate(self._pages, start=1):
            footer = Text(
                MARGIN,
                PAGE_HEIGHT - FOOTER_OFFSET,
                f'{product_name} • Page {n}/{total}',
                7,
                FOOTER_GREY,
            )
            pages.append(Page(kind=kind, instructions=tuple(instructions) + (footer,)))
        return tuple(pages)


# ---------------------------------------------------------------------------
# Cover
# ---------------------------------------------------------------------------

def _layout_cover(b: _PageBuilder, data: Dict[str, Any], options: ReportOptions) -> None:
    b.new_page('cover')
    range_label = RANGE_LABELS.get(options.report_type, options.report_type.title())
    period = data.get('date_range_label') or options.selected_date or '—'

    b.add(FillRect(0, 0, PAGE_WIDTH, HEADER_BAND_HEIGHT, NAVY))
    b.add(Text(MARGIN, 12, options.product_name, 18, WHITE, bold=True))
    b.add(Text(MARGIN, 20, 'Traffic Analytics Report', 11, WHITE))

    b.add(Text(MARGIN, 36, f'{range_label} Report • {period}', 11))
    if options.selected_intersection:
        b.add(Text(MARGIN, 42, f'Intersection: {options.selected_intersection}', 9))
    b.add(Text(MARGIN, 48 if options.selected_intersection else 44,
               'Generated from CSV data', 8, MUTED))

    stats = [
        ('Total Vehicles', f"{int(data['total_vehicles']):,}"),
        ('Violations', f"{int(data['over_limit_count']):,}"),
        ('Avg Speed', f"{_format_number(data['avg_speed_mph'])} mph"),
        ('Period', period),
    ]

    box_w = (CONTENT_WIDTH - STAT_BOX_GAP * 3) / 4
    box_y = 54 if options.selected_intersection else 50
    for i, (label, value) in enumerate(stats):
        x = MARGIN + i * (box_w + STAT_BOX_GAP)
        b.add(StrokeRect(x, box_y, box_w, STAT_BOX_HEIGHT, BOX_BORDER))
        b.add(FillRect(x + 0.4, box_y + 0.4, box_w - 0.8, STAT_BOX_HEIGHT - 0.8, BOX_FILL))
        b.add(Text(x + 3, box_y + 6, label, 8, SLATE))
        b.add(Text(x + 3, box_y + 14, truncate_stat(str(value)), 10, INK, bold=True))


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------

def _layout_charts(b: _PageBuilder, rasters: Sequence[ChartRaster]) -> None:
    for index, raster in enumerate(rasters):
        if raster.width < MIN_RASTER_PX or raster.height < MIN_RASTER_PX:
            continue
        scaled_height = CONTENT_WIDTH * raster.height / raster.width
        for band_height, src_y, src_height in slice_bands(raster.height, scaled_height):
            b.new_page('chart')
            b.add(ImageBand(
                raster_index=index,
                x=MARGIN,
                y=MARGIN,
                width=CONTENT_WIDTH,
                height=band_height,
                src_y=src_y,
                src_height=src_height,
            ))


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def _layout_tables(b: _PageBuilder, data: Dict[str, Any]) -> None:
    flows = _as_list(data.get('top_flows_by_direction'))
    speeding = _as_list(data.get('speeding_by_day'))
    risk = _as_list(data.get('risk_by_hour'))
    if len(risk) != 24:
        risk = []
    frequency = _as_list(data.get('vehicle_frequency_by_hour'))

    if not (flows or speeding or risk or frequency):
        return

    b.new_page('table')
    y = TABLE_TOP
    b.add(Line(MARGIN, y, PAGE_WIDTH - MARGIN, y, NAVY))
    y += 6

    if flows:
        b.add(Text(MARGIN, y, 'Top Flows by Direction', 11, HEADING, bold=True))
        y += 6
        rows = [
            (
                _text(_field(f, 'rank')),
                _text(_field(f, 'name')),
                f"{int(_field(f, 'volume') or 0):,}",
                _avg_from_stats(_field(f, 'stats')),
            )
            for f in flows
        ]
        y = _place_table(b, y, ('Rank', 'Direction', 'Vehicles', 'Avg Speed'),
                         rows, NAVY, 9) + 6

    if speeding:
        y = _ensure_room(b, y, _SPEEDING_THRESHOLD)
        b.add(Text(MARGIN, y, _speeding_title(data), 11, HEADING, bold=True))
        y += 5
        rows = [(_text(_field(d, 'day')), str(_field(d, 'count') or 0)) for d in speeding]
        y = _place_table(b, y, ('Day', 'Count'), rows, RED, 9, stripe=ROSE_FILL) + 6

    if risk:
        y = _ensure_room(b, y, _HOURLY_THRESHOLD)
        b.add(Text(MARGIN, y, 'Risk by Hour (0=low, 4=high)', 11, HEADING, bold=True))
        y += 5
        rows = []
        for start in range(0, 24, 3):
            row: List[str] = []
            for h in range(start, start + 3):
                row.append(hour_label(h))
                row.append(_text(risk[h]))
            rows.append(tuple(row))
        y = _place_table(b, y, ('Hour', 'Risk') * 3, rows, SLATE, 8, stripe=None) + 6

    if frequency:
        y = _ensure_room(b, y, _HOURLY_THRESHOLD)
        b.add(Text(MARGIN, y, 'Vehicle Frequency by Hour', 11, HEADING, bold=True))
        y += 5
        rows = [
            (_text(_field(h, 'label')), f"{int(_field(h, 'value') or 0):,}")
            for h in frequency[:24]
        ]
        _place_table(b, y, ('Time', 'Vehicles'), rows, NAVY, 9)


def _ensure_room(b: _PageBuilder, y: float, threshold: float) -> float:
    """Start a new table page when fewer than *threshold* mm remain."""
    if y > PAGE_HEIGHT - threshold:
        b.new_page('table')
        return TABLE_TOP
    return y


def _place_table(
    b: _PageBuilder,
    y: float,
    header: Tuple[str, ...],
    rows: Sequence[Tuple[str, ...]],
    header_color: Color,
    font_size: int,
    stripe: Optional[Color] = BOX_FILL,
) -> float:
    """
    Emit a table starting at *y*, continuing on new pages as needed.

    Returns:
        The y position just below the last emitted row.
    """
    row_h = ROW_HEIGHT[font_size]
    remaining = list(rows)

    while True:
        fit = int((TABLE_BOTTOM - y - HEADER_ROW_HEIGHT) // row_h)
        if fit <= 0 and remaining:
            b.new_page('table')
            y = TABLE_TOP
            continue
        chunk, remaining = remaining[:fit], remaining[fit:]
        block = TableBlock(
            x=MARGIN,
            y=y,
            width=CONTENT_WIDTH,
            header=tuple(header),
            rows=tuple(tuple(r) for r in chunk),
            header_color=header_color,
            font_size=font_size,
            row_height=row_h,
            stripe_color=stripe,
        )
        b.add(block)
        y += block.height
        if not remaining:
            return y
        b.new_page('table')
        y = TABLE_TOP


# ---------------------------------------------------------------------------
# Dataset coercion
# ---------------------------------------------------------------------------

def _coerce_dataset(dataset: Any) -> Dict[str, Any]:
    """
    Return the dataset as a plain dict and validate its numeric fields.

    Raises:
        InvalidDataset: Missing, non-numeric, negative or non-finite
            ``total_vehicles`` / ``over_limit_count`` / ``avg_speed_mph``.
    """
    if isinstance(dataset, AggregatedDataset):
        data = dataset.to_dict()
    elif isinstance(dataset, Mapping):
        data = dict(dataset)
    else:
        raise InvalidDataset(
            f'Expected AggregatedDataset or mapping, got {type(dataset).__name__}'
        )

    for key in _REQUIRED_NUMERIC:
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidDataset(f"Dataset field '{key}' must be a number, got {value!r}")
        if not math.isfinite(value) or value < 0:
            raise InvalidDataset(f"Dataset field '{key}' is out of range: {value!r}")
    return data


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return list(value)


def _field(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def _text(value: Any) -> str:
    return '—' if value is None else str(value)


def _avg_from_stats(stats: Optional[str]) -> str:
    match = _AVG_MPH.search(stats) if stats else None
    return f'{match.group(1)} mph' if match else '—'


def _speeding_title(data: Dict[str, Any]) -> str:
    limit_kmh = data.get('speed_limit_kmh')
    if isinstance(limit_kmh, (int, float)) and not isinstance(limit_kmh, bool):
        limit_mph = int(round_half_away(limit_kmh / KMH_PER_MPH, 0))
        return f'Speeding by Day ({limit_mph}+ mph)'
    return 'Speeding by Day'


def _format_number(value: float) -> str:
    """``41.0`` → ``"41"``, ``41.5`` → ``"41.5"``."""
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)
