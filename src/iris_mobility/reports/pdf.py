"""
PDF Renderer (Imperative Shell)

Draws a ``ReportDocument`` with reportlab and writes it to disk.

Package Location: src/iris_mobility/reports/pdf.py

The document uses millimetres with a top-left origin; reportlab uses
points with a bottom-left origin, so every y coordinate is flipped here.
Text ``y`` values are baselines.

Image bands are drawn by clipping to the destination box and placing the
whole raster offset upwards by ``src_y``, so each band shows exactly its
own rows of the source image.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Sequence, Union

from reportlab.lib.colors import Color as RLColor
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .capture import ChartRaster
from .layout import (
    FillRect,
    ImageBand,
    Instruction,
    Line,
    ReportDocument,
    StrokeRect,
    TableBlock,
    Text,
    WHITE,
    INK,
    BOX_BORDER,
)

log = logging.getLogger(__name__)

_FONT = 'Helvetica'
_FONT_BOLD = 'Helvetica-Bold'
_CELL_PADDING = 2.0  # mm


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def render_pdf(document: ReportDocument, rasters: Sequence[ChartRaster] = ()) -> bytes:
    """
    Render *document* to PDF bytes.

    Args:
        document: Output of ``build_report``.
        rasters: The same raster sequence passed to ``build_report``;
            ``ImageBand.raster_index`` indexes into it.

    Returns:
        The encoded PDF.
    """
    buffer = io.BytesIO()
    page_w = document.page_width * mm
    page_h = document.page_height * mm

    pdf = canvas.Canvas(buffer, pagesize=(page_w, page_h))
    pdf.setTitle(document.title)

    renderer = _PageRenderer(pdf, document.page_height, rasters)
    for page in document.pages:
        for instruction in page.instructions:
            renderer.draw(instruction)
        pdf.showPage()

    pdf.save()
    return buffer.getvalue()


def write_report(
    document: ReportDocument,
    rasters: Sequence[ChartRaster],
    output_dir: Union[str, Path],
) -> Path:
    """
    Render *document* and write ``{output_dir}/{filename}.pdf``.

    The PDF is written to a temporary file in *output_dir* and renamed into
    place only after rendering and writing both succeed, so a failed run
    never leaves a partial file under the final name.

    Returns:
        Path of the written PDF.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / f'{document.filename}.pdf'

    data = render_pdf(document, rasters)

    fd, tmp_name = tempfile.mkstemp(dir=output_dir, prefix=f'.{document.filename}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as fh:
            fh.write(data)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    log.info(
        f"Wrote report {target.name} ({document.page_count} pages)",
        extra={"path": str(target), "pages": document.page_count, "bytes": len(data)},
    )
    return target


# ---------------------------------------------------------------------------
# Instruction drawing
# ---------------------------------------------------------------------------

class _PageRenderer:
    def __init__(
        self,
        pdf: canvas.Canvas,
        page_height_mm: float,
        rasters: Sequence[ChartRaster],
    ) -> None:
        self.pdf = pdf
        self.page_height = page_height_mm
        self.rasters = list(rasters)
        self._readers: Dict[int, ImageReader] = {}

    def draw(self, instruction: Instruction) -> None:
        if isinstance(instruction, FillRect):
            self._fill_rect(instruction)
        elif isinstance(instruction, StrokeRect):
            self._stroke_rect(instruction)
        elif isinstance(instruction, Text):
            self._text(instruction)
        elif isinstance(instruction, Line):
            self._line(instruction)
        elif isinstance(instruction, ImageBand):
            self._image_band(instruction)
        elif isinstance(instruction, TableBlock):
            self._table(instruction)
        else:
            raise TypeError(f"Unknown drawing instruction: {type(instruction).__name__}")

    # -- primitives ---------------------------------------------------------

    def _y(self, y_mm: float) -> float:
        return (self.page_height - y_mm) * mm

    def _fill_rect(self, r: FillRect) -> None:
        self.pdf.setFillColor(_rgb(r.color))
        self.pdf.rect(r.x * mm, self._y(r.y + r.height), r.width * mm, r.height * mm,
                      stroke=0, fill=1)

    def _stroke_rect(self, r: StrokeRect) -> None:
        self.pdf.setStrokeColor(_rgb(r.color))
        self.pdf.setLineWidth(r.line_width * mm)
        self.pdf.rect(r.x * mm, self._y(r.y + r.height), r.width * mm, r.height * mm,
                      stroke=1, fill=0)

    def _text(self, t: Text) -> None:
        self.pdf.setFillColor(_rgb(t.color))
        self.pdf.setFont(_FONT_BOLD if t.bold else _FONT, t.size)
        self.pdf.drawString(t.x * mm, self._y(t.y), t.text)

    def _line(self, ln: Line) -> None:
        self.pdf.setStrokeColor(_rgb(ln.color))
        self.pdf.setLineWidth(ln.line_width * mm)
        self.pdf.line(ln.x1 * mm, self._y(ln.y1), ln.x2 * mm, self._y(ln.y2))

    # -- images -------------------------------------------------------------

    def _image_band(self, band: ImageBand) -> None:
        raster = self.rasters[band.raster_index]
        if not raster.data:
            log.warning(
                f"Raster '{raster.name}' has no image data; leaving band empty",
                extra={"chart": raster.name},
            )
            return

        reader = self._readers.get(band.raster_index)
        if reader is None:
            reader = ImageReader(io.BytesIO(raster.data))
            self._readers[band.raster_index] = reader

        # mm per source pixel, vertically
        scale = band.height / band.src_height
        full_height = raster.height * scale
        image_top = band.y - band.src_y * scale

        self.pdf.saveState()
        clip = self.pdf.beginPath()
        clip.rect(band.x * mm, self._y(band.y + band.height), band.width * mm, band.height * mm)
        self.pdf.clipPath(clip, stroke=0, fill=0)
        self.pdf.drawImage(
            reader,
            band.x * mm,
            self._y(image_top + full_height),
            width=band.width * mm,
            height=full_height * mm,
        )
        self.pdf.restoreState()

    # -- tables -------------------------------------------------------------

    def _table(self, tb: TableBlock) -> None:
        n_cols = max(len(tb.header), 1)
        col_w = tb.width / n_cols

        self._fill_rect(FillRect(tb.x, tb.y, tb.width, tb.header_height, tb.header_color))
        for i, label in enumerate(tb.header):
            self._text(Text(
                tb.x + i * col_w + _CELL_PADDING,
                tb.y + tb.header_height * 0.7,
                label,
                tb.font_size,
                WHITE,
                bold=True,
            ))

        y = tb.y + tb.header_height
        for n, row in enumerate(tb.rows):
            if tb.stripe_color is not None and n % 2 == 1:
                self._fill_rect(FillRect(tb.x, y, tb.width, tb.row_height, tb.stripe_color))
            for i, cell in enumerate(row):
                self._text(Text(
                    tb.x + i * col_w + _CELL_PADDING,
                    y + tb.row_height * 0.7,
                    cell,
                    tb.font_size,
                    INK,
                ))
            y += tb.row_height

        self._stroke_rect(StrokeRect(tb.x, tb.y, tb.width, tb.height, BOX_BORDER))
        for i in range(1, n_cols):
            x = tb.x + i * col_w
            self._line(Line(x, tb.y, x, tb.y + tb.height, BOX_BORDER, 0.2))


def _rgb(color) -> RLColor:
    r, g, b = color
    return RLColor(r / 255.0, g / 255.0, b / 255.0)
