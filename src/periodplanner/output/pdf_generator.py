"""PDF generation for printable week schedules."""

from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from periodplanner.domain.calendar import parse_date
from periodplanner.domain.models import PERIODS, WeekAvailability, WeekGrid

# Color definitions (RGB tuples, 0-1 scale)
PALETTE = [
    (0.55, 0.75, 0.55),  # Green
    (0.55, 0.6, 0.85),  # Blue
    (0.9, 0.7, 0.4),  # Orange
    (0.75, 0.55, 0.75),  # Purple
    (0.5, 0.75, 0.8),  # Teal
    (0.85, 0.6, 0.6),  # Rose
]
COLORS = {
    "empty": (1.0, 1.0, 1.0),
    "unavailable": (0.85, 0.85, 0.85),
    "grid": (0.6, 0.6, 0.6),
}


class PDFGenerator:
    """Generates a printable PDF of one week's grid.

    Each activity gets a stable color from a small palette, in order of first
    appearance. Unavailable slots are shaded gray.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(store.current_week(), "week.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        week: WeekGrid,
        output_path: Union[str, Path],
        unavailable: Optional[WeekAvailability] = None,
        title: Optional[str] = None,
    ) -> None:
        """Render the week and save it to ``output_path``."""
        canvas = self._canvas_module()
        c = canvas.Canvas(str(output_path), pagesize=(self.page_width, self.page_height))
        self._draw_week(c, week, unavailable or {}, title)
        c.save()

    def generate_to_buffer(
        self,
        week: WeekGrid,
        unavailable: Optional[WeekAvailability] = None,
        title: Optional[str] = None,
    ) -> BytesIO:
        """Render the week and return the PDF bytes in a buffer."""
        canvas = self._canvas_module()
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        self._draw_week(c, week, unavailable or {}, title)
        c.save()
        buffer.seek(0)
        return buffer

    @staticmethod
    def _canvas_module():
        try:
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )
        return canvas

    def _activity_colors(self, week: WeekGrid) -> dict[str, tuple[float, float, float]]:
        colors: dict[str, tuple[float, float, float]] = {}
        for date_str in sorted(week):
            for period in PERIODS:
                name = week[date_str].get(period)
                if name and name not in colors:
                    colors[name] = PALETTE[len(colors) % len(PALETTE)]
        return colors

    def _draw_week(
        self,
        c,
        week: WeekGrid,
        unavailable: WeekAvailability,
        title: Optional[str],
    ) -> None:
        dates = sorted(week)
        if not dates:
            return

        header_height = 60
        label_width = 60
        top = self.page_height - self.margin - header_height
        grid_width = self.page_width - 2 * self.margin - label_width
        grid_height = top - self.margin - 20
        col_width = grid_width / len(dates)
        row_height = grid_height / (len(PERIODS) + 1)
        left = self.margin + label_width

        # Header
        first, last = parse_date(dates[0]), parse_date(dates[-1])
        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            title or f"Week of {first.strftime('%B %d, %Y')}",
        )
        c.setFont("Helvetica", 10)
        total = sum(1 for d in dates for p in PERIODS if week[d].get(p))
        c.drawString(
            self.margin,
            self.page_height - self.margin - 35,
            f"{first.isoformat()} to {last.isoformat()} - {total} classes scheduled",
        )

        # Column headers
        c.setFont("Helvetica-Bold", 10)
        c.setFillColorRGB(0, 0, 0)
        for i, date_str in enumerate(dates):
            x = left + i * col_width
            c.drawCentredString(
                x + col_width / 2,
                top - row_height / 2 - 3,
                parse_date(date_str).strftime("%A %m/%d"),
            )

        colors = self._activity_colors(week)
        for row, period in enumerate(PERIODS, start=1):
            y = top - (row + 1) * row_height
            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica-Bold", 10)
            c.drawString(self.margin, y + row_height / 2 - 3, f"Period {period}")

            for i, date_str in enumerate(dates):
                x = left + i * col_width
                name = week[date_str].get(period)
                if name:
                    fill = colors[name]
                elif unavailable.get(date_str, {}).get(period):
                    fill = COLORS["unavailable"]
                else:
                    fill = COLORS["empty"]

                c.setFillColorRGB(*fill)
                c.setStrokeColorRGB(*COLORS["grid"])
                c.rect(x, y, col_width, row_height, fill=1, stroke=1)

                if name:
                    c.setFillColorRGB(0, 0, 0)
                    c.setFont("Helvetica", 10)
                    c.drawCentredString(x + col_width / 2, y + row_height / 2 - 3, name[:16])

        # Legend
        c.setFont("Helvetica", 8)
        c.setFillColorRGB(*COLORS["unavailable"])
        c.rect(self.margin, self.margin - 6, 10, 10, fill=1, stroke=1)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(self.margin + 14, self.margin - 4, "Teacher unavailable")

        c.showPage()
