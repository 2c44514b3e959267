"""PDF rendering of a Tokenator report."""

from datetime import datetime
from functools import lru_cache
from pathlib import Path

import pymupdf

from tokenator.models.report import Report, ReportRow


def _rgb(r: int, g: int, b: int) -> tuple[float, float, float]:
    return (r / 255, g / 255, b / 255)


SLATE_800 = _rgb(30, 41, 59)
SLATE_500 = _rgb(100, 116, 139)
SLATE_200 = _rgb(226, 232, 240)
SLATE_100 = _rgb(241, 245, 249)
SLATE_50 = _rgb(248, 250, 252)
BLUE_600 = _rgb(37, 99, 235)
BLUE_500 = _rgb(59, 130, 246)
EMERALD_500 = _rgb(16, 185, 129)
RED_500 = _rgb(239, 68, 68)
WHITE = (1.0, 1.0, 1.0)
GREY = _rgb(150, 150, 150)

SLICE_COLORS = [
    BLUE_500,
    RED_500,
    EMERALD_500,
    _rgb(245, 158, 11),  # amber
    _rgb(139, 92, 246),  # violet
    _rgb(236, 72, 153),  # pink
]

FONT = "helv"
FONT_BOLD = "hebo"
# Built-in CJK font for text the base-14 fonts cannot encode
UNICODE_FONT = "china-s"

MARGIN = 40
HEADER_HEIGHT = 113
TABLE_ROW_HEIGHT = 20
FOOTER_SPACE = 50


@lru_cache(maxsize=1)
def _unicode_font() -> pymupdf.Font:
    return pymupdf.Font("cjk")


def font_for(text: str, bold: bool = False) -> str:
    """Pick a base-14 font when the text is Latin-1, the Unicode font otherwise."""
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        return UNICODE_FONT
    return FONT_BOLD if bold else FONT


def text_length(text: str, size: float, bold: bool = False) -> float:
    fontname = font_for(text, bold)
    if fontname == UNICODE_FONT:
        return _unicode_font().text_length(text, fontsize=size)
    return pymupdf.get_text_length(text, fontname=fontname, fontsize=size)


class PDFReportWriter:
    """Draws a Report onto A4 pages with pymupdf."""

    def __init__(self, report: Report, generated_at: datetime | None = None) -> None:
        self.report = report
        self.generated_at = generated_at or datetime.now()
        self.doc = pymupdf.open()
        self.page = self.doc.new_page()
        self.width = self.page.rect.width
        self.height = self.page.rect.height
        self.content_width = self.width - 2 * MARGIN
        self.y = 0.0

    def render(self) -> bytes:
        """Render all sections and return the PDF bytes."""
        self._draw_header()
        self._draw_summary()
        self._draw_usage_bar()
        self._draw_distribution()
        self._draw_comparison()
        self._draw_table()
        self._draw_footers()

        try:
            return self.doc.tobytes()
        finally:
            self.doc.close()

    def _text(self, x: float, y: float, text: str, size: float = 10, bold: bool = False, color=SLATE_800) -> None:
        self.page.insert_text((x, y), text, fontsize=size, fontname=font_for(text, bold), color=color)

    def _text_right(self, right: float, y: float, text: str, size: float = 10, bold: bool = False, color=SLATE_800):
        width = text_length(text, size, bold)
        self._text(right - width, y, text, size=size, bold=bold, color=color)

    def _rect(self, x0: float, y0: float, x1: float, y1: float, fill, border=None) -> None:
        self.page.draw_rect(pymupdf.Rect(x0, y0, x1, y1), color=border, fill=fill, width=0.5 if border else 0)

    def _section_title(self, title: str) -> None:
        self._text(MARGIN, self.y, title, size=12, bold=True)

    def _draw_header(self) -> None:
        self._rect(0, 0, self.width, HEADER_HEIGHT, fill=SLATE_800)
        self._text(MARGIN, 71, "Tokenator Report", size=24, bold=True, color=WHITE)
        generated = self.generated_at.strftime("%Y-%m-%d %H:%M:%S")
        self._text(MARGIN, 96, f"Generated: {generated}", size=10, color=_rgb(200, 200, 200))
        self.y = HEADER_HEIGHT + 43

    def _draw_summary(self) -> None:
        self._text(MARGIN, self.y, "Analysis Summary", size=14, bold=True)
        self.y += 15

        card_top = self.y
        self._rect(MARGIN, card_top, self.width - MARGIN, card_top + 90, fill=SLATE_50, border=SLATE_200)

        columns = [MARGIN + 17, MARGIN + 187, MARGIN + 357]
        labels = ["Total Files", "Total Tokens", "Total Characters"]
        values = [
            str(self.report.total_files),
            f"{self.report.total_tokens:,}",
            f"{self.report.total_chars:,}",
        ]
        for x, label, value in zip(columns, labels, values, strict=True):
            self._text(x, card_top + 34, label, size=10, color=SLATE_500)
            self._text(x, card_top + 60, value, size=16, bold=True, color=BLUE_600)

        self.y = card_top + 130

    def _draw_usage_bar(self) -> None:
        self._section_title(f"Context Window Usage ({self.report.context_window:,} token limit)")

        bar_top = self.y + 12
        self._rect(MARGIN, bar_top, self.width - MARGIN, bar_top + 28, fill=SLATE_100)
        fill_width = self.content_width * self.report.usage_percent / 100
        if fill_width > 0:
            color = RED_500 if self.report.is_over_limit else BLUE_600
            self._rect(MARGIN, bar_top, MARGIN + fill_width, bar_top + 28, fill=color)

        label = f"{self.report.usage_percent:.2f}% Used"
        if self.report.is_over_limit:
            label += f" (limit exceeded: {self.report.raw_usage_percent:.2f}%)"
        self._text(MARGIN, bar_top + 46, label, size=10, color=SLATE_500)
        self.y = bar_top + 80

    def _draw_distribution(self) -> None:
        self._section_title("Token Distribution (Share per File)")

        bar_top = self.y + 12
        x = float(MARGIN)
        for index, item in enumerate(self.report.distribution):
            width = item.share_percent / 100 * self.content_width
            if width > 1:
                self._rect(x, bar_top, x + width, bar_top + 40, fill=SLICE_COLORS[index % len(SLICE_COLORS)])
                x += width

        legend_x = float(MARGIN)
        legend_y = bar_top + 58
        for index, item in enumerate(self.report.distribution):
            name = item.label if len(item.label) <= 10 else item.label[:10] + ".."
            label = f"{name} {item.share_percent:.1f}%"
            label_width = text_length(label, 8) + 22

            if legend_x + label_width > self.width - MARGIN:
                legend_x = MARGIN
                legend_y += 14

            self._rect(legend_x, legend_y - 7, legend_x + 8, legend_y + 1, fill=SLICE_COLORS[index % len(SLICE_COLORS)])
            self._text(legend_x + 12, legend_y, label, size=8, color=_rgb(100, 100, 100))
            legend_x += label_width

        self.y = legend_y + 40

    def _draw_comparison(self) -> None:
        self._section_title("File Comparison (Tokens vs Characters)")

        rows = self.report.comparison
        chart_height = 110.0
        base_y = self.y + 18 + chart_height
        self.page.draw_line((MARGIN, base_y), (self.width - MARGIN, base_y), color=_rgb(200, 200, 200), width=0.5)

        max_value = max([max(row.token_count, row.char_count) for row in rows] + [1])
        area_width = self.content_width / (len(rows) or 1)
        bar_width = min(22.0, area_width * 0.35)

        for index, row in enumerate(rows):
            center = MARGIN + index * area_width + area_width / 2
            token_height = row.token_count / max_value * chart_height
            char_height = row.char_count / max_value * chart_height

            if token_height > 0:
                self._rect(center - bar_width - 1, base_y - token_height, center - 1, base_y, fill=BLUE_500)
            if char_height > 0:
                self._rect(center + 1, base_y - char_height, center + 1 + bar_width, base_y, fill=EMERALD_500)

            name = row.file_name if len(row.file_name) <= 6 else row.file_name[:5] + "."
            name_width = text_length(name, 7)
            self._text(center - name_width / 2, base_y + 11, name, size=7, color=SLATE_500)

        self.y = base_y + 45

    def _table_columns(self) -> list[float]:
        return [MARGIN + 8, self.width - MARGIN - 130, self.width - MARGIN - 8]

    def _draw_table_head(self) -> None:
        name_x, chars_right, tokens_right = self._table_columns()
        top = self.y
        self._rect(MARGIN, top, self.width - MARGIN, top + TABLE_ROW_HEIGHT, fill=SLATE_800)
        baseline = top + 14
        self._text(name_x, baseline, "File Name", size=9, bold=True, color=WHITE)
        self._text_right(chars_right, baseline, "Characters", size=9, bold=True, color=WHITE)
        self._text_right(tokens_right, baseline, "Tokens", size=9, bold=True, color=WHITE)
        self.y = top + TABLE_ROW_HEIGHT

    def _draw_table_row(self, index: int, row: ReportRow) -> None:
        name_x, chars_right, tokens_right = self._table_columns()
        top = self.y
        fill = SLATE_100 if index % 2 else WHITE
        self._rect(MARGIN, top, self.width - MARGIN, top + TABLE_ROW_HEIGHT, fill=fill, border=SLATE_200)

        baseline = top + 14
        name = row.file_name if len(row.file_name) <= 60 else row.file_name[:57] + "..."
        if row.error is not None:
            self._text(name_x, baseline, f"{name} (failed)", size=9, color=RED_500)
        else:
            self._text(name_x, baseline, name, size=9)
        self._text_right(chars_right, baseline, f"{row.char_count:,}", size=9)
        self._text_right(tokens_right, baseline, f"{row.token_count:,}", size=9, bold=True, color=BLUE_600)
        self.y = top + TABLE_ROW_HEIGHT

    def _draw_table(self) -> None:
        if self.y + 2 * TABLE_ROW_HEIGHT > self.height - FOOTER_SPACE:
            self._new_page()
        self._draw_table_head()

        for index, row in enumerate(self.report.rows):
            if self.y + TABLE_ROW_HEIGHT > self.height - FOOTER_SPACE:
                self._new_page()
                self._draw_table_head()
            self._draw_table_row(index, row)

    def _new_page(self) -> None:
        self.page = self.doc.new_page(width=self.width, height=self.height)
        self.y = MARGIN

    def _draw_footers(self) -> None:
        page_count = self.doc.page_count
        for number, page in enumerate(self.doc, start=1):
            self.page = page
            baseline = self.height - 28
            self._text(MARGIN, baseline, "Generated by Tokenator", size=8, color=GREY)
            self._text_right(self.width - MARGIN, baseline, f"Page {number} of {page_count}", size=8, color=GREY)


def render_pdf_report(report: Report, generated_at: datetime | None = None) -> bytes:
    """Render a report as PDF and return the document bytes."""
    return PDFReportWriter(report, generated_at=generated_at).render()


def save_pdf_report(report: Report, output_file: str | Path, generated_at: datetime | None = None) -> None:
    """Render a report as PDF and write it to `output_file`."""
    Path(output_file).write_bytes(render_pdf_report(report, generated_at=generated_at))
