# services/api/core/front_matter.py

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from fpdf import FPDF

from models import PacketMetadata


# Page label drawn in the draft table of contents (real numbers are unknown yet)
PLACEHOLDER_PAGE_LABEL = "..."

# Page label for a document that could not be merged
MISSING_PAGE_LABEL = "-"

# (display title, page label)
TocRow = Tuple[str, str]

_MARGIN_X = 50
_TOC_TITLE_Y = 100
_TOC_FIRST_ROW_Y = 150
_TOC_BOTTOM_MARGIN = 50
_TOC_FONT_SIZE = 12
_TOC_MIN_FONT_SIZE = 4
_LINE_HEIGHT = 1.5


def _pdf_text(s: Optional[str]) -> str:
    """The built-in PDF fonts only cover Latin-1; replace anything else."""
    return (s or "").encode("latin-1", "replace").decode("latin-1")


class FrontMatterRenderer:
    """
    Draws the packet front matter with fpdf2:
      - draft():       cover page + table of contents with placeholder page numbers
      - toc_overlay(): a single page that paints over the draft table of contents
                       (full-page white background) with the real page numbers
    All coordinates are in points, origin top-left.
    """

    def __init__(self, *, page_format: str = "A4", date_format: str = "%m/%d/%Y"):
        self.page_format = page_format
        self.date_format = date_format

    def _new_pdf(self, metadata: Optional[PacketMetadata] = None) -> FPDF:
        pdf = FPDF(orientation="P", unit="pt", format=self.page_format)
        pdf.set_auto_page_break(auto=False)
        if metadata is not None:
            pdf.set_title(_pdf_text(metadata.title))
            pdf.set_author(_pdf_text(metadata.prepared_by))
        return pdf

    @staticmethod
    def _to_bytes(pdf: FPDF) -> bytes:
        return bytes(pdf.output())

    # ---------- public ----------

    def draft(self, metadata: PacketMetadata, titles: Sequence[str]) -> bytes:
        """Two pages: cover, then the table of contents with placeholders."""
        pdf = self._new_pdf(metadata)
        self._cover_page(pdf, metadata)
        self._toc_page(pdf, [(t, PLACEHOLDER_PAGE_LABEL) for t in titles])
        return self._to_bytes(pdf)

    def toc_overlay(self, rows: Sequence[TocRow]) -> bytes:
        """One page meant to be stamped over the draft table of contents."""
        pdf = self._new_pdf()
        self._toc_page(pdf, rows, clear=True)
        return self._to_bytes(pdf)

    def format_date(self, value) -> str:
        return value.strftime(self.date_format)

    # ---------- pages ----------

    def _cover_page(self, pdf: FPDF, metadata: PacketMetadata) -> None:
        pdf.add_page()
        font_size = 24

        # Background
        pdf.set_fill_color(242, 242, 247)
        pdf.rect(0, 0, pdf.w, pdf.h, style="F")

        # Title
        pdf.set_font("Helvetica", "", font_size * 1.5)
        pdf.set_text_color(51, 51, 51)
        pdf.text(_MARGIN_X, 100, _pdf_text(metadata.title))

        # Project info
        info = [
            f"Project: {metadata.project_number or 'N/A'}",
            f"Prepared By: {metadata.prepared_by}",
            f"Submitted To: {metadata.submitted_to}",
            f"Date: {self.format_date(metadata.date)}",
        ]
        pdf.set_font("Helvetica", "", font_size * 0.7)
        pdf.set_text_color(77, 77, 77)
        for i, line in enumerate(info):
            pdf.text(_MARGIN_X, 200 + i * font_size * _LINE_HEIGHT, _pdf_text(line))

    def _toc_page(self, pdf: FPDF, rows: Sequence[TocRow], *, clear: bool = False) -> None:
        pdf.add_page()

        if clear:
            pdf.set_fill_color(255, 255, 255)
            pdf.rect(0, 0, pdf.w, pdf.h, style="F")

        pdf.set_font("Helvetica", "", _TOC_FONT_SIZE * 1.5)
        pdf.set_text_color(51, 51, 51)
        pdf.text(_MARGIN_X, _TOC_TITLE_Y, "Table of Contents")

        font_size, line_h = self._toc_metrics(pdf.h, len(rows))
        number_x = pdf.w - 100
        title_max_w = number_x - _MARGIN_X - 10

        pdf.set_font("Helvetica", "", font_size)
        for i, (title, page_label) in enumerate(rows):
            y = _TOC_FIRST_ROW_Y + i * line_h

            pdf.set_text_color(77, 77, 77)
            pdf.text(_MARGIN_X, y, self._fit(pdf, _pdf_text(title), title_max_w))

            pdf.set_text_color(128, 128, 128)
            pdf.text(number_x, y, page_label)

    # ---------- layout helpers ----------

    @staticmethod
    def _toc_metrics(page_h: float, n_rows: int) -> Tuple[float, float]:
        """
        Font size and line height for n_rows entries.
        Shrinks uniformly when the default spacing would run off the page,
        so the table of contents always stays on one page.
        """
        line_h = _TOC_FONT_SIZE * _LINE_HEIGHT
        if n_rows <= 1:
            return _TOC_FONT_SIZE, line_h

        available = page_h - _TOC_BOTTOM_MARGIN - _TOC_FIRST_ROW_Y
        if (n_rows - 1) * line_h <= available:
            return _TOC_FONT_SIZE, line_h

        line_h = available / (n_rows - 1)
        font_size = max(_TOC_MIN_FONT_SIZE, line_h / _LINE_HEIGHT)
        return font_size, line_h

    @staticmethod
    def _fit(pdf: FPDF, text: str, max_w: float) -> str:
        """Truncate text with '...' so it fits in max_w at the current font."""
        if pdf.get_string_width(text) <= max_w:
            return text
        while text and pdf.get_string_width(text + "...") > max_w:
            text = text[:-1]
        return text.rstrip() + "..."


def toc_rows(entries) -> List[TocRow]:
    """Final table-of-contents rows from ResolvedDocumentEntry values."""
    return [
        (e.display_title, str(e.start_page_number) if e.resolved else MISSING_PAGE_LABEL)
        for e in entries
    ]
