from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Union
from urllib.parse import urlsplit

import fitz

from factlens.models.types import AnalysisResult, Claim, Evidence, Verdict, confidence_percent

logger = logging.getLogger(__name__)

# A4 portrait in PDF points.
PAGE_WIDTH = 595.0
PAGE_HEIGHT = 842.0
MARGIN = 56.0
FOOTER_OFFSET = 28.0

REPORT_TITLE = "Instant Fact-Check Lens"
QUOTE_LIMIT = 100

Color = tuple[float, float, float]

BRAND_GREEN: Color = (16 / 255, 185 / 255, 129 / 255)
BRAND_LIGHT: Color = (236 / 255, 253 / 255, 245 / 255)
VERDICT_GREEN: Color = (22 / 255, 163 / 255, 74 / 255)
VERDICT_RED: Color = (220 / 255, 38 / 255, 38 / 255)
VERDICT_AMBER: Color = (217 / 255, 119 / 255, 6 / 255)
LINK_BLUE: Color = (37 / 255, 99 / 255, 235 / 255)
BLACK: Color = (0.0, 0.0, 0.0)
DARK_GRAY: Color = (55 / 255,) * 3
MID_GRAY: Color = (80 / 255,) * 3
GRAY: Color = (100 / 255,) * 3
LIGHT_GRAY: Color = (150 / 255,) * 3
RULE_GRAY: Color = (200 / 255,) * 3

FONT_REGULAR = "helv"
FONT_BOLD = "hebo"
FONT_ITALIC = "heit"

Measure = Callable[[str, str, float], float]


def fitz_measure(text: str, fontname: str, fontsize: float) -> float:
    return fitz.get_text_length(text, fontname=fontname, fontsize=fontsize)


def pdf_safe(text: str) -> str:
    """Restrict *text* to what the base-14 fonts can encode."""
    return (text or "").encode("cp1252", "replace").decode("cp1252")


@dataclass(frozen=True)
class PageGeometry:
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    margin: float = MARGIN

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def top(self) -> float:
        return self.margin

    @property
    def bottom(self) -> float:
        return self.height - self.margin

    @property
    def usable_height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float  # baseline
    text: str
    font: str = FONT_REGULAR
    size: float = 10.0
    color: Color = BLACK


@dataclass(frozen=True)
class LineOp:
    x0: float
    y0: float
    x1: float
    y1: float
    color: Color = RULE_GRAY
    width: float = 0.5


@dataclass(frozen=True)
class BoxOp:
    x0: float
    y0: float
    x1: float
    y1: float
    stroke: Color = BRAND_GREEN
    fill: Color = BRAND_LIGHT


@dataclass(frozen=True)
class LinkOp:
    x0: float
    y0: float
    x1: float
    y1: float
    url: str


DrawOp = Union[TextOp, LineOp, BoxOp, LinkOp]


def _shift(op: DrawOp, dy: float) -> DrawOp:
    if isinstance(op, TextOp):
        return replace(op, y=op.y + dy)
    return replace(op, y0=op.y0 + dy, y1=op.y1 + dy)


@dataclass(frozen=True)
class Row:
    """Drawing ops for one line of output, positioned relative to the row's top."""

    height: float
    ops: tuple[DrawOp, ...] = ()


@dataclass
class PageLayout:
    ops: list[DrawOp] = field(default_factory=list)
    block_tops: list[float] = field(default_factory=list)


@dataclass
class ReportLayout:
    geometry: PageGeometry
    pages: list[PageLayout]

    @property
    def page_count(self) -> int:
        return len(self.pages)


def wrap_text(text: str, width: float, font: str, size: float, measure: Measure) -> list[str]:
    """Greedy word wrap; words wider than *width* are split by character."""
    text = pdf_safe(text)
    if not text.strip():
        return []

    lines: list[str] = []
    for paragraph in text.splitlines():
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if measure(candidate, font, size) <= width:
                current = candidate
                continue
            if current:
                lines.append(current)
            while len(word) > 1 and measure(word, font, size) > width:
                cut = _fit_prefix(word, width, font, size, measure)
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


def _fit_prefix(word: str, width: float, font: str, size: float, measure: Measure) -> int:
    cut = 1
    while cut < len(word) and measure(word[: cut + 1], font, size) <= width:
        cut += 1
    return cut


def fit_line(text: str, width: float, font: str, size: float, measure: Measure) -> str:
    """Ellipsize *text* until it fits on one line of *width*."""
    text = pdf_safe(text)
    if measure(text, font, size) <= width:
        return text
    while text and measure(text + "...", font, size) > width:
        text = text[:-1]
    return text.rstrip() + "..."


def is_web_url(url: str) -> bool:
    """Only http(s) targets become clickable; anything else stays plain text."""
    try:
        scheme = urlsplit((url or "").strip()).scheme
    except ValueError:
        return False
    return scheme.lower() in ("http", "https")


def truncate_quote(quote: str, limit: int = QUOTE_LIMIT) -> str:
    return quote[:limit] + ("..." if len(quote) > limit else "")


def verdict_color(verdict: str) -> Color:
    coerced = Verdict.coerce(verdict)
    if coerced is Verdict.TRUE:
        return VERDICT_GREEN
    if coerced is Verdict.FALSE:
        return VERDICT_RED
    return VERDICT_AMBER


def footer_text(page_number: int, total_pages: int) -> str:
    return f"Page {page_number} of {total_pages} - Generated by {REPORT_TITLE}"


class _LayoutWriter:
    """Flows rows onto pages with a running vertical cursor."""

    def __init__(self, geometry: PageGeometry) -> None:
        self.geometry = geometry
        self.pages: list[PageLayout] = [PageLayout()]
        self.y = geometry.top

    def _new_page(self) -> None:
        self.pages.append(PageLayout())
        self.y = self.geometry.top

    def _ensure_room(self, height: float) -> None:
        if self.y + height > self.geometry.bottom and self.y > self.geometry.top:
            self._new_page()

    def _emit(self, row: Row) -> None:
        page = self.pages[-1]
        page.ops.extend(_shift(op, self.y) for op in row.ops)
        self.y += row.height

    def place(self, rows: list[Row], gap_after: float = 0.0) -> None:
        """Place *rows* as one block, breaking between rows only if it cannot fit on any page."""
        if not rows:
            return
        total = sum(row.height for row in rows)
        if total <= self.geometry.usable_height:
            self._ensure_room(total)
            self.pages[-1].block_tops.append(self.y)
            for row in rows:
                self._emit(row)
        else:
            for row in rows:
                self._ensure_room(row.height)
                self.pages[-1].block_tops.append(self.y)
                self._emit(row)
        self.y += gap_after


class ReportPaginator:
    """Lays an AnalysisResult out on fixed-size pages and renders it to PDF bytes.

    Layout and rendering are separate passes: ``layout`` is pure and yields
    every page's draw ops, so the page total is known before ``render``
    stamps the "Page i of N" footers.
    """

    def __init__(
        self,
        geometry: PageGeometry | None = None,
        measure: Measure = fitz_measure,
    ) -> None:
        self.geometry = geometry or PageGeometry()
        self._measure = measure

    def generate(self, result: AnalysisResult, generated_at: datetime | str | None = None) -> bytes:
        layout = self.layout(result, generated_at)
        data = self.render(layout)
        logger.info("Rendered %d page report (%d bytes)", layout.page_count, len(data))
        return data

    # -- pass 1 ---------------------------------------------------------

    def layout(self, result: AnalysisResult, generated_at: datetime | str | None = None) -> ReportLayout:
        if generated_at is None:
            generated_at = datetime.now()
        if isinstance(generated_at, datetime):
            generated_at = generated_at.strftime("%Y-%m-%d %H:%M:%S")

        writer = _LayoutWriter(self.geometry)
        writer.place(self._header_rows(generated_at), gap_after=12)
        writer.place(self._verdict_box_rows(result), gap_after=22)
        writer.place(self._summary_rows(result.explainable_summary), gap_after=18)

        section_heading = [Row(26, (TextOp(self.geometry.margin, 16, "Detailed Claims Analysis",
                                           FONT_BOLD, 14, BLACK),))]
        if not result.claims:
            writer.place(section_heading + [Row(16, (TextOp(self.geometry.margin, 11,
                                                            "No claims were extracted.",
                                                            FONT_ITALIC, 10, GRAY),))])

        for idx, claim in enumerate(result.claims, start=1):
            head = self._claim_head_rows(idx, claim)
            writer.place(section_heading + head if idx == 1 else head, gap_after=6)
            writer.place(self._reasoning_rows(claim.reasoning), gap_after=10)
            self._place_evidence(writer, claim.evidence)
            writer.y += 10

        return ReportLayout(geometry=self.geometry, pages=writer.pages)

    def _header_rows(self, generated_at: str) -> list[Row]:
        m = self.geometry.margin
        return [
            Row(30, (TextOp(m, 22, REPORT_TITLE, FONT_BOLD, 24, BRAND_GREEN),)),
            Row(16, (TextOp(m, 11, f"Generated on {generated_at}", FONT_REGULAR, 10, GRAY),)),
        ]

    def _verdict_box_rows(self, result: AnalysisResult) -> list[Row]:
        m = self.geometry.margin
        verdict = Verdict.coerce(result.overall_verdict).value.upper()
        confidence = confidence_percent(result.overall_confidence)
        ops = (
            BoxOp(m, 0, self.geometry.width - m, 72),
            TextOp(m + 14, 28, "Overall Verdict:", FONT_BOLD, 12, BLACK),
            TextOp(m + 128, 28, verdict, FONT_BOLD, 16, verdict_color(result.overall_verdict)),
            TextOp(m + 14, 56, f"AI Confidence: {confidence}%", FONT_REGULAR, 10, DARK_GRAY),
            TextOp(m + 170, 56,
                   f"Claims Analyzed: {result.input_summary.detected_claims_count}",
                   FONT_REGULAR, 10, DARK_GRAY),
        )
        return [Row(72, ops)]

    def _paragraph_rows(
        self, text: str, x: float, width: float, font: str, size: float,
        color: Color, line_height: float,
    ) -> list[Row]:
        return [
            Row(line_height, (TextOp(x, size, line, font, size, color),))
            for line in wrap_text(text, width, font, size, self._measure)
        ]

    def _summary_rows(self, summary: str) -> list[Row]:
        m = self.geometry.margin
        heading = Row(22, (TextOp(m, 14, "Executive Summary", FONT_BOLD, 14, BLACK),))
        lines = self._paragraph_rows(summary, m, self.geometry.content_width,
                                     FONT_REGULAR, 11, DARK_GRAY, 16)
        return [heading] + lines

    def _claim_head_rows(self, index: int, claim: Claim) -> list[Row]:
        m = self.geometry.margin
        verdict = Verdict.coerce(claim.verdict).value.upper()
        rows = [
            Row(14, (LineOp(m, 0, self.geometry.width - m, 0),)),
            Row(20, (TextOp(m, 12, f"Claim {index}: {verdict}", FONT_BOLD, 12, BLACK),)),
        ]
        rows += self._paragraph_rows(f'"{claim.claim_text}"', m + 14,
                                     self.geometry.content_width - 14,
                                     FONT_ITALIC, 11, MID_GRAY, 16)
        return rows

    def _reasoning_rows(self, reasoning: str) -> list[Row]:
        m = self.geometry.margin
        rows = [Row(15, (TextOp(m + 14, 10, "Analysis:", FONT_BOLD, 10, BLACK),))]
        rows += self._paragraph_rows(reasoning, m + 14, self.geometry.content_width - 28,
                                     FONT_REGULAR, 10, DARK_GRAY, 14)
        return rows

    def _evidence_rows(self, evidence: Evidence) -> list[Row]:
        x = self.geometry.margin + 22
        width = self.geometry.content_width - 22
        size = 9.0
        label = fit_line(f"- {evidence.source_title} ({evidence.source_type})",
                         width, FONT_REGULAR, size, self._measure)
        ops: list[DrawOp] = [TextOp(x, size, label, FONT_REGULAR, size, LINK_BLUE)]
        if is_web_url(evidence.source_url):
            text_width = self._measure(label, FONT_REGULAR, size)
            ops.append(LinkOp(x, 0, x + text_width, size + 3, evidence.source_url))
        rows = [Row(13, tuple(ops))]

        if evidence.quote:
            quote = fit_line(f'  "{truncate_quote(evidence.quote)}"', width, FONT_ITALIC,
                             size, self._measure)
            rows.append(Row(13, (TextOp(x, size, quote, FONT_ITALIC, size, GRAY),)))
        return rows

    def _place_evidence(self, writer: _LayoutWriter, evidence: tuple[Evidence, ...]) -> None:
        if not evidence:
            return
        heading = Row(16, (TextOp(self.geometry.margin + 14, 10, "Evidence / Proofs:",
                                  FONT_BOLD, 10, BLACK),))
        for idx, item in enumerate(evidence):
            rows = self._evidence_rows(item)
            writer.place([heading] + rows if idx == 0 else rows)
        writer.y += 8

    # -- pass 2 ---------------------------------------------------------

    def footer_ops(self, page_number: int, total_pages: int) -> list[DrawOp]:
        text = footer_text(page_number, total_pages)
        size = 8.0
        x = (self.geometry.width - self._measure(text, FONT_REGULAR, size)) / 2
        return [TextOp(x, self.geometry.height - FOOTER_OFFSET, text, FONT_REGULAR, size, LIGHT_GRAY)]

    def render(self, layout: ReportLayout) -> bytes:
        geometry = layout.geometry
        total = layout.page_count
        doc = fitz.open()
        try:
            for number, page_layout in enumerate(layout.pages, start=1):
                page = doc.new_page(width=geometry.width, height=geometry.height)
                for op in page_layout.ops + self.footer_ops(number, total):
                    _draw(page, op)
            return doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()


def _draw(page: "fitz.Page", op: DrawOp) -> None:
    if isinstance(op, TextOp):
        page.insert_text(fitz.Point(op.x, op.y), op.text, fontname=op.font,
                         fontsize=op.size, color=op.color)
    elif isinstance(op, LineOp):
        page.draw_line(fitz.Point(op.x0, op.y0), fitz.Point(op.x1, op.y1),
                       color=op.color, width=op.width)
    elif isinstance(op, BoxOp):
        page.draw_rect(fitz.Rect(op.x0, op.y0, op.x1, op.y1), color=op.stroke,
                       fill=op.fill, width=1)
    elif isinstance(op, LinkOp):
        page.insert_link({
            "kind": fitz.LINK_URI,
            "from": fitz.Rect(op.x0, op.y0, op.x1, op.y1),
            "uri": op.url,
        })
