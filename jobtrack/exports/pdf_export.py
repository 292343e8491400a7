"""Landscape PDF summary table built with ReportLab.

The normal path lays the rows out with a platypus ``Table`` (accent header,
alternating row shading, header repeated on every page). If that layout
cannot be built, or ``rich_table`` is disabled, rows are drawn directly on the
canvas at fixed y offsets and a new page starts whenever the cursor drops
below the bottom margin.
"""

import html
import io
import logging
from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.doctemplate import LayoutError

from jobtrack.core.config import PdfConfig
from jobtrack.core.dates import format_short_date, format_timestamp
from jobtrack.core.schemas import JobOpportunity, JobSearch, status_label
from jobtrack.exports.base import ExportError, ExportFile, file_stem, require_rows
from jobtrack.tracker.query import status_counts

logger = logging.getLogger(__name__)

PAGE_SIZE = landscape(letter)
MARGIN = 36.0
ROW_HEIGHT = 18.0
STRIPE = colors.HexColor("#F5F5F5")

COLUMNS: list[tuple[str, float]] = [
    ("Company", 150.0),
    ("Position", 170.0),
    ("Last Changed", 80.0),
    ("Status", 70.0),
    ("Job Source", 100.0),
    ("Location", 90.0),
    ("Salary", 60.0),
]


def title_case(text: str) -> str:
    """Capitalize the first letter of each space-separated word, lowercase the rest."""
    return " ".join(w[:1].upper() + w[1:].lower() for w in text.split(" "))


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def table_rows(opportunities: list[JobOpportunity], limit: int = 32) -> list[list[str]]:
    """Header plus one row per opportunity, in the PDF column order."""
    rows = [[name for name, _ in COLUMNS]]
    for o in opportunities:
        rows.append([
            truncate(o.company, limit),
            truncate(title_case(o.position), limit),
            format_short_date(o.date_applied),
            status_label(o.status),
            o.job_source,
            o.location,
            o.salary,
        ])
    return rows


def _metadata(search: JobSearch, opportunities: list[JobOpportunity], now: datetime) -> list[str]:
    counts = status_counts(search.opportunities)
    return [
        f"Generated: {format_timestamp(now)}",
        f"Opportunities listed: {len(opportunities)}",
        f"Active: {counts.total} | Applied: {counts.applied} | Saved: {counts.saved} "
        f"| Closed/Rejected: {counts.closed}",
    ]


def _render_rich(title: str, metadata: list[str], rows: list[list[str]], config: PdfConfig) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=PAGE_SIZE,
        topMargin=MARGIN,
        bottomMargin=config.bottom_margin,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        title=title,
    )
    styles = getSampleStyleSheet()
    meta_style = ParagraphStyle("Meta", parent=styles["Normal"], fontSize=9, leading=12)

    story = [Paragraph(html.escape(title), styles["Title"])]
    story.extend(Paragraph(html.escape(line), meta_style) for line in metadata)
    story.append(Spacer(1, 12))

    table = Table(rows, colWidths=[w for _, w in COLUMNS], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(config.accent_color)),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, STRIPE]),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(table)
    doc.build(story)
    return buffer.getvalue()


def _render_manual(title: str, metadata: list[str], rows: list[list[str]], config: PdfConfig) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=PAGE_SIZE)
    pdf.setTitle(title)
    _, page_height = PAGE_SIZE
    accent = colors.HexColor(config.accent_color)
    header, body = rows[0], rows[1:]

    def draw_row(cells: list[str], y: float, fill: colors.Color | None, bold: bool = False) -> None:
        if fill is not None:
            pdf.setFillColor(fill)
            pdf.rect(MARGIN, y - 5, sum(w for _, w in COLUMNS), ROW_HEIGHT, stroke=0, fill=1)
        pdf.setFillColor(colors.white if bold else colors.black)
        pdf.setFont("Helvetica-Bold" if bold else "Helvetica", 8)
        x = MARGIN
        for cell, (_, width) in zip(cells, COLUMNS):
            pdf.drawString(x + 3, y, cell)
            x += width

    y = page_height - MARGIN - 16
    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(MARGIN, y, title)
    pdf.setFont("Helvetica", 9)
    for line in metadata:
        y -= 13
        pdf.drawString(MARGIN, y, line)
    y -= 24
    draw_row(header, y, accent, bold=True)

    for index, cells in enumerate(body):
        y -= ROW_HEIGHT
        if y < config.bottom_margin:
            pdf.showPage()
            y = page_height - MARGIN - 16
            draw_row(header, y, accent, bold=True)
            y -= ROW_HEIGHT
        draw_row(cells, y, STRIPE if index % 2 else None)

    pdf.save()
    return buffer.getvalue()


def _render(title: str, metadata: list[str], rows: list[list[str]], config: PdfConfig) -> bytes:
    if config.rich_table:
        try:
            return _render_rich(title, metadata, rows, config)
        except LayoutError as exc:
            logger.warning("Table layout failed (%s) - drawing rows manually", exc)
    return _render_manual(title, metadata, rows, config)


def export_pdf(
    search: JobSearch,
    opportunities: list[JobOpportunity],
    config: PdfConfig | None = None,
    now: datetime | None = None,
) -> ExportFile:
    """Render ``<name>_opportunities_summary.pdf``.

    Raises:
        EmptyExportError: nothing matches the current filters.
        ExportError: neither layout could be rendered.
    """
    require_rows(opportunities, "opportunities")
    config = config or PdfConfig()
    now = now or datetime.now()
    title = f"{search.name} - Job Opportunities Summary"
    metadata = _metadata(search, opportunities, now)
    rows = table_rows(opportunities, config.truncate_length)

    try:
        content = _render(title, metadata, rows, config)
    except Exception as exc:
        msg = f"PDF rendering failed: {exc}"
        raise ExportError(msg) from exc

    logger.info("PDF export of '%s': %d rows", search.name, len(opportunities))
    return ExportFile(
        filename=f"{file_stem(search.name)}_opportunities_summary.pdf",
        media_type="application/pdf",
        content=content,
    )
