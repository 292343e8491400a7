"""Fixed-width plain-text box table of the filtered opportunities."""

import logging
from datetime import datetime

from jobtrack.core.dates import days_open, format_short_date, format_timestamp
from jobtrack.core.schemas import JobOpportunity, JobSearch, status_label
from jobtrack.exports.base import ExportFile, file_stem, require_rows

logger = logging.getLogger(__name__)

COLUMNS = ["Company", "Position", "Last Changed", "Days Open", "Status", "Location", "Salary"]


def _cells(o: JobOpportunity, now: datetime) -> list[str]:
    return [
        o.company,
        o.position,
        format_short_date(o.date_applied),
        str(days_open(o.date_applied, now)),
        status_label(o.status),
        o.location,
        o.salary,
    ]


def render_table(header: list[str], rows: list[list[str]]) -> list[str]:
    """``| a | b |`` rows with a ``-`` divider under the header.

    Each column is as wide as its longest cell (header included).
    """
    rows = [[" ".join(cell.split()) for cell in row] for row in rows]
    widths = [max(len(cell) for cell in column) for column in zip(header, *rows)]

    def line(cells: list[str]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    divider = "|" + "|".join("-" * (w + 2) for w in widths) + "|"
    return [line(header), divider, *(line(r) for r in rows)]


def export_text_table(
    search: JobSearch,
    opportunities: list[JobOpportunity],
    now: datetime | None = None,
) -> ExportFile:
    """Render ``<name>_opportunities_table_<date>.txt``."""
    require_rows(opportunities, "opportunities")
    now = now or datetime.now()
    lines = [
        f"{search.name} - Job Opportunities",
        f"Generated: {format_timestamp(now)}",
        f"Opportunities: {len(opportunities)}",
        "",
        *render_table(COLUMNS, [_cells(o, now) for o in opportunities]),
        "",
    ]
    logger.info("Text table export of '%s': %d rows", search.name, len(opportunities))
    return ExportFile(
        filename=f"{file_stem(search.name)}_opportunities_table_{now.date().isoformat()}.txt",
        media_type="text/plain",
        content="\n".join(lines).encode("utf-8"),
    )
