"""Plain-text report of the filtered, newest-first activity log."""

import logging
from datetime import datetime

from jobtrack.core.dates import format_short_date, format_timestamp
from jobtrack.core.schemas import JobSearch, LogEntry
from jobtrack.exports.base import ExportFile, file_stem, require_rows
from jobtrack.tracker.activity_log import LogQuery, describe_opportunity, describe_recruiter

logger = logging.getLogger(__name__)

RULE = "=" * 80
SEPARATOR = "-" * 80


def type_label(entry_type: str) -> str:
    """``follow_up`` -> ``FOLLOW UP``."""
    return entry_type.replace("_", " ").upper()


def _banner(search: JobSearch, count: int, query: LogQuery | None, now: datetime) -> list[str]:
    lines = [
        RULE,
        f"JOB SEARCH ACTIVITY LOG - {search.name}",
        RULE,
        f"Export Date: {format_timestamp(now)}",
        f"Total Entries: {count}",
    ]
    if query is not None:
        if query.start_date or query.end_date:
            start = format_short_date(query.start_date) if query.start_date else "Beginning"
            end = format_short_date(query.end_date) if query.end_date else "Present"
            lines.append(f"Date Range: {start} to {end}")
        if query.text.strip():
            lines.append(f'Search Filter: "{query.text.strip()}"')
    lines.extend([RULE, ""])
    return lines


def _entry_block(search: JobSearch, index: int, entry: LogEntry) -> list[str]:
    lines = [
        f"[{index}] {format_timestamp(entry.date)}",
        f"Type: {type_label(entry.type)}",
        f"Description: {entry.description}",
    ]
    if entry.notes:
        lines.append(f"Notes: {entry.notes}")
    if entry.opportunity_id:
        lines.append(f"Related Job: {describe_opportunity(search, entry.opportunity_id)}")
    if entry.recruiter_id:
        lines.append(f"Recruiter: {describe_recruiter(search, entry.recruiter_id)}")
    if entry.other_contact:
        lines.append(f"Contact: {entry.other_contact}")
    lines.extend([SEPARATOR, ""])
    return lines


def export_log(
    search: JobSearch,
    entries: list[LogEntry],
    query: LogQuery | None = None,
    now: datetime | None = None,
) -> ExportFile:
    """Render ``<name>_log_export_<date>.txt`` from already-filtered *entries*."""
    require_rows(entries, "log entries")
    now = now or datetime.now()
    ordered = sorted(entries, key=lambda e: e.date, reverse=True)
    lines = _banner(search, len(ordered), query, now)
    for index, entry in enumerate(ordered, start=1):
        lines.extend(_entry_block(search, index, entry))
    logger.info("Log export of '%s': %d entries", search.name, len(ordered))
    return ExportFile(
        filename=f"{file_stem(search.name)}_log_export_{now.date().isoformat()}.txt",
        media_type="text/plain",
        content="\n".join(lines).encode("utf-8"),
    )
