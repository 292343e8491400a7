"""Multi-section CSV report.

Sections, each introduced by a header line and its own column row:
  JOB SEARCH SUMMARY, OPPORTUNITIES, RECRUITERS, ONLINE RESOURCES
Quoting is standard CSV (fields holding a comma, quote or newline are wrapped
in quotes, inner quotes doubled). A UTF-8 BOM is prepended so spreadsheet
apps pick the right encoding.
"""

import csv
import io
import logging
from datetime import datetime

from jobtrack.core.dates import days_open, format_short_date, format_timestamp
from jobtrack.core.schemas import Contact, Interview, JobOpportunity, JobSearch, status_label
from jobtrack.exports.base import ExportFile, file_stem, require_rows
from jobtrack.tracker.query import status_counts
from jobtrack.tracker.records import format_phone_number

logger = logging.getLogger(__name__)

OPPORTUNITY_COLUMNS = [
    "Company", "Position", "Status", "Last Changed", "Days Open", "Location",
    "Salary", "Job Source", "Job URL", "Description", "Notes", "Interviews", "Contacts",
]
RECRUITER_COLUMNS = ["Name", "Company", "Email", "Phone", "Specialty", "Notes"]
RESOURCE_COLUMNS = ["Name", "URL", "Category", "Description"]


def interview_summary(interview: Interview) -> str:
    when = format_short_date(interview.date.date())
    if interview.time.strip():
        when = f"{when} {interview.time.strip()}"
    text = f"{when} {interview.type}"
    if interview.interviewer:
        text += f" with {interview.interviewer}"
    return text


def contact_summary(contact: Contact) -> str:
    text = contact.name
    if contact.role:
        text += f" ({contact.role})"
    details = [d for d in (contact.email, format_phone_number(contact.phone)) if d]
    if details:
        text += " - " + ", ".join(details)
    return text


def export_csv(
    search: JobSearch,
    opportunities: list[JobOpportunity],
    now: datetime | None = None,
) -> ExportFile:
    """Render ``<name>_job_search_complete_export.csv``."""
    require_rows(opportunities, "opportunities")
    now = now or datetime.now()
    counts = status_counts(search.opportunities)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["JOB SEARCH SUMMARY"])
    writer.writerow(["Field", "Value"])
    writer.writerow(["Search Name", search.name])
    writer.writerow(["Created", format_short_date(search.created_at.date())])
    writer.writerow(["Exported", format_timestamp(now)])
    writer.writerow(["Total Active", counts.total])
    writer.writerow(["Applied", counts.applied])
    writer.writerow(["Saved", counts.saved])
    writer.writerow(["Closed/Rejected", counts.closed])
    writer.writerow(["Opportunities Exported", len(opportunities)])
    writer.writerow([])

    writer.writerow(["OPPORTUNITIES"])
    writer.writerow(OPPORTUNITY_COLUMNS)
    for o in opportunities:
        writer.writerow([
            o.company,
            o.position,
            status_label(o.status),
            format_short_date(o.date_applied),
            days_open(o.date_applied, now),
            o.location,
            o.salary,
            o.job_source,
            o.job_url,
            o.description,
            o.notes,
            "; ".join(interview_summary(i) for i in o.interviews),
            "; ".join(contact_summary(c) for c in o.contacts),
        ])
    writer.writerow([])

    writer.writerow(["RECRUITERS"])
    writer.writerow(RECRUITER_COLUMNS)
    for r in search.recruiters:
        writer.writerow([r.name, r.company, r.email, format_phone_number(r.phone), r.specialty, r.notes])
    writer.writerow([])

    writer.writerow(["ONLINE RESOURCES"])
    writer.writerow(RESOURCE_COLUMNS)
    for res in search.resources:
        writer.writerow([res.name, res.url, res.category, res.description])

    logger.info("CSV export of '%s': %d opportunities", search.name, len(opportunities))
    return ExportFile(
        filename=f"{file_stem(search.name)}_job_search_complete_export.csv",
        media_type="text/csv",
        content=buffer.getvalue().encode("utf-8-sig"),
    )
