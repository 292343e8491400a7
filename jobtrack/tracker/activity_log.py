"""Activity log: automated status entries, manual CRUD, filtering and paging.

The log is one ordered collection per search. Automated ``status_change``
entries and manual entries share it and are indistinguishable in storage;
display order is always newest first by ``date``.
"""

import logging
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from jobtrack.core.config import LOG_PAGE_SIZES
from jobtrack.core.dates import end_of_day, local_day, start_of_day
from jobtrack.core.pagination import Page, paginate
from jobtrack.core.schemas import JobSearch, LogEntry, LogEntryDraft, status_label

logger = logging.getLogger(__name__)

UNKNOWN_OPPORTUNITY = "Unknown Position at Unknown Company"
UNKNOWN_RECRUITER = "Unknown Recruiter"


def automated_entry(
    old_status: str,
    new_status: str,
    company: str,
    position: str,
    *,
    opportunity_id: str | None = None,
    now: datetime | None = None,
) -> LogEntry:
    """Build the system-generated entry for a status change.

    An empty *old_status* means the opportunity was just created.
    """
    if old_status:
        description = (
            f'Status changed from "{status_label(old_status)}" to "{status_label(new_status)}"'
        )
    else:
        description = f'Job Added - Status set to "{status_label(new_status)}"'
    return LogEntry(
        date=now or datetime.now(),
        type="status_change",
        description=description,
        notes=f"Automated entry for {position} at {company}",
        opportunity_id=opportunity_id,
    )


def append_entry(search: JobSearch, entry: LogEntry) -> JobSearch:
    """Append *entry* to the search log. No deduplication."""
    return search.model_copy(update={"log": [*search.log, entry]})


def add_log_entry(search: JobSearch, draft: LogEntryDraft) -> JobSearch:
    entry = LogEntry(**_entry_fields(draft))
    logger.debug("Log entry %s added (%s)", entry.id, entry.type)
    return append_entry(search, entry)


def update_log_entry(search: JobSearch, entry_id: str, draft: LogEntryDraft) -> JobSearch:
    """Replace the fields of an existing entry, keeping its id and position."""
    if not any(e.id == entry_id for e in search.log):
        logger.debug("Log entry %s not found - nothing to update", entry_id)
        return search
    fields = _entry_fields(draft)
    log = [e.model_copy(update=fields) if e.id == entry_id else e for e in search.log]
    return search.model_copy(update={"log": log})


def delete_log_entry(search: JobSearch, entry_id: str) -> JobSearch:
    return search.model_copy(update={"log": [e for e in search.log if e.id != entry_id]})


def _entry_fields(draft: LogEntryDraft) -> dict[str, object]:
    fields = draft.model_dump(exclude={"use_other_contact"})
    if draft.type == "email" and draft.use_other_contact:
        fields["recruiter_id"] = None
    return fields


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class LogQuery(BaseModel):
    """Filter and paging state of the activity log view."""

    text: str = ""
    start_date: date | None = None
    end_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = 10

    @field_validator("page_size")
    @classmethod
    def page_size_allowed(cls, v: int) -> int:
        if v not in LOG_PAGE_SIZES:
            msg = f"page_size must be one of {LOG_PAGE_SIZES}, got {v}"
            raise ValueError(msg)
        return v

    def with_changes(self, **changes: object) -> "LogQuery":
        """Return an updated query; any change other than ``page`` resets to page 1."""
        if any(k != "page" for k in changes):
            changes.setdefault("page", 1)
        return self.model_validate({**self.model_dump(), **changes})

    @property
    def is_filtered(self) -> bool:
        return bool(self.text.strip() or self.start_date or self.end_date)


def entry_matches_text(entry: LogEntry, text: str) -> bool:
    """Case-insensitive substring match over type, description, notes and contact."""
    needle = text.strip().lower()
    if not needle:
        return True
    haystacks = (entry.type, entry.description, entry.notes, entry.other_contact)
    return any(needle in h.lower() for h in haystacks if h)


def entry_in_range(entry: LogEntry, start: date | None, end: date | None) -> bool:
    """Inclusive local-day range check; bounds cover the whole start/end day."""
    day = start_of_day(local_day(entry.date))
    if start is not None and day < start_of_day(start):
        return False
    if end is not None and day > end_of_day(end):
        return False
    return True


def filter_log(entries: list[LogEntry], query: LogQuery) -> list[LogEntry]:
    """Apply text and date filters, returning the survivors newest first."""
    result = [
        e for e in entries
        if entry_matches_text(e, query.text)
        and entry_in_range(e, query.start_date, query.end_date)
    ]
    return sorted(result, key=lambda e: e.date, reverse=True)


def query_log(search: JobSearch, query: LogQuery) -> Page[LogEntry]:
    return paginate(filter_log(search.log, query), query.page, query.page_size)


def describe_opportunity(search: JobSearch, opportunity_id: str | None) -> str:
    opportunity = search.find_opportunity(opportunity_id)
    if opportunity is None:
        return UNKNOWN_OPPORTUNITY
    return f"{opportunity.position} at {opportunity.company}"


def describe_recruiter(search: JobSearch, recruiter_id: str | None) -> str:
    recruiter = search.find_recruiter(recruiter_id)
    if recruiter is None:
        return UNKNOWN_RECRUITER
    return f"{recruiter.name} ({recruiter.company})"
