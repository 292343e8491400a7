"""Opportunity query engine: filter chain, recency-weighted sort, paging, counts.

Filter order:
  1. StatusFilter    : exact status match, optional
  2. FuzzyTextFilter : ordered-subsequence match over "<company> <position>"
Sort modes:
  - newest: opportunities created inside the recency window first (by
    created_at desc), everything else by date_applied desc
  - oldest: date_applied asc
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import BaseModel, Field, field_validator

from jobtrack.core.config import OPPORTUNITY_PAGE_SIZES, SortMode
from jobtrack.core.dates import days_open, to_local
from jobtrack.core.pagination import Page, paginate
from jobtrack.core.schemas import JobOpportunity, JobSearch, OpportunityStatus

logger = logging.getLogger(__name__)

DEFAULT_RECENCY_WINDOW = timedelta(hours=1)

# A filter is a callable that takes opportunities and returns a subset.
Filter = Callable[[list[JobOpportunity]], list[JobOpportunity]]


def fuzzy_match(query: str, text: str) -> bool:
    """True if every character of *query* appears in *text* in order.

    Case-insensitive, not necessarily contiguous. An empty query matches.
    """
    remaining = iter(text.lower())
    return all(ch in remaining for ch in query.lower())


class StatusFilter:
    """Keep only opportunities with the given status. ``None`` passes everything."""

    def __init__(self, status: str | None) -> None:
        self._status = status

    def __call__(self, opportunities: list[JobOpportunity]) -> list[JobOpportunity]:
        if self._status is None:
            return opportunities
        return [o for o in opportunities if o.status == self._status]


class FuzzyTextFilter:
    """Keep opportunities whose company + position contains the query as a subsequence."""

    def __init__(self, query: str) -> None:
        self._query = query

    def __call__(self, opportunities: list[JobOpportunity]) -> list[JobOpportunity]:
        if not self._query:
            return opportunities
        result = [o for o in opportunities if fuzzy_match(self._query, o.searchable_text)]
        removed = len(opportunities) - len(result)
        if removed:
            logger.debug("FuzzyTextFilter: removed %d opportunities", removed)
        return result


def run_filter_chain(
    opportunities: list[JobOpportunity],
    filters: list[Filter],
) -> list[JobOpportunity]:
    """Apply filters in order, returning the surviving opportunities."""
    result = opportunities
    for f in filters:
        result = f(result)
    return result


def sort_opportunities(
    opportunities: list[JobOpportunity],
    sort_by: SortMode = "newest",
    *,
    now: datetime | None = None,
    recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
) -> list[JobOpportunity]:
    """Return a new, sorted list. Ties keep their input order."""
    if sort_by == "oldest":
        return sorted(opportunities, key=lambda o: o.date_applied)

    cutoff = (now or datetime.now()) - recency_window
    recent: list[JobOpportunity] = []
    rest: list[JobOpportunity] = []
    for o in opportunities:
        if o.created_at is not None and to_local(o.created_at) > cutoff:
            recent.append(o)
        else:
            rest.append(o)
    recent.sort(key=lambda o: o.created_at, reverse=True)  # type: ignore[arg-type,return-value]
    rest.sort(key=lambda o: o.date_applied, reverse=True)
    return recent + rest


class OpportunityQuery(BaseModel):
    """Filter, sort and paging state of the opportunity table."""

    status: OpportunityStatus | None = None
    text: str = ""
    sort_by: SortMode = "newest"
    page: int = Field(default=1, ge=1)
    page_size: int = 10

    @field_validator("status", mode="before")
    @classmethod
    def all_means_none(cls, v: object) -> object:
        return None if v in ("", "all") else v

    @field_validator("page_size")
    @classmethod
    def page_size_allowed(cls, v: int) -> int:
        if v not in OPPORTUNITY_PAGE_SIZES:
            msg = f"page_size must be one of {OPPORTUNITY_PAGE_SIZES}, got {v}"
            raise ValueError(msg)
        return v

    def with_changes(self, **changes: object) -> "OpportunityQuery":
        """Return an updated query; any change other than ``page`` resets to page 1."""
        if any(k != "page" for k in changes):
            changes.setdefault("page", 1)
        return self.model_validate({**self.model_dump(), **changes})


class OpportunityRow(BaseModel):
    """One table row: the opportunity plus its derived days-open figure."""

    opportunity: JobOpportunity
    days_open: int


class StatusCounts(BaseModel):
    """Dashboard counters, always derived from the full opportunity list."""

    total: int = 0
    applied: int = 0
    saved: int = 0
    closed: int = 0
    active: int = 0
    all: int = 0


def status_counts(opportunities: list[JobOpportunity]) -> StatusCounts:
    statuses = [o.status for o in opportunities]
    return StatusCounts(
        total=sum(1 for s in statuses if s not in ("closed", "rejected")),
        applied=statuses.count("applied"),
        saved=statuses.count("saved"),
        closed=sum(1 for s in statuses if s in ("closed", "rejected")),
        active=sum(1 for s in statuses if s in ("interview", "offer")),
        all=len(statuses),
    )


def filtered_opportunities(
    search: JobSearch,
    query: OpportunityQuery,
    *,
    now: datetime | None = None,
    recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
) -> list[JobOpportunity]:
    """The filtered, sorted (unpaginated) set that the table and exports share."""
    filters: list[Filter] = [StatusFilter(query.status), FuzzyTextFilter(query.text)]
    result = run_filter_chain(list(search.opportunities), filters)
    return sort_opportunities(result, query.sort_by, now=now, recency_window=recency_window)


def query_opportunities(
    search: JobSearch,
    query: OpportunityQuery,
    *,
    now: datetime | None = None,
    recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
) -> Page[OpportunityRow]:
    now = now or datetime.now()
    ordered = filtered_opportunities(search, query, now=now, recency_window=recency_window)
    page = paginate(ordered, query.page, query.page_size)
    rows = [OpportunityRow(opportunity=o, days_open=days_open(o.date_applied, now)) for o in page.items]
    return page.model_copy(update={"items": rows})
