"""Session controller: the single owner of mutable state.

Every mutation follows the same sequence:
  1. validate the form input into a draft (invalid input is a silent no-op),
  2. compute the new search with the pure tracker functions and commit it to
     ``state`` before the first ``await``,
  3. hand the search to the store; on success reload the list, on failure log.
There is no rollback: the in-memory state stays ahead of the store.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from jobtrack.core.config import Settings
from jobtrack.core.pagination import Page
from jobtrack.core.schemas import (
    STATUS_LABELS,
    ContactDraft,
    InterviewDraft,
    JobOpportunity,
    JobSearch,
    LogEntry,
    LogEntryDraft,
    OpportunityDraft,
    OpportunityPatch,
    RecruiterDraft,
    ResourceDraft,
)
from jobtrack.exports.base import EmptyExportError, ExportError, ExportFile
from jobtrack.exports.csv_export import export_csv
from jobtrack.exports.json_export import export_json
from jobtrack.exports.log_export import export_log
from jobtrack.exports.pdf_export import export_pdf
from jobtrack.exports.text_table import export_text_table
from jobtrack.session.store import KeyValueStore, SearchStore, StoreError
from jobtrack.tracker import activity_log, records, transitions
from jobtrack.tracker.activity_log import LogQuery, filter_log, query_log
from jobtrack.tracker.query import (
    OpportunityQuery,
    OpportunityRow,
    StatusCounts,
    filtered_opportunities,
    query_opportunities,
    status_counts,
)

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "jobTrackerSearches"

ViewMode = Literal["cards", "table"]
DraftT = TypeVar("DraftT", bound=BaseModel)


@dataclass
class SessionState:
    searches: list[JobSearch] = field(default_factory=list)
    current: JobSearch | None = None
    opportunity_query: OpportunityQuery = field(default_factory=OpportunityQuery)
    log_query: LogQuery = field(default_factory=LogQuery)
    view_mode: ViewMode = "cards"


@dataclass(frozen=True)
class Notice:
    """A message for the user. ``error`` notices are blocking alerts."""

    level: Literal["info", "warning", "error"]
    message: str


@dataclass(frozen=True)
class ExportOutcome:
    file: ExportFile | None = None
    notice: Notice | None = None

    @property
    def ok(self) -> bool:
        return self.file is not None


class SessionController:
    """Drives one user's session against a SearchStore."""

    def __init__(
        self,
        store: SearchStore,
        user_id: str,
        settings: Settings | None = None,
        kv: KeyValueStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._user_id = user_id
        self._settings = settings or Settings()
        self._kv = kv
        self._clock = clock
        views = self._settings.views
        self.state = SessionState(
            opportunity_query=OpportunityQuery(
                sort_by=views.default_sort,
                page_size=views.opportunities_per_page,
            ),
            log_query=LogQuery(page_size=views.log_entries_per_page),
        )

    @property
    def current(self) -> JobSearch | None:
        return self.state.current

    @property
    def _recency_window(self) -> timedelta:
        return timedelta(minutes=self._settings.views.recency_window_minutes)

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    async def load(self) -> list[JobSearch]:
        """Replace the in-memory list with the store's; the active open search becomes current.

        When the store cannot be read, state already held in memory is kept.
        The key/value snapshot is only consulted when nothing is loaded yet.
        """
        try:
            searches = await self._store.load_searches(self._user_id)
        except StoreError:
            logger.exception("Error loading job data for %s", self._user_id)
            if self.state.searches:
                return self.state.searches
            fallback = self._read_snapshot()
            if fallback is None:
                return self.state.searches
            searches = fallback
        self.state.searches = searches
        self.state.current = next((s for s in searches if s.is_active and not s.is_closed), None)
        return searches

    async def _save(self, search: JobSearch) -> bool:
        try:
            ok = await self._store.save_search(self._user_id, search)
        except Exception:
            logger.exception("Error saving search %s", search.id)
            return False
        if not ok:
            logger.error("Failed to save search %s", search.id)
        return ok

    async def _persist(self, search: JobSearch) -> bool:
        ok = await self._save(search)
        if ok:
            await self.load()
        return ok

    def _commit(self, search: JobSearch) -> None:
        if any(s.id == search.id for s in self.state.searches):
            self.state.searches = [search if s.id == search.id else s for s in self.state.searches]
        else:
            self.state.searches = [search, *self.state.searches]
        self.state.current = search

    async def _mutate(self, change: Callable[[JobSearch], JobSearch]) -> JobSearch | None:
        search = self.state.current
        if search is None:
            logger.debug("No current search - change ignored")
            return None
        updated = change(search)
        self._commit(updated)
        await self._persist(updated)
        return updated

    def _validate(self, model: type[DraftT], form: dict[str, Any]) -> DraftT | None:
        try:
            return model.model_validate(form)
        except ValidationError as exc:
            logger.debug("Rejected %s: %s", model.__name__, exc)
            return None

    def _write_snapshot(self) -> None:
        if self._kv is None:
            return
        payload = [s.model_dump(mode="json", by_alias=True) for s in self.state.searches]
        self._kv.set(SNAPSHOT_KEY, json.dumps(payload))

    def _read_snapshot(self) -> list[JobSearch] | None:
        if self._kv is None:
            return None
        raw = self._kv.get(SNAPSHOT_KEY)
        if raw is None:
            return None
        try:
            return [JobSearch.model_validate(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, ValidationError, TypeError) as exc:
            logger.error("Ignoring unreadable search snapshot: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Search lifecycle
    # ------------------------------------------------------------------

    def _deactivate_others(self, keep_id: str) -> list[JobSearch]:
        """Deactivate every other active search in memory; return the ones touched."""
        touched = [
            s.model_copy(update={"is_active": False})
            for s in self.state.searches
            if s.id != keep_id and s.is_active
        ]
        by_id = {s.id: s for s in touched}
        self.state.searches = [by_id.get(s.id, s) for s in self.state.searches]
        return touched

    def select_search(self, search_id: str) -> JobSearch | None:
        """Make a search current for viewing and export without changing its state."""
        search = next((s for s in self.state.searches if s.id == search_id), None)
        if search is None:
            logger.debug("Search %s not found", search_id)
            return None
        self.state.current = search
        return search

    async def create_search(self, name: str) -> JobSearch | None:
        """Start a new search and make it the only active one."""
        name = name.strip()
        if not name:
            logger.debug("Search name is empty - nothing created")
            return None
        search = JobSearch(name=name, created_at=self._clock())
        touched = self._deactivate_others(search.id)
        self._commit(search)
        for sibling in touched:
            await self._save(sibling)
        await self._persist(search)
        logger.info("Created search '%s' (%s)", search.name, search.id)
        return search

    async def activate_search(self, search_id: str) -> JobSearch | None:
        """Reopen an archived or closed search as the current one."""
        target = next((s for s in self.state.searches if s.id == search_id), None)
        if target is None:
            logger.debug("Search %s not found - nothing activated", search_id)
            return None
        reopened = target.model_copy(update={"is_active": True, "closed": 0, "closed_date": None})
        touched = self._deactivate_others(search_id)
        self._commit(reopened)
        self._write_snapshot()
        for sibling in touched:
            await self._save(sibling)
        await self._persist(reopened)
        return reopened

    async def archive_search(self) -> JobSearch | None:
        """Set the current search aside without closing it."""
        search = self.state.current
        if search is None:
            return None
        archived = search.model_copy(update={"is_active": False})
        self._commit(archived)
        self.state.current = None
        await self._persist(archived)
        return archived

    async def close_search(self) -> JobSearch | None:
        """Soft-close the current search; it stays listed among past searches."""
        search = self.state.current
        if search is None:
            return None
        closed_date = self._clock()
        closed = search.model_copy(
            update={"closed": 1, "closed_date": closed_date, "is_active": False},
        )
        self._commit(closed)
        self.state.current = None
        self._write_snapshot()
        try:
            ok = await self._store.close_search(search.id, closed_date)
        except Exception:
            logger.exception("Error closing search %s", search.id)
            return closed
        if ok:
            logger.info("Closed search '%s'", search.name)
        else:
            logger.error("Failed to close search %s", search.id)
        return closed

    async def delete_search(self, search_id: str) -> bool:
        """Remove a search for good. Local state drops it even if the store fails."""
        self.state.searches = [s for s in self.state.searches if s.id != search_id]
        if self.state.current is not None and self.state.current.id == search_id:
            self.state.current = None
        self._write_snapshot()
        try:
            ok = await self._store.delete_search(search_id)
        except Exception:
            logger.exception("Error deleting search %s", search_id)
            return False
        if not ok:
            logger.error("Failed to delete search %s", search_id)
        return ok

    # ------------------------------------------------------------------
    # Opportunities and interviews
    # ------------------------------------------------------------------

    async def add_opportunity(self, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(OpportunityDraft, form)
        if draft is None:
            return None
        now = self._clock()
        return await self._mutate(lambda s: transitions.add_opportunity(s, draft, now)[0])

    async def update_opportunity(self, opportunity_id: str, form: dict[str, Any]) -> JobSearch | None:
        patch = self._validate(OpportunityPatch, form)
        if patch is None:
            return None
        now = self._clock()
        return await self._mutate(lambda s: transitions.update_opportunity(s, opportunity_id, patch, now))

    async def change_status(self, opportunity_id: str, status: str) -> JobSearch | None:
        """Quick status change from the status menu."""
        if status not in STATUS_LABELS:
            logger.debug("Unknown status %r ignored", status)
            return None
        now = self._clock()
        return await self._mutate(lambda s: transitions.apply_status_change(s, opportunity_id, status, now))

    async def delete_opportunity(self, opportunity_id: str) -> JobSearch | None:
        return await self._mutate(lambda s: transitions.delete_opportunity(s, opportunity_id))

    async def add_interview(self, opportunity_id: str, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(InterviewDraft, form)
        if draft is None:
            return None
        now = self._clock()
        return await self._mutate(lambda s: transitions.add_interview(s, opportunity_id, draft, now))

    async def delete_interview(self, opportunity_id: str, interview_id: str) -> JobSearch | None:
        now = self._clock()
        return await self._mutate(
            lambda s: transitions.delete_interview(s, opportunity_id, interview_id, now),
        )

    # ------------------------------------------------------------------
    # Contacts, recruiters, resources
    # ------------------------------------------------------------------

    async def add_contact(self, opportunity_id: str, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(ContactDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: records.add_contact(s, opportunity_id, draft))

    async def delete_contact(self, opportunity_id: str, contact_id: str) -> JobSearch | None:
        return await self._mutate(lambda s: records.delete_contact(s, opportunity_id, contact_id))

    async def add_recruiter(self, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(RecruiterDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: records.add_recruiter(s, draft)[0])

    async def update_recruiter(self, recruiter_id: str, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(RecruiterDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: records.update_recruiter(s, recruiter_id, draft))

    async def delete_recruiter(self, recruiter_id: str) -> JobSearch | None:
        return await self._mutate(lambda s: records.delete_recruiter(s, recruiter_id))

    async def add_resource(self, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(ResourceDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: records.add_resource(s, draft)[0])

    async def update_resource(self, resource_id: str, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(ResourceDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: records.update_resource(s, resource_id, draft))

    async def delete_resource(self, resource_id: str) -> JobSearch | None:
        return await self._mutate(lambda s: records.delete_resource(s, resource_id))

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    async def add_log_entry(self, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(LogEntryDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: activity_log.add_log_entry(s, draft))

    async def update_log_entry(self, entry_id: str, form: dict[str, Any]) -> JobSearch | None:
        draft = self._validate(LogEntryDraft, form)
        if draft is None:
            return None
        return await self._mutate(lambda s: activity_log.update_log_entry(s, entry_id, draft))

    async def delete_log_entry(self, entry_id: str) -> JobSearch | None:
        return await self._mutate(lambda s: activity_log.delete_log_entry(s, entry_id))

    # ------------------------------------------------------------------
    # Query state
    # ------------------------------------------------------------------

    def set_opportunity_query(self, **changes: Any) -> OpportunityQuery:
        try:
            self.state.opportunity_query = self.state.opportunity_query.with_changes(**changes)
        except ValidationError as exc:
            logger.debug("Rejected opportunity query change %s: %s", changes, exc)
        return self.state.opportunity_query

    def set_log_query(self, **changes: Any) -> LogQuery:
        try:
            self.state.log_query = self.state.log_query.with_changes(**changes)
        except ValidationError as exc:
            logger.debug("Rejected log query change %s: %s", changes, exc)
        return self.state.log_query

    def set_view_mode(self, mode: ViewMode) -> None:
        self.state.view_mode = mode

    # ------------------------------------------------------------------
    # View models
    # ------------------------------------------------------------------

    def filtered_opportunities(self) -> list[JobOpportunity]:
        search = self.state.current
        if search is None:
            return []
        return filtered_opportunities(
            search,
            self.state.opportunity_query,
            now=self._clock(),
            recency_window=self._recency_window,
        )

    def opportunity_page(self) -> Page[OpportunityRow]:
        search = self.state.current or JobSearch(name="")
        return query_opportunities(
            search,
            self.state.opportunity_query,
            now=self._clock(),
            recency_window=self._recency_window,
        )

    def filtered_log(self) -> list[LogEntry]:
        if self.state.current is None:
            return []
        return filter_log(self.state.current.log, self.state.log_query)

    def log_page(self) -> Page[LogEntry]:
        return query_log(self.state.current or JobSearch(name=""), self.state.log_query)

    def counts(self) -> StatusCounts:
        search = self.state.current
        return status_counts(search.opportunities if search else [])

    def archived_searches(self) -> list[JobSearch]:
        """Searches that are not the open, active one: archived first, then closed."""
        parked = [s for s in self.state.searches if not s.is_active and not s.is_closed]
        closed = [s for s in self.state.searches if s.is_closed]
        return parked + closed

    def job_source_options(self) -> list[str]:
        """Choices for an opportunity's job source: recruiters, then online resources."""
        search = self.state.current
        if search is None:
            return []
        return [records.recruiter_source(r) for r in search.recruiters] + [r.name for r in search.resources]

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _export(self, render: Callable[[JobSearch], ExportFile], label: str) -> ExportOutcome:
        search = self.state.current
        if search is None:
            return ExportOutcome(notice=Notice("warning", "Select a job search before exporting."))
        try:
            result = render(search)
        except EmptyExportError as exc:
            return ExportOutcome(notice=Notice("warning", f"{exc}. Adjust the filters and try again."))
        except ExportError as exc:
            logger.error("%s export failed: %s", label, exc)
            return ExportOutcome(
                notice=Notice("error", f"{label} export failed. Try exporting as CSV or TXT instead."),
            )
        return ExportOutcome(file=result)

    def export_json(self) -> ExportOutcome:
        opportunities = self.filtered_opportunities()
        return self._export(lambda s: export_json(s, opportunities, self._clock()), "JSON")

    def export_csv(self) -> ExportOutcome:
        opportunities = self.filtered_opportunities()
        return self._export(lambda s: export_csv(s, opportunities, self._clock()), "CSV")

    def export_text_table(self) -> ExportOutcome:
        opportunities = self.filtered_opportunities()
        return self._export(lambda s: export_text_table(s, opportunities, self._clock()), "TXT")

    def export_log(self) -> ExportOutcome:
        entries = self.filtered_log()
        query = self.state.log_query
        return self._export(lambda s: export_log(s, entries, query, self._clock()), "Log")

    async def export_pdf(self) -> ExportOutcome:
        """Render the PDF summary with the table view showing, then restore the view."""
        opportunities = self.filtered_opportunities()
        pdf_config = self._settings.exports.pdf
        previous = self.state.view_mode
        self.state.view_mode = "table"
        try:
            await asyncio.sleep(pdf_config.render_delay_ms / 1000)
            return self._export(lambda s: export_pdf(s, opportunities, pdf_config, self._clock()), "PDF")
        finally:
            self.state.view_mode = previous
