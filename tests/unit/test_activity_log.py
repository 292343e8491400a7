"""Tests for the activity log: manual CRUD, filters, paging and lookups."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from jobtrack.core.schemas import JobOpportunity, JobSearch, LogEntry, LogEntryDraft, Recruiter
from jobtrack.tracker.activity_log import (
    UNKNOWN_OPPORTUNITY,
    UNKNOWN_RECRUITER,
    LogQuery,
    add_log_entry,
    automated_entry,
    delete_log_entry,
    describe_opportunity,
    describe_recruiter,
    entry_in_range,
    entry_matches_text,
    filter_log,
    query_log,
    update_log_entry,
)


def _entry(day: int, **kw: object) -> LogEntry:
    defaults: dict[str, object] = {
        "date": datetime(2025, 3, day, 10, 0),
        "type": "other",
        "description": f"Entry {day}",
    }
    defaults.update(kw)
    return LogEntry(**defaults)  # type: ignore[arg-type]


def _draft(**kw: object) -> LogEntryDraft:
    defaults: dict[str, object] = {
        "date": datetime(2025, 3, 5, 9, 0),
        "type": "phone_call",
        "description": "Intro call",
    }
    defaults.update(kw)
    return LogEntryDraft(**defaults)  # type: ignore[arg-type]


class TestAutomatedEntry:
    def test_status_change_text(self) -> None:
        e = automated_entry("saved", "applied", "Acme", "Dev", now=datetime(2025, 3, 1))
        assert e.type == "status_change"
        assert e.description == 'Status changed from "Saved" to "Applied"'
        assert e.notes == "Automated entry for Dev at Acme"

    def test_creation_text(self) -> None:
        e = automated_entry("", "applied", "Acme", "Dev", now=datetime(2025, 3, 1))
        assert e.description == 'Job Added - Status set to "Applied"'


class TestManualCrud:
    def test_add(self) -> None:
        result = add_log_entry(JobSearch(name="x"), _draft(notes="Went well"))
        assert len(result.log) == 1
        assert result.log[0].type == "phone_call"
        assert result.log[0].notes == "Went well"

    def test_email_to_other_contact_drops_recruiter(self) -> None:
        draft = _draft(type="email", recruiter_id="r1", use_other_contact=True, other_contact="Pat (HR)")
        entry = add_log_entry(JobSearch(name="x"), draft).log[0]
        assert entry.recruiter_id is None
        assert entry.other_contact == "Pat (HR)"

    def test_update_keeps_id_and_position(self) -> None:
        first, second = _entry(1), _entry(2)
        search = JobSearch(name="x", log=[first, second])
        result = update_log_entry(search, first.id, _draft(description="Rewritten"))
        assert [e.id for e in result.log] == [first.id, second.id]
        assert result.log[0].description == "Rewritten"

    def test_update_missing_is_noop(self) -> None:
        search = JobSearch(name="x", log=[_entry(1)])
        assert update_log_entry(search, "missing", _draft()) == search

    def test_delete(self) -> None:
        keep, drop = _entry(1), _entry(2)
        result = delete_log_entry(JobSearch(name="x", log=[keep, drop]), drop.id)
        assert result.log == [keep]


class TestTextFilter:
    def test_case_insensitive_substring(self) -> None:
        assert entry_matches_text(_entry(1, description="Called ACME recruiter"), "acme")

    def test_searches_notes_type_and_contact(self) -> None:
        assert entry_matches_text(_entry(1, notes="needs follow-up"), "follow-up")
        assert entry_matches_text(_entry(1, type="follow_up"), "follow_up")
        assert entry_matches_text(_entry(1, other_contact="Jordan"), "jord")

    def test_no_match(self) -> None:
        assert not entry_matches_text(_entry(1), "zzz")

    def test_blank_matches_everything(self) -> None:
        assert entry_matches_text(_entry(1), "   ")


class TestDateRange:
    def test_bounds_are_inclusive_whole_days(self) -> None:
        late = _entry(10, date=datetime(2025, 3, 10, 23, 59))
        early = _entry(5, date=datetime(2025, 3, 5, 0, 1))
        assert entry_in_range(late, date(2025, 3, 5), date(2025, 3, 10))
        assert entry_in_range(early, date(2025, 3, 5), date(2025, 3, 10))

    def test_outside(self) -> None:
        assert not entry_in_range(_entry(4), date(2025, 3, 5), None)
        assert not entry_in_range(_entry(11), None, date(2025, 3, 10))

    def test_open_ended(self) -> None:
        assert entry_in_range(_entry(1), None, None)


class TestLogQuery:
    def test_filter_change_resets_page(self) -> None:
        q = LogQuery(page=3)
        assert q.with_changes(text="acme").page == 1

    def test_page_change_kept(self) -> None:
        assert LogQuery().with_changes(page=4).page == 4

    def test_page_size_must_be_offered(self) -> None:
        with pytest.raises(ValidationError):
            LogQuery(page_size=7)

    def test_is_filtered(self) -> None:
        assert not LogQuery().is_filtered
        assert LogQuery(start_date=date(2025, 3, 1)).is_filtered


class TestFilterAndPage:
    def test_newest_first(self) -> None:
        entries = [_entry(3), _entry(9), _entry(1)]
        result = filter_log(entries, LogQuery())
        assert [e.date.day for e in result] == [9, 3, 1]

    def test_combined_filters(self) -> None:
        entries = [
            _entry(2, description="Email Acme"),
            _entry(6, description="Call Acme"),
            _entry(8, description="Call Globex"),
        ]
        q = LogQuery(text="acme", start_date=date(2025, 3, 5))
        assert [e.description for e in filter_log(entries, q)] == ["Call Acme"]

    def test_query_log_pages(self) -> None:
        search = JobSearch(name="x", log=[_entry(d) for d in range(1, 13)])
        page = query_log(search, LogQuery(page=2, page_size=5))
        assert page.total_items == 12
        assert page.total_pages == 3
        assert [e.date.day for e in page.items] == [7, 6, 5, 4, 3]


class TestLookups:
    def test_describe_opportunity(self) -> None:
        opp = JobOpportunity(company="Acme", position="Dev", date_applied=date(2025, 3, 1))
        search = JobSearch(name="x", opportunities=[opp])
        assert describe_opportunity(search, opp.id) == "Dev at Acme"

    def test_deleted_opportunity_placeholder(self) -> None:
        assert describe_opportunity(JobSearch(name="x"), "gone") == UNKNOWN_OPPORTUNITY

    def test_describe_recruiter(self) -> None:
        r = Recruiter(name="Dana", company="TalentCo")
        search = JobSearch(name="x", recruiters=[r])
        assert describe_recruiter(search, r.id) == "Dana (TalentCo)"
        assert describe_recruiter(search, "gone") == UNKNOWN_RECRUITER
