"""Integration test: session controller over a real SQLite store, end to end."""

import csv
import io
import json
from datetime import date, datetime
from pathlib import Path

import pytest

from jobtrack.core.config import Settings
from jobtrack.core.db import init_db
from jobtrack.session.controller import SNAPSHOT_KEY, SessionController
from jobtrack.session.store import SqliteKeyValueStore, SqliteSearchStore

NOW = datetime(2025, 3, 10, 14, 0)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _settings(tmp_path: Path) -> Settings:
    return Settings.model_validate({
        "database": {"path": str(tmp_path / "jobtrack.db")},
        "views": {"log_entries_per_page": 5},
        "exports": {"output_dir": str(tmp_path / "exports"), "pdf": {"render_delay_ms": 0}},
    })


def _controller(settings: Settings, user_id: str = "u1") -> SessionController:
    conn = init_db(settings.database.path)
    return SessionController(
        SqliteSearchStore(conn),
        user_id,
        settings=settings,
        kv=SqliteKeyValueStore(conn, user_id),
        clock=lambda: NOW,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return _settings(tmp_path)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestSessionEndToEnd:
    async def test_full_session_survives_restart(self, settings: Settings) -> None:
        c = _controller(settings)
        await c.create_search("Spring 2025")
        await c.add_recruiter({"name": "Dana", "company": "TalentCo", "phone": "5559876543"})
        await c.add_opportunity({
            "company": "Acme, Inc.",
            "position": "Platform Engineer",
            "jobSource": "Recruiter - Dana",
            "dateApplied": "2025-03-01",
        })
        await c.add_opportunity({"company": "Globex", "position": "Data Engineer", "status": "saved"})
        assert c.current is not None
        acme = next(o for o in c.current.opportunities if o.company == "Acme, Inc.")

        await c.add_interview(acme.id, {"date": "2025-03-14", "time": "10:00 AM", "type": "Technical"})
        await c.add_contact(acme.id, {"name": "Lee", "role": "Hiring Manager"})
        await c.add_log_entry({
            "date": "2025-03-09",
            "type": "email",
            "description": "Sent portfolio",
            "useOtherContact": True,
            "otherContact": "Pat (HR)",
        })

        # a fresh controller sees exactly what was persisted
        restarted = _controller(settings)
        await restarted.load()
        search = restarted.current
        assert search is not None
        assert search.name == "Spring 2025"
        reloaded = search.find_opportunity(acme.id)
        assert reloaded is not None
        assert reloaded.status == "interview"
        assert reloaded.date_applied == date(2025, 3, 1)
        assert reloaded.contacts[0].name == "Lee"
        assert [e.type for e in search.log].count("status_change") == 3
        assert restarted.counts().all == 2

    async def test_exports_written_to_disk(self, settings: Settings) -> None:
        c = _controller(settings)
        await c.create_search("Spring 2025")
        await c.add_opportunity({"company": "Acme, Inc.", "position": 'Senior "Python" Engineer'})
        await c.add_opportunity({"company": "Globex", "position": "QA"})

        out = Path(settings.exports.output_dir)
        paths = []
        for outcome in (c.export_json(), c.export_csv(), c.export_text_table(), c.export_log(), await c.export_pdf()):
            assert outcome.file is not None
            paths.append(outcome.file.write_to(out))

        assert {p.suffix for p in paths} == {".json", ".csv", ".txt", ".pdf"}
        assert all(p.exists() and p.stat().st_size > 0 for p in paths)

        data = json.loads((out / "spring_2025_job_search_export.json").read_text())
        assert data["summary"]["totalOpportunities"] == 2

        text = (out / "spring_2025_job_search_complete_export.csv").read_text(encoding="utf-8-sig")
        rows = list(csv.reader(io.StringIO(text)))
        companies = [r[0] for r in rows if len(r) == 13][1:]
        assert sorted(companies) == ["Acme, Inc.", "Globex"]

    async def test_close_then_reopen(self, settings: Settings) -> None:
        c = _controller(settings)
        search = await c.create_search("Winter")
        assert search is not None
        await c.close_search()

        restarted = _controller(settings)
        await restarted.load()
        assert restarted.current is None
        assert restarted.archived_searches()[0].is_closed

        await restarted.activate_search(search.id)
        assert restarted.current is not None
        assert not restarted.current.is_closed

        again = _controller(settings)
        await again.load()
        assert again.current is not None
        assert again.current.id == search.id

    async def test_delete_and_snapshot(self, settings: Settings) -> None:
        c = _controller(settings)
        keep = await c.create_search("Keep")
        drop = await c.create_search("Drop")
        assert keep is not None
        assert drop is not None
        await c.delete_search(drop.id)

        conn = init_db(settings.database.path)
        snapshot = json.loads(SqliteKeyValueStore(conn, "u1").get(SNAPSHOT_KEY) or "[]")
        assert [s["name"] for s in snapshot] == ["Keep"]

        restarted = _controller(settings)
        assert [s.name for s in await restarted.load()] == ["Keep"]

    async def test_users_are_isolated(self, settings: Settings) -> None:
        await _controller(settings, "alice").create_search("Alice's search")
        other = _controller(settings, "bob")
        assert await other.load() == []
