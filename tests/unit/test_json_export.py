"""Tests for the JSON snapshot export and shared export helpers."""

import json
from datetime import date, datetime

import pytest

from jobtrack.core.schemas import Contact, Interview, JobOpportunity, JobSearch, Recruiter
from jobtrack.exports.base import EmptyExportError, ExportFile, file_stem
from jobtrack.exports.json_export import build_snapshot, export_json

NOW = datetime(2025, 3, 10, 14, 0)


def _search() -> JobSearch:
    opps = [
        JobOpportunity(
            company="Acme, Inc.",
            position='Senior "Python" Engineer',
            status="interview",
            date_applied=date(2025, 3, 1),
            interviews=[Interview(date=datetime(2025, 3, 12, 10), type="Technical")],
            contacts=[Contact(name="Lee", role="HM")],
        ),
        JobOpportunity(company="Globex", position="Dev", status="saved", date_applied=date(2025, 2, 1)),
        JobOpportunity(company="Initech", position="QA", status="rejected", date_applied=date(2025, 1, 5)),
    ]
    return JobSearch(
        name="Spring 2025",
        created_at=datetime(2025, 1, 1, 8, 0),
        opportunities=opps,
        recruiters=[Recruiter(name="Dana", company="TalentCo")],
    )


class TestFileStem:
    def test_non_alphanumerics_replaced(self) -> None:
        assert file_stem("Spring 2025: Remote!") == "spring_2025__remote_"


class TestExportFile:
    def test_write_to_creates_directory(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        f = ExportFile(filename="a.txt", media_type="text/plain", content=b"hi")
        path = f.write_to(tmp_path / "out")
        assert path.read_bytes() == b"hi"


class TestBuildSnapshot:
    def test_metadata_and_summary(self) -> None:
        search = _search()
        data = build_snapshot(search, search.opportunities[:1], NOW)
        assert data["searchName"] == "Spring 2025"
        assert data["exportDate"] == NOW.isoformat()
        assert data["summary"] == {
            "totalActive": 2,
            "applied": 0,
            "saved": 1,
            "closedOrRejected": 1,
            "totalOpportunities": 3,
            "exportedOpportunities": 1,
        }

    def test_opportunity_fields(self) -> None:
        search = _search()
        opp = build_snapshot(search, search.opportunities, NOW)["opportunities"][0]
        assert opp["status"] == "Interview"
        assert opp["lastChanged"] == "2025-03-01"
        assert opp["daysOpen"] == 10
        assert opp["interviews"][0]["type"] == "Technical"
        assert opp["contacts"][0]["name"] == "Lee"

    def test_recruiters_by_alias(self) -> None:
        search = _search()
        assert build_snapshot(search, search.opportunities, NOW)["recruiters"][0]["company"] == "TalentCo"


class TestExportJson:
    def test_round_trip_preserves_opportunities(self) -> None:
        search = _search()
        result = export_json(search, search.opportunities, NOW)
        assert result.filename == "spring_2025_job_search_export.json"
        assert result.media_type == "application/json"

        data = json.loads(result.content)
        assert len(data["opportunities"]) == 3
        assert [(o["company"], o["position"]) for o in data["opportunities"]] == [
            (o.company, o.position) for o in search.opportunities
        ]

    def test_nested_records_round_trip(self) -> None:
        search = _search()
        two = search.opportunities[:2]
        data = json.loads(export_json(search, two, NOW).content)
        assert len(data["opportunities"]) == 2
        assert len(data["opportunities"][0]["interviews"]) == 1
        assert len(data["opportunities"][0]["contacts"]) == 1
        assert data["opportunities"][1]["interviews"] == []

    def test_empty_set_refused(self) -> None:
        with pytest.raises(EmptyExportError, match="No opportunities to export"):
            export_json(_search(), [], NOW)
