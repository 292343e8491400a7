"""JSON snapshot of a search: metadata, counts, opportunities, recruiters, resources."""

import json
import logging
from datetime import datetime
from typing import Any

from jobtrack.core.dates import days_open
from jobtrack.core.schemas import JobOpportunity, JobSearch, status_label
from jobtrack.exports.base import ExportFile, file_stem, require_rows
from jobtrack.tracker.query import status_counts

logger = logging.getLogger(__name__)


def _opportunity(o: JobOpportunity, now: datetime) -> dict[str, Any]:
    return {
        "id": o.id,
        "company": o.company,
        "position": o.position,
        "status": status_label(o.status),
        "lastChanged": o.date_applied.isoformat(),
        "daysOpen": days_open(o.date_applied, now),
        "createdAt": o.created_at.isoformat() if o.created_at else None,
        "location": o.location,
        "salary": o.salary,
        "jobSource": o.job_source,
        "jobUrl": o.job_url,
        "description": o.description,
        "notes": o.notes,
        "interviews": [i.model_dump(mode="json", by_alias=True) for i in o.interviews],
        "contacts": [c.model_dump(mode="json", by_alias=True) for c in o.contacts],
    }


def build_snapshot(
    search: JobSearch,
    opportunities: list[JobOpportunity],
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now()
    counts = status_counts(search.opportunities)
    return {
        "searchId": search.id,
        "searchName": search.name,
        "created": search.created_at.isoformat(),
        "isActive": search.is_active,
        "closed": search.closed,
        "closedDate": search.closed_date.isoformat() if search.closed_date else None,
        "exportDate": now.isoformat(),
        "summary": {
            "totalActive": counts.total,
            "applied": counts.applied,
            "saved": counts.saved,
            "closedOrRejected": counts.closed,
            "totalOpportunities": counts.all,
            "exportedOpportunities": len(opportunities),
        },
        "opportunities": [_opportunity(o, now) for o in opportunities],
        "recruiters": [r.model_dump(mode="json", by_alias=True) for r in search.recruiters],
        "resources": [r.model_dump(mode="json", by_alias=True) for r in search.resources],
    }


def export_json(
    search: JobSearch,
    opportunities: list[JobOpportunity],
    now: datetime | None = None,
) -> ExportFile:
    """Serialize the filtered opportunity set as ``<name>_job_search_export.json``."""
    require_rows(opportunities, "opportunities")
    data = build_snapshot(search, opportunities, now)
    logger.info("JSON export of '%s': %d opportunities", search.name, len(opportunities))
    return ExportFile(
        filename=f"{file_stem(search.name)}_job_search_export.json",
        media_type="application/json",
        content=json.dumps(data, indent=2).encode("utf-8"),
    )
