"""Persistence collaborators: the search record store and a per-user key/value store.

Record shape (one row per search, JSON body)::

    {id, searchName, status, closed, opportunities, recruiters, resources, log, created}
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from jobtrack.core.db import (
    delete_search_record,
    fetch_search_records,
    kv_get,
    kv_set,
    set_search_closed,
    upsert_search_record,
)
from jobtrack.core.schemas import JobSearch

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The backing store could not be read."""


def search_status(search: JobSearch) -> str:
    if search.is_closed:
        return "closed"
    return "active" if search.is_active else "archived"


def to_record(search: JobSearch) -> dict[str, Any]:
    """The JSON body persisted for a search (id/closed/created live in columns)."""
    data = search.model_dump(
        mode="json",
        by_alias=True,
        include={"name", "is_active", "closed_date", "opportunities", "recruiters", "resources", "log"},
    )
    data["searchName"] = data.pop("name")
    data["status"] = search_status(search)
    return data


def from_record(
    search_id: str,
    body: dict[str, Any],
    closed: int,
    created: str,
    closed_date: str | None = None,
) -> JobSearch:
    return JobSearch.model_validate({
        "id": search_id,
        "name": body.get("searchName") or body.get("name") or "Job Search",
        "isActive": bool(body.get("isActive", True)) and not closed,
        "createdAt": created,
        "closed": closed,
        "closedDate": closed_date or body.get("closedDate"),
        "opportunities": body.get("opportunities") or [],
        "recruiters": body.get("recruiters") or [],
        "resources": body.get("resources") or [],
        "log": body.get("log") or [],
    })


class SearchStore(ABC):
    """Where job searches live between sessions.

    Write methods report success as a bool instead of raising.
    """

    @abstractmethod
    async def load_searches(self, user_id: str) -> list[JobSearch]:
        """Every search for the user, newest first. Raises StoreError when unreadable."""

    @abstractmethod
    async def save_search(self, user_id: str, search: JobSearch) -> bool:
        """Upsert a search."""

    @abstractmethod
    async def close_search(self, search_id: str, closed_date: datetime) -> bool:
        """Soft-close: set closed=1 and the closed date."""

    @abstractmethod
    async def delete_search(self, search_id: str) -> bool:
        """Permanently delete. A missing search counts as already deleted."""


class SqliteSearchStore(SearchStore):
    """SearchStore backed by the ``jobs`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def load_searches(self, user_id: str) -> list[JobSearch]:
        try:
            rows = fetch_search_records(self._conn, user_id)
        except sqlite3.Error as exc:
            msg = f"Could not read searches for {user_id}: {exc}"
            raise StoreError(msg) from exc

        searches: list[JobSearch] = []
        for row in rows:
            try:
                body = json.loads(row["json"])
                searches.append(
                    from_record(row["search_id"], body, row["closed"], row["created"], row["closed_date"]),
                )
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.error("Skipping unreadable search record %s: %s", row["search_id"], exc)
        logger.debug("Loaded %d searches for %s", len(searches), user_id)
        return searches

    async def save_search(self, user_id: str, search: JobSearch) -> bool:
        try:
            inserted = upsert_search_record(
                self._conn,
                user_id,
                search.id,
                json.dumps(to_record(search)),
                closed=search.closed,
                created=search.created_at,
                closed_date=search.closed_date,
            )
        except sqlite3.Error:
            logger.exception("Error saving search %s", search.id)
            return False
        logger.debug("%s search %s", "Inserted" if inserted else "Updated", search.id)
        return True

    async def close_search(self, search_id: str, closed_date: datetime) -> bool:
        try:
            touched = set_search_closed(self._conn, search_id, 1, closed_date)
        except sqlite3.Error:
            logger.exception("Error closing search %s", search_id)
            return False
        if not touched:
            logger.error("Failed to close search %s: not found", search_id)
        return touched > 0

    async def delete_search(self, search_id: str) -> bool:
        try:
            removed = delete_search_record(self._conn, search_id)
        except sqlite3.Error:
            logger.exception("Error deleting search %s", search_id)
            return False
        if not removed:
            logger.debug("Search %s already gone", search_id)
        return True


class KeyValueStore(ABC):
    """Small string key/value store scoped to one user."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Stored value or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""


class SqliteKeyValueStore(KeyValueStore):
    def __init__(self, conn: sqlite3.Connection, user_id: str) -> None:
        self._conn = conn
        self._user_id = user_id

    def get(self, key: str) -> str | None:
        return kv_get(self._conn, self._user_id, key)

    def set(self, key: str, value: str) -> None:
        kv_set(self._conn, self._user_id, key, value)
