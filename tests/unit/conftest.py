from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from sdr.app.config import Settings


UNIQUE_COLUMNS = {"creators": "tiktok_handle", "tutorials": "tiktok_video_id"}


@dataclass
class FakeResponse:
    data: Any
    count: int | None = None


class FakeQuery:
    """Just enough of the postgrest request builder for the repository."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._columns = "*"
        self._filters: list[tuple[str, Any]] = []
        self._or_filters: list[list[tuple[str, re.Pattern]]] = []
        self._order: tuple[str, bool] | None = None
        self._range: tuple[int, int] | None = None
        self._limit: int | None = None
        self._payload: dict[str, Any] | None = None

    def select(self, columns: str = "*", count: str | None = None) -> "FakeQuery":
        self._columns = columns
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, value))
        return self

    def or_(self, filters: str) -> "FakeQuery":
        # Only "column.ilike.pattern" alternatives are understood.
        alternatives = []
        for part in filters.split(","):
            column, operator, pattern = part.split(".", 2)
            assert operator == "ilike", f"unsupported operator {operator}"
            regex = re.compile(".*".join(re.escape(chunk) for chunk in pattern.split("%")), re.IGNORECASE)
            alternatives.append((column, regex))
        self._or_filters.append(alternatives)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    def insert(self, payload: dict[str, Any]) -> "FakeQuery":
        self._payload = payload
        return self

    def execute(self) -> FakeResponse:
        operation = "insert" if self._payload is not None else "select"
        self._db.record(self._table, operation)
        if operation == "insert":
            return FakeResponse(data=[self._db.insert_row(self._table, self._payload)])
        return FakeResponse(data=self._select())

    def _select(self) -> list[dict[str, Any]]:
        rows = [
            dict(row)
            for row in self._db.tables[self._table]
            if all(row.get(column) == value for column, value in self._filters)
            and all(
                any(regex.fullmatch(str(row.get(column) or "")) for column, regex in alternatives)
                for alternatives in self._or_filters
            )
        ]
        if self._order:
            column, desc = self._order
            rows.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self._range:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[: self._limit]
        if "creator:creators" in self._columns:
            for row in rows:
                row["creator"] = next(
                    (dict(c) for c in self._db.tables["creators"] if c["id"] == row.get("creator_id")),
                    None,
                )
        if "instructions(" in self._columns:
            for row in rows:
                row["instructions"] = [
                    dict(i) for i in self._db.tables["instructions"] if i["tutorial_id"] == row["id"]
                ]
        return rows


class FakeSupabase:
    """In-memory stand-in for the Supabase client's ``table()`` interface."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            "creators": [],
            "tutorials": [],
            "instructions": [],
        }
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], tuple[int, Exception]] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail_on(self, table: str, operation: str, error: Exception, after: int = 0) -> None:
        """Raise ``error`` on every ``operation`` against ``table`` once ``after`` calls succeeded."""
        self._failures[(table, operation)] = (after, error)

    def count(self, table: str, operation: str) -> int:
        return self.calls.count((table, operation))

    def record(self, table: str, operation: str) -> None:
        failure = self._failures.get((table, operation))
        already = self.count(table, operation)
        self.calls.append((table, operation))
        if failure and already >= failure[0]:
            raise failure[1]

    def insert_row(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        unique = UNIQUE_COLUMNS.get(table)
        if unique and any(row.get(unique) == payload.get(unique) for row in self.tables[table]):
            raise APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})
        row = {"id": str(uuid4()), **payload}
        self.tables[table].append(row)
        return dict(row)


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        GROQ_API_KEY="groq-test-key",
        CLAUDE_API_KEY="claude-test-key",
        SUPABASE_URL="https://test.supabase.co",
        SUPABASE_ANON_KEY="anon-test-key",
        DOWNLOAD_DIR=tmp_path / "downloads",
    )
