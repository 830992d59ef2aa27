"""Pure Python in-memory database for unit testing."""

import copy
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from src.core import db_client
from src.core.db_client import DatabaseError, RecordNotFoundError


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _sort_key(field: str):
    def key(record: dict[str, Any]) -> tuple[bool, Any]:
        value = record.get(field)
        if field == "id" and isinstance(value, str) and value.isdigit():
            value = int(value)
        # NULLs sort first ascending, like SQLite
        return (value is not None, value)

    return key


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Mirrors the db_client module: same keyword arguments, same filter and
    sort syntax, same exceptions. Comparisons against a missing or null
    field never match, as in SQL.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = 1000

    async def create_record(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record; data may carry its own created/updated values."""
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")

        records = self._collections.setdefault(collection, {})
        record_id = str(self._id_counter)
        self._id_counter += 1

        now = _now()
        record = {"id": record_id, "created": now, "updated": now, **copy.deepcopy(data)}
        records[record_id] = record
        return copy.deepcopy(record)

    async def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID."""
        if not isinstance(record_id, str):
            raise DatabaseError(f"Record ID must be a string, got {type(record_id)}")

        record = self._collections.get(collection, {}).get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return copy.deepcopy(record)

    async def update_record(self, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update an existing record with the given columns."""
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")

        record = self._collections.get(collection, {}).get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

        record.update(copy.deepcopy(data))
        if "updated" not in data:
            record["updated"] = _now()
        return copy.deepcopy(record)

    async def delete_record(self, collection: str, record_id: str) -> None:
        """Delete a record, raising RecordNotFoundError if it does not exist."""
        records = self._collections.get(collection, {})
        if record_id not in records:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        del records[record_id]

    async def delete_records(self, collection: str, record_ids: list[str]) -> int:
        """Delete every listed record that exists and return how many were removed."""
        records = self._collections.get(collection, {})
        deleted = 0
        for record_id in set(record_ids):
            if record_id in records:
                del records[record_id]
                deleted += 1
        return deleted

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List records with filtering, multi-key sorting and pagination."""
        records = self._matching(collection, filter_query)
        records = self._apply_sort(records, sort or "id")

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def count_records(self, collection: str, filter_query: str = "") -> int:
        """Count records matching the filter."""
        return len(self._matching(collection, filter_query))

    async def count_grouped(self, collection: str, field: str, filter_query: str = "") -> dict[str, int]:
        """Count matching records grouped by one field."""
        counts = Counter(str(record.get(field)) for record in self._matching(collection, filter_query))
        return dict(counts)

    def _matching(self, collection: str, filter_query: str) -> list[dict[str, Any]]:
        records = list(self._collections.get(collection, {}).values())
        if not filter_query:
            return records
        try:
            return [r for r in records if self._parse_filter(filter_query, r)]
        except ValueError as e:
            raise DatabaseError(f"Failed to list records from {collection}: {e}") from e

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate an &&-joined filter, with parenthesized || groups, against a record."""
        for part in db_client.split_top_level(filter_str, "&&"):
            if part.startswith("(") and part.endswith(")"):
                alternatives = db_client.split_top_level(part[1:-1], "||")
                if not any(self._matches(alternative, record) for alternative in alternatives):
                    return False
            elif not self._matches(part, record):
                return False
        return True

    def _matches(self, comparison: str, record: dict[str, Any]) -> bool:
        field, op, value = db_client.parse_comparison(comparison)
        actual = record.get(field)
        if actual is None:
            return False

        if op == "~":
            return value.lower() in str(actual).lower()

        if isinstance(actual, bool):
            expected: Any = value.lower() == "true"
        elif isinstance(actual, int) and value.lstrip("-").isdigit():
            expected = int(value)
        else:
            actual = str(actual)
            expected = value

        if op == "=":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == ">":
            return actual > expected
        if op == "<":
            return actual < expected
        if op == ">=":
            return actual >= expected
        return actual <= expected

    def _apply_sort(self, records: list[dict], sort: str) -> list[dict]:
        """Sort by comma-separated keys; a leading "-" sorts that key descending."""
        ordered = list(records)
        # Stable sorts applied from the least significant key up
        for raw_key in reversed(sort.split(",")):
            key = raw_key.strip()
            reverse = key.startswith("-")
            ordered.sort(key=_sort_key(key.lstrip("+-")), reverse=reverse)
        return ordered
