"""Tests for InMemoryDBClient implementation."""

import pytest

from src.core.db_client import DatabaseError, RecordNotFoundError


@pytest.mark.unit
class TestInMemoryDBClient:
    """Test suite for InMemoryDBClient."""

    async def test_create_record(self, in_memory_db):
        """Test creating a record."""
        record = await in_memory_db.create_record("tasks", {"text": "Buy milk", "completed": False})

        assert record["id"] is not None
        assert record["text"] == "Buy milk"
        assert "created" in record
        assert "updated" in record

    async def test_create_record_keeps_supplied_timestamps(self, in_memory_db):
        """Test that caller-supplied created/updated values win."""
        record = await in_memory_db.create_record("tasks", {"created": "2024-01-01T00:00:00.000000Z"})

        assert record["created"] == "2024-01-01T00:00:00.000000Z"

    async def test_create_record_invalid_data(self, in_memory_db):
        """Test creating a record with invalid data raises error."""
        with pytest.raises(DatabaseError, match="Data must be a dictionary"):
            await in_memory_db.create_record("tasks", "invalid")

    async def test_get_record_not_found(self, in_memory_db):
        """Test getting a non-existent record raises error."""
        with pytest.raises(RecordNotFoundError, match="Record not found"):
            await in_memory_db.get_record("tasks", "nonexistent")

    async def test_update_record(self, in_memory_db):
        """Test updating a record."""
        created = await in_memory_db.create_record("tasks", {"text": "Original"})
        updated = await in_memory_db.update_record("tasks", created["id"], {"text": "Updated"})

        assert updated["id"] == created["id"]
        assert updated["text"] == "Updated"

    async def test_delete_records_counts_existing_only(self, in_memory_db):
        """Test that bulk delete skips unknown ids."""
        first = await in_memory_db.create_record("tasks", {"text": "a"})
        await in_memory_db.create_record("tasks", {"text": "b"})

        deleted = await in_memory_db.delete_records("tasks", [first["id"], "missing"])

        assert deleted == 1
        assert await in_memory_db.count_records("tasks") == 1

    async def test_filter_with_or_group_and_booleans(self, in_memory_db):
        """Test && with a parenthesized || group and boolean matching."""
        await in_memory_db.create_record("tasks", {"text": "Milk", "description": "", "completed": False})
        await in_memory_db.create_record("tasks", {"text": "Bread", "description": "with milk", "completed": False})
        await in_memory_db.create_record("tasks", {"text": "milk", "description": "", "completed": True})

        records = await in_memory_db.list_records(
            "tasks", filter_query='completed = "false" && (text ~ "MILK" || description ~ "MILK")'
        )

        assert [r["text"] for r in records] == ["Milk", "Bread"]

    async def test_range_comparison_skips_nulls(self, in_memory_db):
        """Test that < never matches a missing value."""
        await in_memory_db.create_record("tasks", {"due_date": "2024-03-01T00:00:00.000000Z"})
        await in_memory_db.create_record("tasks", {"due_date": None})

        count = await in_memory_db.count_records("tasks", filter_query='due_date < "2024-03-15T00:00:00.000000Z"')

        assert count == 1

    async def test_multi_key_sort(self, in_memory_db):
        """Test descending then ascending keys, with nulls first ascending."""
        await in_memory_db.create_record("tasks", {"text": "a", "rank": 1, "due": "2024-03-02"})
        await in_memory_db.create_record("tasks", {"text": "b", "rank": 3, "due": None})
        await in_memory_db.create_record("tasks", {"text": "c", "rank": 1, "due": None})
        await in_memory_db.create_record("tasks", {"text": "d", "rank": 1, "due": "2024-03-01"})

        records = await in_memory_db.list_records("tasks", sort="-rank,due,id")

        assert [r["text"] for r in records] == ["b", "c", "d", "a"]

    async def test_count_grouped(self, in_memory_db):
        """Test grouped counts with a filter."""
        await in_memory_db.create_record("tasks", {"category": "work", "completed": True})
        await in_memory_db.create_record("tasks", {"category": "work", "completed": False})
        await in_memory_db.create_record("tasks", {"category": "health", "completed": True})

        counts = await in_memory_db.count_grouped("tasks", "category", filter_query='completed = "true"')

        assert counts == {"work": 1, "health": 1}

    async def test_invalid_filter_raises_database_error(self, in_memory_db):
        """Test that malformed filters surface as DatabaseError."""
        await in_memory_db.create_record("tasks", {"text": "a"})

        with pytest.raises(DatabaseError):
            await in_memory_db.list_records("tasks", filter_query="text == a")
