"""
Tests for UserRepository

The databases handle is mocked; these tests check the SQL shapes, value
binding and driver error translation.
"""
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from userhub.modules.users.domain.user import UserStatus
from userhub.modules.users.exceptions import StorageUnavailableError, UserConflictError
from userhub.modules.users.repositories.user_repository import UserRepository, is_unique_violation

NOW = datetime(2024, 2, 10, 9, 30, tzinfo=timezone.utc)


def make_row(**overrides):
    row = {
        "id": 1,
        "email": "a@x.com",
        "name": "Al",
        "password": "password1",
        "status": "pending",
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


@pytest.fixture
def database():
    db = MagicMock()
    db.fetch_one = AsyncMock()
    db.fetch_all = AsyncMock(return_value=[])
    db.fetch_val = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def repository(database):
    return UserRepository(database)


@pytest.mark.asyncio
async def test_insert_binds_status_value_and_returns_row(repository, database):
    database.fetch_one.return_value = make_row()

    row = await repository.insert({"email": "a@x.com", "name": "Al", "password": "password1", "status": UserStatus.PENDING})

    assert row["id"] == 1
    query, values = database.fetch_one.call_args.args
    assert "INSERT INTO users" in query
    assert "RETURNING" in query
    assert values == {"email": "a@x.com", "name": "Al", "password": "password1", "status": "pending"}


@pytest.mark.asyncio
async def test_insert_defaults_status_to_pending(repository, database):
    database.fetch_one.return_value = make_row()
    await repository.insert({"email": "a@x.com", "name": "Al", "password": "password1"})
    assert database.fetch_one.call_args.args[1]["status"] == "pending"


@pytest.mark.asyncio
async def test_insert_unique_violation_becomes_conflict(repository, database):
    database.fetch_one.side_effect = asyncpg.exceptions.UniqueViolationError("duplicate key value")

    with pytest.raises(UserConflictError) as exc_info:
        await repository.insert({"email": "a@x.com", "name": "Al", "password": "password1"})
    assert exc_info.value.field == "email"


@pytest.mark.asyncio
async def test_connection_errors_become_storage_unavailable(repository, database):
    database.fetch_all.side_effect = ConnectionRefusedError("connection refused")

    with pytest.raises(StorageUnavailableError):
        await repository.find_all()


@pytest.mark.asyncio
async def test_other_driver_errors_propagate_unchanged(repository, database):
    database.fetch_one.side_effect = RuntimeError("syntax error")

    with pytest.raises(RuntimeError, match="syntax error"):
        await repository.find_by_id(1)


def test_unique_violation_detected_by_sqlstate():
    exc = Exception("duplicate")
    exc.sqlstate = "23505"
    assert is_unique_violation(exc)
    assert not is_unique_violation(Exception("other"))


@pytest.mark.asyncio
async def test_find_by_id_missing_returns_none(repository, database):
    database.fetch_one.return_value = None
    assert await repository.find_by_id(42) is None
    assert database.fetch_one.call_args.args[1] == {"user_id": 42}


@pytest.mark.asyncio
async def test_update_fields_only_writes_allowed_columns(repository, database):
    database.fetch_one.return_value = make_row(status="active")

    row = await repository.update_fields(1, {"status": UserStatus.ACTIVE, "name": "Al", "id": 99, "created_at": NOW})

    assert row["status"] == "active"
    query, values = database.fetch_one.call_args.args
    assert "name = :name" in query
    assert "status = :status" in query
    assert "updated_at = CURRENT_TIMESTAMP" in query
    assert "created_at =" not in query
    assert values == {"user_id": 1, "name": "Al", "status": "active"}


@pytest.mark.asyncio
async def test_update_fields_with_nothing_still_refreshes_updated_at(repository, database):
    database.fetch_one.return_value = make_row()
    await repository.update_fields(1, {})
    query, values = database.fetch_one.call_args.args
    assert "SET updated_at = CURRENT_TIMESTAMP" in query
    assert values == {"user_id": 1}


@pytest.mark.asyncio
async def test_delete_reports_whether_a_row_was_removed(repository, database):
    database.fetch_val.return_value = 1
    assert await repository.delete(1) is True

    database.fetch_val.return_value = None
    assert await repository.delete(2) is False


@pytest.mark.asyncio
async def test_find_by_status_orders_newest_first(repository, database):
    database.fetch_all.return_value = [make_row(status="active")]

    rows = await repository.find_by_status(UserStatus.ACTIVE)

    assert rows[0]["status"] == "active"
    query, values = database.fetch_all.call_args.args
    assert "ORDER BY created_at DESC" in query
    assert values == {"status": "active"}


@pytest.mark.asyncio
async def test_find_by_created_at_range_is_inclusive(repository, database):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    await repository.find_by_created_at_range(start, NOW)
    query, values = database.fetch_all.call_args.args
    assert "BETWEEN :start AND :end" in query
    assert "ORDER BY created_at DESC" in query
    assert values == {"start": start, "end": NOW}


@pytest.mark.asyncio
async def test_find_by_email_substring_does_not_use_like(repository, database):
    await repository.find_by_email_substring("50%_off")
    query, values = database.fetch_all.call_args.args
    assert "strpos(email, :substring) > 0" in query
    assert "LIKE" not in query
    assert values == {"substring": "50%_off"}


@pytest.mark.asyncio
async def test_count_grouped_by_month_truncates_to_dates(repository, database):
    database.fetch_all.return_value = [
        {"month": datetime(2024, 3, 1, tzinfo=timezone.utc), "count": 4},
        {"month": date(2024, 1, 1), "count": 1},
    ]

    counts = await repository.count_grouped_by_month()

    assert [(c.month, c.count) for c in counts] == [(date(2024, 3, 1), 4), (date(2024, 1, 1), 1)]
    query = database.fetch_all.call_args.args[0]
    assert "DATE_TRUNC('month', created_at)" in query
    assert "ORDER BY month DESC" in query


@pytest.mark.asyncio
async def test_insert_batch_runs_in_one_transaction(repository, database):
    database.fetch_one.side_effect = [make_row(id=1, email="a@x.com"), make_row(id=2, email="b@x.com")]

    rows = await repository.insert_batch([
        {"email": "a@x.com", "name": "Al", "password": "password1"},
        {"email": "b@x.com", "name": "Bo", "password": "password1"},
    ])

    assert [r["id"] for r in rows] == [1, 2]
    database.transaction.assert_called_once()


@pytest.mark.asyncio
async def test_insert_batch_conflict_escapes_transaction(repository, database):
    database.fetch_one.side_effect = [
        make_row(id=1),
        asyncpg.exceptions.UniqueViolationError("duplicate key value"),
    ]

    with pytest.raises(UserConflictError):
        await repository.insert_batch([
            {"email": "a@x.com", "name": "Al", "password": "password1"},
            {"email": "a@x.com", "name": "Al", "password": "password1"},
        ])

    transaction = database.transaction.return_value
    exc_type = transaction.__aexit__.call_args.args[0]
    assert exc_type is UserConflictError
