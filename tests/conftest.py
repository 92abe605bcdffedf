"""
Shared fixtures: an in-memory stand-in for UserRepository.
"""
import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from userhub.modules.users.domain.user import MonthlyUserCount, UserStatus
from userhub.modules.users.exceptions import UserConflictError
from userhub.modules.users.services.user_service import UserService

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Returns BASE_TIME, then one minute later on every call."""

    def __init__(self, start=BASE_TIME, step=timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self):
        now = self.current
        self.current = now + self.step
        return now


class InMemoryUserRepository:
    """Same contract as UserRepository, backed by a dict."""

    def __init__(self, clock=None):
        self.rows = {}
        self.next_id = 1
        self.clock = clock or SteppingClock()
        self.calls = []

    async def _step(self, name):
        self.calls.append(name)
        # yield to the loop like a real driver would
        await asyncio.sleep(0)

    def _check_email(self, email, exclude_id=None):
        for row in self.rows.values():
            if row["email"] == email and row["id"] != exclude_id:
                raise UserConflictError()

    def add(self, email, name="Test User", password="password1", status=UserStatus.PENDING, created_at=None):
        """Seed a row directly, bypassing the service."""
        created_at = created_at or self.clock()
        row = {
            "id": self.next_id,
            "email": email,
            "name": name,
            "password": password,
            "status": UserStatus(status).value,
            "created_at": created_at,
            "updated_at": created_at,
        }
        self.rows[row["id"]] = row
        self.next_id += 1
        return dict(row)

    async def find_all(self):
        await self._step("find_all")
        return [dict(r) for r in self.rows.values()]

    async def find_by_id(self, user_id):
        await self._step("find_by_id")
        row = self.rows.get(user_id)
        return dict(row) if row else None

    async def insert(self, user):
        await self._step("insert")
        self._check_email(user["email"])
        return self.add(user["email"], user["name"], user["password"], user.get("status", UserStatus.PENDING))

    async def update_fields(self, user_id, fields):
        await self._step("update_fields")
        row = self.rows.get(user_id)
        if row is None:
            return None
        if "email" in fields:
            self._check_email(fields["email"], exclude_id=user_id)
        for key in ("email", "name", "password", "status"):
            if key in fields:
                row[key] = UserStatus(fields[key]).value if key == "status" else fields[key]
        row["updated_at"] = self.clock()
        return dict(row)

    async def delete(self, user_id):
        await self._step("delete")
        return self.rows.pop(user_id, None) is not None

    async def find_by_created_at_range(self, start, end):
        await self._step("find_by_created_at_range")
        rows = [r for r in self.rows.values() if start <= r["created_at"] <= end]
        return [dict(r) for r in sorted(rows, key=lambda r: r["created_at"], reverse=True)]

    async def find_by_email_substring(self, substring):
        await self._step("find_by_email_substring")
        return [dict(r) for r in self.rows.values() if substring in r["email"]]

    async def find_by_status(self, status):
        await self._step("find_by_status")
        rows = [r for r in self.rows.values() if r["status"] == UserStatus(status).value]
        return [dict(r) for r in sorted(rows, key=lambda r: r["created_at"], reverse=True)]

    async def count_grouped_by_month(self):
        await self._step("count_grouped_by_month")
        counts = {}
        for r in self.rows.values():
            month = date(r["created_at"].year, r["created_at"].month, 1)
            counts[month] = counts.get(month, 0) + 1
        return [MonthlyUserCount(m, c) for m, c in sorted(counts.items(), reverse=True)]

    async def insert_batch(self, users):
        await self._step("insert_batch")
        seen = set()
        for user in users:
            if user["email"] in seen:
                raise UserConflictError()
            seen.add(user["email"])
            self._check_email(user["email"])
        return [
            self.add(u["email"], u["name"], u["password"], u.get("status", UserStatus.PENDING))
            for u in users
        ]


@pytest.fixture
def repository():
    return InMemoryUserRepository()


@pytest.fixture
def user_service(repository):
    return UserService(repository)


@pytest.fixture
def valid_user():
    return {"email": "a@x.com", "name": "Al", "password": "password1"}
