"""
User Repository

Handles all database operations for the users table.
"""
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import asyncpg
from databases import Database

from userhub.modules.database import CONNECTION_ERRORS
from userhub.modules.users.domain.user import MonthlyUserCount, UserStatus
from userhub.modules.users.exceptions import (
    StorageUnavailableError,
    UserConflictError,
    UserServiceError,
)

logger = logging.getLogger("userhub.users.repository")

USER_COLUMNS = "id, email, name, password, status, created_at, updated_at"

UNIQUE_VIOLATION = "23505"

_UNAVAILABLE_ERRORS = CONNECTION_ERRORS + (asyncpg.exceptions.InterfaceError,)


def is_unique_violation(exc: BaseException) -> bool:
    if isinstance(exc, asyncpg.exceptions.UniqueViolationError):
        return True
    return getattr(exc, "sqlstate", None) == UNIQUE_VIOLATION


@asynccontextmanager
async def storage_errors(operation: str):
    """Translate driver errors into UserConflictError / StorageUnavailableError."""
    try:
        yield
    except UserServiceError:
        raise
    except Exception as e:
        if is_unique_violation(e):
            logger.info(f"[UserRepository.{operation}] unique violation: {e}")
            raise UserConflictError() from e
        if isinstance(e, _UNAVAILABLE_ERRORS):
            logger.error(f"[UserRepository.{operation}] storage unavailable: {e}")
            raise StorageUnavailableError(f"Storage unavailable during {operation}: {e}") from e
        logger.error(f"[UserRepository.{operation}] ERROR: {e}", exc_info=True)
        raise


class UserRepository:
    """Repository for user data access."""

    UPDATABLE_FIELDS = ("email", "name", "password", "status")

    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _row_to_dict(row) -> Optional[Dict[str, Any]]:
        if not row:
            return None
        data = dict(getattr(row, "_mapping", row))
        if isinstance(data.get("status"), UserStatus):
            data["status"] = data["status"].value
        return data

    @staticmethod
    def _status_value(status) -> str:
        return UserStatus(status).value

    async def find_all(self) -> List[Dict[str, Any]]:
        query = f"SELECT {USER_COLUMNS} FROM users"
        async with storage_errors("find_all"):
            rows = await self.database.fetch_all(query)
        return [self._row_to_dict(row) for row in rows]

    async def find_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        query = f"SELECT {USER_COLUMNS} FROM users WHERE id = :user_id"
        async with storage_errors("find_by_id"):
            row = await self.database.fetch_one(query, {"user_id": user_id})
        return self._row_to_dict(row)

    async def insert(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a user and return the stored row, including id and timestamps."""
        query = f"""
            INSERT INTO users (email, name, password, status)
            VALUES (:email, :name, :password, :status)
            RETURNING {USER_COLUMNS}
        """
        values = {
            "email": user["email"],
            "name": user["name"],
            "password": user["password"],
            "status": self._status_value(user.get("status", UserStatus.PENDING)),
        }
        async with storage_errors("insert"):
            row = await self.database.fetch_one(query, values)
        return self._row_to_dict(row)

    async def update_fields(self, user_id: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update the given columns and refresh updated_at.

        Unknown keys are ignored. Returns the updated row, or None if the user
        no longer exists.
        """
        set_clauses = []
        values: Dict[str, Any] = {"user_id": user_id}

        for field in self.UPDATABLE_FIELDS:
            if field in fields:
                set_clauses.append(f"{field} = :{field}")
                value = fields[field]
                values[field] = self._status_value(value) if field == "status" else value

        set_clauses.append("updated_at = CURRENT_TIMESTAMP")
        query = f"""
            UPDATE users SET {', '.join(set_clauses)}
            WHERE id = :user_id
            RETURNING {USER_COLUMNS}
        """
        async with storage_errors("update_fields"):
            row = await self.database.fetch_one(query, values)
        return self._row_to_dict(row)

    async def delete(self, user_id: int) -> bool:
        """Physically delete a user. Returns False if nothing was deleted."""
        query = "DELETE FROM users WHERE id = :user_id RETURNING id"
        async with storage_errors("delete"):
            deleted_id = await self.database.fetch_val(query, {"user_id": user_id})
        return deleted_id is not None

    async def find_by_created_at_range(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        query = f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE created_at BETWEEN :start AND :end
            ORDER BY created_at DESC
        """
        async with storage_errors("find_by_created_at_range"):
            rows = await self.database.fetch_all(query, {"start": start, "end": end})
        return [self._row_to_dict(row) for row in rows]

    async def find_by_email_substring(self, substring: str) -> List[Dict[str, Any]]:
        # strpos is case-sensitive and does not treat % or _ as wildcards
        query = f"SELECT {USER_COLUMNS} FROM users WHERE strpos(email, :substring) > 0"
        async with storage_errors("find_by_email_substring"):
            rows = await self.database.fetch_all(query, {"substring": substring})
        return [self._row_to_dict(row) for row in rows]

    async def find_by_status(self, status: UserStatus) -> List[Dict[str, Any]]:
        query = f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE status = :status
            ORDER BY created_at DESC
        """
        async with storage_errors("find_by_status"):
            rows = await self.database.fetch_all(query, {"status": self._status_value(status)})
        return [self._row_to_dict(row) for row in rows]

    async def count_grouped_by_month(self) -> List[MonthlyUserCount]:
        query = """
            SELECT DATE_TRUNC('month', created_at) AS month, COUNT(*) AS count
            FROM users
            GROUP BY month
            ORDER BY month DESC
        """
        async with storage_errors("count_grouped_by_month"):
            rows = await self.database.fetch_all(query)

        counts = []
        for row in rows:
            month = row["month"]
            if isinstance(month, datetime):
                month = month.date()
            elif not isinstance(month, date):
                month = date.fromisoformat(str(month)[:10])
            counts.append(MonthlyUserCount(month=month, count=int(row["count"])))
        return counts

    async def insert_batch(self, users: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert all users in one transaction. Any failure rolls back the whole batch."""
        created = []
        async with storage_errors("insert_batch"):
            async with self.database.transaction():
                for user in users:
                    created.append(await self.insert(user))
        return created
