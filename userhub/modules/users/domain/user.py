"""
User Domain Model

Pure data model representing a user entity.
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, NamedTuple


class UserStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"

    def __str__(self) -> str:
        return self.value


# Externally visible fields, in response order. password is never listed.
RESPONSE_FIELDS = ("id", "email", "name", "status", "created_at", "updated_at")


@dataclass
class User:
    """User domain model."""
    id: int
    email: str
    name: str
    password: str
    status: UserStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        """Create User from dictionary (e.g., from database row)."""
        return cls(
            id=data["id"],
            email=data["email"],
            name=data["name"],
            password=data["password"],
            status=UserStatus(data["status"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )

    def to_response(self) -> Dict[str, Any]:
        """Externally visible shape of the user. Always omits password."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class MonthlyUserCount(NamedTuple):
    """Number of users created in a calendar month (month is its first day)."""
    month: date
    count: int
