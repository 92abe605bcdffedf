"""
User Service

Business logic for user management operations. Composes the status lifecycle
validator with the user repository and maps stored rows to response shape.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Sequence, Union

from userhub.modules.users.domain.inputs import (
    CreateUserInput,
    UpdateUserInput,
    validate_create_input,
    validate_update_input,
)
from userhub.modules.users.domain.status import validate_status_transition
from userhub.modules.users.domain.user import MonthlyUserCount, User, UserStatus
from userhub.modules.users.exceptions import UserNotFoundError, UserValidationError
from userhub.modules.users.repositories.user_repository import UserRepository

logger = logging.getLogger("userhub.users.service")

UserResponse = Dict[str, Any]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _transform(row: Dict[str, Any]) -> UserResponse:
    return User.from_dict(row).to_response()


class UserService:
    """Service for user business logic."""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def _load(self, user_id: int) -> User:
        row = await self.repository.find_by_id(user_id)
        if not row:
            raise UserNotFoundError(user_id)
        return User.from_dict(row)

    async def create(self, data: Union[CreateUserInput, Mapping[str, Any]]) -> UserResponse:
        """Create a new user. Status defaults to pending."""
        user_input, errors = validate_create_input(data)
        if errors:
            raise UserValidationError(errors)

        logger.debug(f"[UserService.create] email={user_input.email}, status={user_input.status}")
        row = await self.repository.insert(user_input.model_dump())
        logger.info(f"[UserService.create] Created user {row['id']}")
        return _transform(row)

    async def find_all(self) -> List[UserResponse]:
        logger.debug("[UserService.find_all] listing users")
        rows = await self.repository.find_all()
        return [_transform(row) for row in rows]

    async def find_one(self, user_id: int) -> UserResponse:
        logger.debug(f"[UserService.find_one] user_id={user_id}")
        user = await self._load(user_id)
        return user.to_response()

    async def update(self, user_id: int, data: Union[UpdateUserInput, Mapping[str, Any]]) -> UserResponse:
        """
        Apply a partial update.

        A status that differs from the stored one must be a legal transition.
        Resubmitting the current status is let through without validation,
        unlike update_status.
        """
        update_input, errors = validate_update_input(data)
        if errors:
            raise UserValidationError(errors)

        fields = update_input.supplied_fields()
        logger.debug(f"[UserService.update] user_id={user_id}, fields={list(fields.keys())}")

        existing = await self._load(user_id)
        new_status = fields.get("status")
        if new_status is not None and new_status != existing.status:
            validate_status_transition(existing.status, new_status)

        row = await self.repository.update_fields(user_id, fields)
        if not row:
            raise UserNotFoundError(user_id)

        logger.info(f"[UserService.update] Updated user {user_id}")
        return _transform(row)

    async def update_status(self, user_id: int, status: Union[UserStatus, str]) -> UserResponse:
        """
        Move a user to a new lifecycle status.

        Always validated, so resubmitting the current status is rejected.
        Not serialized against concurrent updates of the same user.
        """
        logger.debug(f"[UserService.update_status] user_id={user_id}, status={status}")
        try:
            new_status = UserStatus(status)
        except ValueError:
            raise UserValidationError([{
                "field": "status",
                "message": "Status must be one of: " + ", ".join(s.value for s in UserStatus),
                "location": ["status"],
            }]) from None

        existing = await self._load(user_id)
        validate_status_transition(existing.status, new_status)

        row = await self.repository.update_fields(user_id, {"status": new_status})
        if not row:
            raise UserNotFoundError(user_id)

        logger.info(f"[UserService.update_status] User {user_id}: {existing.status} -> {new_status}")
        return _transform(row)

    async def remove(self, user_id: int) -> None:
        logger.debug(f"[UserService.remove] user_id={user_id}")
        await self._load(user_id)
        if not await self.repository.delete(user_id):
            raise UserNotFoundError(user_id)
        logger.info(f"[UserService.remove] Deleted user {user_id}")

    async def find_active_users(self) -> List[UserResponse]:
        logger.debug("[UserService.find_active_users] status=active")
        rows = await self.repository.find_by_status(UserStatus.ACTIVE)
        return [_transform(row) for row in rows]

    async def find_users_by_date_range(self, start: datetime, end: datetime) -> List[UserResponse]:
        """Users created within [start, end], newest first. Empty if start > end."""
        start, end = _as_utc(start), _as_utc(end)
        logger.debug(f"[UserService.find_users_by_date_range] start={start.isoformat()}, end={end.isoformat()}")
        if start > end:
            return []
        rows = await self.repository.find_by_created_at_range(start, end)
        return [_transform(row) for row in rows]

    async def find_users_by_email_pattern(self, pattern: str) -> List[UserResponse]:
        logger.debug(f"[UserService.find_users_by_email_pattern] pattern={pattern!r}")
        rows = await self.repository.find_by_email_substring(pattern)
        return [_transform(row) for row in rows]

    async def get_users_count_by_month(self) -> List[MonthlyUserCount]:
        logger.debug("[UserService.get_users_count_by_month] grouping by month")
        return await self.repository.count_grouped_by_month()

    async def bulk_create(self, items: Sequence[Union[CreateUserInput, Mapping[str, Any]]]) -> List[UserResponse]:
        """
        Create many users at once.

        Every item is validated before anything is written; the batch is then
        stored in a single transaction, so a conflict on any row stores nothing.
        """
        inputs: List[CreateUserInput] = []
        errors: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            user_input, item_errors = validate_create_input(item)
            for error in item_errors:
                errors.append({**error, "location": [index, *error["location"]]})
            if user_input is not None:
                inputs.append(user_input)

        if errors:
            raise UserValidationError(errors)
        if not inputs:
            return []

        logger.debug(f"[UserService.bulk_create] count={len(inputs)}")
        rows = await self.repository.insert_batch([i.model_dump() for i in inputs])
        logger.info(f"[UserService.bulk_create] Created {len(rows)} users")
        return [_transform(row) for row in rows]
