"""
Domain Models

Pure data models, status lifecycle and input records for users.
"""

from .user import User, UserStatus, MonthlyUserCount, RESPONSE_FIELDS
from .status import (
    STATUS_TRANSITIONS,
    allowed_transitions,
    can_transition,
    validate_status_transition,
)
from .inputs import (
    CreateUserInput,
    UpdateUserInput,
    UpdateUserStatusInput,
    validate_create_input,
    validate_update_input,
    validate_status_input,
)

__all__ = [
    "User",
    "UserStatus",
    "MonthlyUserCount",
    "RESPONSE_FIELDS",
    "STATUS_TRANSITIONS",
    "allowed_transitions",
    "can_transition",
    "validate_status_transition",
    "CreateUserInput",
    "UpdateUserInput",
    "UpdateUserStatusInput",
    "validate_create_input",
    "validate_update_input",
    "validate_status_input",
]
