"""
User Management - Exceptions
"""


class UserServiceError(Exception):
    """Base exception for user management errors"""
    pass


class UserNotFoundError(UserServiceError):
    """Raised when no user exists for the given id"""

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found")


class InvalidStatusTransitionError(UserServiceError):
    """Raised when a status change is not permitted from the current status"""

    def __init__(self, current, proposed, valid_targets):
        self.current = current
        self.proposed = proposed
        self.valid_targets = list(valid_targets)
        targets = ", ".join(str(t) for t in self.valid_targets) or "none"
        super().__init__(
            f"Invalid status transition from {current} to {proposed}. "
            f"Valid transitions from {current} are: {targets}"
        )


class RedundantStatusTransitionError(InvalidStatusTransitionError):
    """Raised when the proposed status equals the current one"""
    pass


class UserValidationError(UserServiceError):
    """Raised when user input is malformed. Carries one entry per offending field."""

    def __init__(self, errors):
        self.errors = list(errors)
        fields = ", ".join(e["field"] for e in self.errors)
        super().__init__(f"Invalid user input: {fields}")


class UserConflictError(UserServiceError):
    """Raised when storage rejects a write on a uniqueness constraint"""

    def __init__(self, message="A user with this email already exists", field="email"):
        self.field = field
        super().__init__(message)


class StorageUnavailableError(UserServiceError):
    """Raised on transient storage failures (connection refused, dropped, timed out)"""
    pass
