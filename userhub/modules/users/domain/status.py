"""
User Status Lifecycle

Directed transition table for user status and the validator enforcing it.
"""
from typing import Dict, List

from userhub.modules.users.domain.user import UserStatus
from userhub.modules.users.exceptions import (
    InvalidStatusTransitionError,
    RedundantStatusTransitionError,
)

STATUS_TRANSITIONS: Dict[UserStatus, List[UserStatus]] = {
    UserStatus.PENDING: [UserStatus.ACTIVE, UserStatus.INACTIVE],
    UserStatus.ACTIVE: [UserStatus.INACTIVE],
    UserStatus.INACTIVE: [UserStatus.ACTIVE],
}


def allowed_transitions(current: UserStatus) -> List[UserStatus]:
    return list(STATUS_TRANSITIONS[UserStatus(current)])


def can_transition(current: UserStatus, proposed: UserStatus) -> bool:
    return UserStatus(proposed) in STATUS_TRANSITIONS[UserStatus(current)]


def validate_status_transition(current: UserStatus, proposed: UserStatus) -> None:
    """
    Check that a user may move from `current` to `proposed`.

    Same-status proposals are not part of the table. They raise
    RedundantStatusTransitionError, which is still an InvalidStatusTransitionError,
    so callers can tell a no-op apart from an illegal cross transition.
    """
    current = UserStatus(current)
    proposed = UserStatus(proposed)
    valid_targets = allowed_transitions(current)

    if proposed == current:
        raise RedundantStatusTransitionError(current, proposed, valid_targets)
    if proposed not in valid_targets:
        raise InvalidStatusTransitionError(current, proposed, valid_targets)
