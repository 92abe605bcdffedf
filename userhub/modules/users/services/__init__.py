"""
Business Logic Services

Services contain business logic and orchestrate repository calls.
"""

from .user_service import UserService

__all__ = [
    "UserService",
]
