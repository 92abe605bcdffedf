"""
Data Access Layer (Repositories)

Repositories handle all database interactions.
"""

from .user_repository import UserRepository

__all__ = [
    "UserRepository",
]
