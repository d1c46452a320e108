"""Domain managers: authorize with the engine, then read or write the store."""

from .base import BaseManager
from .classroom import ClassroomManager
from .school import SchoolManager
from .student import StudentManager
from .user import UserManager

__all__ = [
    "BaseManager",
    "ClassroomManager",
    "SchoolManager",
    "StudentManager",
    "UserManager",
]
