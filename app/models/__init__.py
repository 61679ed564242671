"""
Database models for the WritersInn task marketplace.

Architecture: User → Assignment → Task, with magic-link LoginSessions per user.
"""

from app.models.assignment import ASSIGNMENT_STATUSES, Assignment
from app.models.login_session import LoginSession
from app.models.task import Task
from app.models.user import User

__all__ = [
    "User",
    "Task",
    "Assignment",
    "LoginSession",
    "ASSIGNMENT_STATUSES",
]
