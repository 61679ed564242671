from app.db_handlers.assignment import AssignmentDBHandler
from app.db_handlers.base import BaseDBHandler, check_local_db
from app.db_handlers.login_session import LoginSessionDBHandler
from app.db_handlers.task import TaskDBHandler
from app.db_handlers.user import UserDBHandler

__all__ = [
    "BaseDBHandler",
    "check_local_db",
    "AssignmentDBHandler",
    "LoginSessionDBHandler",
    "TaskDBHandler",
    "UserDBHandler",
]
