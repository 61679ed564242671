from fastapi import Request

from app.services.assignment_service import AssignmentService
from app.services.notification_service import NotificationDispatcher
from app.services.storage import UploadStorage


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


def get_storage(request: Request) -> UploadStorage:
    return request.app.state.storage


def get_assignment_service(request: Request) -> AssignmentService:
    return request.app.state.assignment_service
