"""
Assignment model binding one user to one writing task.

Lifecycle:
    1. User takes a task: status=pending, deadline=created_at + 6h
    2. User submits work: status=completed, file_path and submitted_at set

There is no other transition. The deadline is informational and is not
enforced by any sweep.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship, validates

from app.models.base import Base, TimestampMixin, UUIDMixin, qualified, table_args

ASSIGNMENT_STATUSES = ("pending", "completed")


class Assignment(Base, UUIDMixin, TimestampMixin):
    """A user's claim on a writing task."""

    __tablename__ = "assignments"
    __table_args__ = table_args(
        Index("ix_assignments_user_id", "user_id"),
        Index("ix_assignments_task_id", "task_id"),
        Index("ix_assignments_user_status", "user_id", "status"),
    )

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey(qualified("users.id"), ondelete="CASCADE"),
        nullable=False,
        comment="Owner of the assignment",
    )

    task_id = Column(
        Uuid(as_uuid=True),
        ForeignKey(qualified("tasks.id"), ondelete="CASCADE"),
        nullable=False,
        comment="Assigned task",
    )

    status = Column(
        String(20),
        nullable=False,
        default="pending",
        comment="pending or completed",
    )

    deadline = Column(
        DateTime(timezone=True),
        nullable=False,
        comment="Time by which the work is due",
    )

    file_path = Column(
        String(512),
        nullable=True,
        comment="Stored submission name relative to the submissions upload directory",
    )

    submitted_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set when the assignment is completed",
    )

    user = relationship("User", back_populates="assignments")
    task = relationship("Task", back_populates="assignments")

    @validates("status")
    def validate_status(self, key, value):
        if value not in ASSIGNMENT_STATUSES:
            raise ValueError(f"Invalid assignment status: {value}")
        return value

    def __repr__(self):
        return f"<Assignment(id={self.id}, user_id={self.user_id}, task_id={self.task_id}, status='{self.status}')>"
