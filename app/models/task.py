"""
Task model for the writing-task catalog.

Tasks are created by admins with an attached brief and a price. They are not
modified after creation; users take them through assignments.
"""

from sqlalchemy import CheckConstraint, Column, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin, table_args


class Task(Base, UUIDMixin, TimestampMixin):
    """Writing task offered to users for a fixed price."""

    __tablename__ = "tasks"
    __table_args__ = table_args(
        CheckConstraint("price > 0", name="ck_tasks_price_positive"),
    )

    title = Column(String(255), nullable=False, comment="Short task title")

    description = Column(Text, nullable=False, comment="Task brief shown to writers")

    price = Column(
        Numeric(12, 2),
        nullable=False,
        comment="Amount credited to the writer on submission",
    )

    file_path = Column(
        String(512),
        nullable=True,
        comment="Stored attachment name relative to the task upload directory",
    )

    assignments = relationship(
        "Assignment",
        back_populates="task",
        doc="Assignments of this task to users",
    )

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', price={self.price})>"
