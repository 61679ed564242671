"""
User model for the user directory.

Users are identified by email. They hold a subscription flag managed by
admins and a running balance credited whenever they submit a completed
writing task.

Architecture:
    User → Assignment → Task
    User → LoginSession
"""

from sqlalchemy import Boolean, Column, Index, Numeric, String
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin, table_args


class User(Base, UUIDMixin, TimestampMixin):
    """
    Registered writer.

    Created on registration or on the first magic-link login request. Deleting
    a user removes their assignments and login sessions.
    """

    __tablename__ = "users"
    __table_args__ = table_args(
        Index("ix_users_email", "email", unique=True),
        Index("ix_users_subscribed", "subscribed"),
    )

    name = Column(String(100), nullable=False, comment="Display name")

    email = Column(
        String(255),
        nullable=False,
        comment="Unique email address used for identification and login",
    )

    phone = Column(String(50), nullable=False, comment="Contact phone number")

    subscribed = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
        comment="Whether the user is on the subscriber list",
    )

    balance = Column(
        Numeric(12, 2),
        nullable=False,
        default=0,
        server_default="0",
        comment="Accumulated earnings from completed tasks",
    )

    assignments = relationship(
        "Assignment",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Tasks taken by this user",
    )

    sessions = relationship(
        "LoginSession",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Magic-link login sessions issued to this user",
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
