"""
Magic-link login session.

A session is issued when a user requests a login link and is consumed the
first time its token is verified.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin, qualified, table_args


class LoginSession(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "sessions"
    __table_args__ = table_args(
        Index("ix_sessions_token", "token", unique=True),
        Index("ix_sessions_user_id", "user_id"),
    )

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey(qualified("users.id"), ondelete="CASCADE"),
        nullable=False,
    )

    token = Column(String(128), nullable=False, comment="Random bearer token")

    expires_at = Column(DateTime(timezone=True), nullable=False)

    consumed_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set on first successful verification",
    )

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<LoginSession(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"
