"""ExtensionSession model — one row per browser-extension connection."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class ExtensionSession(Base):
    __tablename__ = "extension_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    clerk_user_id = Column(String(255), nullable=False, index=True)

    extension_version = Column(String(50), nullable=True)
    browser = Column(String(100), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    last_active_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
