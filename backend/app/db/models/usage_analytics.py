"""UsageAnalytics model — one row per metered extension request."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from app.db.base import Base


class UsageAnalytics(Base):
    __tablename__ = "usage_analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    clerk_user_id = Column(String(255), nullable=False, index=True)

    tokens_used = Column(Integer, nullable=False, default=0)
    requests_made = Column(Integer, nullable=False, default=0)
    cost_accrued = Column(Float, nullable=False, default=0.0)  # USD

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
