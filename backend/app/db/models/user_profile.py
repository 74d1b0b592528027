"""UserProfile model — one row per Clerk user, created on first profile fetch."""

from datetime import datetime, timezone
from enum import StrEnum

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class SubscriptionTier(StrEnum):
    FREE = "FREE"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Unique constraint is what settles concurrent first-fetch inserts
    clerk_user_id = Column(String(255), unique=True, nullable=False, index=True)

    # Snapshot from Clerk at creation time
    email = Column(String(255), nullable=False, default="")
    name = Column(String(255), nullable=False, default="")

    # Local mirror of billing state, read only as a fallback when Stripe fails
    subscription_tier = Column(String(50), nullable=False, default=SubscriptionTier.FREE.value)
    subscription_status = Column(String(50), nullable=False, default=SubscriptionStatus.ACTIVE.value)

    terms_accepted = Column(Boolean, nullable=False, default=False)
    extension_enabled = Column(Boolean, nullable=True)
    settings = Column(JSON, nullable=True)  # opaque, owned by the extension

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
