"""Re-export all models so Base.metadata sees them."""

from app.db.models.extension_session import ExtensionSession
from app.db.models.usage_analytics import UsageAnalytics
from app.db.models.user_profile import SubscriptionStatus, SubscriptionTier, UserProfile

__all__ = [
    "ExtensionSession",
    "SubscriptionStatus",
    "SubscriptionTier",
    "UsageAnalytics",
    "UserProfile",
]
