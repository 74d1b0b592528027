"""ProfileService: reconciles Clerk identity, the stored profile and Stripe billing.

GET assembles a composite view (creating the profile row on first access);
PATCH applies a partial update to the stored row.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BillingProviderError, ProfileNotFound, Unauthenticated, UserNotFound
from app.db.base import add_or_reread
from app.db.models.extension_session import ExtensionSession
from app.db.models.usage_analytics import UsageAnalytics
from app.db.models.user_profile import SubscriptionStatus, SubscriptionTier, UserProfile
from app.integrations.clerk import ClerkClient, ClerkUserRecord
from app.integrations.stripe_billing import StripeBillingClient
from app.schemas.profile import (
    ExtensionProfileResponse,
    ProfileSummary,
    ProfileUpdateRequest,
    ProfileUser,
    UsageSummary,
)

logger = structlog.get_logger(__name__)

DEFAULT_SUBSCRIPTION_TIER = "free_trial"
DEFAULT_SUBSCRIPTION_STATUS = "trial"


def _is_blank_json(value) -> bool:
    """True for the scalar JSON values a client sends to mean "no change"."""
    if isinstance(value, (dict, list)):
        return False
    return value is None or value is False or value == 0 or value == ""


@dataclass(frozen=True)
class SubscriptionResolution:
    tier: str
    status: str
    source: str  # "default" | "stripe" | "stored"


async def resolve_subscription(
    identity: ClerkUserRecord,
    profile: UserProfile,
    billing: StripeBillingClient,
) -> SubscriptionResolution:
    """Resolve subscription tier and status for a user.

    Precedence when Clerk private metadata holds both Stripe ids:
    status from the Stripe subscription; tier from the ``planType`` metadata
    tag, else from the lookup key of the first line item's price. Any Stripe
    failure falls back to the values stored on the profile.

    Without both ids Stripe is skipped and the hardcoded defaults are returned,
    even if the stored profile carries other values.
    """
    metadata = identity.private_metadata or {}
    customer_id = metadata.get("stripeCustomerId")
    subscription_id = metadata.get("stripeSubscriptionId")

    if not (customer_id and subscription_id):
        return SubscriptionResolution(
            tier=DEFAULT_SUBSCRIPTION_TIER,
            status=DEFAULT_SUBSCRIPTION_STATUS,
            source="default",
        )

    tier = DEFAULT_SUBSCRIPTION_TIER
    try:
        subscription = await billing.get_subscription(subscription_id)
        status = subscription.status

        plan_type = metadata.get("planType")
        if plan_type:
            tier = str(plan_type)
        elif subscription.price_ids:
            price = await billing.get_price(subscription.price_ids[0])
            if price.lookup_key:
                tier = price.lookup_key
    except BillingProviderError as exc:
        logger.warning(
            "stripe_subscription_fetch_failed",
            user_id=identity.id,
            subscription_id=subscription_id,
            error=exc.reason,
        )
        return SubscriptionResolution(
            tier=profile.subscription_tier or DEFAULT_SUBSCRIPTION_TIER,
            status=profile.subscription_status or DEFAULT_SUBSCRIPTION_STATUS,
            source="stored",
        )

    return SubscriptionResolution(tier=tier, status=status, source="stripe")


class ProfileService:
    """Service layer behind the extension profile endpoints.

    Holds no per-request state; the session is passed into every call.
    """

    def __init__(self, identity: ClerkClient, billing: StripeBillingClient):
        self.identity = identity
        self.billing = billing

    async def fetch_profile(self, session: AsyncSession, user_id: str | None) -> ExtensionProfileResponse:
        """Build the composite profile view for an authenticated user.

        Raises:
            Unauthenticated: no user id
            UserNotFound: Clerk has no record for the user id
        """
        if not user_id:
            raise Unauthenticated("No user id on request")

        identity = await self.identity.get_user(user_id)
        if identity is None:
            raise UserNotFound(f"Clerk user {user_id} not found")

        profile = await self._get_or_create_profile(session, user_id, identity)

        result = await session.execute(
            select(ExtensionSession)
            .where(
                ExtensionSession.clerk_user_id == user_id,
                ExtensionSession.is_active.is_(True),
            )
            .order_by(ExtensionSession.last_active_at.desc())
        )
        active_sessions = result.scalars().all()

        result = await session.execute(
            select(UsageAnalytics)
            .where(UsageAnalytics.clerk_user_id == user_id)
            .order_by(UsageAnalytics.created_at.desc())
            .limit(1)
        )
        latest_usage = result.scalar_one_or_none()

        usage = await self._sum_usage(session, user_id)
        usage.last_used_at = latest_usage.created_at if latest_usage else None

        subscription = await resolve_subscription(identity, profile, self.billing)
        logger.debug(
            "subscription_resolved",
            user_id=user_id,
            tier=subscription.tier,
            status=subscription.status,
            source=subscription.source,
        )

        return ExtensionProfileResponse(
            user=ProfileUser(
                id=user_id,
                name=identity.full_name,
                email=identity.primary_email,
                image_url=identity.image_url,
            ),
            profile=ProfileSummary(
                subscription_tier=subscription.tier,
                subscription_status=subscription.status,
                terms_accepted=profile.terms_accepted,
                extension_enabled=profile.extension_enabled,
                settings=profile.settings,
            ),
            usage=usage,
            extension_sessions=len(active_sessions),
            last_active_session=active_sessions[0].last_active_at if active_sessions else None,
        )

    async def update_profile(
        self,
        session: AsyncSession,
        user_id: str | None,
        patch: ProfileUpdateRequest,
    ) -> UserProfile:
        """Apply a partial update to the stored profile and return the full row.

        ``settings`` is written unless blank (absent, null, false, 0 or "");
        an empty object or list replaces the stored value. ``extension_enabled``
        is written only when it is a real bool; anything else is left
        untouched. ``updated_at`` is always stamped. Never creates a profile.

        Raises:
            Unauthenticated: no user id
            ProfileNotFound: the user has no stored profile
        """
        if not user_id:
            raise Unauthenticated("No user id on request")

        result = await session.execute(select(UserProfile).where(UserProfile.clerk_user_id == user_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            raise ProfileNotFound(f"No profile for user {user_id}")

        if not _is_blank_json(patch.settings):
            profile.settings = patch.settings
        if isinstance(patch.extension_enabled, bool):
            profile.extension_enabled = patch.extension_enabled
        profile.updated_at = datetime.now(timezone.utc)

        await session.commit()
        await session.refresh(profile)

        logger.info("profile_updated", user_id=user_id)
        return profile

    async def _get_or_create_profile(
        self,
        session: AsyncSession,
        user_id: str,
        identity: ClerkUserRecord,
    ) -> UserProfile:
        """Load the stored profile, inserting a default row on first access.

        Two concurrent first fetches can both miss the row; the loser's insert
        hits the unique constraint and falls back to reading the winner's row.
        """
        lookup = select(UserProfile).where(UserProfile.clerk_user_id == user_id)
        result = await session.execute(lookup)
        profile = result.scalar_one_or_none()
        if profile is not None:
            return profile

        profile, created = await add_or_reread(
            session,
            UserProfile(
                clerk_user_id=user_id,
                email=identity.primary_email or "",
                name=identity.full_name or "",
                subscription_tier=SubscriptionTier.FREE.value,
                subscription_status=SubscriptionStatus.ACTIVE.value,
                terms_accepted=False,
            ),
            lookup,
        )
        if created:
            logger.info("profile_created", user_id=user_id)
        else:
            logger.info("profile_create_conflict_reread", user_id=user_id)
        return profile

    async def _sum_usage(self, session: AsyncSession, user_id: str) -> UsageSummary:
        result = await session.execute(
            select(
                func.coalesce(func.sum(UsageAnalytics.tokens_used), 0),
                func.coalesce(func.sum(UsageAnalytics.requests_made), 0),
                func.coalesce(func.sum(UsageAnalytics.cost_accrued), 0),
            ).where(UsageAnalytics.clerk_user_id == user_id)
        )
        tokens_used, requests_made, cost_accrued = result.one()
        return UsageSummary(
            tokens_used=tokens_used,
            requests_made=requests_made,
            cost_accrued=cost_accrued,
        )
