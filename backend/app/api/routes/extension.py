"""Extension profile API.

GET   /api/extension/profile - Composite identity, subscription and usage view
PATCH /api/extension/profile - Partial update of extension settings
"""

from fastapi import APIRouter, Depends

from app.core.auth import ClerkUser, require_auth
from app.db.base import get_session_factory
from app.integrations.clerk import ClerkClient, get_clerk_client
from app.integrations.stripe_billing import StripeBillingClient, get_billing_client
from app.schemas.profile import (
    ExtensionProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    UserProfileRecord,
)
from app.services.profile_service import ProfileService

router = APIRouter()


def get_profile_service(
    identity: ClerkClient = Depends(get_clerk_client),
    billing: StripeBillingClient = Depends(get_billing_client),
) -> ProfileService:
    return ProfileService(identity=identity, billing=billing)


@router.get("/profile", response_model=ExtensionProfileResponse)
async def get_extension_profile(
    user: ClerkUser = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
) -> ExtensionProfileResponse:
    """Return the user's identity, resolved subscription, usage totals and session stats.

    Creates the stored profile on first call.
    """
    session_factory = get_session_factory()

    async with session_factory() as session:
        return await service.fetch_profile(session, user.user_id)


@router.patch("/profile", response_model=ProfileUpdateResponse)
async def update_extension_profile(
    body: ProfileUpdateRequest,
    user: ClerkUser = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileUpdateResponse:
    """Update ``settings`` and/or ``extensionEnabled`` on the stored profile."""
    session_factory = get_session_factory()

    async with session_factory() as session:
        profile = await service.update_profile(session, user.user_id, body)
        return ProfileUpdateResponse(success=True, profile=UserProfileRecord.model_validate(profile))
