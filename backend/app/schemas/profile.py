"""Pydantic schemas for the extension profile API.

Field names are snake_case in Python and camelCase on the wire, which is what
the browser extension consumes.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ProfileUser(CamelModel):
    """Identity fields copied from the Clerk user record."""

    id: str = Field(..., description="Clerk user ID")
    name: str | None = Field(None, description="Full name from Clerk")
    email: str | None = Field(None, description="First email address on the Clerk account")
    image_url: str | None = Field(None, description="Avatar URL")


class ProfileSummary(CamelModel):
    """Resolved subscription plus extension preferences."""

    subscription_tier: str = Field(..., description="Resolved tier (plan tag, price lookup key, or fallback)")
    subscription_status: str = Field(..., description="Resolved status (Stripe status or fallback)")
    terms_accepted: bool = Field(False, description="Whether the user accepted the terms")
    extension_enabled: bool | None = Field(None, description="Extension toggle; null until first set")
    settings: Any | None = Field(None, description="Opaque extension settings")


class UsageSummary(CamelModel):
    """Lifetime usage totals. Sums are 0, never null, when there is no usage."""

    tokens_used: int = 0
    requests_made: int = 0
    cost_accrued: float = 0.0
    last_used_at: datetime | None = Field(None, description="Creation time of the newest usage record")


class ExtensionProfileResponse(CamelModel):
    """Composite view returned by GET /extension/profile."""

    user: ProfileUser
    profile: ProfileSummary
    usage: UsageSummary
    extension_sessions: int = Field(0, description="Number of active extension sessions")
    last_active_session: datetime | None = Field(None, description="last_active_at of the newest active session")


class UserProfileRecord(CamelModel):
    """Full stored profile row."""

    id: int
    clerk_user_id: str
    email: str
    name: str
    subscription_tier: str
    subscription_status: str
    terms_accepted: bool
    extension_enabled: bool | None = None
    settings: Any | None = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdateRequest(CamelModel):
    """PATCH body.

    Both fields accept any JSON type: a wrongly typed ``extensionEnabled`` is
    ignored by the service rather than rejected here.
    """

    settings: Any | None = None
    extension_enabled: Any | None = None


class ProfileUpdateResponse(CamelModel):
    success: bool = True
    profile: UserProfileRecord
