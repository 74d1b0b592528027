"""Clerk Backend API integration: full user records and private metadata.

Session JWTs only carry the user id; names, email addresses, avatar and
private metadata (where billing ids live) come from the Backend API.
"""

from dataclasses import dataclass, field
from functools import lru_cache

import httpx
import structlog

from app.core.config import get_settings
from app.core.exceptions import IdentityProviderError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClerkUserRecord:
    """The subset of a Clerk user the profile endpoints read."""

    id: str
    full_name: str | None
    email_addresses: list[str] = field(default_factory=list)
    image_url: str | None = None
    private_metadata: dict = field(default_factory=dict)

    @property
    def primary_email(self) -> str | None:
        return self.email_addresses[0] if self.email_addresses else None

    @classmethod
    def from_api(cls, data: dict) -> "ClerkUserRecord":
        first = data.get("first_name") or ""
        last = data.get("last_name") or ""
        full_name = " ".join(part for part in (first, last) if part) or None

        emails = [
            entry["email_address"]
            for entry in data.get("email_addresses") or []
            if entry.get("email_address")
        ]

        return cls(
            id=data["id"],
            full_name=full_name,
            email_addresses=emails,
            image_url=data.get("image_url"),
            private_metadata=data.get("private_metadata") or {},
        )


class ClerkClient:
    """Client for the Clerk Backend API."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key if secret_key is not None else settings.clerk_secret_key
        self.base_url = (base_url or settings.clerk_api_url).rstrip("/")
        self._transport = transport

    async def get_user(self, user_id: str) -> ClerkUserRecord | None:
        """Fetch a user record by id.

        Returns None when Clerk has no such user. Raises IdentityProviderError
        for transport failures and any other error status.
        """
        if not self.secret_key:
            raise IdentityProviderError("Clerk secret key not configured")

        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/users/{user_id}", headers=headers)
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Clerk request failed: {exc}") from exc

        if response.status_code == 404:
            logger.info("clerk_user_not_found", user_id=user_id)
            return None

        if response.status_code >= 400:
            raise IdentityProviderError(
                f"Clerk API error ({response.status_code}): {response.text}"
            )

        return ClerkUserRecord.from_api(response.json())


@lru_cache
def get_clerk_client() -> ClerkClient:
    """FastAPI dependency returning the shared Clerk client."""
    return ClerkClient()
