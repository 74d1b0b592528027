"""Stripe integration: subscription and price lookups used for tier resolution."""

from dataclasses import dataclass, field
from functools import lru_cache

import stripe
import structlog

from app.core.config import get_settings
from app.core.exceptions import BillingProviderError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BillingSubscription:
    id: str
    status: str
    price_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BillingPrice:
    id: str
    lookup_key: str | None = None


class StripeBillingClient:
    """Thin async wrapper over the Stripe SDK.

    Every Stripe failure (network, auth, missing object, unreadable payload)
    surfaces as BillingProviderError so callers handle a single exception type.
    SDK objects are read through ``to_dict()``; recent SDK releases no longer
    subclass dict.
    """

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else get_settings().stripe_secret_key

    def _configure(self) -> None:
        if not self.api_key:
            raise BillingProviderError("Stripe secret key not configured")
        stripe.api_key = self.api_key

    async def get_subscription(self, subscription_id: str) -> BillingSubscription:
        self._configure()
        try:
            subscription = await stripe.Subscription.retrieve_async(subscription_id)
        except stripe.StripeError as exc:
            raise BillingProviderError(f"Stripe subscription lookup failed: {exc}") from exc

        try:
            data = subscription.to_dict()
            items = (data.get("items") or {}).get("data") or []
            return BillingSubscription(
                id=data["id"],
                status=data["status"],
                price_ids=[item["price"]["id"] for item in items if item.get("price")],
            )
        except (AttributeError, KeyError, TypeError) as exc:
            raise BillingProviderError(f"Unexpected Stripe subscription payload: {exc!r}") from exc

    async def get_price(self, price_id: str) -> BillingPrice:
        self._configure()
        try:
            price = await stripe.Price.retrieve_async(price_id)
        except stripe.StripeError as exc:
            raise BillingProviderError(f"Stripe price lookup failed: {exc}") from exc

        try:
            data = price.to_dict()
            return BillingPrice(id=data["id"], lookup_key=data.get("lookup_key"))
        except (AttributeError, KeyError, TypeError) as exc:
            raise BillingProviderError(f"Unexpected Stripe price payload: {exc!r}") from exc


@lru_cache
def get_billing_client() -> StripeBillingClient:
    """FastAPI dependency returning the shared Stripe client."""
    return StripeBillingClient()
