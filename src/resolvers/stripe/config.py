"""Stripe connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class StripeSettings(ConnectorSettings):
    STRIPE_API_KEY: str = ""
    STRIPE_BASE_URL: str = "https://api.stripe.com"
    # Sent as Stripe-Version when set; otherwise the account default applies.
    STRIPE_API_VERSION: str = ""

    STRIPE_POLL_INTERVAL_MINUTES: int = 15

    @property
    def poll_interval_minutes(self) -> int:
        return max(1, self.STRIPE_POLL_INTERVAL_MINUTES)


@lru_cache
def get_stripe_settings() -> StripeSettings:
    return StripeSettings()
