"""Stripe REST connector."""

from src.resolvers.stripe.config import StripeSettings, get_stripe_settings
from src.resolvers.stripe.resolver import StripeResolver

__all__ = ["StripeResolver", "StripeSettings", "get_stripe_settings"]
