"""Stripe adapter - Verification provider over the Stripe Identity API."""

from .client import StripeIdentityClient

__all__ = ["StripeIdentityClient"]
