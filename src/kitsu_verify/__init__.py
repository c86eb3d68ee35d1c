"""Identity verification gateway for Misskey moderation and Stripe Identity."""

__version__ = "0.1.0"
