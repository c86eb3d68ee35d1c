"""Misskey adapter - Moderation platform over the Misskey HTTP API."""

from .client import MisskeyModerationClient

__all__ = ["MisskeyModerationClient"]
