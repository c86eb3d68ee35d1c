"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance, wires the
collaborator adapters into the orchestrator and manages their lifetime
through lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kitsu_verify.adapters.misskey.client import MisskeyModerationClient
from kitsu_verify.adapters.stripe.client import StripeIdentityClient
from kitsu_verify.api.models import HealthResponse
from kitsu_verify.api.routes import router as http_router
from kitsu_verify.api.websocket import router as websocket_router
from kitsu_verify.config.settings import Settings, get_settings
from kitsu_verify.domain.exceptions import ConfigurationError, PlatformError, ProviderError
from kitsu_verify.domain.orchestrator import VerificationOrchestrator
from kitsu_verify.domain.policy import OutcomePolicy
from kitsu_verify.domain.ports import WebhookEvent
from kitsu_verify.domain.registry import ConnectionRegistry
from kitsu_verify.logs import report_fatal

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "verification",
        "description": "Identity verification gateway - provider webhook and signup gate",
    },
]


def build_orchestrator(
    settings: Settings,
    platform: MisskeyModerationClient,
    provider: StripeIdentityClient,
) -> VerificationOrchestrator:
    """Wire the domain service from settings and collaborator adapters."""
    return VerificationOrchestrator(
        registry=ConnectionRegistry(reserved=settings.reserved_identities),
        provider=provider,
        platform=platform,
        policy=OutcomePolicy.from_options(
            consent_declined_action=settings.consent_declined_action,
            requires_input=settings.requires_input_webhook_policy,
        ),
        identity_prefix=settings.identity_prefix,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the Misskey and Stripe clients on startup
    - Checks the moderator credential on startup
    - Registers the webhook endpoint when a public URL is configured
    - Drains in-flight handlers and closes the clients on shutdown
    """
    settings = get_settings()

    logger.info("Booting...")
    platform = MisskeyModerationClient(
        str(settings.misskey_url), settings.misskey_key, timeout=settings.http_timeout_seconds
    )
    provider = StripeIdentityClient(
        settings.stripe_secret_key,
        api_base=settings.stripe_api_base,
        timeout=settings.http_timeout_seconds,
    )

    try:
        try:
            username = await platform.whoami()
            logger.info("Signed in as %s", username)

            if settings.webhook_url is not None:
                await provider.register_webhook(
                    settings.webhook_url,
                    [WebhookEvent.VERIFIED.value, WebhookEvent.REQUIRES_INPUT.value],
                )
        except (PlatformError, ProviderError) as e:
            report_fatal(e, stage="startup")
            raise ConfigurationError("Collaborator check failed at startup") from e

        orchestrator = build_orchestrator(settings, platform, provider)
        app.state.orchestrator = orchestrator
        app.state.settings = settings
        logger.info("Now listening on %s:%s", settings.host, settings.port)

        yield

        logger.info("Shutting down application...")
        await orchestrator.drain()
    finally:
        await platform.aclose()
        await provider.aclose()
        logger.info("Collaborator clients closed")


app = FastAPI(
    title="kitsu-verify",
    description="Identity verification gateway between Misskey moderation, "
    "Stripe Identity and browser sessions",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(http_router, tags=["verification"])
app.include_router(websocket_router)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint. Returns 200 OK while the process serves traffic."""
    return HealthResponse(status="healthy")
