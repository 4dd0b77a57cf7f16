"""FastAPI application initialization."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration

from messenger_receive.api import health, webhook
from messenger_receive.config import get_settings
from messenger_receive.logging_config import setup_logfire

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    # Initialize Logfire for observability
    setup_logfire(app)

    # Initialize Sentry if DSN is provided
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            integrations=[FastApiIntegration()],
        )

    if not settings.facebook_app_secret:
        logfire.warn(
            "FACEBOOK_APP_SECRET is not set; signed webhook deliveries will be rejected"
        )

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        require_signature=settings.webhook_require_signature,
    )

    yield

    logfire.info("Application shutdown complete")


app = FastAPI(
    title="Messenger Webhook Receiver",
    description="Authenticates Facebook Messenger webhooks and classifies their events",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(webhook.router, prefix="/webhook", tags=["webhook"])


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Messenger Webhook Receiver API",
        "version": APP_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "messenger_receive.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENV") == "local",
    )
