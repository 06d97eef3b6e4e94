"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academy.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from academy.api.router import api_router, webhooks_router
from academy.config import settings
from academy.database import close_db
from academy.logging import setup_logging

logger = logging.getLogger(__name__)

setup_logging()

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup: schema is managed by Alembic migrations
    yield
    await close_db()


app = FastAPI(
    title="Academy API",
    description="Login codes, sessions and course purchases",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
    openapi_url="/api/openapi.json" if settings.debug_enabled else None,
)

app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
# Wraps the logging middleware so the request ID is set when it logs
app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
    max_age=86400,
)

app.include_router(api_router, prefix="/api")
app.include_router(webhooks_router)


if __name__ == "__main__":
    import uvicorn

    from academy.logging import get_uvicorn_log_config

    uvicorn.run(
        "academy.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
