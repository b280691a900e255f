"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.exceptions import AppError
from app.core.structured_logging import build_log_context
from app.db.session import engine

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PII to Sentry
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from app.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Business Admin API",
    description="Multi-tenant business administration: users, memberships and invitations",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Error Handling
# ============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map service-layer errors to `{"detail": message}` with their status."""
    if exc.status_code >= 500:
        logger.error(
            "Unhandled application error: %s",
            exc.message,
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    else:
        logger.info(
            "%s: %s",
            type(exc).__name__,
            exc.message,
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ============================================================================
# Routers
# ============================================================================

from app.routers import auth, businesses, features, invitations, members, permissions, users

# Auth router (always mounted)
app.include_router(auth.router, prefix="/auth", tags=["auth"])

# Businesses and their members/features share the /businesses prefix
app.include_router(businesses.router, prefix="/businesses", tags=["businesses"])
app.include_router(members.router, prefix="/businesses", tags=["members"])
app.include_router(features.router, prefix="/businesses", tags=["features"])

# Invitee-side invitation handling
app.include_router(invitations.router, prefix="/invitations", tags=["invitations"])

# User administration
app.include_router(users.router, prefix="/users", tags=["users"])

# Named permission registry (router already has prefix)
app.include_router(permissions.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
