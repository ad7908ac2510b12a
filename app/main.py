import logging
from contextlib import asynccontextmanager

try:
    import sentry_sdk
except ModuleNotFoundError:  # Sentry optional in local/test envs
    sentry_sdk = None
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

try:
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
except ModuleNotFoundError:  # Sentry optional during local dev/tests
    FastApiIntegration = None
    LoggingIntegration = None

from app.api.routes import analysis, health
from app.config import settings
from app.core.rate_limit import RateLimiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

rate_limiter = RateLimiter(
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    if sentry_sdk and FastApiIntegration and LoggingIntegration and settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            integrations=[
                FastApiIntegration(auto_enabling_instrumentations=False),
                LoggingIntegration(level=logging.INFO),
            ],
            traces_sample_rate=0.1,
            environment=settings.environment,
        )
        logger.info("Sentry initialized")

    logger.info("Backend listening on %s. Allowlist: %s", settings.port, settings.cors_allowlist)

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Relays lead records to an LLM validator and enriches verdicts with post freshness.",
    lifespan=lifespan,
    debug=settings.debug,
)


@app.middleware("http")
async def guard_requests(request: Request, call_next):
    """Enforce the per-client rate limit and request body ceiling."""
    client_key = request.client.host if request.client else "anonymous"
    retry_after = rate_limiter.check(client_key)
    if retry_after is not None:
        logger.warning("api.rate_limited", extra={"client": client_key, "retry_after": retry_after})
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests, please try again later."},
            headers={"Retry-After": f"{int(retry_after) + 1}"},
        )

    content_length = request.headers.get("content-length")
    if content_length is not None:
        too_large = content_length.isdigit() and int(content_length) > settings.max_body_bytes
    elif request.method in ("POST", "PUT", "PATCH"):
        # chunked upload: measure the buffered body, which is replayed to the route
        too_large = len(await request.body()) > settings.max_body_bytes
    else:
        too_large = False
    if too_large:
        return JSONResponse(status_code=413, content={"error": "Request body too large."})

    return await call_next(request)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    logger.info(f"{request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


# Outermost layer: 429 and 413 responses still carry CORS headers.
allowlist = settings.cors_allowlist
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if "*" in allowlist else allowlist,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(analysis.router, tags=["analysis"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
    }
