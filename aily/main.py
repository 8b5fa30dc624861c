from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import logging

from aily.core.config import settings
from aily.api.router import api_router
from aily.middleware.error_handler import setup_error_middleware
from aily.services.rate_limiter import InMemoryRateLimitStore, RateLimiter

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Aily API",
    description="Backend API for Aily, the AI student you learn by teaching",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

setup_error_middleware(app)

# Available before startup so routes work under a TestClient without lifespan
app.state.message_rate_limiter = RateLimiter(
    store=InMemoryRateLimitStore(),
    limit=settings.MESSAGE_RATE_LIMIT,
    window_seconds=settings.MESSAGE_RATE_WINDOW_SECONDS
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    logger.info(
        f"🚀 Aily API starting ({settings.ENVIRONMENT}), message limit "
        f"{settings.MESSAGE_RATE_LIMIT}/{settings.MESSAGE_RATE_WINDOW_SECONDS}s"
    )
    if not settings.GEMINI_API_KEY:
        logger.warning("⚠️ GEMINI_API_KEY not set, Aily will answer with fallback replies")


@app.get("/")
async def root():
    """API information."""
    return {
        "message": "Aily API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "healthy"
    }


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
