"""
FastAPI application entry point.
Sets up the API with lifespan events for provider initialization.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from filerelay import __version__
from filerelay.config import settings
from filerelay.api.router import api_router
from filerelay.errors import register_error_handlers
from filerelay.middleware.metrics_middleware import MetricsMiddleware
from filerelay.middleware.upload_limit import UploadSizeLimitMiddleware
from filerelay.providers import build_providers
from filerelay.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Check required configuration and build provider clients
    - Shutdown: Close provider connections
    """
    configure_logging('file-relay-api', settings.log_level)
    
    # Fail fast: without these the server cannot serve any request
    missing = settings.missing_startup_settings()
    if missing:
        logger.critical(f"Missing required configuration: {', '.join(missing)}")
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    
    app.state.providers = build_providers(settings)
    logger.info(
        f"File relay started (bucket: {settings.supabase_bucket}, environment: {settings.environment})"
    )
    
    yield
    
    await app.state.providers.aclose()


# Create FastAPI app
app = FastAPI(
    title="File Relay API",
    description="Authenticated file upload relay for Supabase Storage with Stripe checkout",
    version=__version__,
    lifespan=lifespan
)

# Oversized uploads are refused before the handler reads them
app.add_middleware(UploadSizeLimitMiddleware, max_bytes=settings.max_upload_bytes)

# CORS wraps the size guard so 413 responses carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (added last so it sees every response, 413s included)
app.add_middleware(MetricsMiddleware)

register_error_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "File Relay API is running",
        "version": __version__,
        "environment": settings.environment,
        "endpoints": {
            "health": "GET /api/health",
            "signup": "POST /api/auth/signup",
            "login": "POST /api/auth/login",
            "upload": "POST /api/upload",
            "files": "GET /api/files",
            "checkout": "POST /api/checkout/create",
        },
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
