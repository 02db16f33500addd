"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from livestock_analytics.config import settings
from livestock_analytics.middleware.error_handler import ErrorHandlerMiddleware
from livestock_analytics.api.v1.routers import batches, farms

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Record store: {settings.record_store_base_url}")
    logger.info(f"Alerting config: dedup_window_hours={settings.dedup_window_hours}, "
                f"medication_expiry_window_days={settings.medication_expiry_window_days}, "
                f"harvest_window_days={settings.harvest_window_days}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    from livestock_analytics.infrastructure.record_store_client import get_record_store_client
    logger.info("Shutting down application...")
    client = get_record_store_client()
    await client.close()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Growth and Health Analytics API for Livestock Farms

    This API evaluates batches of animals against species growth curves and
    mortality thresholds, and raises deduplicated notifications for the farmer.

    ## Features

    - **Growth Forecasting**: Average daily gain, performance index and harvest
      date projection against species growth standards
    - **Health Classification**: Mortality rate classified against per-species
      thresholds with tenant overrides
    - **Alerting**: Mortality, stock, growth, harvest, water quality, medication
      expiry and invoice alerts, suppressed for 24 hours per subject and type
    - **Robust Error Handling**: Automatic retries with exponential backoff for
      record store calls
    - **Rate Limiting**: Protects the API from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(farms.router, prefix="/api/v1")
app.include_router(batches.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
