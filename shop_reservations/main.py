"""
Shop Reservations - FastAPI Backend Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog

from shop_reservations.config import settings
from shop_reservations.errors import BookingError
from shop_reservations.api import auth, shop_admin, public, app_user

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer()
        if settings.log_format == "console"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Shop Reservations API", version="1.0.0", timezone=settings.shop_timezone)
    yield
    logger.info("Shutting down Shop Reservations API")


# Create FastAPI application
app = FastAPI(
    title="Shop Reservations",
    description="Multi-tenant reservation availability and booking engine for shops",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Map domain errors to their HTTP status"""
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.kind, message=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, error=exc.kind, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


# Health check endpoints
@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "api", "version": "1.0.0"}


@app.get("/health/ready")
async def ready():
    """Readiness check with database verification"""
    from shop_reservations.database import SessionLocal

    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.warning("Readiness check failed", error=str(e))
        database = f"failed: {str(e)}"

    return {
        "status": "ready" if database == "ok" else "not_ready",
        "checks": {"database": database},
    }


# Include API routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(shop_admin.router, prefix="/shop-admin/reservations", tags=["Shop Admin"])
app.include_router(public.router, prefix="/public/reservations/{shop_id}", tags=["Public"])
app.include_router(app_user.router, prefix="/app/reservations", tags=["App User"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shop_reservations.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
