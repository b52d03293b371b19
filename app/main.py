"""
Kitchen Booking Engine - FastAPI Backend Application
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog

from app.config import settings
from app.api import tenants, kitchens, bookings, storage
from app.engine.errors import BookingEngineError
from app.logging_config import configure_logging

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Kitchen Booking Engine API", version="1.0.0")
    yield
    logger.info("Shutting down Kitchen Booking Engine API")


# Create FastAPI application
app = FastAPI(
    title="Kitchen Booking Engine",
    description="Availability and booking engine for shared commercial kitchens",
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


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    """Render engine errors as {"error", "detail", "retryable"}"""
    logger.info(
        "Booking engine error",
        path=request.url.path,
        error=exc.code,
        detail=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Health check endpoints
@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "api", "version": "1.0.0"}


@app.get("/health/ready")
async def ready():
    """Readiness check with dependency verification"""
    from app.database import SessionLocal

    checks = {}

    # Check database
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"failed: {str(e)}"

    # Check Redis
    try:
        from app.jobs.celery_app import celery_app
        celery_app.control.ping(timeout=1)
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"failed: {str(e)}"

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
    }


# Include API routers
app.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])
app.include_router(kitchens.router, prefix="/tenants/{tenant_id}/kitchens", tags=["Kitchens"])
app.include_router(bookings.router, prefix="/tenants/{tenant_id}/bookings", tags=["Bookings"])
app.include_router(storage.router, prefix="/tenants/{tenant_id}", tags=["Storage"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
