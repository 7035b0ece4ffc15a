"""Main FastAPI application"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from yalla_admin.core.config import logger, settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Yalla Business Admin API...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Version: {settings.version}")

    from yalla_admin.models.database import async_session_maker, close_db, init_db
    from yalla_admin.services.rate_limiter import rate_limiter
    from yalla_admin.services.settlement_service import SettlementRunner

    settlement_runner = None
    # Startup logic
    try:
        await init_db()
        logger.info("✓ Database initialized")

        from yalla_admin.core.seed import seed_default_data
        await seed_default_data()
        logger.info("✓ Default data seeded")

        if settings.settlement_enabled:
            settlement_runner = SettlementRunner(async_session_maker, settings.settlement_interval_minutes)
            await settlement_runner.start()
            logger.info("✓ Settlement runner started")

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        raise

    app.state.settlement_runner = settlement_runner

    yield

    # Shutdown logic
    logger.info("Shutting down Yalla Business Admin API...")
    if settlement_runner:
        await settlement_runner.stop()
    await rate_limiter.close()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Yalla Business Admin API",
    description="Corporate lunch and meal compensation administration",
    version=settings.version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

from yalla_admin.core.exception_handlers import register_exception_handlers
from yalla_admin.middleware import RateLimitMiddleware, SecurityHeadersMiddleware, StructuredLoggingMiddleware

register_exception_handlers(app)

# Middleware added last runs first
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(StructuredLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Correlation-ID"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return JSONResponse(
        content={
            "status": "healthy",
            "version": settings.version,
            "environment": settings.environment,
        }
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return JSONResponse(
        content={
            "service": "Yalla Business Admin API",
            "version": settings.version,
            "docs": "/docs" if settings.is_development else None,
        }
    )


# Include routers
from yalla_admin.api.v1 import api_router

app.include_router(api_router, prefix="/api/v1")
app.include_router(api_router, prefix="/api", include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "yalla_admin.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
