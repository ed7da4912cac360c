"""
PaperTrade Platform - FastAPI Application
Main entry point with proper lifecycle management.

Service Architecture:
    MarketTicker (recurring tick task)
        ↓
    PriceOracle (bounded random walk)
        ↓
    Broadcaster (per-connection watchlist push)

    OrderSettlement (atomic order placement)
        ↓
    WalletLedger + HoldingsBook (one unit of work)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from papertrade.api import api_router
from papertrade.api.errors import register_exception_handlers
from papertrade.core.config import Settings, get_settings
from papertrade.core.logging import setup_logging
from papertrade.services.registry import ServiceRegistry


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    
    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------
    setup_logging(settings.logging)
    logger.info("=" * 60)
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug Mode: {settings.DEBUG}")
    logger.info("=" * 60)
    
    services = ServiceRegistry(settings)
    app.state.services = services
    await services.start_all()
    
    if await services.database.health_check():
        logger.info("✓ Database connection established")
    else:
        logger.warning("⚠ Database connection failed - trading endpoints will fail")
    
    logger.info("-" * 60)
    logger.info(f"{settings.PROJECT_NAME} API ready to accept requests")
    logger.info("-" * 60)
    
    yield
    
    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------
    logger.info("=" * 60)
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    await services.stop_all()
    logger.info(f"{settings.PROJECT_NAME} API shutdown complete")
    logger.info("=" * 60)


# =============================================================================
# Application Factory
# =============================================================================

def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    settings = settings or get_settings()
    
    application = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        version=settings.APP_VERSION,
        description="Paper trading backend: simulated prices, virtual wallets and atomic order settlement.",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    application.state.settings = settings
    
    # CORS Configuration
    origins = list(settings.api.cors_origins)
    if settings.ALLOWED_ORIGINS:
        origins.extend(settings.ALLOWED_ORIGINS)
    
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    register_exception_handlers(application)
    
    # Include API routes
    application.include_router(api_router, prefix="/api")
    
    # =========================================================================
    # Health & Info Endpoints
    # =========================================================================
    
    @application.get("/health")
    async def health_check():
        """
        Health check endpoint for load balancers and monitoring.
        """
        services: ServiceRegistry = application.state.services
        health_status = {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }
        
        db_healthy = await services.database.health_check()
        health_status["database"] = "connected" if db_healthy else "disconnected"
        health_status["services"] = services.get_status()
        
        if not db_healthy:
            health_status["status"] = "degraded"
        
        return health_status
    
    @application.get("/")
    async def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": f"Welcome to {settings.PROJECT_NAME} API",
            "version": settings.APP_VERSION,
            "docs": "/docs" if settings.DEBUG else "Disabled in production",
            "health": "/health",
        }
    
    return application


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn
    
    api = get_settings().api
    uvicorn.run(
        "papertrade.main:app",
        host=api.host,
        port=api.port,
        reload=False,
    )
