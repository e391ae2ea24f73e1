"""
Equity Admin - Main Application Entry Point

A modular monolithic application for company equity administration:
cap tables, dividend rounds, company roles and financial reports.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import init_db
from app.core.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Import module routers
from app.modules.companies.router import router as companies_router
from app.modules.equity.router import router as equity_router
from app.modules.dividends.router import router as dividends_router
from app.modules.reports.router import router as reports_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Company equity administration",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register module routers
    app.include_router(equity_router, prefix="/api/v1/companies", tags=["Equity"])
    app.include_router(dividends_router, prefix="/api/v1/companies", tags=["Dividends"])
    app.include_router(companies_router, prefix="/api/v1/companies", tags=["Company Roles"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - health check."""
        return {
            "application": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running"
        }

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        """API health check endpoint."""
        return {"status": "healthy"}

    @app.on_event("startup")
    async def startup_event():
        """Create tables and start the report scheduler when enabled."""
        init_db()
        if settings.FINANCIAL_REPORT_SCHEDULE_ENABLED:
            try:
                start_scheduler()
            except Exception as e:
                logger.error(f"Failed to start scheduler: {e}", exc_info=True)
        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop background scheduler on app shutdown."""
        try:
            stop_scheduler()
            logger.info("Application shutdown - scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
