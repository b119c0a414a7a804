"""
FastAPI Application Entry Point.

This is the main application file for the Collectives Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from collectives_backend.app.core.config import settings
from collectives_backend.app.api.v1.router import router as api_v1_router
from collectives_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from collectives_backend.app.db.session import engine, Base
from collectives_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from collectives_backend.app.models.collective import Collective
from collectives_backend.app.models.user import User
from collectives_backend.app.models.member import Member
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.models.expense_item import ExpenseItem
from collectives_backend.app.models.activity import Activity
from collectives_backend.app.models.ledger_entry import LedgerEntry
from collectives_backend.app.models.comment import Comment


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    Creates database tables on startup and disposes the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


configure_logging()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Collectives, fiscal hosts and expense approval workflows",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Collectives Backend API",
        "docs": "/docs",
        "health": "/health",
    }
