"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from collectives_backend.app.api.v1.endpoints import auth, expenses, comments

router = APIRouter()

router.include_router(auth.router)
router.include_router(expenses.router)
router.include_router(comments.router)
