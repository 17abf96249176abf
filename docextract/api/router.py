"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from docextract.api.health import router as health_router
from docextract.api.reference_documents import router as reference_documents_router
from docextract.api.submissions import router as submissions_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(submissions_router)
api_router.include_router(reference_documents_router)
