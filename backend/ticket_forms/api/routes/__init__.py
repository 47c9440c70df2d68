"""API Routes module"""
from fastapi import APIRouter

from .forms import router as forms_router
from .ticket_forms import router as ticket_forms_router

# Main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(forms_router, prefix="/forms", tags=["Form Builder"])
api_router.include_router(ticket_forms_router, prefix="/ticket-forms", tags=["Ticket Forms"])

__all__ = ["api_router"]
