"""Ticket Form API Routes - Live form endpoints for requesters"""
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..deps import get_correlation_id_dep, get_ticket_form_service
from ...domain.models import OrderedField, ValueChangeResult, SubmissionResult
from ...domain.errors import DomainError
from ...services.ticket_form_service import TicketFormService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class FormValuesRequest(BaseModel):
    """Current value map of the ticket form"""
    values: Dict[str, Any] = Field(default_factory=dict)


class FieldChangeRequest(BaseModel):
    """A single field edit"""
    values: Dict[str, Any] = Field(default_factory=dict)
    field_id: str = Field(..., min_length=1)
    value: Any = None


class InitialValuesResponse(BaseModel):
    """Values of a freshly opened ticket form"""
    values: Dict[str, Any]


# ============================================================================
# Routes
# ============================================================================

@router.post("/{form_id}/render", response_model=List[OrderedField])
async def render_form(
    form_id: str,
    request: FormValuesRequest,
    service: TicketFormService = Depends(get_ticket_form_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Visible fields, in hierarchy order, for the given values"""
    try:
        return service.render(form_id, request.values)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{form_id}/initial-values", response_model=InitialValuesResponse)
async def get_initial_values(
    form_id: str,
    service: TicketFormService = Depends(get_ticket_form_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Defaults and empty seeds for the fields visible on a new ticket"""
    try:
        return InitialValuesResponse(values=service.initial_values(form_id))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{form_id}/field-change", response_model=ValueChangeResult)
async def apply_field_change(
    form_id: str,
    request: FieldChangeRequest,
    service: TicketFormService = Depends(get_ticket_form_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Apply one field change

    Values of fields that the change hides are removed from the returned
    value map and listed in ids_to_clear.
    """
    try:
        return service.apply_change(form_id, request.values, request.field_id, request.value)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{form_id}/submission-check", response_model=SubmissionResult)
async def check_submission(
    form_id: str,
    request: FormValuesRequest,
    service: TicketFormService = Depends(get_ticket_form_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Validate submitted values; only visible fields are kept"""
    try:
        result = service.check_submission(form_id, request.values)
        logger.info(
            f"Submission for {form_id} accepted with {len(result.values)} values",
            extra={"form_id": form_id, "status": "accepted"}
        )
        return result
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
