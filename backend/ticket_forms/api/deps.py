"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Header

from ..services.form_builder_service import FormBuilderService
from ..services.ticket_form_service import TicketFormService
from ..utils.logger import set_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Get or generate correlation ID for request tracing

    If client provides X-Correlation-Id, use it.
    Otherwise generate a new one.
    """
    correlation_id = x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


def get_form_builder_service() -> FormBuilderService:
    """Form builder service for the authoring routes"""
    return FormBuilderService()


def get_ticket_form_service() -> TicketFormService:
    """Ticket form service; engines are shared through the module-level cache"""
    return TicketFormService()
