"""API module - Routes and dependencies"""
from .deps import get_correlation_id_dep, get_form_builder_service, get_ticket_form_service

__all__ = ["get_correlation_id_dep", "get_form_builder_service", "get_ticket_form_service"]
