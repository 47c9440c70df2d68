"""Service modules - Business logic layer"""
from .form_builder_service import FormBuilderService
from .ticket_form_service import TicketFormService

__all__ = [
    "FormBuilderService",
    "TicketFormService",
]
