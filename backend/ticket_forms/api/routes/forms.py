"""Form Builder API Routes - Authoring endpoints"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..deps import get_correlation_id_dep, get_form_builder_service
from ...domain.models import (
    FormConfiguration, FormField, FieldValidation, OrderedField,
    ConditionEditorState, ValidationReport
)
from ...domain.enums import FieldType
from ...domain.errors import DomainError
from ...services.form_builder_service import FormBuilderService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class SaveFormRequest(BaseModel):
    """Request to replace the field catalog"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    fields: List[FormField]
    expected_version: Optional[int] = Field(None, ge=1)


class AddFieldRequest(BaseModel):
    """Request to add a root field or a conditional child"""
    type: FieldType
    label: str = Field(..., min_length=1, max_length=200)
    placeholder: Optional[str] = Field(None, max_length=500)
    help_text: Optional[str] = Field(None, max_length=1000)
    required: bool = False
    options: Optional[List[str]] = None
    expected_version: Optional[int] = Field(None, ge=1)


class UpdateFieldRequest(BaseModel):
    """Request to update field attributes"""
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    placeholder: Optional[str] = Field(None, max_length=500)
    help_text: Optional[str] = Field(None, max_length=1000)
    required: Optional[bool] = None
    hidden: Optional[bool] = None
    options: Optional[List[str]] = None
    default_value: Optional[Any] = None
    clear_default_value: bool = False
    validation: Optional[FieldValidation] = None
    expected_version: Optional[int] = Field(None, ge=1)


class SetConditionRequest(BaseModel):
    """Request to set the condition rule of a child field"""
    condition: Dict[str, Any]
    expected_version: Optional[int] = Field(None, ge=1)


class ConditionalEnabledRequest(BaseModel):
    """Request to toggle conditional logic"""
    enabled: bool
    expected_version: Optional[int] = Field(None, ge=1)


class AttachFieldRequest(BaseModel):
    """Request to move a field under a parent"""
    parent_field_id: str = Field(..., min_length=1)
    condition: Optional[Dict[str, Any]] = None
    expected_version: Optional[int] = Field(None, ge=1)


class FieldResponse(BaseModel):
    """Saved form plus the field that was created"""
    form: FormConfiguration
    field: FormField


class ConditionResponse(BaseModel):
    """Saved form plus non-blocking condition warnings"""
    form: FormConfiguration
    warnings: List[str] = Field(default_factory=list)


# ============================================================================
# Form Routes
# ============================================================================

@router.get("/{form_id}", response_model=FormConfiguration)
async def get_form(
    form_id: str,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Get form configuration

    Creates the form with the system fields on first access.
    """
    try:
        return service.get_form(form_id)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/{form_id}", response_model=FormConfiguration)
async def save_form(
    form_id: str,
    request: SaveFormRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Replace the field catalog"""
    try:
        form = service.save_form(
            form_id,
            fields=request.fields,
            name=request.name,
            expected_version=request.expected_version
        )
        logger.info(
            f"Saved form {form_id} with {len(form.fields)} fields",
            extra={"form_id": form_id, "version": form.version}
        )
        return form
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{form_id}/canvas", response_model=List[OrderedField])
async def get_canvas(
    form_id: str,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Builder canvas: every field in hierarchy order, orphans last"""
    try:
        return service.canvas(form_id)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{form_id}/validation", response_model=ValidationReport)
async def validate_form(
    form_id: str,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Validate form structure without saving"""
    try:
        return service.validate_form(form_id)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


# ============================================================================
# Field Routes
# ============================================================================

@router.post("/{form_id}/fields", response_model=FieldResponse, status_code=201)
async def add_field(
    form_id: str,
    request: AddFieldRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Add a root field"""
    try:
        form, field = service.add_field(
            form_id,
            field_type=request.type,
            label=request.label,
            placeholder=request.placeholder,
            help_text=request.help_text,
            required=request.required,
            options=request.options,
            expected_version=request.expected_version
        )
        return FieldResponse(form=form, field=field)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{form_id}/fields/{field_id}/children", response_model=FieldResponse, status_code=201)
async def create_child_field(
    form_id: str,
    field_id: str,
    request: AddFieldRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Create a conditional child under a field"""
    try:
        form, field = service.create_child_field(
            form_id,
            parent_field_id=field_id,
            field_type=request.type,
            label=request.label,
            placeholder=request.placeholder,
            help_text=request.help_text,
            required=request.required,
            options=request.options,
            expected_version=request.expected_version
        )
        return FieldResponse(form=form, field=field)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{form_id}/fields/{field_id}", response_model=FormConfiguration)
async def update_field(
    form_id: str,
    field_id: str,
    request: UpdateFieldRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Update field attributes"""
    try:
        return service.update_field(
            form_id,
            field_id,
            label=request.label,
            placeholder=request.placeholder,
            help_text=request.help_text,
            required=request.required,
            hidden=request.hidden,
            options=request.options,
            default_value=request.default_value,
            clear_default_value=request.clear_default_value,
            validation=request.validation,
            expected_version=request.expected_version
        )
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/{form_id}/fields/{field_id}", response_model=FormConfiguration)
async def delete_field(
    form_id: str,
    field_id: str,
    cascade: bool = Query(True, description="Delete dependent fields too"),
    expected_version: Optional[int] = Query(None, ge=1),
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Delete a field

    By default the dependent fields go with it; with cascade=false they
    become root fields.
    """
    try:
        return service.delete_field(form_id, field_id, cascade=cascade, expected_version=expected_version)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


# ============================================================================
# Conditional Logic Routes
# ============================================================================

@router.put("/{form_id}/fields/{field_id}/condition", response_model=ConditionResponse)
async def set_condition(
    form_id: str,
    field_id: str,
    request: SetConditionRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Set the condition rule of a child field"""
    try:
        form, warnings = service.set_condition(
            form_id, field_id, request.condition, expected_version=request.expected_version
        )
        return ConditionResponse(form=form, warnings=warnings)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{form_id}/fields/{field_id}/condition-editor", response_model=ConditionEditorState)
async def get_condition_editor(
    form_id: str,
    field_id: str,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Condition editor state; stale trigger options are pruned"""
    try:
        return service.get_condition_editor(form_id, field_id)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/{form_id}/fields/{field_id}/conditional-enabled", response_model=FormConfiguration)
async def set_conditional_enabled(
    form_id: str,
    field_id: str,
    request: ConditionalEnabledRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Toggle conditional logic on a field"""
    try:
        return service.set_conditional_enabled(
            form_id, field_id, request.enabled, expected_version=request.expected_version
        )
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{form_id}/fields/{field_id}/attach", response_model=FormConfiguration)
async def attach_field(
    form_id: str,
    field_id: str,
    request: AttachFieldRequest,
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Make an existing field depend on another field"""
    try:
        return service.attach_field(
            form_id,
            field_id,
            request.parent_field_id,
            condition=request.condition,
            expected_version=request.expected_version
        )
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{form_id}/fields/{field_id}/detach", response_model=FormConfiguration)
async def detach_field(
    form_id: str,
    field_id: str,
    expected_version: Optional[int] = Query(None, ge=1),
    service: FormBuilderService = Depends(get_form_builder_service),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Turn a conditional child into a root field"""
    try:
        return service.detach_field(form_id, field_id, expected_version=expected_version)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
