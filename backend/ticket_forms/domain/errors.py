"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidConditionError(ValidationError):
    """Condition rule does not fit the parent field"""
    error_code = "INVALID_CONDITION"


class ConditionalLogicNotSupportedError(ValidationError):
    """Field type cannot govern conditional children"""
    error_code = "CONDITIONAL_LOGIC_NOT_SUPPORTED"


class NestingDepthExceededError(ValidationError):
    """Child would be deeper than the maximum nesting level"""
    error_code = "NESTING_DEPTH_EXCEEDED"


class FieldNotDeletableError(ValidationError):
    """System field cannot be deleted"""
    error_code = "FIELD_NOT_DELETABLE"


class SubmissionValidationError(ValidationError):
    """Ticket form values failed submission checks"""
    error_code = "SUBMISSION_VALIDATION_ERROR"
    http_status = 422


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class FormConfigNotFoundError(NotFoundError):
    """Form configuration not found"""
    error_code = "FORM_CONFIG_NOT_FOUND"


class FieldNotFoundError(NotFoundError):
    """Field not found in the catalog"""
    error_code = "FIELD_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    error_code = "ALREADY_EXISTS"


# Engine Errors
class EngineError(DomainError):
    """Form engine error"""
    error_code = "ENGINE_ERROR"
    http_status = 500


class StructuralIntegrityError(EngineError):
    """Field catalog does not form a valid dependency forest"""
    error_code = "STRUCTURAL_INTEGRITY_ERROR"
    http_status = 422


class CyclicDependencyError(StructuralIntegrityError):
    """A field is its own ancestor"""
    error_code = "CYCLIC_DEPENDENCY"


class DuplicateFieldIdError(StructuralIntegrityError):
    """Two fields share an id"""
    error_code = "DUPLICATE_FIELD_ID"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class FormConfigUnavailableError(ExternalServiceError):
    """Form configuration store and local cache both unavailable"""
    error_code = "FORM_CONFIG_UNAVAILABLE"
    http_status = 503
