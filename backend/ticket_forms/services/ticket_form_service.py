"""Ticket Form Service - Live ticket form backed by the form engine"""
import re
import threading
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config.settings import settings
from ..domain.models import FormField, OrderedField, ValueChangeResult, SubmissionResult
from ..domain.enums import FieldType, OPTION_FIELD_TYPES
from ..domain.errors import SubmissionValidationError
from ..engine import FormEngine
from ..engine.condition_evaluator import to_number, to_checkbox_state
from ..repositories.form_config_repo import FormConfigRepository
from ..utils.time import parse_iso
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EngineCache:
    """LRU of form engines keyed by (form id, version)"""

    def __init__(self, max_size: int):
        self.max_size = max(1, max_size)
        self._engines: "OrderedDict[Tuple[str, int], FormEngine]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Tuple[str, int]) -> Optional[FormEngine]:
        with self._lock:
            engine = self._engines.get(key)
            if engine is not None:
                self._engines.move_to_end(key)
            return engine

    def put(self, key: Tuple[str, int], engine: FormEngine) -> None:
        with self._lock:
            self._engines[key] = engine
            self._engines.move_to_end(key)
            while len(self._engines) > self.max_size:
                self._engines.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._engines.clear()

    def __len__(self) -> int:
        return len(self._engines)


_engine_cache = EngineCache(settings.engine_cache_size)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


class TicketFormService:
    """Service for the requester-facing ticket form"""

    def __init__(
        self,
        repo: Optional[FormConfigRepository] = None,
        engine_cache: Optional[EngineCache] = None
    ):
        self.repo = repo or FormConfigRepository()
        self.engine_cache = engine_cache if engine_cache is not None else _engine_cache

    def get_engine(self, form_id: str) -> FormEngine:
        """Engine for the current version of a form"""
        config = self.repo.get_config_or_raise(form_id)
        key = (config.id, config.version)

        engine = self.engine_cache.get(key)
        if engine is None:
            engine = FormEngine(config.fields)
            self.engine_cache.put(key, engine)
            logger.debug(
                f"Built form engine for {config.id} v{config.version}",
                extra={"form_id": config.id, "version": config.version}
            )
        return engine

    # =========================================================================
    # Live Form
    # =========================================================================

    def render(self, form_id: str, values: Optional[Mapping[str, Any]] = None) -> List[OrderedField]:
        """Visible fields in hierarchy order for the given values"""
        return self.get_engine(form_id).visible_ordered_view(values or {})

    def initial_values(self, form_id: str) -> Dict[str, Any]:
        """Value map of a freshly opened ticket form"""
        return self.get_engine(form_id).initial_values()

    def apply_change(
        self,
        form_id: str,
        values: Mapping[str, Any],
        field_id: str,
        value: Any
    ) -> ValueChangeResult:
        """Apply one field change and clear values of fields it hides"""
        result = self.get_engine(form_id).on_field_value_change(values, field_id, value)
        if result.ids_to_clear:
            logger.info(
                f"Change to {field_id} cleared {len(result.ids_to_clear)} dependent field(s)",
                extra={"form_id": form_id, "field_id": field_id, "action": "clear_dependents"}
            )
        return result

    # =========================================================================
    # Submission
    # =========================================================================

    def check_submission(self, form_id: str, values: Mapping[str, Any]) -> SubmissionResult:
        """
        Validate the values a requester submits

        Values of fields that are not visible are dropped. Hidden required
        fields are never enforced.

        Raises:
            SubmissionValidationError: With a message per offending field
                under details["fields"]
        """
        engine = self.get_engine(form_id)
        view = engine.visible_ordered_view(values)
        visible_ids = [entry.field.id for entry in view]
        accepted = {field_id: values[field_id] for field_id in visible_ids if field_id in values}

        problems: Dict[str, str] = {}
        for entry in view:
            problem = self._check_value(entry.field, accepted.get(entry.field.id))
            if problem:
                problems[entry.field.id] = problem

        if problems:
            logger.info(
                f"Submission for {form_id} rejected: {len(problems)} invalid field(s)",
                extra={"form_id": form_id, "status": "rejected"}
            )
            raise SubmissionValidationError(
                "Please correct the highlighted fields",
                details={"fields": problems}
            )

        return SubmissionResult(values=accepted, visible_field_ids=visible_ids)

    def _check_value(self, field: FormField, value: Any) -> Optional[str]:
        """Error message for one visible field, or None"""
        if field.type == FieldType.CHECKBOX:
            if field.required and not to_checkbox_state(value):
                return f"{field.label} must be checked"
            return None

        if _is_empty(value):
            return f"{field.label} is required" if field.required else None

        rules = field.validation

        if field.type == FieldType.NUMBER:
            number = to_number(value)
            if number is None:
                return f"{field.label} must be a number"
            if rules and rules.min_value is not None and number < rules.min_value:
                return f"{field.label} must be at least {rules.min_value:g}"
            if rules and rules.max_value is not None and number > rules.max_value:
                return f"{field.label} must be at most {rules.max_value:g}"
            return None

        if field.type == FieldType.DATE:
            try:
                parse_iso(str(value))
            except ValueError:
                return f"{field.label} must be a valid date"
            return None

        if field.type in OPTION_FIELD_TYPES and field.options:
            chosen = value if isinstance(value, list) else [value]
            unknown = [str(option) for option in chosen if option not in field.options]
            if unknown:
                return f"{field.label} has an invalid selection: {', '.join(unknown)}"
            return None

        if field.type in (FieldType.TEXT, FieldType.TEXTAREA) and rules:
            text = str(value)
            if rules.max_length is not None and len(text) > rules.max_length:
                return f"{field.label} must be at most {rules.max_length} characters"
            if rules.regex_pattern:
                try:
                    if not re.fullmatch(rules.regex_pattern, text):
                        return f"{field.label} has an invalid format"
                except re.error:
                    logger.warning(
                        f"Ignoring invalid regex on field {field.id}",
                        extra={"field_id": field.id}
                    )
        return None
