"""Form Builder Service - Authoring operations on ticket-intake forms"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config.settings import settings
from ..domain.models import (
    FormConfiguration, FormField, ConditionalLogic, FieldValidation, OrderedField,
    OptionCondition, UnsupportedCondition, ConditionEditorState, ValidationReport,
    ValidationIssue, parse_condition
)
from ..domain.enums import (
    FieldType, CONDITIONAL_PARENT_TYPES, OPTION_FIELD_TYPES, NON_CHILD_FIELD_TYPES,
    MAX_NESTING_LEVEL
)
from ..domain.errors import (
    ValidationError, InvalidConditionError, ConditionalLogicNotSupportedError,
    NestingDepthExceededError, FieldNotDeletableError, CyclicDependencyError
)
from ..engine import FormEngine, FieldGraph
from ..engine.condition_rules import (
    describe_condition, rule_fits_parent, default_condition_for,
    prune_stale_options, condition_warnings
)
from ..repositories.form_config_repo import FormConfigRepository
from .form_defaults import (
    DEFAULT_OPTIONS, default_form_fields, should_initialize_defaults, merge_with_defaults
)
from ..utils.idgen import generate_field_id
from ..utils.logger import get_logger

logger = get_logger(__name__)


def normalize_fields(fields: Sequence[FormField]) -> List[FormField]:
    """
    Re-derive bookkeeping from the parent references

    child_fields lists, nesting levels of reachable fields and the order
    attribute are recomputed. A field that gained children gets an enabled
    conditional_logic record.

    Raises:
        StructuralIntegrityError: Duplicate ids or a cycle
        NestingDepthExceededError: A field ends up deeper than the limit
    """
    graph = FieldGraph(fields)
    depths = {field.id: depth for field, depth in graph.walk()}

    too_deep = [field_id for field_id, depth in depths.items() if depth > MAX_NESTING_LEVEL]
    if too_deep:
        raise NestingDepthExceededError(
            f"Fields nested deeper than level {MAX_NESTING_LEVEL}: {', '.join(too_deep)}",
            details={"field_ids": too_deep, "max_nesting_level": MAX_NESTING_LEVEL}
        )

    normalized = []
    for index, field in enumerate(fields):
        children = graph.child_ids(field.id)
        logic = field.conditional_logic
        if logic is None and children:
            logic = ConditionalLogic(enabled=True)
        if logic is not None:
            logic = logic.model_copy(update={
                "child_fields": children,
                "nesting_level": depths.get(field.id, logic.nesting_level),
            })
        normalized.append(field.model_copy(update={"conditional_logic": logic, "order": index}))
    return normalized


def validate_fields(fields: Sequence[FormField]) -> ValidationReport:
    """
    Structural report for a catalog

    Unlike FieldGraph this never raises: every problem becomes an error or
    a warning entry.
    """
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    by_id: Dict[str, FormField] = {}
    for field in fields:
        if field.id in by_id:
            errors.append(ValidationIssue(
                type="DUPLICATE_FIELD_ID",
                message=f"Duplicate field id: {field.id}",
                field_id=field.id
            ))
        by_id.setdefault(field.id, field)

    cyclic = set()
    for field in by_id.values():
        chain: List[str] = []
        current: Optional[str] = field.id
        while current is not None and current in by_id and current not in chain:
            chain.append(current)
            current = by_id[current].parent_field_id
        if current is not None and current in chain and current == field.id and field.id not in cyclic:
            cycle = chain[chain.index(current):]
            cyclic.update(cycle)
            errors.append(ValidationIssue(
                type="CYCLIC_DEPENDENCY",
                message=f"Field {field.id} is its own ancestor: {' -> '.join(cycle + [current])}",
                field_id=field.id
            ))

    for field in by_id.values():
        logic = field.conditional_logic
        if logic is None:
            continue

        if logic.nesting_level > MAX_NESTING_LEVEL:
            errors.append(ValidationIssue(
                type="DEPTH_EXCEEDED",
                message=f"Field {field.id} has nesting level {logic.nesting_level} (max {MAX_NESTING_LEVEL})",
                field_id=field.id
            ))

        actual_children = [other.id for other in fields if other.parent_field_id == field.id]
        if set(actual_children) != set(logic.child_fields):
            warnings.append(ValidationIssue(
                type="CHILD_FIELDS_MISMATCH",
                message=f"Field {field.id} lists children {logic.child_fields}, actual {actual_children}",
                field_id=field.id
            ))

        parent_id = logic.parent_field_id
        if parent_id is None:
            if logic.nesting_level != 0:
                errors.append(ValidationIssue(
                    type="NESTING_LEVEL_MISMATCH",
                    message=f"Root field {field.id} has nesting level {logic.nesting_level}",
                    field_id=field.id
                ))
            continue

        parent = by_id.get(parent_id)
        if parent is None:
            errors.append(ValidationIssue(
                type="DANGLING_PARENT",
                message=f"Field {field.id} depends on missing field {parent_id}; it will never show",
                field_id=field.id
            ))
            continue
        if field.id in cyclic:
            continue

        if parent.type not in CONDITIONAL_PARENT_TYPES:
            errors.append(ValidationIssue(
                type="PARENT_TYPE_NOT_CONDITIONAL",
                message=f"Field {field.id} depends on {parent_id}, a {parent.type.value} field",
                field_id=field.id
            ))
        if logic.nesting_level != parent.nesting_level + 1:
            errors.append(ValidationIssue(
                type="NESTING_LEVEL_MISMATCH",
                message=(
                    f"Field {field.id} has nesting level {logic.nesting_level}, "
                    f"parent {parent_id} has {parent.nesting_level}"
                ),
                field_id=field.id
            ))

        rule = logic.condition
        if rule is None:
            continue
        if isinstance(rule, UnsupportedCondition):
            errors.append(ValidationIssue(
                type="UNSUPPORTED_CONDITION",
                message=f"Field {field.id} has an unrecognised condition; it will never show",
                field_id=field.id
            ))
            continue
        if not rule_fits_parent(rule, parent.type):
            errors.append(ValidationIssue(
                type="CONDITION_PARENT_MISMATCH",
                message=f"Condition {rule.type} of {field.id} does not apply to a {parent.type.value} parent",
                field_id=field.id
            ))
        if isinstance(rule, OptionCondition):
            _, removed = prune_stale_options(rule, parent.options)
            if removed:
                warnings.append(ValidationIssue(
                    type="STALE_OPTIONS",
                    message=f"Condition of {field.id} references removed options: {', '.join(removed)}",
                    field_id=field.id
                ))
        for message in condition_warnings(rule):
            warnings.append(ValidationIssue(type="CONDITION_WARNING", message=message, field_id=field.id))

    return ValidationReport(is_valid=not errors, errors=errors, warnings=warnings)


def _replace_field(fields: Sequence[FormField], updated: FormField) -> List[FormField]:
    return [updated if field.id == updated.id else field for field in fields]


def _with_logic(field: FormField, **updates: Any) -> FormField:
    logic = field.conditional_logic or ConditionalLogic()
    return field.model_copy(update={"conditional_logic": logic.model_copy(update=updates)})


def _insert_after_subtree(fields: List[FormField], graph: FieldGraph, parent_id: str, block: List[FormField]) -> List[FormField]:
    """Insert block right after the parent's last descendant in catalog order"""
    block_ids = {field.id for field in block}
    remaining = [field for field in fields if field.id not in block_ids]
    anchor_ids = {parent_id, *graph.descendant_ids(parent_id)} - block_ids
    insert_at = max(index for index, field in enumerate(remaining) if field.id in anchor_ids) + 1
    return remaining[:insert_at] + block + remaining[insert_at:]


class FormBuilderService:
    """Service for form builder (authoring surface) operations"""

    def __init__(self, repo: Optional[FormConfigRepository] = None):
        self.repo = repo or FormConfigRepository()

    # =========================================================================
    # Form Configuration
    # =========================================================================

    def get_form(self, form_id: str) -> FormConfiguration:
        """
        Load a form configuration

        A missing configuration is created with the default system fields;
        one missing a system field is merged with the defaults.
        """
        config = self.repo.get_config(form_id)
        if config is None:
            logger.info(f"Initialising form configuration {form_id} with system fields", extra={"form_id": form_id})
            return self.repo.create_config(FormConfiguration(
                id=form_id,
                name=settings.default_form_name,
                fields=default_form_fields(),
            ))

        if should_initialize_defaults(config.fields):
            logger.info(f"Merging system fields into form configuration {form_id}", extra={"form_id": form_id})
            return self._store(config, merge_with_defaults(config.fields))

        return config

    def save_form(
        self,
        form_id: str,
        fields: Sequence[FormField],
        name: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """Replace the whole catalog"""
        config = self.get_form(form_id)
        if name is not None:
            config = config.model_copy(update={"name": name})
        return self._store(config, list(fields), expected_version)

    def canvas(self, form_id: str) -> List[OrderedField]:
        """Builder canvas order, orphaned fields last"""
        config = self.get_form(form_id)
        return FormEngine(config.fields).ordered_view(include_orphans=True)

    def validate_form(self, form_id: str) -> ValidationReport:
        """Validate the stored catalog"""
        config = self.get_form(form_id)
        return validate_fields(config.fields)

    def _store(
        self,
        config: FormConfiguration,
        fields: List[FormField],
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        fields = normalize_fields(fields)
        return self.repo.save_config(config.model_copy(update={"fields": fields}), expected_version)

    # =========================================================================
    # Field Management
    # =========================================================================

    def add_field(
        self,
        form_id: str,
        field_type: FieldType,
        label: str,
        placeholder: Optional[str] = None,
        help_text: Optional[str] = None,
        required: bool = False,
        options: Optional[List[str]] = None,
        expected_version: Optional[int] = None
    ) -> Tuple[FormConfiguration, FormField]:
        """Append a plain root field"""
        config = self.get_form(form_id)
        field = self._new_field(field_type, label, placeholder, help_text, required, options)
        saved = self._store(config, list(config.fields) + [field], expected_version)

        logger.info(
            f"Added {field_type.value} field {field.id}",
            extra={"form_id": form_id, "field_id": field.id, "action": "add_field"}
        )
        return saved, self._find(saved, field.id)

    def create_child_field(
        self,
        form_id: str,
        parent_field_id: str,
        field_type: FieldType,
        label: str,
        placeholder: Optional[str] = None,
        help_text: Optional[str] = None,
        required: bool = False,
        options: Optional[List[str]] = None,
        expected_version: Optional[int] = None
    ) -> Tuple[FormConfiguration, FormField]:
        """
        Create a conditional child under an existing field

        The child starts with conditional logic disabled and no rule, so it
        shows whenever its parent shows until a condition is set.

        Raises:
            ConditionalLogicNotSupportedError: Parent type cannot govern children
            NestingDepthExceededError: Parent is already a grandchild
            ValidationError: Child type not offered for conditional fields
        """
        config = self.get_form(form_id)
        graph = FieldGraph(config.fields)
        parent = graph.require(parent_field_id)

        if parent.type not in CONDITIONAL_PARENT_TYPES:
            raise ConditionalLogicNotSupportedError(
                f"{parent.type.value} fields cannot have conditional child fields",
                details={"field_id": parent.id, "field_type": parent.type.value}
            )

        parent_level = max(parent.nesting_level, graph.depth_of(parent.id))
        if parent_level >= MAX_NESTING_LEVEL:
            raise NestingDepthExceededError(
                f"Field {parent.id} is at the maximum nesting level",
                details={"field_id": parent.id, "max_nesting_level": MAX_NESTING_LEVEL}
            )

        if field_type in NON_CHILD_FIELD_TYPES:
            raise ValidationError(
                f"{field_type.value} fields cannot be conditional children",
                details={"field_type": field_type.value}
            )

        child = self._new_field(field_type, label, placeholder, help_text, required, options)
        child = child.model_copy(update={"conditional_logic": ConditionalLogic(
            enabled=False,
            parent_field_id=parent.id,
            nesting_level=parent_level + 1,
        )})

        fields = _insert_after_subtree(list(config.fields), graph, parent.id, [child])
        if parent.parent_field_id is None and not (parent.conditional_logic and parent.conditional_logic.enabled):
            fields = _replace_field(fields, _with_logic(parent, enabled=True))
        saved = self._store(config, fields, expected_version)

        logger.info(
            f"Created child field {child.id} at level {parent_level + 1} under {parent.id}",
            extra={"form_id": form_id, "field_id": child.id, "parent_field_id": parent.id, "action": "create_child"}
        )
        return saved, self._find(saved, child.id)

    def update_field(
        self,
        form_id: str,
        field_id: str,
        label: Optional[str] = None,
        placeholder: Optional[str] = None,
        help_text: Optional[str] = None,
        required: Optional[bool] = None,
        hidden: Optional[bool] = None,
        options: Optional[List[str]] = None,
        default_value: Optional[Any] = None,
        clear_default_value: bool = False,
        validation: Optional[FieldValidation] = None,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """
        Update presentation attributes of a field

        Shrinking an option list does not touch dependent conditions; stale
        references are pruned when their condition editor is opened.
        None leaves an attribute unchanged; use clear_default_value to
        drop a default value.
        """
        config = self.get_form(form_id)
        field = FieldGraph(config.fields).require(field_id)

        updates: Dict[str, Any] = {}
        if label is not None:
            if not label.strip():
                raise ValidationError("Please enter a field label", details={"field_id": field_id})
            updates["label"] = label.strip()
        if placeholder is not None:
            updates["placeholder"] = placeholder
        if help_text is not None:
            updates["help_text"] = help_text
        if required is not None:
            updates["required"] = required
        if hidden is not None:
            updates["hidden"] = hidden
        if options is not None:
            if field.type not in OPTION_FIELD_TYPES:
                raise ValidationError(
                    f"{field.type.value} fields do not have options",
                    details={"field_id": field_id}
                )
            updates["options"] = list(dict.fromkeys(option.strip() for option in options if option.strip()))
        if clear_default_value:
            updates["default_value"] = None
        elif default_value is not None:
            updates["default_value"] = default_value
        if validation is not None:
            updates["validation"] = validation

        if not updates:
            return config

        fields = _replace_field(config.fields, field.model_copy(update=updates))
        return self._store(config, fields, expected_version)

    def delete_field(
        self,
        form_id: str,
        field_id: str,
        cascade: bool = True,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """
        Delete a field

        With cascade the whole subtree goes; otherwise the direct children
        become root fields with conditional logic disabled.

        Raises:
            FieldNotDeletableError: The field (or, with cascade, a
                descendant) is a protected system field
        """
        config = self.get_form(form_id)
        graph = FieldGraph(config.fields)
        field = graph.require(field_id)

        to_delete = [field_id] + (graph.descendant_ids(field_id) if cascade else [])
        protected = [fid for fid in to_delete if not graph.require(fid).deletable]
        if protected:
            raise FieldNotDeletableError(
                "This system field cannot be deleted",
                details={"field_ids": protected}
            )

        fields = [other for other in config.fields if other.id not in to_delete]
        if not cascade:
            for child in graph.children_of(field_id):
                fields = _replace_field(fields, _with_logic(
                    child, enabled=False, parent_field_id=None, conditions=[], nesting_level=0
                ))

        saved = self._store(config, fields, expected_version)
        logger.info(
            f"Deleted field {field.id} ({len(to_delete)} removed, cascade={cascade})",
            extra={"form_id": form_id, "field_id": field.id, "action": "delete_field"}
        )
        return saved

    # =========================================================================
    # Conditional Logic
    # =========================================================================

    def set_condition(
        self,
        form_id: str,
        field_id: str,
        condition: Any,
        expected_version: Optional[int] = None
    ) -> Tuple[FormConfiguration, List[str]]:
        """
        Attach a condition rule to a child field and enable it

        An inverted numeric range is stored; it comes back as a warning.

        Returns:
            (saved configuration, warnings)
        """
        config = self.get_form(form_id)
        graph = FieldGraph(config.fields)
        field = graph.require(field_id)
        parent = self._require_parent(graph, field)
        rule = self._check_rule(parse_condition(condition), parent)

        fields = _replace_field(config.fields, _with_logic(field, enabled=True, conditions=[rule]))
        saved = self._store(config, fields, expected_version)

        logger.info(
            f"Condition on {field_id} set to {describe_condition(rule)}",
            extra={"form_id": form_id, "field_id": field_id, "parent_field_id": parent.id, "action": "set_condition"}
        )
        return saved, condition_warnings(rule)

    def set_conditional_enabled(
        self,
        form_id: str,
        field_id: str,
        enabled: bool,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """Toggle conditional logic on a child or a conditional-capable root"""
        config = self.get_form(form_id)
        field = FieldGraph(config.fields).require(field_id)

        if field.conditional_logic is None and field.type not in CONDITIONAL_PARENT_TYPES:
            raise ConditionalLogicNotSupportedError(
                "Conditional logic is only available for Number, Dropdown, Checkbox, "
                "Category, and Multiselect fields",
                details={"field_id": field_id, "field_type": field.type.value}
            )

        fields = _replace_field(config.fields, _with_logic(field, enabled=enabled))
        return self._store(config, fields, expected_version)

    def get_condition_editor(self, form_id: str, field_id: str) -> ConditionEditorState:
        """
        State of the condition editor for a child field

        Trigger options the parent no longer offers are dropped from the
        stored rule and the revised rule is saved.
        """
        config = self.get_form(form_id)
        graph = FieldGraph(config.fields)
        field = graph.require(field_id)
        parent = self._require_parent(graph, field)
        logic = field.conditional_logic

        rule = logic.condition
        pruned: List[str] = []
        if isinstance(rule, OptionCondition):
            rule, pruned = prune_stale_options(rule, parent.options)
            if pruned:
                conditions = [rule] + list(logic.conditions[1:])
                self._store(config, _replace_field(config.fields, _with_logic(field, conditions=conditions)))
                logger.info(
                    f"Pruned stale options from condition of {field_id}: {', '.join(pruned)}",
                    extra={"form_id": form_id, "field_id": field_id, "removed_options": pruned}
                )

        warnings = condition_warnings(rule) if rule is not None else []
        if rule is not None and not rule_fits_parent(rule, parent.type):
            warnings.append(f"Condition does not apply to a {parent.type.value} field and will never match")

        nesting_level = graph.depth_of(field_id)
        return ConditionEditorState(
            field_id=field_id,
            parent_field_id=parent.id,
            parent_type=parent.type,
            nesting_level=nesting_level,
            enabled=logic.enabled,
            condition=rule if rule is not None else default_condition_for(parent.type),
            available_options=list(parent.options or []),
            summary=describe_condition(rule),
            pruned_options=pruned,
            warnings=warnings,
            can_add_children=nesting_level < MAX_NESTING_LEVEL and field.type in CONDITIONAL_PARENT_TYPES,
        )

    def attach_field(
        self,
        form_id: str,
        field_id: str,
        parent_field_id: str,
        condition: Optional[Any] = None,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """
        Move an existing field, with its subtree, under a parent

        Raises:
            CyclicDependencyError: Parent is the field itself or inside its subtree
            ConditionalLogicNotSupportedError: Parent type cannot govern children
            NestingDepthExceededError: The moved subtree would exceed the depth limit
        """
        config = self.get_form(form_id)
        graph = FieldGraph(config.fields)
        field = graph.require(field_id)
        parent = graph.require(parent_field_id)

        subtree = graph.descendant_ids(field_id)
        if parent.id == field.id or parent.id in subtree:
            raise CyclicDependencyError(
                f"Field {field_id} cannot depend on itself or one of its descendants",
                details={"field_id": field_id, "parent_field_id": parent.id}
            )
        if parent.type not in CONDITIONAL_PARENT_TYPES:
            raise ConditionalLogicNotSupportedError(
                f"{parent.type.value} fields cannot have conditional child fields",
                details={"field_id": parent.id, "field_type": parent.type.value}
            )

        new_level = graph.depth_of(parent.id) + 1
        if new_level + graph.subtree_height(field_id) > MAX_NESTING_LEVEL:
            raise NestingDepthExceededError(
                f"Attaching {field_id} under {parent.id} would exceed nesting level {MAX_NESTING_LEVEL}",
                details={"field_id": field_id, "parent_field_id": parent.id}
            )

        conditions = []
        if condition is not None:
            conditions = [self._check_rule(parse_condition(condition), parent)]

        moved = _with_logic(
            field,
            parent_field_id=parent.id,
            enabled=bool(conditions),
            conditions=conditions,
            nesting_level=new_level,
        )
        fields = _replace_field(config.fields, moved)
        block = [f for f in fields if f.id == field_id or f.id in subtree]
        fields = _insert_after_subtree(fields, graph, parent.id, block)
        if parent.parent_field_id is None and not (parent.conditional_logic and parent.conditional_logic.enabled):
            fields = _replace_field(fields, _with_logic(parent, enabled=True))
        saved = self._store(config, fields, expected_version)

        logger.info(
            f"Attached {field_id} under {parent.id}",
            extra={"form_id": form_id, "field_id": field_id, "parent_field_id": parent.id, "action": "attach"}
        )
        return saved

    def detach_field(
        self,
        form_id: str,
        field_id: str,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """Turn a conditional child into a root field"""
        config = self.get_form(form_id)
        graph = FieldGraph(config.fields)
        field = graph.require(field_id)

        if field.parent_field_id is None:
            raise ValidationError(
                f"Field {field_id} is not a conditional child",
                details={"field_id": field_id}
            )

        if graph.has_children(field_id):
            detached = _with_logic(field, parent_field_id=None, enabled=False, conditions=[], nesting_level=0)
        else:
            detached = field.model_copy(update={"conditional_logic": None})
        saved = self._store(config, _replace_field(config.fields, detached), expected_version)

        logger.info(
            f"Detached {field_id} from {field.parent_field_id}",
            extra={"form_id": form_id, "field_id": field_id, "parent_field_id": field.parent_field_id, "action": "detach"}
        )
        return saved

    # =========================================================================
    # Helpers
    # =========================================================================

    def _new_field(
        self,
        field_type: FieldType,
        label: str,
        placeholder: Optional[str],
        help_text: Optional[str],
        required: bool,
        options: Optional[List[str]]
    ) -> FormField:
        if not label or not label.strip():
            raise ValidationError("Please enter a field label")
        if options is not None and field_type not in OPTION_FIELD_TYPES:
            raise ValidationError(f"{field_type.value} fields do not have options")
        if field_type in (FieldType.DROPDOWN, FieldType.MULTISELECT) and not options:
            options = list(DEFAULT_OPTIONS)

        return FormField(
            id=generate_field_id(),
            type=field_type,
            label=label.strip(),
            placeholder=(placeholder or "").strip() or None,
            help_text=help_text,
            required=required,
            options=options,
            deletable=True,
        )

    def _find(self, config: FormConfiguration, field_id: str) -> FormField:
        return FieldGraph(config.fields).require(field_id)

    def _require_parent(self, graph: FieldGraph, field: FormField) -> FormField:
        if field.parent_field_id is None:
            raise InvalidConditionError(
                f"Field {field.id} is not a conditional child",
                details={"field_id": field.id}
            )
        parent = graph.get(field.parent_field_id)
        if parent is None:
            raise InvalidConditionError(
                f"Parent field {field.parent_field_id} of {field.id} no longer exists",
                details={"field_id": field.id, "parent_field_id": field.parent_field_id}
            )
        return parent

    def _check_rule(self, rule: Any, parent: FormField) -> Any:
        """Reject rules that can never apply to the parent"""
        if isinstance(rule, UnsupportedCondition):
            raise InvalidConditionError("Unrecognised condition rule", details={"condition": rule.raw})
        if not rule_fits_parent(rule, parent.type):
            raise InvalidConditionError(
                f"A {rule.type} condition cannot depend on a {parent.type.value} field",
                details={"parent_field_id": parent.id, "condition_type": rule.type}
            )
        if isinstance(rule, OptionCondition):
            _, unknown = prune_stale_options(rule, parent.options)
            if unknown:
                raise InvalidConditionError(
                    f"Options not offered by {parent.id}: {', '.join(unknown)}",
                    details={"parent_field_id": parent.id, "unknown_options": unknown}
                )
        return rule
