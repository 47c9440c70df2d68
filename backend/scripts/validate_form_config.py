"""
Script to validate a ticket form configuration

Usage:
    python scripts/validate_form_config.py form.json
    python scripts/validate_form_config.py --form-id default   # read from MongoDB
"""
import argparse
import json
import sys

from ticket_forms.domain.models import FormConfiguration
from ticket_forms.domain.errors import DomainError
from ticket_forms.engine import FormEngine
from ticket_forms.engine.condition_rules import describe_condition
from ticket_forms.services.form_builder_service import validate_fields


def load_config(args: argparse.Namespace) -> FormConfiguration:
    if args.form_id:
        from ticket_forms.repositories.form_config_repo import FormConfigRepository
        return FormConfigRepository().get_config_or_raise(args.form_id)

    with open(args.path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    # Accept a bare field list as well as a full configuration
    if isinstance(data, list):
        data = {"id": "local", "fields": data}
    return FormConfiguration.model_validate(data)


def print_hierarchy(config: FormConfiguration) -> None:
    print("=" * 60)
    print("FIELD HIERARCHY")
    print("=" * 60)

    try:
        view = FormEngine(config.fields).ordered_view(include_orphans=True)
    except DomainError as e:
        print(f"Cannot build hierarchy: {e.error_code} - {e.message}")
        return

    for entry in view:
        field = entry.field
        indent = "    " * entry.nesting_level
        marker = "*" if field.required else "-"
        line = f"{indent}{marker} {field.label or field.id} [{field.type.value}] ({field.id})"
        logic = field.conditional_logic
        if logic is not None and logic.parent_field_id:
            state = describe_condition(logic.condition) if logic.enabled else "always (conditions off)"
            line += f"  when {state}"
        if entry.orphaned:
            line += "  ORPHANED"
        if field.hidden:
            line += "  HIDDEN"
        print(line)


def print_report(config: FormConfiguration) -> bool:
    report = validate_fields(config.fields)

    print()
    print("=" * 60)
    print("VALIDATION RESULTS")
    print("=" * 60)

    for issue in report.errors:
        print(f"ERROR   {issue.type}: {issue.message}")
    for issue in report.warnings:
        print(f"WARNING {issue.type}: {issue.message}")

    print()
    print(f"{len(config.fields)} fields, {len(report.errors)} errors, {len(report.warnings)} warnings")
    return report.is_valid


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate a ticket form configuration")
    parser.add_argument("path", nargs="?", help="JSON file with a configuration or a field list")
    parser.add_argument("--form-id", help="Read the configuration from MongoDB instead")
    args = parser.parse_args()

    if not args.path and not args.form_id:
        parser.error("either a JSON file or --form-id is required")

    try:
        config = load_config(args)
    except (OSError, ValueError, DomainError) as e:
        print(f"Could not load form configuration: {e}")
        return 2

    print(f"Form: {config.name} ({config.id}) v{config.version}")
    print()
    print_hierarchy(config)
    return 0 if print_report(config) else 1


if __name__ == "__main__":
    sys.exit(main())
