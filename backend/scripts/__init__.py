"""
Backend Scripts Module

Available scripts:
    - validate_form_config.py: Prints the field hierarchy and the validation
      report of a form configuration

Usage:
    python -m scripts.validate_form_config form.json
"""
