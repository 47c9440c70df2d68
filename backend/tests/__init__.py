"""
Test Suite

Tests for the Ticket Forms backend.

Structure:
    tests/
    ├── __init__.py                     # This file
    ├── conftest.py                     # Pytest fixtures
    ├── factories.py                    # Field builders, in-memory collection
    ├── test_condition_evaluator.py     # Engine
    ├── test_field_graph.py
    ├── test_visibility_resolver.py
    ├── test_hierarchy_orderer.py
    ├── test_value_controller.py
    ├── test_condition_rules.py
    ├── test_form_config_repo.py        # Repository and local cache
    ├── test_form_builder_service.py    # Services
    ├── test_ticket_form_service.py
    └── test_api.py                     # HTTP endpoints

To run tests:
    pytest
    pytest backend/tests/test_api.py
"""
