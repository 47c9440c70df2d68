"""
Pytest Configuration and Fixtures

Shared fixtures: an in-memory form store, services wired to it and an
API client with the service dependencies overridden.
"""

import pytest
from fastapi.testclient import TestClient

from ticket_forms.repositories.form_cache import LocalFormConfigCache
from ticket_forms.repositories.form_config_repo import FormConfigRepository
from ticket_forms.services.form_builder_service import FormBuilderService
from ticket_forms.services.ticket_form_service import TicketFormService, EngineCache

from tests.factories import FakeCollection


@pytest.fixture
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def form_cache(tmp_path) -> LocalFormConfigCache:
    return LocalFormConfigCache(str(tmp_path / "form_cache"))


@pytest.fixture
def repo(collection, form_cache) -> FormConfigRepository:
    return FormConfigRepository(collection=collection, cache=form_cache)


@pytest.fixture
def builder(repo) -> FormBuilderService:
    return FormBuilderService(repo=repo)


@pytest.fixture
def engine_cache() -> EngineCache:
    return EngineCache(max_size=4)


@pytest.fixture
def ticket_forms(repo, engine_cache) -> TicketFormService:
    return TicketFormService(repo=repo, engine_cache=engine_cache)


@pytest.fixture
def client(builder, ticket_forms):
    from ticket_forms.main import app
    from ticket_forms.api.deps import get_form_builder_service, get_ticket_form_service

    app.dependency_overrides[get_form_builder_service] = lambda: builder
    app.dependency_overrides[get_ticket_form_service] = lambda: ticket_forms
    # No context manager: the lifespan would try to reach MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()
