"""Form Configuration Repository - Data access for ticket-intake forms"""
from typing import Any, Dict, Optional
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError
from pydantic import ValidationError

from .mongo_client import get_collection
from .form_cache import LocalFormConfigCache
from ..config.settings import settings
from ..domain.models import FormConfiguration
from ..domain.errors import (
    FormConfigNotFoundError, ConcurrencyError, AlreadyExistsError,
    FormConfigUnavailableError, StructuralIntegrityError
)
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FormConfigRepository:
    """Repository for form configurations, with a local cache fallback"""

    def __init__(
        self,
        collection: Optional[Collection] = None,
        cache: Optional[LocalFormConfigCache] = None
    ):
        self._configs = collection if collection is not None else get_collection(settings.form_config_collection)
        self._cache = cache if cache is not None else LocalFormConfigCache(settings.form_cache_path)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_config(self, form_id: str) -> Optional[FormConfiguration]:
        """
        Get form configuration by ID

        Falls back to the local cache when MongoDB is unreachable.

        Raises:
            FormConfigUnavailableError: Database down and nothing cached
        """
        try:
            doc = self._configs.find_one({"id": form_id})
        except PyMongoError as e:
            cached = self._cache.read(form_id)
            if cached is None:
                logger.error(
                    f"Form store unavailable and no cached copy of {form_id}: {e}",
                    extra={"form_id": form_id}
                )
                raise FormConfigUnavailableError(
                    f"Form configuration {form_id} is unavailable",
                    details={"form_id": form_id}
                )
            logger.warning(
                f"Form store unavailable, serving cached {form_id} v{cached.version}: {e}",
                extra={"form_id": form_id, "version": cached.version}
            )
            return cached

        if not doc:
            return None

        config = self._to_model(doc)
        self._cache.write(config)
        return config

    def get_config_or_raise(self, form_id: str) -> FormConfiguration:
        """Get form configuration by ID or raise error"""
        config = self.get_config(form_id)
        if not config:
            raise FormConfigNotFoundError(
                f"Form configuration {form_id} not found",
                details={"form_id": form_id}
            )
        return config

    def _to_model(self, doc: Dict[str, Any]) -> FormConfiguration:
        doc = dict(doc)
        doc.pop("_id", None)
        form_id = doc.get("id")
        try:
            return FormConfiguration.model_validate(doc)
        except ValidationError as e:
            logger.error(
                f"Corrupted form configuration {form_id}. Validation failed: {str(e)[:500]}",
                extra={"form_id": form_id}
            )
            raise StructuralIntegrityError(
                f"Stored form configuration {form_id} is invalid",
                details={"form_id": form_id, "error_count": len(e.errors())}
            )

    # =========================================================================
    # Writes
    # =========================================================================

    def create_config(self, config: FormConfiguration) -> FormConfiguration:
        """Insert a new form configuration"""
        now = utc_now()
        config = config.model_copy(update={"created_at": now, "updated_at": now})
        doc = config.model_dump(mode="json")
        doc["_id"] = config.id

        try:
            self._configs.insert_one(doc)
        except DuplicateKeyError:
            raise AlreadyExistsError(
                f"Form configuration {config.id} already exists",
                details={"form_id": config.id}
            )

        logger.info(f"Created form configuration: {config.id}", extra={"form_id": config.id})
        self._cache.write(config)
        return config

    def save_config(
        self,
        config: FormConfiguration,
        expected_version: Optional[int] = None
    ) -> FormConfiguration:
        """
        Replace name and fields with optimistic concurrency

        Args:
            config: Configuration carrying the new catalog
            expected_version: Version the caller edited; None skips the check

        Returns:
            Stored configuration with the bumped version
        """
        filter_query: Dict[str, Any] = {"id": config.id}
        if expected_version is not None:
            filter_query["version"] = expected_version

        updates = {
            "name": config.name,
            "fields": [field.model_dump(mode="json") for field in config.fields],
            "updated_at": utc_now().isoformat(),
        }

        result = self._configs.find_one_and_update(
            filter_query,
            {"$set": updates, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if expected_version is not None and self._configs.find_one({"id": config.id}):
                raise ConcurrencyError(
                    f"Form configuration {config.id} was modified. Please refresh and try again.",
                    details={"form_id": config.id, "expected_version": expected_version}
                )
            raise FormConfigNotFoundError(
                f"Form configuration {config.id} not found",
                details={"form_id": config.id}
            )

        saved = self._to_model(result)
        logger.info(
            f"Saved form configuration: {config.id} v{saved.version}",
            extra={"form_id": config.id, "version": saved.version}
        )
        self._cache.write(saved)
        return saved
