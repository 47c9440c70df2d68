"""Local Form Cache - Last known form configuration on disk"""
import json
import os
import re
from typing import Optional
from pydantic import ValidationError

from ..domain.models import FormConfiguration
from ..utils.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class LocalFormConfigCache:
    """
    JSON file per form configuration

    Refreshed on every successful read from MongoDB and served when the
    database cannot be reached. Cache problems are logged, never raised.
    """

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, form_id: str) -> str:
        return os.path.join(self.directory, f"{_UNSAFE_CHARS.sub('_', form_id)}.json")

    def read(self, form_id: str) -> Optional[FormConfiguration]:
        """Cached configuration or None"""
        path = self._path(form_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return FormConfiguration.model_validate(json.load(fh))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(
                f"Ignoring unreadable form cache {path}: {e}",
                extra={"form_id": form_id}
            )
            return None

    def write(self, config: FormConfiguration) -> None:
        """Replace the cached copy"""
        path = self._path(config.id)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(config.model_dump(mode="json"), fh, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning(
                f"Could not write form cache {path}: {e}",
                extra={"form_id": config.id}
            )

