"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .form_cache import LocalFormConfigCache
from .form_config_repo import FormConfigRepository

__all__ = [
    "get_database",
    "get_collection",
    "LocalFormConfigCache",
    "FormConfigRepository",
]
