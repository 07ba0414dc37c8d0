"""
统一错误模块。
"""

from .errors import (
    ErrorSeverity,
    SlugRegistryError,
    InvalidSlugError,
    ReservedSlugError,
    SlugConflictError,
    StoreUnavailableError,
    DuplicateProfileError,
    SchemaNotReadyError,
    Result,
)

__all__ = [
    "ErrorSeverity",
    "SlugRegistryError",
    "InvalidSlugError",
    "ReservedSlugError",
    "SlugConflictError",
    "StoreUnavailableError",
    "DuplicateProfileError",
    "SchemaNotReadyError",
    "Result",
]
