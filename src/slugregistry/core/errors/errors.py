"""
统一错误与 Result 封装：冲突、保留名与存储不可用按严重级别区分。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, TypeVar, Union, cast


class ErrorSeverity(Enum):
    WARNING = "warning"      # 用户可修正
    ERROR = "error"          # 单次操作失败
    CRITICAL = "critical"    # 存储不可用


@dataclass
class SlugRegistryError(Exception):
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: str = "UNKNOWN"
    context: Dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass
class InvalidSlugError(SlugRegistryError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "INVALID_SLUG"


@dataclass
class ReservedSlugError(SlugRegistryError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "RESERVED_SLUG"


@dataclass
class SlugConflictError(SlugRegistryError):
    code: str = "SLUG_CONFLICT"

    @property
    def current_owner(self) -> str | None:
        return (self.context or {}).get("current_owner")


@dataclass
class StoreUnavailableError(SlugRegistryError):
    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    code: str = "STORE_UNAVAILABLE"


@dataclass
class DuplicateProfileError(SlugRegistryError):
    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "PROFILE_EXISTS"


@dataclass
class SchemaNotReadyError(SlugRegistryError):
    """主存储缺少 public_slug 列/索引/别名表；由路由层捕获并降级。"""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "SCHEMA_DEGRADED"


T = TypeVar("T")
E = TypeVar("E", bound=SlugRegistryError)


@dataclass
class Result(Generic[T, E]):
    """函数式结果封装，避免散落的 status 字典。"""

    _value: Union[T, E]
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(_value=value, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(_value=error, _is_ok=False)

    def is_ok(self) -> bool:
        return self._is_ok

    @property
    def error(self) -> E | None:
        return None if self._is_ok else cast(E, self._value)

    def unwrap(self) -> T:
        if not self._is_ok:
            raise cast(E, self._value)
        return cast(T, self._value)

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default
