"""
错误处理单元测试
"""

import pytest

from slugregistry.core.errors import (
    ErrorSeverity,
    InvalidSlugError,
    ReservedSlugError,
    Result,
    SchemaNotReadyError,
    SlugConflictError,
    SlugRegistryError,
    StoreUnavailableError,
)


class TestErrorSeverity:
    """ErrorSeverity 测试"""

    def test_severity_values(self):
        assert ErrorSeverity.WARNING.value == "warning"
        assert ErrorSeverity.ERROR.value == "error"
        assert ErrorSeverity.CRITICAL.value == "critical"


class TestSlugRegistryError:
    """SlugRegistryError 测试"""

    def test_error_str(self):
        err = SlugRegistryError(message="Test error", code="TEST")
        assert "[TEST] Test error" in str(err)

    def test_error_with_context(self):
        err = SlugRegistryError(message="Failed", context={"key": "value"})
        assert err.context == {"key": "value"}


class TestSpecificErrors:
    """特定错误类型测试"""

    def test_codes_and_severity(self):
        assert InvalidSlugError(message="x").code == "INVALID_SLUG"
        assert ReservedSlugError(message="x").code == "RESERVED_SLUG"
        assert SchemaNotReadyError(message="x").code == "SCHEMA_DEGRADED"
        unavailable = StoreUnavailableError(message="down")
        assert unavailable.code == "STORE_UNAVAILABLE"
        assert unavailable.severity == ErrorSeverity.CRITICAL

    def test_conflict_exposes_current_owner(self):
        err = SlugConflictError(message="taken", context={"slug": "ann", "current_owner": "u1"})
        assert err.code == "SLUG_CONFLICT"
        assert err.current_owner == "u1"
        assert SlugConflictError(message="taken").current_owner is None

    def test_errors_are_raisable(self):
        with pytest.raises(SlugRegistryError):
            raise ReservedSlugError(message="admin is reserved")


class TestResult:
    """Result 测试"""

    def test_ok_result(self):
        result = Result.ok(42)
        assert result.is_ok()
        assert result.unwrap() == 42
        assert result.error is None

    def test_err_result(self):
        error = SlugConflictError(message="taken")
        result = Result.err(error)
        assert not result.is_ok()
        assert result.error is error
        assert result.unwrap_or("fallback") == "fallback"

    def test_unwrap_err_raises(self):
        result = Result.err(SlugConflictError(message="taken"))
        with pytest.raises(SlugConflictError):
            result.unwrap()
