"""Tests for the resolution exception hierarchy and status classification."""

import pytest

from core.errors.exceptions import (
    AuthorizationRejectedError,
    CredentialUnavailableError,
    ErrorCategory,
    ResolutionError,
    TerminalFailureError,
    TransientFailureError,
    classify_exception,
    classify_http_status,
    error_for_status,
    is_transient_error,
)


class TestResolutionError:
    """Tests for the base exception."""

    def test_message_and_context(self):
        """Should keep message, cause and context."""
        cause = ValueError("boom")
        error = ResolutionError("failed", cause=cause, context={"status_code": 418})

        assert error.message == "failed"
        assert error.cause is cause
        assert error.status_code == 418
        assert "Caused by: boom" in str(error)

    def test_status_code_defaults_to_none(self):
        assert ResolutionError("failed").status_code is None

    @pytest.mark.parametrize(
        "error_class,category",
        [
            (CredentialUnavailableError, ErrorCategory.AUTH),
            (AuthorizationRejectedError, ErrorCategory.AUTH),
            (TransientFailureError, ErrorCategory.TRANSIENT),
            (TerminalFailureError, ErrorCategory.PERMANENT),
        ],
    )
    def test_categories(self, error_class, category):
        """Each subclass carries its retry category."""
        error = error_class("x")
        assert error.category == category
        assert classify_exception(error) == category

    def test_only_transient_is_retryable(self):
        assert TransientFailureError("x").is_retryable
        assert not AuthorizationRejectedError("x").is_retryable
        assert not TerminalFailureError("x").is_retryable

    def test_is_transient_error(self):
        assert is_transient_error(TransientFailureError("x"))
        assert not is_transient_error(TerminalFailureError("x"))

    def test_classify_foreign_exception(self):
        assert classify_exception(RuntimeError("x")) == ErrorCategory.UNKNOWN


class TestClassifyHttpStatus:
    """Tests for resource-endpoint status classification."""

    def test_success_is_not_an_error(self):
        assert classify_http_status(200) == ErrorCategory.UNKNOWN

    def test_401_is_auth(self):
        assert classify_http_status(401) == ErrorCategory.AUTH

    def test_503_is_the_only_transient_status(self):
        assert classify_http_status(503) == ErrorCategory.TRANSIENT
        for status in (429, 500, 502, 504):
            assert classify_http_status(status) == ErrorCategory.PERMANENT

    @pytest.mark.parametrize("status", [400, 403, 404, 410])
    def test_client_errors_are_permanent(self, status):
        assert classify_http_status(status) == ErrorCategory.PERMANENT


class TestErrorForStatus:
    """Tests for building typed errors from statuses."""

    def test_401(self):
        error = error_for_status(401, "https://assets.example.com/a.jpg")
        assert isinstance(error, AuthorizationRejectedError)
        assert error.status_code == 401
        assert error.context["url"] == "https://assets.example.com/a.jpg"

    def test_503(self):
        error = error_for_status(503, "u")
        assert isinstance(error, TransientFailureError)

    def test_404(self):
        error = error_for_status(404, "u")
        assert isinstance(error, TerminalFailureError)
        assert str(error) == "Failed to load secure asset (404)"
