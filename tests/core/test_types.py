"""Tests for core.types module."""

from core.auth.manager import CredentialManager
from core.types import CredentialSource, ErrorCategory


class TestErrorCategory:
    def test_values(self):
        assert ErrorCategory.TRANSIENT.value == "transient"
        assert ErrorCategory.AUTH.value == "auth"
        assert ErrorCategory.PERMANENT.value == "permanent"
        assert ErrorCategory.UNKNOWN.value == "unknown"

    def test_all_members(self):
        expected = {"TRANSIENT", "AUTH", "PERMANENT", "UNKNOWN"}
        assert set(ErrorCategory.__members__.keys()) == expected

    def test_from_value(self):
        assert ErrorCategory("transient") is ErrorCategory.TRANSIENT


class TestCredentialSource:
    def test_is_protocol(self):
        """CredentialSource is a Protocol; verify it has expected methods."""
        assert hasattr(CredentialSource, "get_valid_credential")
        assert hasattr(CredentialSource, "invalidate")

    def test_manager_provides_protocol_methods(self):
        assert callable(getattr(CredentialManager, "get_valid_credential"))
        assert callable(getattr(CredentialManager, "invalidate"))
