"""Tests for cancellation tokens and the cancellation registry."""

import pytest

from wine_manager.installer.cancellation import CancellationRegistry, CancellationToken
from wine_manager.installer.errors import InstallAbortedError


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_starts_untriggered(self):
        token = CancellationToken()

        assert token.cancelled is False
        token.raise_if_cancelled()

    def test_cancel_sets_flag(self):
        """Cancelling should be observable and make raise_if_cancelled raise."""
        token = CancellationToken()
        token.cancel()

        assert token.cancelled is True
        with pytest.raises(InstallAbortedError) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.code == "aborted"


class TestCancellationRegistry:
    """Tests for CancellationRegistry."""

    def test_create_registers_token(self):
        registry = CancellationRegistry()
        token = registry.create("GE-Proton9-1")

        assert "GE-Proton9-1" in registry
        assert registry.get("GE-Proton9-1") is token
        assert len(registry) == 1

    def test_create_replaces_existing_token(self):
        """A second create under the same key should replace the first token."""
        registry = CancellationRegistry()
        first = registry.create("v")
        second = registry.create("v")

        assert first is not second
        assert registry.get("v") is second
        assert len(registry) == 1

    def test_cancel_triggers_registered_token(self):
        registry = CancellationRegistry()
        token = registry.create("v")

        assert registry.cancel("v") is True
        assert token.cancelled is True

    def test_cancel_unknown_key(self):
        assert CancellationRegistry().cancel("missing") is False

    def test_delete(self):
        """Delete should drop the token and tolerate missing keys."""
        registry = CancellationRegistry()
        registry.create("v")
        registry.delete("v")
        registry.delete("v")

        assert "v" not in registry
        assert registry.get("v") is None
        assert len(registry) == 0
