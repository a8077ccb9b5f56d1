"""Tests for expectation evaluation."""

import pytest

from testharness.models.expectation import (
    NO_PANIC_MESSAGE,
    MustPanic,
    MustPanicContaining,
    MustPass,
    evaluate,
)


class TestMustPass:
    """Tests for MustPass."""

    def test_passes_without_panic(self) -> None:
        """Passes when nothing was raised."""
        verdict = evaluate(MustPass(), panicked=False, message=None)

        assert verdict.passed
        assert verdict.message is None

    def test_fails_with_panic_message(self) -> None:
        """Fails carrying the message of the raised failure."""
        verdict = evaluate(MustPass(), panicked=True, message="AssertionError: boom")

        assert not verdict.passed
        assert verdict.message == "AssertionError: boom"


class TestMustPanic:
    """Tests for MustPanic."""

    @pytest.mark.parametrize("message", [None, "", "anything at all"])
    def test_passes_on_any_panic(self, message: str | None) -> None:
        """Passes whatever the panic message is."""
        assert evaluate(MustPanic(), panicked=True, message=message).passed

    def test_fails_without_panic(self) -> None:
        """Fails with a fixed message when nothing was raised."""
        verdict = evaluate(MustPanic(), panicked=False, message=None)

        assert not verdict.passed
        assert verdict.message == "test did not panic as expected"


class TestMustPanicContaining:
    """Tests for MustPanicContaining."""

    def test_passes_when_message_contains_substring(self) -> None:
        """Passes when the message is a superstring of the expected text."""
        verdict = evaluate(
            MustPanicContaining("assertion failed"),
            panicked=True,
            message="assertion failed: false",
        )

        assert verdict.passed

    def test_fails_when_message_lacks_substring(self) -> None:
        """Fails citing both the expected substring and the actual message."""
        verdict = evaluate(
            MustPanicContaining("assertion failed"), panicked=True, message="boom"
        )

        assert not verdict.passed
        assert verdict.message is not None
        assert "panic did not contain expected string" in verdict.message
        assert '"assertion failed"' in verdict.message
        assert '"boom"' in verdict.message

    def test_match_is_case_sensitive(self) -> None:
        """Substring matching respects case."""
        verdict = evaluate(
            MustPanicContaining("Boom"), panicked=True, message="ValueError: boom"
        )

        assert not verdict.passed

    def test_fails_without_panic(self) -> None:
        """Fails noting that no failure occurred."""
        verdict = evaluate(MustPanicContaining("x"), panicked=False, message=None)

        assert not verdict.passed
        assert verdict.message == NO_PANIC_MESSAGE

    def test_empty_substring_matches_any_panic(self) -> None:
        """An empty expected string accepts any panic."""
        assert evaluate(MustPanicContaining(""), panicked=True, message=None).passed
