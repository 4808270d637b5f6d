"""Tests for ErrorTranslator - verifies user-friendly error messages."""

import pytest

from taskpilot.errors import (
    AdvisoryServiceError,
    ErrorTranslator,
    MixedTaskTypesError,
    UserFriendlyError,
    format_error_message,
)


class TestProviderErrorTranslation:
    """Errors raised by the language model provider."""

    def test_authentication_error(self):
        translator = ErrorTranslator()
        error = Exception("AuthenticationError: Incorrect API key provided")

        result = translator.translate(error)

        assert isinstance(result, UserFriendlyError)
        assert result.title == "Advisory service rejected the credentials"
        assert any("llm.api_key" in action for action in result.actions)

    def test_rate_limit_error(self):
        result = ErrorTranslator().translate(Exception("Error code: 429 - Too Many Requests"))

        assert result.title == "Rate limit reached"

    def test_connection_error(self):
        result = ErrorTranslator().translate(ConnectionError("Connection refused by host"))

        assert result.title == "Cannot reach the advisory service"
        assert not result.show_technical


class TestEngineErrorTranslation:

    def test_engine_errors_keep_their_message(self):
        error = MixedTaskTypesError(["execute", "answer"])

        result = ErrorTranslator().translate(error)

        assert result.title == "MixedTaskTypesError"
        assert result.explanation == str(error)
        assert result.actions == []

    def test_unknown_error_shows_technical_details(self):
        result = ErrorTranslator().translate(KeyError("weird"))

        assert result.show_technical
        assert result.explanation.startswith("Unexpected error occurred:")


class TestFormatting:

    def test_format_for_cli_lists_actions(self):
        translator = ErrorTranslator()
        friendly = translator.translate(Exception("invalid api key"))

        output = translator.format_for_cli(friendly)

        assert "How to fix:" in output
        assert "  1. Set llm.api_key in your config file" in output
        assert "Technical details" not in output

    def test_format_for_cli_technical(self):
        translator = ErrorTranslator()

        output = translator.format_for_cli(translator.translate(ValueError("odd")))

        assert "ValueError" in output

    @pytest.mark.parametrize("error, expected", [
        (AdvisoryServiceError("Response was truncated"), "Response was truncated"),
        (Exception("rate limit hit"), "Rate limit reached: The advisory service is throttling requests."),
        (RuntimeError("kaboom"), "Unexpected error occurred: kaboom"),
    ])
    def test_format_error_message(self, error, expected):
        assert format_error_message(error) == expected
