"""Tests for the Claude client wrapper."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from anthropic import APITimeoutError, RateLimitError

from claude_client import ClaudeClient, EmptyResponseError

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _message(text="ok", input_tokens=10, output_tokens=5):
    message = MagicMock()
    message.content = [MagicMock(text=text)]
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    return message


@pytest.fixture
def sdk():
    """Patched Anthropic SDK client."""
    with patch("claude_client.Anthropic") as anthropic_cls:
        yield anthropic_cls.return_value


@pytest.fixture
def claude(sdk, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    return ClaudeClient(model="claude-test", timeout=5)


class TestComplete:
    """Tests for ClaudeClient.complete."""

    def test_passes_temperature_and_tracks_tokens(self, claude, sdk):
        sdk.messages.create.return_value = _message("Developed backend services")

        assert claude.complete(system="sys", user="usr", max_tokens=300, temperature=0.2) == (
            "Developed backend services"
        )
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["temperature"] == 0.2
        assert kwargs["model"] == "claude-test"
        assert claude.get_token_usage()["total_tokens"] == 15

    def test_temperature_omitted_when_unset(self, claude, sdk):
        sdk.messages.create.return_value = _message()
        claude.complete(system="sys", user="usr")
        assert "temperature" not in sdk.messages.create.call_args.kwargs

    def test_timeout_is_not_retried(self, claude, sdk):
        sdk.messages.create.side_effect = APITimeoutError(request=REQUEST)
        with pytest.raises(APITimeoutError):
            claude.complete(system="sys", user="usr")
        assert sdk.messages.create.call_count == 1

    def test_empty_content_raises(self, claude, sdk):
        message = _message()
        message.content = []
        sdk.messages.create.return_value = message

        with pytest.raises(EmptyResponseError):
            claude.complete(system="sys", user="usr")
        assert sdk.messages.create.call_count == 1

    @patch("claude_client.time.sleep")
    def test_rate_limit_is_retried(self, sleep, claude, sdk):
        rate_limited = RateLimitError(
            "rate limited", response=httpx.Response(429, request=REQUEST), body=None
        )
        sdk.messages.create.side_effect = [rate_limited, _message("done")]

        assert claude.complete(system="sys", user="usr", retry_delay=0.5) == "done"
        sleep.assert_called_once_with(0.5)

    def test_missing_api_key(self, sdk, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError):
            ClaudeClient()
