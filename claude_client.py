"""Claude API client wrapper with transient-error retries and token tracking."""

import time

from anthropic import Anthropic, APIConnectionError, APIError, APITimeoutError, RateLimitError
from rich.console import Console

from config_loader import get_anthropic_api_key

console = Console()

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_TIMEOUT = 30.0


class EmptyResponseError(Exception):
    """Raised when a reply carries no content blocks."""


class ClaudeClient:
    """Wrapper for Claude API with retry logic, temperature control, and token tracking.

    Transport-level retries cover rate limits and dropped connections only.
    Timeouts are raised straight away so the caller's attempt budget decides
    whether to try again.
    """

    def __init__(self, model: str | None = None, timeout: float | None = None):
        """Initialize the Claude client.

        Args:
            model: Optional model override. Defaults to DEFAULT_MODEL.
            timeout: Per-request timeout in seconds. Defaults to DEFAULT_TIMEOUT.
        """
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.client = Anthropic(api_key=get_anthropic_api_key(), timeout=self.timeout, max_retries=0)
        self.model = model or DEFAULT_MODEL
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    def complete(
        self,
        system: str,
        user: str,
        max_tokens: int = 1024,
        temperature: float | None = None,
        retry_count: int = 3,
        retry_delay: float = 1.0,
    ) -> str:
        """Make a Claude API call with retry logic.

        Args:
            system: System prompt
            user: User message content
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature; the API default when None
            retry_count: Number of tries on transient failures
            retry_delay: Initial delay between retries (doubles on each retry)

        Returns:
            The text content of Claude's response

        Raises:
            APITimeoutError: On timeout, without retrying
            EmptyResponseError: If the reply has no content
            APIError: If all retries fail
        """
        last_error = None
        delay = retry_delay

        params = {
            "model": self.model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }
        if temperature is not None:
            params["temperature"] = temperature

        for attempt in range(retry_count):
            try:
                response = self.client.messages.create(**params)

                # Track token usage
                self.total_input_tokens += response.usage.input_tokens
                self.total_output_tokens += response.usage.output_tokens

                if not response.content:
                    raise EmptyResponseError(f"Empty response from {self.model}")
                return response.content[0].text

            except APITimeoutError:
                raise

            except RateLimitError as e:
                last_error = e
                if attempt < retry_count - 1:
                    console.print(f"[yellow]Rate limited, waiting {delay}s...[/yellow]")
                    time.sleep(delay)
                    delay *= 2  # Exponential backoff

            except APIConnectionError as e:
                last_error = e
                if attempt < retry_count - 1:
                    console.print(f"[yellow]Connection error, retrying in {delay}s...[/yellow]")
                    time.sleep(delay)
                    delay *= 2

            except APIError as e:
                # Don't retry on client errors (4xx except rate limit)
                status_code = getattr(e, "status_code", None)
                if status_code and 400 <= status_code < 500 and status_code != 429:
                    raise
                last_error = e
                if attempt < retry_count - 1:
                    console.print(f"[yellow]API error, retrying in {delay}s...[/yellow]")
                    time.sleep(delay)
                    delay *= 2

        # All retries exhausted
        raise last_error

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage for this client instance."""
        return {
            "input_tokens": self.total_input_tokens,
            "output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens,
        }
