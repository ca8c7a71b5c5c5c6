"""HTTP client for provider chat-completion endpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Sequence

import httpx

from engagimus.config import DispatchConfig
from engagimus.errors import FailureKind, ProviderError
from engagimus.models import (
    CompletionParams,
    CompletionResult,
    Message,
    ProviderConfig,
    TokenUsage,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

TEST_PROMPT = 'Say "Connection successful" and nothing else.'


@dataclass
class ProviderTestResult:
    """Outcome of a provider connection test."""
    success: bool
    message: str
    response: str = ""
    kind: FailureKind | None = None


class ProviderClient:
    """
    Client for a single chat-completion call against one provider.

    OpenAI-compatible providers use /chat/completions with a bearer token.
    Anthropic uses /messages with its own headers and a separate system field.
    Every failure is raised as ProviderError with a FailureKind so the
    dispatcher can record it and move on.

    Usage:
        async with ProviderClient(DispatchConfig()) as client:
            result = await client.complete(provider, messages, CompletionParams())
            print(result.content)
    """

    def __init__(
        self,
        config: DispatchConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize client with configuration.

        Args:
            config: Dispatch configuration (timeouts, OpenRouter headers)
            transport: Optional httpx transport, used by tests
        """
        self.config = config or DispatchConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def reset(self) -> None:
        """
        Drop any cached HTTP client so the next call builds one on the running loop.

        A client left over from an earlier asyncio.run() is bound to a loop
        that is already closed; closing it may fail and is then skipped.
        """
        client, self._client = self._client, None
        if client is None or client.is_closed:
            return
        try:
            await client.aclose()
        except RuntimeError as e:
            logger.debug("Discarded HTTP client from a closed event loop: %s", e)

    def _build_request(
        self,
        provider: ProviderConfig,
        messages: Sequence[Message],
        params: CompletionParams,
    ) -> tuple[str, dict, dict]:
        """Return (url, headers, payload) for the provider's API format."""
        base_url = provider.base_url.rstrip("/")

        if provider.is_anthropic:
            system = next((m.content for m in messages if m.role == "system"), "")
            return (
                f"{base_url}/messages",
                {
                    "x-api-key": provider.api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
                {
                    "model": provider.model,
                    "max_tokens": params.max_tokens,
                    "system": system,
                    "messages": [m.to_dict() for m in messages if m.role != "system"],
                },
            )

        headers = {"Authorization": f"Bearer {provider.api_key}"}
        if provider.is_openrouter:
            headers["HTTP-Referer"] = self.config.app_url
            headers["X-Title"] = self.config.app_title

        return (
            f"{base_url}/chat/completions",
            headers,
            {
                "model": provider.model,
                "messages": [m.to_dict() for m in messages],
                "temperature": params.temperature,
                "max_tokens": params.max_tokens,
            },
        )

    async def complete(
        self,
        provider: ProviderConfig,
        messages: Sequence[Message],
        params: CompletionParams | None = None,
    ) -> CompletionResult:
        """
        Send one completion request.

        Args:
            provider: Provider to call
            messages: Ordered chat messages
            params: Temperature and token limit

        Returns:
            CompletionResult with the completion text

        Raises:
            ProviderError: On timeout, HTTP error, or malformed response
        """
        params = params or CompletionParams(
            temperature=self.config.default_temperature,
            max_tokens=self.config.default_max_tokens,
        )
        url, headers, payload = self._build_request(provider, messages, params)
        start_time = time.monotonic()

        client = await self._get_client()
        try:
            response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise ProviderError("Request timed out", FailureKind.TIMEOUT, provider.name) from e
        except httpx.RequestError as e:
            raise ProviderError(f"Request failed: {e}", FailureKind.OTHER, provider.name) from e

        if response.is_error:
            raise _classify_http_error(response, provider)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                "Response body is not valid JSON",
                FailureKind.MALFORMED_RESPONSE,
                provider.name,
            ) from e

        content = _extract_content(data, provider)
        if not content:
            raise ProviderError(
                "Empty response content",
                FailureKind.MALFORMED_RESPONSE,
                provider.name,
            )

        latency = time.monotonic() - start_time
        usage = _parse_usage(data)

        logger.debug(
            "Completion from %s: model=%s, chars=%d, tokens=%d, latency=%.1fs",
            provider.name,
            provider.model,
            len(content),
            usage.total_tokens,
            latency,
        )

        return CompletionResult(
            content=content,
            provider=provider.name,
            model=provider.model,
            duration_seconds=latency,
            usage=usage,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _classify_http_error(response: httpx.Response, provider: ProviderConfig) -> ProviderError:
    """Map an HTTP error response to a ProviderError."""
    try:
        error_data = response.json()
    except ValueError:
        error_data = {}

    detail = ""
    if isinstance(error_data, dict):
        error = error_data.get("error")
        if isinstance(error, dict):
            detail = error.get("message", "")
        elif isinstance(error, str):
            detail = error
    detail = detail or response.reason_phrase or f"HTTP {response.status_code}"

    status = response.status_code
    if status == 429:
        return ProviderError(f"Rate limit exceeded: {detail}", FailureKind.RATE_LIMIT, provider.name)
    if status in (401, 403):
        return ProviderError(f"Authentication failed: {detail}", FailureKind.AUTH, provider.name)
    if status in (408, 504):
        return ProviderError(f"Gateway timeout: {detail}", FailureKind.TIMEOUT, provider.name)
    return ProviderError(f"API error {status}: {detail}", FailureKind.OTHER, provider.name)


def _extract_content(data: object, provider: ProviderConfig) -> str:
    """Pull completion text out of either response format."""
    if not isinstance(data, dict):
        return ""

    try:
        if provider.is_anthropic:
            blocks = data.get("content") or []
            text = blocks[0].get("text", "") if blocks else ""
        else:
            choices = data.get("choices") or []
            text = choices[0].get("message", {}).get("content", "") if choices else ""
    except (AttributeError, IndexError, TypeError):
        return ""

    return text.strip() if isinstance(text, str) else ""


def _parse_usage(data: dict) -> TokenUsage:
    """
    Parse token usage from either response format.

    OpenAI-compatible APIs report prompt_tokens/completion_tokens;
    Anthropic reports input_tokens/output_tokens.
    """
    usage_data = data.get("usage") or {}
    if not isinstance(usage_data, dict):
        return TokenUsage()

    input_tokens = usage_data.get("prompt_tokens", usage_data.get("input_tokens", 0)) or 0
    output_tokens = usage_data.get("completion_tokens", usage_data.get("output_tokens", 0)) or 0
    total_tokens = usage_data.get("total_tokens", input_tokens + output_tokens) or 0

    return TokenUsage(
        prompt_tokens=input_tokens,
        completion_tokens=output_tokens,
        total_tokens=total_tokens,
    )


async def test_provider(
    provider: ProviderConfig,
    client: ProviderClient | None = None,
    timeout_seconds: float | None = None,
) -> ProviderTestResult:
    """
    Send one minimal completion to check a provider's configuration.

    Never raises for provider errors and has no effect on dispatch order.

    Args:
        provider: Provider to test (need not be active)
        client: Optional client to reuse
        timeout_seconds: Overrides the configured test timeout

    Returns:
        ProviderTestResult with success flag and a human message
    """
    if not provider.has_key:
        return ProviderTestResult(
            success=False,
            message="No API key configured",
            kind=FailureKind.AUTH,
        )

    owns_client = client is None
    if client is None:
        client = ProviderClient()
    timeout = client.config.test_timeout_seconds if timeout_seconds is None else timeout_seconds

    try:
        result = await asyncio.wait_for(
            client.complete(
                provider,
                [Message(role="user", content=TEST_PROMPT)],
                CompletionParams(temperature=0.0, max_tokens=20),
            ),
            timeout,
        )
    except ProviderError as e:
        logger.info("Provider test failed for %s: %s", provider.name, e)
        return ProviderTestResult(success=False, message=str(e), kind=e.kind)
    except asyncio.TimeoutError:
        logger.info("Provider test timed out for %s", provider.name)
        return ProviderTestResult(
            success=False,
            message="Request timed out",
            kind=FailureKind.TIMEOUT,
        )
    finally:
        if owns_client:
            await client.close()

    logger.info("Provider test succeeded for %s", provider.name)
    return ProviderTestResult(
        success=True,
        message="Connection successful",
        response=result.content,
    )


# pytest would otherwise collect test_provider as a test function
test_provider.__test__ = False

