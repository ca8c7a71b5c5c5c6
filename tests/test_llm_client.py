"""Tests for the provider HTTP client."""

import asyncio
import json

import httpx
import pytest

from engagimus.config import DispatchConfig
from engagimus.errors import FailureKind, ProviderError
from engagimus.generation.llm_client import (
    TEST_PROMPT,
    ProviderClient,
    test_provider as run_provider_test,
)
from engagimus.models import CompletionParams, Message, ProviderConfig


@pytest.fixture
def openai_provider() -> ProviderConfig:
    return ProviderConfig(
        id="groq",
        name="Groq",
        base_url="https://api.groq.com/openai/v1",
        model="llama-3.3-70b-versatile",
        api_key="gsk_test_0123456789abcdef",
    )


@pytest.fixture
def anthropic_provider() -> ProviderConfig:
    return ProviderConfig(
        id="anthropic",
        name="Anthropic",
        base_url="https://api.anthropic.com/v1",
        model="claude-3-5-haiku-latest",
        api_key="sk-ant-REDACTED",
    )


@pytest.fixture
def messages() -> list[Message]:
    return [
        Message(role="system", content="You write comments."),
        Message(role="user", content="Write one comment."),
    ]


@pytest.fixture
def mock_api_response():
    """OpenAI-compatible chat completion body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "llama-3.3-70b-versatile",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": "  Great point!  "},
            "finish_reason": "stop",
        }],
        "usage": {"prompt_tokens": 50, "completion_tokens": 5, "total_tokens": 55},
    }


def client_returning(handler) -> ProviderClient:
    """ProviderClient whose requests are served by handler."""
    return ProviderClient(DispatchConfig(timeout_seconds=5), transport=httpx.MockTransport(handler))


class TestRequestFormat:
    """Tests for the request each API format receives."""

    @pytest.mark.asyncio
    async def test_openai_compatible_request(self, openai_provider, messages, mock_api_response):
        """Should POST to /chat/completions with a bearer token and all messages."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=mock_api_response)

        async with client_returning(handler) as client:
            await client.complete(openai_provider, messages, CompletionParams(temperature=0.8, max_tokens=1500))

        assert seen["url"] == "https://api.groq.com/openai/v1/chat/completions"
        assert seen["auth"] == "Bearer gsk_test_0123456789abcdef"
        assert seen["body"]["model"] == "llama-3.3-70b-versatile"
        assert seen["body"]["temperature"] == 0.8
        assert seen["body"]["max_tokens"] == 1500
        assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_anthropic_request(self, anthropic_provider, messages):
        """Should use /messages, x-api-key and a separate system field."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "content": [{"type": "text", "text": "Hello there"}],
                "usage": {"input_tokens": 10, "output_tokens": 2},
            })

        async with client_returning(handler) as client:
            result = await client.complete(anthropic_provider, messages)

        assert seen["url"] == "https://api.anthropic.com/v1/messages"
        assert seen["headers"]["x-api-key"] == "sk-ant-REDACTED"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert "authorization" not in seen["headers"]
        assert seen["body"]["system"] == "You write comments."
        assert [m["role"] for m in seen["body"]["messages"]] == ["user"]
        assert result.content == "Hello there"
        assert result.usage.total_tokens == 12

    @pytest.mark.asyncio
    async def test_openrouter_headers(self, messages, mock_api_response):
        provider = ProviderConfig(
            id="openrouter",
            name="OpenRouter",
            base_url="https://openrouter.ai/api/v1",
            model="meta-llama/llama-3.3-70b-instruct:free",
            api_key="sk-or-test-0123456789abcdef",
        )
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            return httpx.Response(200, json=mock_api_response)

        config = DispatchConfig(app_title="Test App", app_url="https://example.test")
        async with ProviderClient(config, transport=httpx.MockTransport(handler)) as client:
            await client.complete(provider, messages)

        assert seen["headers"]["x-title"] == "Test App"
        assert seen["headers"]["http-referer"] == "https://example.test"


class TestComplete:
    """Tests for response handling."""

    @pytest.mark.asyncio
    async def test_success(self, openai_provider, messages, mock_api_response):
        async with client_returning(lambda r: httpx.Response(200, json=mock_api_response)) as client:
            result = await client.complete(openai_provider, messages)

        assert result.content == "Great point!"
        assert result.provider == "Groq"
        assert result.model == "llama-3.3-70b-versatile"
        assert result.usage.prompt_tokens == 50
        assert result.usage.total_tokens == 55

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,kind", [
        (429, FailureKind.RATE_LIMIT),
        (401, FailureKind.AUTH),
        (403, FailureKind.AUTH),
        (504, FailureKind.TIMEOUT),
        (500, FailureKind.OTHER),
    ])
    async def test_http_errors_classified(self, openai_provider, messages, status, kind):
        def handler(request):
            return httpx.Response(status, json={"error": {"message": "nope"}})

        async with client_returning(handler) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.complete(openai_provider, messages)

        assert exc_info.value.kind == kind
        assert exc_info.value.provider == "Groq"
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json_is_malformed(self, openai_provider, messages):
        async with client_returning(lambda r: httpx.Response(200, text="<html>oops</html>")) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.complete(openai_provider, messages)

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_empty_content_is_malformed(self, openai_provider, messages):
        body = {"choices": [{"message": {"role": "assistant", "content": "   "}}]}
        async with client_returning(lambda r: httpx.Response(200, json=body)) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.complete(openai_provider, messages)

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_missing_choices_is_malformed(self, openai_provider, messages):
        async with client_returning(lambda r: httpx.Response(200, json={"choices": []})) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.complete(openai_provider, messages)

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_transport_timeout(self, openai_provider, messages):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with client_returning(handler) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.complete(openai_provider, messages)

        assert exc_info.value.kind == FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_connection_error(self, openai_provider, messages):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_returning(handler) as client:
            with pytest.raises(ProviderError) as exc_info:
                await client.complete(openai_provider, messages)

        assert exc_info.value.kind == FailureKind.OTHER


class TestClientLifecycle:
    """Tests for client creation and cleanup."""

    @pytest.mark.asyncio
    async def test_reuses_client(self):
        client = ProviderClient()
        first = await client._get_client()
        second = await client._get_client()
        assert first is second
        await client.close()

    @pytest.mark.asyncio
    async def test_close(self):
        client = ProviderClient()
        await client._get_client()
        await client.close()
        assert client._client is None

    @pytest.mark.asyncio
    async def test_reset_closes_cached_client(self):
        client = ProviderClient()
        http_client = await client._get_client()

        await client.reset()

        assert http_client.is_closed
        assert client._client is None
        assert await client._get_client() is not http_client
        await client.close()

    @pytest.mark.asyncio
    async def test_reset_without_client(self):
        client = ProviderClient()
        await client.reset()
        assert client._client is None


class TestProviderTest:
    """Tests for the provider connection test."""

    @pytest.mark.asyncio
    async def test_success(self, openai_provider):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "Connection successful"}}],
            })

        client = client_returning(handler)
        result = await run_provider_test(openai_provider, client=client)
        await client.close()

        assert result.success is True
        assert result.response == "Connection successful"
        assert seen["body"]["messages"] == [{"role": "user", "content": TEST_PROMPT}]
        assert seen["body"]["max_tokens"] == 20

    @pytest.mark.asyncio
    async def test_failure_does_not_raise(self, openai_provider):
        client = client_returning(lambda r: httpx.Response(401, json={"error": "bad key"}))
        result = await run_provider_test(openai_provider, client=client)
        await client.close()

        assert result.success is False
        assert result.kind == FailureKind.AUTH
        assert "bad key" in result.message

    @pytest.mark.asyncio
    async def test_no_key(self, openai_provider):
        provider = ProviderConfig(
            id="groq", name="Groq", base_url=openai_provider.base_url, model="m", api_key="",
        )
        result = await run_provider_test(provider)

        assert result.success is False
        assert result.message == "No API key configured"

    @pytest.mark.asyncio
    async def test_timeout(self, openai_provider):
        client = ProviderClient()

        async def slow_complete(*args, **kwargs):
            await asyncio.sleep(5)

        client.complete = slow_complete
        result = await run_provider_test(openai_provider, client=client, timeout_seconds=0.05)

        assert result.success is False
        assert result.kind == FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_zero_timeout_is_respected(self, openai_provider):
        client = ProviderClient(DispatchConfig(test_timeout_seconds=30))

        async def slow_complete(*args, **kwargs):
            await asyncio.sleep(1)

        client.complete = slow_complete
        result = await run_provider_test(openai_provider, client=client, timeout_seconds=0)

        assert result.success is False
        assert result.kind == FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_inactive_provider_can_be_tested(self, openai_provider, mock_api_response):
        provider = ProviderConfig(
            id="groq",
            name="Groq",
            base_url=openai_provider.base_url,
            model=openai_provider.model,
            api_key=openai_provider.api_key,
            is_active=False,
        )
        client = client_returning(lambda r: httpx.Response(200, json=mock_api_response))
        result = await run_provider_test(provider, client=client)
        await client.close()

        assert result.success is True
