"""
Unit tests for OpenAI client.

Tests the vision completion call against a mocked HTTP transport and a
mocked SDK client.
"""

import json
from typing import Any, Callable, Dict, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIStatusError, AsyncOpenAI

from mealscan.domain.shared.errors import UpstreamHTTPError
from mealscan.infrastructure.ai.openai_client import OpenAIClient

MESSAGES = [{"role": "user", "content": "Describe the meal"}]


def sdk_client(handler: Callable[[httpx.Request], httpx.Response]) -> AsyncOpenAI:
    """AsyncOpenAI wired to an in-process transport."""
    return AsyncOpenAI(
        api_key="test-key",
        base_url="https://upstream.test/v1",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def mock_openai_client() -> AsyncMock:
    """Mock AsyncOpenAI client."""
    client = AsyncMock()
    client.close = AsyncMock()
    return client


class TestOpenAIClientInit:
    """Construction and lifecycle."""

    def test_init_with_api_key(self) -> None:
        client = OpenAIClient(api_key="test-key-123")

        assert client.api_key == "test-key-123"
        assert client.model == "gpt-4o-mini"
        assert client.timeout == 30.0
        assert client.base_url is None

    def test_init_with_custom_params(self) -> None:
        client = OpenAIClient(
            api_key="test-key",
            model="gpt-4o",
            timeout=10.0,
            base_url="https://proxy.internal/v1",
        )

        assert client.model == "gpt-4o"
        assert client.timeout == 10.0
        assert client.base_url == "https://proxy.internal/v1"

    def test_init_without_api_key_raises_error(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="OPENAI_API_KEY not found"):
                OpenAIClient()

    def test_init_reads_from_env(self) -> None:
        with patch.dict("os.environ", {"OPENAI_API_KEY": "env-key-456"}):
            client = OpenAIClient()
            assert client.api_key == "env-key-456"

    @pytest.mark.asyncio
    async def test_context_manager_closes_injected_client(self, mock_openai_client: AsyncMock) -> None:
        async with OpenAIClient(client=mock_openai_client) as client:
            assert client._client is mock_openai_client

        mock_openai_client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_sdk_client_created_lazily_without_retries(self) -> None:
        client = OpenAIClient(api_key="sk-lazy")
        assert client._client is None

        sdk = client._ensure_client()
        assert isinstance(sdk, AsyncOpenAI)
        assert sdk.max_retries == 0
        assert client._ensure_client() is sdk

        await client.aclose()
        assert client._client is None


class TestOpenAIClientComplete:
    """Completion calls over a mocked transport."""

    @pytest.mark.asyncio
    async def test_complete_returns_content_usage_and_raw_body(
        self, completion_body: Callable[[Optional[str]], Dict[str, Any]]
    ) -> None:
        body = completion_body('{"confidence": 0.5}')
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=body)

        async with OpenAIClient(client=sdk_client(handler), model="gpt-4o-mini") as client:
            response = await client.complete(
                messages=MESSAGES,
                response_format={"type": "json_object"},
                temperature=0.2,
                max_tokens=900,
            )

        assert response["content"] == '{"confidence": 0.5}'
        assert response["finish_reason"] == "stop"
        assert response["usage"] == {
            "prompt_tokens": 900,
            "completion_tokens": 250,
            "total_tokens": 1150,
        }
        assert json.loads(response["raw_text"]) == body

        sent = json.loads(requests[0].content)
        assert requests[0].url.path == "/v1/chat/completions"
        assert sent["model"] == "gpt-4o-mini"
        assert sent["temperature"] == 0.2
        assert sent["max_tokens"] == 900
        assert sent["response_format"] == {"type": "json_object"}
        assert sent["messages"] == MESSAGES

    @pytest.mark.asyncio
    async def test_complete_omits_response_format_when_not_given(
        self, completion_body: Callable[[Optional[str]], Dict[str, Any]]
    ) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=completion_body("hi"))

        async with OpenAIClient(client=sdk_client(handler)) as client:
            await client.complete(messages=MESSAGES)

        assert "response_format" not in json.loads(requests[0].content)

    @pytest.mark.asyncio
    async def test_null_content_becomes_empty_string(
        self, completion_body: Callable[[Optional[str]], Dict[str, Any]]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=completion_body(None))

        async with OpenAIClient(client=sdk_client(handler)) as client:
            response = await client.complete(messages=MESSAGES)

        assert response["content"] == ""
        assert '"chatcmpl-test"' in response["raw_text"]

    @pytest.mark.asyncio
    async def test_body_without_choices_yields_empty_content(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "chatcmpl-x", "object": "chat.completion"})

        async with OpenAIClient(client=sdk_client(handler)) as client:
            response = await client.complete(messages=MESSAGES)

        assert response["content"] == ""
        assert response["finish_reason"] is None
        assert response["usage"]["total_tokens"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 429, 500, 503])
    async def test_non_2xx_raises_upstream_http_error(self, status: int) -> None:
        error_body = '{"error": {"message": "upstream says no"}}'

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text=error_body)

        async with OpenAIClient(client=sdk_client(handler)) as client:
            with pytest.raises(UpstreamHTTPError) as exc_info:
                await client.complete(messages=MESSAGES)

        assert exc_info.value.status_code == status
        assert exc_info.value.details == error_body

    @pytest.mark.asyncio
    async def test_upstream_details_truncated(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="e" * 10000)

        async with OpenAIClient(client=sdk_client(handler)) as client:
            with pytest.raises(UpstreamHTTPError) as exc_info:
                await client.complete(messages=MESSAGES)

        assert len(exc_info.value.details) == 2000

    @pytest.mark.asyncio
    async def test_api_status_error_from_sdk_mock(self, mock_openai_client: AsyncMock) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, text="Rate limit reached", request=request)
        mock_openai_client.chat.completions.with_raw_response.create = AsyncMock(
            side_effect=APIStatusError("Rate limit reached", response=response, body=None)
        )

        client = OpenAIClient(client=mock_openai_client)
        with pytest.raises(UpstreamHTTPError) as exc_info:
            await client.complete(messages=MESSAGES)

        assert exc_info.value.status_code == 429
        assert exc_info.value.details == "Rate limit reached"

    @pytest.mark.asyncio
    async def test_complete_with_mocked_raw_response(self, mock_openai_client: AsyncMock) -> None:
        completion = MagicMock()
        choice = MagicMock()
        choice.message.content = '{"items": []}'
        choice.finish_reason = "length"
        completion.choices = [choice]
        completion.usage.prompt_tokens = 10
        completion.usage.completion_tokens = 5
        completion.usage.total_tokens = 15

        raw = MagicMock()
        raw.http_response.text = '{"raw": true}'
        raw.parse.return_value = completion
        mock_openai_client.chat.completions.with_raw_response.create = AsyncMock(return_value=raw)

        client = OpenAIClient(client=mock_openai_client, model="gpt-4o")
        response = await client.complete(messages=MESSAGES, temperature=0.0, max_tokens=50)

        assert response == {
            "content": '{"items": []}',
            "finish_reason": "length",
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
            "raw_text": '{"raw": true}',
        }
        call_kwargs = mock_openai_client.chat.completions.with_raw_response.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o"
        assert call_kwargs["temperature"] == 0.0
        assert call_kwargs["max_tokens"] == 50
