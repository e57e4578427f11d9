"""
OpenAI API client for meal photo analysis.

Async client for a single chat-completions call in JSON mode. Keeps the
raw HTTP body so upstream failures can be relayed with an excerpt.
No retries: a failed call is reported, not repeated.
"""

from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import structlog
from openai import APIStatusError, AsyncOpenAI

from mealscan.domain.shared.errors import UpstreamHTTPError

if TYPE_CHECKING:
    from openai.types.chat import ChatCompletion

logger = structlog.get_logger(__name__)


class OpenAIClient:
    """
    Async OpenAI client for vision completions.

    The underlying ``AsyncOpenAI`` is created on first use and shared by
    all requests of the process; ``aclose()`` (or ``async with``) releases
    its connection pool.

    Example:
        >>> async with OpenAIClient(api_key="sk-...") as client:
        ...     response = await client.complete(
        ...         messages=messages,
        ...         response_format={"type": "json_object"},
        ...     )
        ...     print(response["content"])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (reads OPENAI_API_KEY if None)
            model: Vision-capable chat model
            timeout: Request timeout in seconds
            base_url: Alternative chat-completions endpoint
            client: Optional pre-configured AsyncOpenAI client (for testing)

        Raises:
            ValueError: If API key not found and client not provided
        """
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
            self.api_key: str = api_key or "test-key"
        else:
            resolved_key = api_key or os.getenv("OPENAI_API_KEY")
            if not resolved_key:
                raise ValueError(
                    "OPENAI_API_KEY not found in environment. "
                    "Set it in .env file or pass as parameter."
                )
            self.api_key = resolved_key
            self._client = None

        self.model = model
        self.timeout = timeout
        self.base_url = base_url

    async def __aenter__(self) -> OpenAIClient:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP connection pool."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        response_format: Optional[Dict[str, str]] = None,
        temperature: float = 0.2,
        max_tokens: int = 900,
    ) -> Dict[str, Any]:
        """
        Run one chat completion.

        Args:
            messages: Chat messages (vision content parts allowed)
            response_format: {"type": "json_object"} for JSON mode
            temperature: Sampling temperature
            max_tokens: Max tokens in response

        Returns:
            Dict with:
            - content: Response text ("" when the model returned nothing)
            - finish_reason: Completion reason
            - usage: Token usage stats
            - raw_text: Raw HTTP body of the API response

        Raises:
            UpstreamHTTPError: On non-2xx API responses
        """
        client = self._ensure_client()

        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            params["response_format"] = response_format

        start = time.perf_counter()
        try:
            raw = await client.chat.completions.with_raw_response.create(**params)
        except APIStatusError as exc:
            logger.warning(
                "openai.http_error",
                status=exc.status_code,
                model=self.model,
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            )
            raise UpstreamHTTPError(exc.status_code, exc.response.text) from exc

        raw_text = raw.http_response.text
        completion: ChatCompletion = raw.parse()

        # missing fields are tolerated: an empty reply is reported, not raised
        choices = getattr(completion, "choices", None) or []
        choice = choices[0] if choices else None
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None) or ""
        finish_reason = getattr(choice, "finish_reason", None)
        usage = getattr(completion, "usage", None)

        logger.info(
            "openai.completion",
            model=self.model,
            finish_reason=finish_reason,
            total_tokens=usage.total_tokens if usage else 0,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )

        return {
            "content": content,
            "finish_reason": finish_reason,
            "usage": {
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            "raw_text": raw_text,
        }
