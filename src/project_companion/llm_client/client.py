"""LLM client implementation.

This module provides the LLMClient class for calling OpenAI-compatible chat
servers (vLLM, LM Studio, Ollama, llama.cpp, ...) with error classification,
retries and telemetry. The intent classifier and the built-in agents share
one client.
"""

import asyncio
import time
from typing import Any

import httpx

from project_companion.llm_client.adapters import (
    adapt_chat_completions_response,
    build_chat_completions_request,
)
from project_companion.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMResponse,
    LLMServerError,
    LLMTimeout,
)
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import (
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_RETRY,
    MODEL_CALL_STARTED,
)
from project_companion.telemetry.trace import TraceContext

log = get_logger(__name__)


class LLMClient:
    """Client for an OpenAI-compatible chat completions endpoint.

    Attributes:
        base_url: Base URL for the API (e.g., "http://localhost:8000/v1").
        model: Model identifier sent with every request.
        timeout_seconds: Read timeout for one request.
        max_retries: Retries for timeouts, 429 and 5xx responses.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        *,
        api_key: str | None = None,
        retry_base_delay_s: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL for the API.
            model: Model identifier.
            timeout_seconds: Read timeout for one request.
            max_retries: Maximum number of retry attempts.
            api_key: Optional bearer token.
            retry_base_delay_s: Backoff base; attempt ``n`` waits ``base * 2**n``.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.api_key = api_key
        self.retry_base_delay_s = retry_base_delay_s
        self._transport = transport

    @property
    def endpoint(self) -> str:
        """Full chat/completions URL."""
        if self.base_url.endswith("/v1"):
            return f"{self.base_url}/chat/completions"
        return f"{self.base_url}/v1/chat/completions"

    async def respond(
        self,
        messages: list[dict[str, Any]],
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        trace_ctx: TraceContext | None = None,
    ) -> LLMResponse:
        """Make a single chat completion call.

        Args:
            messages: List of message dicts with role and content.
            system_prompt: Optional system prompt (prepended to messages).
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            trace_ctx: Trace context for telemetry correlation.

        Returns:
            LLMResponse with normalized structure.

        Raises:
            LLMTimeout: If every attempt timed out.
            LLMConnectionError: If the server cannot be reached.
            LLMRateLimit: If the server kept answering 429.
            LLMServerError: If the server kept answering 5xx.
            LLMInvalidResponse: If the response format is invalid.
            LLMClientError: For other HTTP errors.
        """
        request_messages = list(messages)
        if system_prompt:
            request_messages.insert(0, {"role": "system", "content": system_prompt})
        payload = build_chat_completions_request(
            messages=request_messages,
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        if trace_ctx is None:
            trace_ctx = TraceContext.new_trace()
        _, span_id = trace_ctx.new_span()
        start_time = time.time()
        log.info(
            MODEL_CALL_STARTED,
            model_id=self.model,
            endpoint=self.endpoint,
            message_count=len(request_messages),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        timeout_config = httpx.Timeout(connect=10.0, read=self.timeout_seconds, write=10.0, pool=10.0)

        last_error: LLMClientError | None = None
        attempt = 0
        async with httpx.AsyncClient(timeout=timeout_config, transport=self._transport) as client:
            while attempt <= self.max_retries:
                retryable = False
                try:
                    response = await client.post(self.endpoint, json=payload, headers=headers)
                    response.raise_for_status()
                    llm_response = adapt_chat_completions_response(response.json())

                    log.info(
                        MODEL_CALL_COMPLETED,
                        model_id=self.model,
                        latency_ms=int((time.time() - start_time) * 1000),
                        attempts=attempt + 1,
                        prompt_tokens=llm_response["usage"].get("prompt_tokens", 0),
                        completion_tokens=llm_response["usage"].get("completion_tokens", 0),
                        trace_id=trace_ctx.trace_id,
                        span_id=span_id,
                    )
                    return llm_response

                except httpx.TimeoutException:
                    last_error = LLMTimeout(
                        f"Request to {self.endpoint} timed out after {self.timeout_seconds}s"
                    )
                    retryable = True

                except httpx.ConnectError as e:
                    # Server is likely down; retrying will not help
                    last_error = LLMConnectionError(f"Failed to connect to {self.endpoint}: {e}")

                except httpx.HTTPStatusError as e:
                    status = e.response.status_code
                    if status == 429:
                        last_error = LLMRateLimit(f"Rate limit exceeded: {e}")
                        retryable = True
                    elif status >= 500:
                        last_error = LLMServerError(f"Server error {status}: {e}")
                        retryable = True
                    else:
                        last_error = LLMClientError(f"HTTP error {status}: {e}")

                except httpx.RequestError as e:
                    last_error = LLMConnectionError(f"Request error: {e}")

                except LLMInvalidResponse as e:
                    last_error = e

                except ValueError as e:
                    last_error = LLMInvalidResponse(f"Invalid response body: {e}")

                if not retryable or attempt >= self.max_retries:
                    break

                wait_time = self.retry_base_delay_s * 2**attempt
                log.warning(
                    MODEL_CALL_RETRY,
                    attempt=attempt + 1,
                    wait_time=wait_time,
                    error_type=type(last_error).__name__,
                    trace_id=trace_ctx.trace_id,
                )
                await asyncio.sleep(wait_time)
                attempt += 1

        error = last_error or LLMClientError("Request failed with unknown error")
        log.error(
            MODEL_CALL_ERROR,
            model_id=self.model,
            endpoint=self.endpoint,
            error_type=type(error).__name__,
            error=str(error),
            latency_ms=int((time.time() - start_time) * 1000),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )
        raise error
