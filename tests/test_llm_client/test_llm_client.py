"""Tests for the OpenAI-compatible chat client."""

import json

import httpx
import pytest

from project_companion.llm_client import (
    LLMClient,
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
)
from project_companion.llm_client.adapters import (
    adapt_chat_completions_response,
    build_chat_completions_request,
)


def _completion(content: str = "Hello!") -> dict:
    return {
        "choices": [
            {"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
    }


def _client(handler, **kwargs) -> LLMClient:
    return LLMClient(
        base_url="http://llm.test/v1",
        model="test-model",
        retry_base_delay_s=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestAdapters:
    """Payload building and response normalization."""

    def test_request_omits_unset_options(self) -> None:
        payload = build_chat_completions_request([{"role": "user", "content": "hi"}], "m")
        assert payload == {"model": "m", "messages": [{"role": "user", "content": "hi"}]}

    def test_request_includes_options(self) -> None:
        payload = build_chat_completions_request([], "m", max_tokens=16, temperature=0.0)
        assert payload["max_tokens"] == 16
        assert payload["temperature"] == 0.0

    def test_think_blocks_are_stripped(self) -> None:
        response = adapt_chat_completions_response(
            _completion("<think>\nreasoning here\n</think>\nplan")
        )
        assert response["content"] == "plan"
        assert response["usage"]["total_tokens"] == 15
        assert response["finish_reason"] == "stop"

    def test_missing_usage_defaults_to_zero(self) -> None:
        data = _completion()
        del data["usage"]
        assert adapt_chat_completions_response(data)["usage"]["prompt_tokens"] == 0

    def test_no_choices(self) -> None:
        with pytest.raises(LLMInvalidResponse):
            adapt_chat_completions_response({"choices": []})

    def test_malformed_choice(self) -> None:
        with pytest.raises(LLMInvalidResponse):
            adapt_chat_completions_response({"choices": ["not a dict"]})


class TestEndpoint:
    """URL normalization."""

    @pytest.mark.parametrize(
        ("base_url", "expected"),
        [
            ("http://localhost:8000/v1", "http://localhost:8000/v1/chat/completions"),
            ("http://localhost:8000/v1/", "http://localhost:8000/v1/chat/completions"),
            ("http://localhost:8000", "http://localhost:8000/v1/chat/completions"),
        ],
    )
    def test_endpoint(self, base_url: str, expected: str) -> None:
        assert LLMClient(base_url=base_url, model="m").endpoint == expected


class TestRespond:
    """Request flow, retries and error classification."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion())

        client = _client(handler, api_key="secret")
        response = await client.respond(
            [{"role": "user", "content": "hi"}],
            system_prompt="be brief",
            max_tokens=32,
            temperature=0.2,
        )

        assert response["content"] == "Hello!"
        assert response["role"] == "assistant"
        request = seen[0]
        assert str(request.url) == "http://llm.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["messages"][0] == {"role": "system", "content": "be brief"}
        assert body["max_tokens"] == 32

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self) -> None:
        statuses = iter([500, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            status = next(statuses)
            if status == 200:
                return httpx.Response(200, json=_completion("recovered"))
            return httpx.Response(status, json={"error": "boom"})

        response = await _client(handler).respond([{"role": "user", "content": "hi"}])

        assert response["content"] == "recovered"

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_retries(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(429, json={"error": "slow down"})

        with pytest.raises(LLMRateLimit):
            await _client(handler, max_retries=2).respond([{"role": "user", "content": "hi"}])
        assert calls == 3

    @pytest.mark.asyncio
    async def test_persistent_server_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        with pytest.raises(LLMServerError):
            await _client(handler, max_retries=1).respond([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(400, json={"error": "bad request"})

        with pytest.raises(LLMClientError) as exc_info:
            await _client(handler).respond([{"role": "user", "content": "hi"}])
        assert type(exc_info.value) is LLMClientError
        assert calls == 1

    @pytest.mark.asyncio
    async def test_invalid_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        with pytest.raises(LLMInvalidResponse):
            await _client(handler).respond([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(LLMInvalidResponse):
            await _client(handler).respond([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(LLMTimeout):
            await _client(handler, max_retries=1).respond([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_connection_error_fails_fast(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMConnectionError):
            await _client(handler).respond([{"role": "user", "content": "hi"}])
        assert calls == 1
