"""Request builders and response adapters for OpenAI-compatible chat APIs."""

import re
from typing import Any

from project_companion.llm_client.types import LLMInvalidResponse, LLMResponse

# Reasoning models may wrap their chain of thought in <think> tags
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)


def build_chat_completions_request(
    messages: list[dict[str, Any]],
    model: str,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> dict[str, Any]:
    """Build a chat/completions request payload.

    Args:
        messages: List of message dicts with role and content.
        model: Model identifier.
        max_tokens: Maximum tokens to generate.
        temperature: Sampling temperature.

    Returns:
        Request payload dictionary.
    """
    payload: dict[str, Any] = {
        "model": model,
        "messages": [dict(msg) for msg in messages],
    }
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens
    if temperature is not None:
        payload["temperature"] = temperature
    return payload


def adapt_chat_completions_response(response_data: dict[str, Any]) -> LLMResponse:
    """Adapt an OpenAI-style chat/completions response to LLMResponse.

    Args:
        response_data: Raw response body.

    Returns:
        Normalized LLMResponse structure.

    Raises:
        LLMInvalidResponse: If the response has no usable choice.
    """
    try:
        choices = response_data.get("choices", [])
        if not choices:
            raise LLMInvalidResponse("Response has no choices")

        choice = choices[0]
        message = choice.get("message", {})
        content = _THINK_BLOCK.sub("", message.get("content") or "").strip()

        usage = response_data.get("usage") or {
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
        }

        return LLMResponse(
            role=message.get("role", "assistant"),
            content=content,
            finish_reason=choice.get("finish_reason"),
            usage=usage,
            raw=response_data,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise LLMInvalidResponse(f"Invalid response format: {e}") from e
