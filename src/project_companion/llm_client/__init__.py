"""LLM client module for OpenAI-compatible chat servers.

This module provides:
- LLMClient: Async chat completions client with retries and telemetry
- LLMResponse: Normalized response type
- Error classes: LLMClientError hierarchy
"""

from project_companion.llm_client.client import LLMClient
from project_companion.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMResponse,
    LLMServerError,
    LLMTimeout,
)

__all__ = [
    # Main client
    "LLMClient",
    # Types
    "LLMResponse",
    # Errors
    "LLMClientError",
    "LLMTimeout",
    "LLMConnectionError",
    "LLMRateLimit",
    "LLMServerError",
    "LLMInvalidResponse",
]
