"""Agent dispatcher: the agent protocol, the registry and built-in agents."""

from project_companion.agents.registry import (
    ROLE_PROMPTS,
    AgentRegistry,
    LLMAgent,
    build_default_registry,
    route,
)
from project_companion.agents.types import INTENT_TO_AGENT, Agent

__all__ = [
    "Agent",
    "AgentRegistry",
    "LLMAgent",
    "build_default_registry",
    "route",
    "INTENT_TO_AGENT",
    "ROLE_PROMPTS",
]
