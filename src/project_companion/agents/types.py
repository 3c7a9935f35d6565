"""Agent protocol and routing tables."""

from typing import Any, Protocol

from project_companion.orchestrator.types import AgentResponse, Intent


class Agent(Protocol):
    """A handler able to act on a classified message."""

    name: str

    async def handle(self, message: str, context: dict[str, Any]) -> AgentResponse:
        """Produce a reply for ``message``; may raise."""
        ...


INTENT_TO_AGENT: dict[str, str] = {
    Intent.PLAN.value: "planner",
    Intent.BUILD.value: "builder",
    Intent.DESIGN.value: "designer",
    Intent.TEST.value: "test",
    Intent.DEPLOY.value: "deploy",
    Intent.CODE.value: "code",
    Intent.CLARIFY.value: "planner",
    Intent.HELP.value: "planner",
}

# Used when the caller supplies no intent; first agent with a match wins
AGENT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "planner": ("plan", "architecture", "feature", "requirement", "spec"),
    "builder": ("build", "implement", "create", "develop"),
    "designer": ("ui", "ux", "interface", "design", "layout", "style", "component"),
    "test": ("test", "unit", "integration", "coverage"),
    "deploy": ("deploy", "publish", "release", "production"),
    "code": ("code", "function", "class", "complete", "snippet", "refactor"),
}
