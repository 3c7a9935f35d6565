"""Agent registry and the built-in LLM-backed agents.

The registry is the orchestrator's dispatcher: it picks one agent for a
message and turns an agent failure into an error reply, so a misbehaving
agent never breaks the conversation loop.
"""

from typing import TYPE_CHECKING, Any

from project_companion.agents.types import AGENT_KEYWORDS, INTENT_TO_AGENT, Agent
from project_companion.orchestrator.types import AgentResponse
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import AGENT_DISPATCHED, AGENT_FAILED, AGENT_NOT_FOUND

if TYPE_CHECKING:
    from project_companion.llm_client import LLMClient

log = get_logger(__name__)

DEFAULT_AGENT = "planner"

ROLE_PROMPTS: dict[str, str] = {
    "planner": (
        "You are the planning agent of a development assistant. Break the request into "
        "features, requirements and ordered next steps. Ask a clarifying question when "
        "the request is ambiguous."
    ),
    "builder": (
        "You are the builder agent of a development assistant. Explain how to implement "
        "the request: files to create or change, the code involved and how to run it."
    ),
    "designer": (
        "You are the design agent of a development assistant. Propose UI and UX structure, "
        "layout, components and styling for the request."
    ),
    "test": (
        "You are the testing agent of a development assistant. Propose unit and integration "
        "tests, edge cases and how to verify the behaviour."
    ),
    "deploy": (
        "You are the deployment agent of a development assistant. Describe the build, "
        "release and deployment steps and the configuration they need."
    ),
    "code": (
        "You are the coding agent of a development assistant. Write or fix the code the "
        "user asks for and keep explanations short."
    ),
}


def route(message: str, context: dict[str, Any]) -> str:
    """Name of the agent that should handle ``message``.

    The classified intent in ``context["intent"]`` decides; without one the
    message keywords do, defaulting to the planner.
    """
    intent = context.get("intent")
    if intent in INTENT_TO_AGENT:
        return INTENT_TO_AGENT[intent]

    lowered = message.lower()
    for agent, keywords in AGENT_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return agent
    return DEFAULT_AGENT


class AgentRegistry:
    """Registered agents plus intent-based dispatch."""

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}

    def register(self, agent: Agent) -> None:
        """Register an agent under its name.

        Raises:
            ValueError: If an agent with that name is already registered.
        """
        if agent.name in self._agents:
            raise ValueError(f"Agent '{agent.name}' is already registered")
        self._agents[agent.name] = agent
        log.debug("agent_registered", agent=agent.name)

    def get(self, name: str) -> Agent | None:
        """Return the agent, or None if unknown."""
        return self._agents.get(name)

    def names(self) -> list[str]:
        """Registered agent names."""
        return list(self._agents)

    async def dispatch(self, message: str, context: dict[str, Any]) -> list[AgentResponse]:
        """Run the routed agent.

        Returns:
            One reply, an error reply if the agent raised, or [] if the routed
            agent is not registered.
        """
        name = route(message, context)
        agent = self._agents.get(name)
        if agent is None:
            log.warning(AGENT_NOT_FOUND, agent=name, intent=context.get("intent"))
            return []

        try:
            response = await agent.handle(message, context)
        except Exception as e:
            log.error(
                AGENT_FAILED,
                agent=name,
                session_id=context.get("session_id"),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return [
                AgentResponse(
                    agent=name,
                    message=f"Error processing request: {e}",
                    actions=[],
                    metadata={"error": True},
                )
            ]

        response.setdefault("agent", name)
        log.debug(AGENT_DISPATCHED, agent=name, session_id=context.get("session_id"))
        return [response]


class LLMAgent:
    """Agent answering through the chat client with a role prompt.

    Args:
        name: Agent name used for routing.
        role_prompt: System prompt describing the agent's role.
        client: Chat completions client.
        max_tokens: Reply budget.
    """

    def __init__(
        self, name: str, role_prompt: str, client: "LLMClient", max_tokens: int = 1024
    ) -> None:
        self.name = name
        self.role_prompt = role_prompt
        self.client = client
        self.max_tokens = max_tokens

    def build_system_prompt(self, context: dict[str, Any]) -> str:
        """Role prompt plus the user's preferences."""
        preferences = context.get("user_preferences") or {}
        if not preferences:
            return self.role_prompt
        lines = "\n".join(f"- {key}: {value}" for key, value in preferences.items())
        return f"{self.role_prompt}\n\nUser preferences:\n{lines}"

    def build_messages(self, message: str, context: dict[str, Any]) -> list[dict[str, str]]:
        """User prompt carrying the context window and the message."""
        window = "\n".join(context.get("context_window") or [])
        content = f"Conversation context:\n{window}\n\nRequest: {message}" if window else message
        return [{"role": "user", "content": content}]

    async def handle(self, message: str, context: dict[str, Any]) -> AgentResponse:
        response = await self.client.respond(
            self.build_messages(message, context),
            system_prompt=self.build_system_prompt(context),
            max_tokens=self.max_tokens,
        )
        return AgentResponse(
            agent=self.name,
            message=response["content"],
            actions=[],
            metadata={"intent": context.get("intent"), "usage": response["usage"]},
        )


def build_default_registry(client: "LLMClient") -> AgentRegistry:
    """Registry holding the six built-in agents."""
    registry = AgentRegistry()
    for name, prompt in ROLE_PROMPTS.items():
        registry.register(LLMAgent(name, prompt, client))
    return registry
