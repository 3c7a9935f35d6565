"""Intent classification: AI-assisted with a deterministic keyword fallback.

The AI path is a thin routing layer, not an NLU engine. Any failure on that
path (error, timeout, exhausted retries) falls back to keyword rules, so
classification always yields an intent from the closed vocabulary.
"""

from typing import TYPE_CHECKING, Any, Protocol, TypedDict

from project_companion.orchestrator.async_utils import with_retry, with_timeout
from project_companion.orchestrator.prompts import build_classifier_messages
from project_companion.orchestrator.types import ConversationContext, Intent
from project_companion.telemetry import get_logger
from project_companion.telemetry.events import INTENT_CLASSIFICATION_FALLBACK, INTENT_CLASSIFIED

if TYPE_CHECKING:
    from project_companion.llm_client import LLMClient

log = get_logger(__name__)

# Checked in order; the first rule with a matching keyword wins
FALLBACK_RULES: list[tuple[Intent, tuple[str, ...]]] = [
    (Intent.PLAN, ("plan", "strategy")),
    (Intent.BUILD, ("build", "create", "implement")),
    (Intent.DESIGN, ("design", "ui", "ux")),
    (Intent.TEST, ("test", "verify")),
    (Intent.DEPLOY, ("deploy", "release")),
    (Intent.CODE, ("code", "function", "class")),
    (Intent.HELP, ("help", "how")),
]


class ClassifierReply(TypedDict):
    """Raw reply of an AI classifier."""

    content: str


class AIClassifier(Protocol):
    """External AI collaborator used for classification."""

    async def classify(self, messages: list[dict[str, str]]) -> ClassifierReply:
        """Answer an OpenAI-style prompt; may raise on failure."""
        ...


def extract_intent(text: str) -> Intent:
    """First vocabulary keyword contained in ``text``, else ``clarify``."""
    lowered = text.lower()
    for intent in Intent:
        if intent.value in lowered:
            return intent
    return Intent.CLARIFY


def fallback_intent(message: str) -> Intent:
    """Deterministic keyword classification of a raw utterance."""
    lowered = message.lower()
    for intent, keywords in FALLBACK_RULES:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return Intent.CLARIFY


class IntentClassifier:
    """Classifies utterances, preferring the AI collaborator when present.

    Args:
        ai: AI classifier, or None to use the keyword rules only.
        timeout_s: Time budget of one AI attempt.
        max_retries: Retries after the first failed AI attempt.
        retry_base_delay_s: Backoff base between attempts.
    """

    def __init__(
        self,
        ai: AIClassifier | None = None,
        *,
        timeout_s: float = 10.0,
        max_retries: int = 1,
        retry_base_delay_s: float = 0.5,
    ) -> None:
        self.ai = ai
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.retry_base_delay_s = retry_base_delay_s

    async def classify(self, message: str, context: ConversationContext) -> Intent:
        """Classify one utterance; never raises."""
        if self.ai is None:
            intent = fallback_intent(message)
            log.debug(INTENT_CLASSIFIED, intent=intent.value, source="keywords")
            return intent

        messages = build_classifier_messages(message, context)
        ai = self.ai
        try:
            reply = await with_retry(
                lambda: with_timeout(ai.classify(messages), self.timeout_s, "intent_classification"),
                max_retries=self.max_retries,
                base_delay_s=self.retry_base_delay_s,
                operation="intent_classification",
            )
            intent = extract_intent(reply["content"])
        except Exception as e:
            intent = fallback_intent(message)
            log.warning(
                INTENT_CLASSIFICATION_FALLBACK,
                session_id=context.session_id,
                intent=intent.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return intent

        log.info(INTENT_CLASSIFIED, session_id=context.session_id, intent=intent.value, source="ai")
        return intent


class LLMClassifier:
    """Adapts the chat client to the :class:`AIClassifier` protocol.

    Args:
        client: Chat completions client.
        max_tokens: Reply budget (an intent is one word).
    """

    def __init__(self, client: "LLMClient", max_tokens: int = 16) -> None:
        self.client = client
        self.max_tokens = max_tokens

    async def classify(self, messages: list[dict[str, Any]]) -> ClassifierReply:
        response = await self.client.respond(
            messages, max_tokens=self.max_tokens, temperature=0.0
        )
        return ClassifierReply(content=response["content"])
