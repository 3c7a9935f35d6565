"""Prompts for AI-assisted intent classification.

The classifier prompt constrains the model to the closed intent vocabulary;
whatever text comes back is still scanned for the first known keyword, so a
chatty answer degrades gracefully.
"""

from project_companion.orchestrator.types import ConversationContext, Intent

# Conversation lines shown to the classifier (most recent last)
CLASSIFIER_HISTORY_LINES = 4

INTENT_SYSTEM_PROMPT = f"""You are an intent analyzer for a development assistant. Analyze the user's message and determine their intent based on:

1. The current message
2. Recent conversation history
3. Related previous intents
4. Current session context

Return a single intent classification from: {", ".join(i.value for i in Intent)}"""


def build_intent_prompt(message: str, context: ConversationContext) -> str:
    """Build the user prompt for one classification call.

    Args:
        message: Utterance to classify.
        context: Context assembled for the current turn.

    Returns:
        Prompt text.
    """
    history = "\n".join(context.context_window[-CLASSIFIER_HISTORY_LINES:])
    return (
        f'Analyze this message for intent: "{message}"\n\n'
        f"Recent intents: {', '.join(context.related_intents)}\n"
        f"Conversation context: {history}\n"
        f"Active agent: {context.active_agent}\n\n"
        "What is the primary intent of this message?"
    )


def build_classifier_messages(message: str, context: ConversationContext) -> list[dict[str, str]]:
    """OpenAI-style message list for the classifier."""
    return [
        {"role": "system", "content": INTENT_SYSTEM_PROMPT},
        {"role": "user", "content": build_intent_prompt(message, context)},
    ]
