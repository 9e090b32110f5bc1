import logging
import re
from typing import Literal, Optional, Sequence

from pydantic import BaseModel

from config.system_prompts import CHAT_ASSISTANT, CHAT_TURN
from services.errors import ModelInvocationFailed
from services.lookups import gather_evidence, render_evidence
from services.providers import ModelProvider

logger = logging.getLogger(__name__)

# NDCs (with or without hyphens) and GTINs: 8+ characters of digits and hyphens
CODE_PATTERN = re.compile(r"\b\d[\d\-]{6,}\d\b")

CHAT_FAILURE_MESSAGE = (
    "I'm sorry, the AI assistant could not generate a response right now. Please try again later."
)


class ChatMessage(BaseModel):
    role: Literal["user", "model"]
    content: str


def extract_code(message: str) -> Optional[str]:
    match = CODE_PATTERN.search(message or "")
    return match.group(0) if match else None


def render_history(history: Sequence[ChatMessage]) -> str:
    if not history:
        return "(no previous messages)"
    return "\n".join(f"{m.role}: {m.content}" for m in history)


class ChatAssistant:
    """Free-form questions about drugs, with database evidence when the message contains a code."""

    def __init__(self, lookups: Sequence, providers: Sequence[ModelProvider]):
        self.lookups = list(lookups)
        self.providers = list(providers)

    async def reply(self, history: Sequence[ChatMessage], message: str) -> str:
        code = extract_code(message)
        if code:
            evidence = render_evidence(await gather_evidence(self.lookups, code))
        else:
            evidence = "No drug code was mentioned; answer from general knowledge."

        prompt = CHAT_TURN.format(history=render_history(history), evidence=evidence, message=message)
        for provider in self.providers:
            try:
                text = await provider.generate_text(CHAT_ASSISTANT, prompt)
            except ModelInvocationFailed as e:
                logger.warning("%s chat failed, trying next model: %s", provider.name, e)
                continue
            except Exception:
                logger.exception("%s raised unexpectedly during chat, trying next model", provider.name)
                continue
            if text and text.strip():
                return text.strip()

        logger.error("All %d models failed to answer a chat message", len(self.providers))
        return CHAT_FAILURE_MESSAGE
