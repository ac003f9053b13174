from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from typing import Any

from autogen.agentchat.contrib.multimodal_conversable_agent import MultimodalConversableAgent

from artshop.agents.autogen_config import llm_config_from_env
from artshop.agents.base import AgentAction, JsonSchema


CRITIC_SYSTEM_MESSAGE = (
    "You are an AI art critic in a casual painting game. "
    "You review one painting at a time and reply with strict JSON only."
)


def _text_of(content: object) -> str:
    # Multimodal replies may come back as a list of typed parts.
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = [p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text"]
        return "\n".join(s for s in parts if s).strip()
    return ""


def _extract_last_content(messages: object) -> str:
    """Extract the last non-empty message content from AG2 chat history."""

    if not isinstance(messages, list):
        return ""

    for msg in reversed(messages):
        if isinstance(msg, dict):
            text = _text_of(msg.get("content"))
            if text:
                return text
    return ""


@dataclass(slots=True)
class Ag2CriticAgent:
    """Vision critic on top of AG2's multimodal agent.

    Environment variables supported:
    - OPENAI_MODEL (must be vision capable)
    - OPENAI_API_KEY (optional if OPENAI_BASE_URL is set)
    - OPENAI_BASE_URL (for OpenAI-compatible servers like Ollama)
    """

    name: str
    model: str
    image_mime: str = "image/jpeg"

    def _run_blocking(self, *, message: str, structured_output: JsonSchema | None) -> str:
        agent = MultimodalConversableAgent(
            name=self.name,
            system_message=CRITIC_SYSTEM_MESSAGE,
            llm_config=llm_config_from_env(default_model=self.model),
            human_input_mode="NEVER",
        )

        extra: dict[str, Any] = {}
        if structured_output is not None:
            extra["response_format"] = structured_output.as_response_format()

        result = agent.run(message=message, max_turns=1, **extra)
        result.process()

        text = _extract_last_content(list(result.messages))
        if not text and isinstance(result.summary, str):
            text = result.summary.strip()
        return text

    async def review(
        self,
        *,
        prompt: str,
        image: bytes,
        structured_output: JsonSchema | None = None,
    ) -> AgentAction:
        data_uri = f"data:{self.image_mime};base64,{base64.b64encode(image).decode('ascii')}"
        message = f"<img {data_uri}>\n\n{prompt}"

        # AG2's run loop is synchronous; keep the event loop (and cancellation) responsive.
        text = await asyncio.to_thread(self._run_blocking, message=message, structured_output=structured_output)
        return AgentAction(kind="review", content=text, metadata={"model": self.model})
