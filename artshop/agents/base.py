from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class JsonSchema:
    """OpenAI-style structured output request (`response_format.json_schema`)."""

    name: str
    schema: dict[str, Any]
    strict: bool = True

    def as_response_format(self) -> dict[str, Any]:
        return {
            "type": "json_schema",
            "json_schema": {"name": self.name, "schema": self.schema, "strict": self.strict},
        }


@dataclass(frozen=True, slots=True)
class AgentAction:
    kind: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class CriticAgent(Protocol):
    """External scorer for a finished painting.

    Implementations may raise anything; the valuation service treats every failure
    as "oracle unavailable".
    """

    name: str

    async def review(
        self,
        *,
        prompt: str,
        image: bytes,
        structured_output: JsonSchema | None = None,
    ) -> AgentAction:  # pragma: no cover
        ...
