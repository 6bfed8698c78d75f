from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from legacy_refactor.models import TokenUsage
from legacy_refactor.schemas.translate import SchemaNode

JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class GenerationRequest:
    model: str
    prompt: str
    system_instruction: Optional[str] = None
    response_schema: Optional[SchemaNode] = None
    response_mime_type: Optional[str] = None


@dataclass
class GenerationResult:
    text: str
    usage: Optional[TokenUsage] = None


class LLMClient(Protocol):
    provider: str

    def generate_content(self, request: GenerationRequest) -> GenerationResult:
        raise NotImplementedError
