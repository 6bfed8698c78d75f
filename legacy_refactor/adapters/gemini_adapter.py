from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from legacy_refactor.errors import ProviderError
from legacy_refactor.models import TokenUsage
from legacy_refactor.schemas.translate import to_gemini_schema

from .llm_base import GenerationRequest, GenerationResult, LLMClient

logger = logging.getLogger(__name__)


def _rejects_system_instruction(model: str) -> bool:
    # Gemma models fail when system_instruction is set on the config.
    return "gemma" in model.lower()


class GeminiAdapter(LLMClient):
    provider = "google"

    def __init__(self, api_key: str, timeout: Optional[float] = None) -> None:
        http_options = None
        if timeout is not None:
            http_options = types.HttpOptions(timeout=int(timeout * 1000))
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    def build_call(self, request: GenerationRequest) -> tuple[str, types.GenerateContentConfig]:
        config: Dict[str, Any] = {}
        contents = request.prompt

        if request.system_instruction:
            if _rejects_system_instruction(request.model):
                contents = (
                    f"SYSTEM INSTRUCTION: {request.system_instruction}\n\n"
                    f"USER PROMPT: {request.prompt}"
                )
            else:
                config["system_instruction"] = request.system_instruction

        if request.response_schema is not None:
            config["response_schema"] = to_gemini_schema(request.response_schema)
        if request.response_mime_type:
            config["response_mime_type"] = request.response_mime_type

        return contents, types.GenerateContentConfig(**config)

    def generate_content(self, request: GenerationRequest) -> GenerationResult:
        contents, config = self.build_call(request)
        logger.info("[gemini] model=%s", request.model)
        try:
            response = self.client.models.generate_content(
                model=request.model,
                contents=contents,
                config=config,
            )
        except Exception as exc:
            logger.error("[gemini] request failed: %s", exc)
            raise ProviderError(self.provider, request.model, exc) from exc

        text = getattr(response, "text", None)
        if not text:
            raise ProviderError(self.provider, request.model, "Gemini returned empty content.")

        metadata = getattr(response, "usage_metadata", None)
        usage = None
        if metadata is not None:
            usage = TokenUsage.from_counts(
                metadata.prompt_token_count,
                metadata.candidates_token_count,
                metadata.total_token_count,
            )
            logger.info(
                "[gemini] model=%s prompt_tokens=%s completion_tokens=%s total_tokens=%s",
                request.model,
                usage.input,
                usage.output,
                usage.total,
            )
        return GenerationResult(text=text, usage=usage)
