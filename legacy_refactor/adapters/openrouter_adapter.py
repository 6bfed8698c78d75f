from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from legacy_refactor.errors import ProviderError
from legacy_refactor.models import TokenUsage
from legacy_refactor.schemas.translate import to_json_schema

from .llm_base import JSON_MIME_TYPE, GenerationRequest, GenerationResult, LLMClient

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
JSON_DIRECTIVE = (
    "CRITICAL INSTRUCTION: You MUST respond with valid, raw JSON only. "
    "Do not wrap in markdown code blocks. Do not add explanations."
)


class OpenRouterAdapter(LLMClient):
    """Chat-completions client for OpenRouter.

    Many models behind OpenRouter reject ``response_format`` with a 400, so
    structured output is requested through the system message instead: a
    raw-JSON directive followed by the JSON-Schema rendering of the request
    schema.
    """

    provider = "openrouter"

    def __init__(self, api_key: str, timeout: Optional[float] = None) -> None:
        kwargs: Dict[str, object] = {"base_url": OPENROUTER_BASE_URL, "api_key": api_key}
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = OpenAI(**kwargs)

    def build_messages(self, request: GenerationRequest) -> List[Dict[str, str]]:
        system_content = request.system_instruction or DEFAULT_SYSTEM_PROMPT
        if request.response_mime_type == JSON_MIME_TYPE:
            system_content += f"\n\n{JSON_DIRECTIVE}"
            if request.response_schema is not None:
                schema = to_json_schema(request.response_schema)
                system_content += f"\n\nSchema to follow:\n{json.dumps(schema, indent=2)}"
        return [
            {"role": "system", "content": system_content},
            {"role": "user", "content": request.prompt},
        ]

    def generate_content(self, request: GenerationRequest) -> GenerationResult:
        messages = self.build_messages(request)
        logger.info("[openrouter] model=%s", request.model)
        try:
            completion = self.client.chat.completions.create(
                model=request.model,
                messages=messages,
            )
        except OpenAIError as exc:
            logger.error("[openrouter] request failed: %s", exc)
            raise ProviderError(self.provider, request.model, exc) from exc

        choices = getattr(completion, "choices", None)
        if not choices:
            raise ProviderError(self.provider, request.model, "OpenRouter returned no choices.")
        content = choices[0].message.content
        if not content:
            raise ProviderError(self.provider, request.model, "OpenRouter returned empty content.")

        raw_usage = getattr(completion, "usage", None)
        usage = None
        if raw_usage is not None:
            usage = TokenUsage.from_counts(
                getattr(raw_usage, "prompt_tokens", None),
                getattr(raw_usage, "completion_tokens", None),
                getattr(raw_usage, "total_tokens", None),
            )
            logger.info(
                "[openrouter] model=%s prompt_tokens=%s completion_tokens=%s total_tokens=%s",
                request.model,
                usage.input,
                usage.output,
                usage.total,
            )
        else:
            logger.info("[openrouter] usage not provided by backend")
        return GenerationResult(text=content, usage=usage)
