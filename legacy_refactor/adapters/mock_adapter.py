from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict

from legacy_refactor.models import TokenUsage

from .llm_base import JSON_MIME_TYPE, GenerationRequest, GenerationResult, LLMClient


@dataclass
class MockAdapter(LLMClient):
    scenario: str = "default"
    provider: str = "mock"

    def generate_content(self, request: GenerationRequest) -> GenerationResult:
        text = self._build_text(request)
        usage = TokenUsage.from_counts(len(request.prompt) // 4, len(text) // 4, None)
        return GenerationResult(text=text, usage=usage)

    def _build_text(self, request: GenerationRequest) -> str:
        properties = {}
        if request.response_schema is not None and request.response_schema.properties:
            properties = request.response_schema.properties
        if "required_files" in properties:
            return json.dumps(self._plan())
        if "security_issues" in properties:
            return json.dumps(self._audit())
        if request.response_mime_type == JSON_MIME_TYPE:
            return json.dumps(self._files())
        return (
            "models.py: Pydantic models for the legacy records.\n"
            "services.py: business logic extracted from the legacy script.\n"
            "routers.py: FastAPI endpoints.\n"
            "main.py: application entry point."
        )

    def _plan(self) -> Dict:
        required = ["config.php"] if self.scenario == "dependencies" else []
        return {
            "summary": "Mock analysis of the legacy entry point.",
            "variables": ["$db", "$user_id"],
            "security_concerns": ["SQL built from request parameters"],
            "migration_strategy": "Split into models, services and routers.",
            "required_files": required,
        }

    def _audit(self) -> Dict:
        return {
            "comments": "Mock audit clean.",
            "security_issues": [
                {
                    "severity": "Low",
                    "title": "Missing rate limiting",
                    "description": "Endpoints accept unlimited requests.",
                    "location": "routers.py",
                }
            ],
        }

    def _files(self) -> Dict:
        return {
            "files": [
                {"filename": "main.py", "content": "from fastapi import FastAPI\n\napp = FastAPI()\n"},
                {"filename": "models.py", "content": "from pydantic import BaseModel\n"},
            ]
        }
