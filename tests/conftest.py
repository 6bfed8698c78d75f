from __future__ import annotations

import json
from typing import Callable, List, Optional, Union

import pytest

from legacy_refactor.adapters.llm_base import GenerationRequest, GenerationResult
from legacy_refactor.errors import ProviderError
from legacy_refactor.models import WORK_STAGES, ModelConfig, ModelSelection, TokenUsage

Scripted = Union[str, Exception]


class ScriptedClient:
    """Returns canned responses in call order; exceptions are raised."""

    provider = "mock"

    def __init__(self, responses: List[Scripted]) -> None:
        self.responses = list(responses)
        self.requests: List[GenerationRequest] = []

    def generate_content(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("ScriptedClient ran out of responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return GenerationResult(text=item, usage=TokenUsage(10, 20, 30))


def plan_json(required_files: Optional[List[str]] = None) -> str:
    return json.dumps(
        {
            "summary": "Legacy login script.",
            "variables": ["$user"],
            "security_concerns": ["SQL injection"],
            "migration_strategy": "FastAPI routers plus services.",
            "required_files": required_files or [],
        }
    )


FILES_JSON = json.dumps(
    {
        "files": [
            {"filename": "main.py", "content": "app = FastAPI()"},
            {"filename": "services.py", "content": "def login(): ..."},
        ]
    }
)

AUDIT_JSON = json.dumps(
    {
        "comments": "Looks reasonable.",
        "security_issues": [
            {
                "severity": "High",
                "title": "Plaintext password",
                "description": "Passwords compared without hashing.",
                "location": "services.py",
            }
        ],
    }
)


@pytest.fixture
def mock_config() -> ModelConfig:
    return ModelConfig({stage: ModelSelection("mock", f"{stage.value.lower()}-model") for stage in WORK_STAGES})


@pytest.fixture
def scripted_factory() -> Callable[[List[Scripted]], tuple]:
    def build(responses: List[Scripted]):
        client = ScriptedClient(responses)

        def factory(provider, credential=None, store=None, timeout=None):
            return client

        return client, factory

    return build


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("openrouter", "some-model", "503 Service Unavailable")
