from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from legacy_refactor.errors import ConfigurationError

FileMap = Dict[str, str]

MAIN_FILE = "main.legacy"


class Stage(str, Enum):
    IDLE = "IDLE"
    ANALYST = "ANALYST"
    WAITING_FOR_USER = "WAITING_FOR_USER"
    ARCHITECT = "ARCHITECT"
    CODER = "CODER"
    AUDITOR = "AUDITOR"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


WORK_STAGES: Tuple[Stage, ...] = (Stage.ANALYST, Stage.ARCHITECT, Stage.CODER, Stage.AUDITOR)


class LogType(str, Enum):
    PROMPT = "prompt"
    RESPONSE = "response"
    INFO = "info"
    ERROR = "error"


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True)
class TokenUsage:
    input: int = 0
    output: int = 0
    total: int = 0

    @classmethod
    def from_counts(
        cls, input: Optional[int], output: Optional[int], total: Optional[int]
    ) -> "TokenUsage":
        input = input or 0
        output = output or 0
        return cls(input=input, output=output, total=total or input + output)

    def to_dict(self) -> Dict[str, int]:
        return {"input": self.input, "output": self.output, "total": self.total}


@dataclass(frozen=True)
class ModelSelection:
    provider: str
    model: str


DEFAULT_MODEL_CONFIG: Dict[Stage, ModelSelection] = {
    Stage.ANALYST: ModelSelection("google", "gemini-3-flash-preview"),
    Stage.ARCHITECT: ModelSelection("google", "gemini-3-pro"),
    Stage.CODER: ModelSelection("openrouter", "mistralai/devstral-2512:free"),
    Stage.AUDITOR: ModelSelection("openrouter", "meta-llama/llama-3.3-70b-instruct:free"),
}


@dataclass
class ModelConfig:
    selections: Dict[Stage, ModelSelection] = field(
        default_factory=lambda: dict(DEFAULT_MODEL_CONFIG)
    )

    def for_stage(self, stage: Stage) -> ModelSelection:
        if stage not in self.selections:
            raise ConfigurationError(f"No model configured for stage {stage.value}.")
        return self.selections[stage]

    @classmethod
    def from_dict(cls, payload: Dict) -> "ModelConfig":
        selections = dict(DEFAULT_MODEL_CONFIG)
        for key, value in (payload or {}).items():
            stage = Stage(str(key).upper())
            if stage not in WORK_STAGES:
                raise ValueError(f"Stage {stage.value} does not take a model.")
            selections[stage] = ModelSelection(
                provider=str(value["provider"]), model=str(value["model"])
            )
        return cls(selections=selections)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            stage.value: {"provider": sel.provider, "model": sel.model}
            for stage, sel in self.selections.items()
        }


@dataclass(frozen=True)
class AnalystPlan:
    summary: str
    variables: Tuple[str, ...]
    security_concerns: Tuple[str, ...]
    migration_strategy: str
    required_files: Tuple[str, ...]

    @classmethod
    def from_dict(cls, payload: Dict) -> "AnalystPlan":
        return cls(
            summary=payload["summary"],
            variables=tuple(payload["variables"]),
            security_concerns=tuple(payload["security_concerns"]),
            migration_strategy=payload["migration_strategy"],
            required_files=tuple(payload["required_files"]),
        )

    def to_dict(self) -> Dict:
        return {
            "summary": self.summary,
            "variables": list(self.variables),
            "security_concerns": list(self.security_concerns),
            "migration_strategy": self.migration_strategy,
            "required_files": list(self.required_files),
        }


@dataclass(frozen=True)
class SecurityIssue:
    severity: Severity
    title: str
    description: str
    location: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "location": self.location,
        }


@dataclass(frozen=True)
class AuditReport:
    comments: str
    security_issues: Tuple[SecurityIssue, ...]

    @classmethod
    def from_dict(cls, payload: Dict) -> "AuditReport":
        issues = tuple(
            SecurityIssue(
                severity=Severity(item["severity"]),
                title=item["title"],
                description=item["description"],
                location=item["location"],
            )
            for item in payload["security_issues"]
        )
        return cls(comments=payload["comments"], security_issues=issues)


@dataclass(frozen=True)
class LogEntry:
    step: Stage
    type: LogType
    content: str
    timestamp: float = field(default_factory=time.time)
    duration_ms: Optional[int] = None
    tokens: Optional[TokenUsage] = None

    def to_dict(self) -> Dict:
        return {
            "step": self.step.value,
            "type": self.type.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
            "tokens": self.tokens.to_dict() if self.tokens else None,
        }


@dataclass
class RefactorResult:
    plan: AnalystPlan
    generated_files: FileMap
    security_report: List[SecurityIssue]
    auditor_comments: str
    model_config: Optional[ModelConfig] = None
