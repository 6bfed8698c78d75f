"""The four pipeline stages.

Each stage is a ``StageRunner``: it knows which request to send (schema and
mime type) and how to turn the raw response into the stage's output. The
``run_*`` functions build the stage prompt and hand it to the runner.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from jsonschema import ValidationError, validate

from legacy_refactor.adapters.llm_base import JSON_MIME_TYPE, GenerationRequest, LLMClient
from legacy_refactor.errors import ExtractionError
from legacy_refactor.gates.parsers import clean_llm_output, extract_file_map, extract_object
from legacy_refactor.models import (
    AnalystPlan,
    AuditReport,
    FileMap,
    LogEntry,
    LogType,
    ModelConfig,
    ModelSelection,
    Stage,
)
from legacy_refactor.prompts import analyst_prompt, architect_prompt, auditor_prompt, coder_prompt
from legacy_refactor.schemas.translate import SchemaNode, SchemaType, to_json_schema

_STRING = SchemaNode(SchemaType.STRING)
_STRING_LIST = SchemaNode(SchemaType.ARRAY, items=_STRING)

PLAN_SCHEMA = SchemaNode(
    SchemaType.OBJECT,
    properties={
        "summary": _STRING,
        "variables": _STRING_LIST,
        "security_concerns": _STRING_LIST,
        "migration_strategy": _STRING,
        "required_files": SchemaNode(
            SchemaType.ARRAY,
            items=_STRING,
            description="List of filenames found in local imports/includes",
        ),
    },
    required=("summary", "variables", "security_concerns", "migration_strategy", "required_files"),
)

AUDIT_SCHEMA = SchemaNode(
    SchemaType.OBJECT,
    properties={
        "comments": _STRING,
        "security_issues": SchemaNode(
            SchemaType.ARRAY,
            items=SchemaNode(
                SchemaType.OBJECT,
                properties={
                    "severity": SchemaNode(
                        SchemaType.STRING, enum=("Critical", "High", "Medium", "Low")
                    ),
                    "title": _STRING,
                    "description": _STRING,
                    "location": _STRING,
                },
                required=("severity", "title", "description", "location"),
            ),
        ),
    },
    required=("comments", "security_issues"),
)

LogFn = Callable[[LogEntry], None]
Normalizer = Callable[[str, List[str]], Any]


@dataclass
class StageContext:
    model_config: ModelConfig
    resolve_client: Callable[[ModelSelection], LLMClient]
    log: LogFn


@dataclass(frozen=True)
class StageRunner:
    stage: Stage
    normalize: Normalizer
    schema: Optional[SchemaNode] = None
    mime_type: Optional[str] = None

    def run(self, ctx: StageContext, prompt: str) -> Any:
        selection = ctx.model_config.for_stage(self.stage)
        client = ctx.resolve_client(selection)
        ctx.log(
            LogEntry(
                self.stage,
                LogType.PROMPT,
                f"Using Provider: {selection.provider}, Model: {selection.model}\n{prompt}",
            )
        )

        request = GenerationRequest(
            model=selection.model,
            prompt=prompt,
            response_schema=self.schema,
            response_mime_type=self.mime_type,
        )
        started = time.monotonic()
        result = client.generate_content(request)
        duration_ms = int((time.monotonic() - started) * 1000)

        notes: List[str] = []
        try:
            output = self.normalize(result.text, notes)
        finally:
            for note in notes:
                ctx.log(LogEntry(self.stage, LogType.INFO, note))
        ctx.log(
            LogEntry(
                self.stage,
                LogType.RESPONSE,
                result.text,
                duration_ms=duration_ms,
                tokens=result.usage,
            )
        )
        return output


def _validated_object(raw_text: str, schema: SchemaNode, label: str) -> Dict[str, Any]:
    payload = extract_object(raw_text)
    try:
        validate(instance=payload, schema=to_json_schema(schema))
    except ValidationError as exc:
        raise ExtractionError(
            f"{label} output does not match its schema: {exc.message}", raw_text=raw_text
        ) from exc
    return payload


def _normalize_plan(raw_text: str, notes: List[str]) -> AnalystPlan:
    return AnalystPlan.from_dict(_validated_object(raw_text, PLAN_SCHEMA, "Analyst"))


def _normalize_architecture(raw_text: str, notes: List[str]) -> str:
    cleaned = clean_llm_output(raw_text)
    if not cleaned:
        raise ExtractionError("Architect returned no text after cleaning.", raw_text=raw_text)
    return cleaned


def _normalize_files(raw_text: str, notes: List[str]) -> FileMap:
    def on_fallback(strategy: str, failure: Optional[Exception]) -> None:
        reason = str(failure) if failure else "no files in JSON payload"
        notes.append(f"Coder JSON parse failed: {reason}. Attempting {strategy}.")

    return extract_file_map(raw_text, on_fallback=on_fallback)


def _normalize_audit(raw_text: str, notes: List[str]) -> AuditReport:
    return AuditReport.from_dict(_validated_object(raw_text, AUDIT_SCHEMA, "Auditor"))


ANALYST = StageRunner(Stage.ANALYST, _normalize_plan, PLAN_SCHEMA, JSON_MIME_TYPE)
ARCHITECT = StageRunner(Stage.ARCHITECT, _normalize_architecture)
CODER = StageRunner(Stage.CODER, _normalize_files, mime_type=JSON_MIME_TYPE)
AUDITOR = StageRunner(Stage.AUDITOR, _normalize_audit, AUDIT_SCHEMA, JSON_MIME_TYPE)


def run_analyst(ctx: StageContext, main_code: str) -> AnalystPlan:
    return ANALYST.run(ctx, analyst_prompt(main_code))


def run_architect(ctx: StageContext, plan: AnalystPlan, context: FileMap) -> str:
    return ARCHITECT.run(ctx, architect_prompt(plan, context))


def run_coder(ctx: StageContext, architecture: str, context: FileMap) -> FileMap:
    return CODER.run(ctx, coder_prompt(architecture, context))


def run_auditor(ctx: StageContext, original: FileMap, generated: FileMap) -> AuditReport:
    return AUDITOR.run(ctx, auditor_prompt(original, generated))
