from __future__ import annotations

import json

import pytest

from conftest import AUDIT_JSON, FILES_JSON, ScriptedClient, plan_json
from legacy_refactor.adapters.llm_base import JSON_MIME_TYPE
from legacy_refactor.errors import ExtractionError
from legacy_refactor.models import LogType, Severity, Stage
from legacy_refactor.stages import (
    AUDIT_SCHEMA,
    PLAN_SCHEMA,
    StageContext,
    run_analyst,
    run_architect,
    run_auditor,
    run_coder,
)


def _context(mock_config, client: ScriptedClient, logs: list) -> StageContext:
    return StageContext(mock_config, lambda selection: client, logs.append)


def test_analyst_returns_plan_and_logs_prompt_then_response(mock_config) -> None:
    client = ScriptedClient([f"<think>hmm</think>```json\n{plan_json(['db.php'])}\n```"])
    logs: list = []

    plan = run_analyst(_context(mock_config, client, logs), "<?php include 'db.php'; ?>")

    assert plan.required_files == ("db.php",)
    assert plan.security_concerns == ("SQL injection",)
    assert [entry.type for entry in logs] == [LogType.PROMPT, LogType.RESPONSE]
    assert logs[0].content.startswith("Using Provider: mock, Model: analyst-model\n")
    assert "<?php include 'db.php'; ?>" in logs[0].content
    assert logs[1].tokens.total == 30
    assert logs[1].duration_ms is not None
    request = client.requests[0]
    assert request.response_schema == PLAN_SCHEMA
    assert request.response_mime_type == JSON_MIME_TYPE


def test_analyst_rejects_payload_missing_fields(mock_config) -> None:
    client = ScriptedClient([json.dumps({"summary": "only a summary"})])
    logs: list = []

    with pytest.raises(ExtractionError):
        run_analyst(_context(mock_config, client, logs), "code")

    assert [entry.type for entry in logs] == [LogType.PROMPT]


def test_architect_passes_cleaned_text_through(mock_config) -> None:
    client = ScriptedClient(["<think>draft</think>\nmodels.py holds the models."])
    logs: list = []
    plan = run_analyst(_context(mock_config, ScriptedClient([plan_json()]), []), "code")

    architecture = run_architect(_context(mock_config, client, logs), plan, {"main.legacy": "code"})

    assert architecture == "models.py holds the models."
    assert "--- FILE: main.legacy ---\ncode" in client.requests[0].prompt
    assert client.requests[0].response_schema is None


def test_coder_logs_fallback_before_response(mock_config) -> None:
    client = ScriptedClient(["### main.py\n```python\napp = 1\n```"])
    logs: list = []

    files = run_coder(_context(mock_config, client, logs), "architecture", {"main.legacy": "code"})

    assert files == {"main.py": "app = 1"}
    assert [entry.type for entry in logs] == [LogType.PROMPT, LogType.INFO, LogType.RESPONSE]
    assert all(entry.step == Stage.CODER for entry in logs)
    assert client.requests[0].response_mime_type == JSON_MIME_TYPE


def test_coder_strict_json_has_no_info_entry(mock_config) -> None:
    logs: list = []
    files = run_coder(_context(mock_config, ScriptedClient([FILES_JSON]), logs), "a", {})
    assert set(files) == {"main.py", "services.py"}
    assert [entry.type for entry in logs] == [LogType.PROMPT, LogType.RESPONSE]


def test_auditor_returns_findings(mock_config) -> None:
    client = ScriptedClient([AUDIT_JSON])
    logs: list = []

    report = run_auditor(
        _context(mock_config, client, logs),
        {"main.legacy": "x" * 600},
        {"services.py": "def login(): ..."},
    )

    assert report.comments == "Looks reasonable."
    assert report.security_issues[0].severity == Severity.HIGH
    assert client.requests[0].response_schema == AUDIT_SCHEMA
    assert "main.legacy: " + "x" * 500 + "..." in client.requests[0].prompt


def test_auditor_rejects_unknown_severity(mock_config) -> None:
    payload = json.loads(AUDIT_JSON)
    payload["security_issues"][0]["severity"] = "Catastrophic"
    client = ScriptedClient([json.dumps(payload)])

    with pytest.raises(ExtractionError):
        run_auditor(_context(mock_config, client, []), {}, {"a.py": "x"})


def test_analyst_ignores_array_syntax_in_prose(mock_config) -> None:
    client = ScriptedClient(["The script reads $rows[0] from the DB.\n" + plan_json(["db.php"])])

    plan = run_analyst(_context(mock_config, client, []), "<?php ?>")

    assert plan.required_files == ("db.php",)
