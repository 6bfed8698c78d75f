from __future__ import annotations

import json

import pytest

from legacy_refactor.errors import ExtractionError
from legacy_refactor.gates.parsers import (
    clean_llm_output,
    extract_file_map,
    extract_json,
    extract_object,
    strict_file_map,
    tolerant_file_map,
)

FENCED_PLAN = '```json\n{"summary": "ok", "required_files": ["db.php"]}\n```'


def test_clean_strips_reasoning_and_fences() -> None:
    text = "<think>\nI should answer in JSON.\n</think>\n```json\n{\"a\": 1}\n```"
    assert clean_llm_output(text) == '{"a": 1}'


def test_clean_removes_fences_with_any_language_tag() -> None:
    text = "```typescript\nconst a = 1;\n```\n```c++\nint b;\n```"
    assert "```" not in clean_llm_output(text)
    assert "typescript" not in clean_llm_output(text)


@pytest.mark.parametrize(
    "text",
    [
        FENCED_PLAN,
        "<think>plan</think>plain answer",
        "  already clean  ",
        "```\nno tag\n```",
    ],
)
def test_clean_is_idempotent(text: str) -> None:
    once = clean_llm_output(text)
    assert clean_llm_output(once) == once


def test_reasoning_block_does_not_change_parse() -> None:
    with_reasoning = f"<think>Let me think about the files.</think>\n{FENCED_PLAN}"
    assert extract_json(with_reasoning) == extract_json(FENCED_PLAN)


def test_extract_json_skips_leading_prose() -> None:
    assert extract_json('Here you go:\n{"summary": "x"}\nThanks!') == {"summary": "x"}


def test_extract_json_raises_extraction_error() -> None:
    with pytest.raises(ExtractionError) as info:
        extract_json("no structure at all")
    assert info.value.raw_text == "no structure at all"


def test_extract_object_rejects_arrays() -> None:
    with pytest.raises(ExtractionError):
        extract_object("[1, 2, 3]")


def test_strict_extraction_wins_without_fallback() -> None:
    payload = json.dumps(
        {
            "files": [
                {"filename": "main.py", "content": "a"},
                {"filename": "models.py", "content": "b"},
                {"filename": "routers.py", "content": "c"},
            ]
        }
    )
    calls = []

    files = extract_file_map(payload, on_fallback=lambda name, exc: calls.append(name))

    assert files == {"main.py": "a", "models.py": "b", "routers.py": "c"}
    assert calls == []


def test_strict_extraction_accepts_mapping_form() -> None:
    assert strict_file_map('{"files": {"main.py": "print(1)"}}') == {"main.py": "print(1)"}


def test_strict_extraction_skips_incomplete_entries() -> None:
    payload = json.dumps({"files": [{"filename": "a.py"}, {"filename": "b.py", "content": "x"}]})
    assert strict_file_map(payload) == {"b.py": "x"}


def test_tolerant_fallback_reads_headed_code_blocks() -> None:
    text = (
        "I could not produce JSON, here are the files.\n\n"
        "### main.py\n```python\nfrom fastapi import FastAPI\napp = FastAPI()\n```\n\n"
        "### app/services.py\n```\ndef run():\n    return 1\n```\n"
    )
    calls = []

    files = extract_file_map(text, on_fallback=lambda name, exc: calls.append(name))

    assert files == {
        "main.py": "from fastapi import FastAPI\napp = FastAPI()",
        "app/services.py": "def run():\n    return 1",
    }
    assert calls == ["tolerant_file_map"]


def test_tolerant_fallback_when_files_collection_is_empty() -> None:
    text = '{"files": []}\n\n### main.py\n```python\nprint("hi")\n```'
    assert extract_file_map(text) == {"main.py": 'print("hi")'}


def test_tolerant_scan_ignores_reasoning() -> None:
    text = "<think>### draft.py\n```python\nx = 1\n```</think>\n### final.py\n```python\ny = 2\n```"
    assert tolerant_file_map(text) == {"final.py": "y = 2"}


def test_extraction_fails_when_nothing_matches() -> None:
    with pytest.raises(ExtractionError) as info:
        extract_file_map("Sorry, I cannot help with that.")
    assert "Coder failed to generate files" in str(info.value)


def test_extract_object_skips_brackets_in_leading_prose() -> None:
    text = 'The script reads $rows[0] from the DB.\n{"summary": "x", "required_files": []}'
    assert extract_object(text) == {"summary": "x", "required_files": []}


def test_extract_object_skips_empty_braces_before_payload() -> None:
    text = 'Defaults to {} when unset.\n{"summary": "x"}'
    assert extract_object(text) == {"summary": "x"}


def test_strict_extraction_skips_braces_in_leading_prose() -> None:
    payload = json.dumps({"files": [{"filename": "main.py", "content": "app = 1"}]})
    text = f"Config uses {{}} as default.\n```json\n{payload}\n```"
    calls = []

    files = extract_file_map(text, on_fallback=lambda name, exc: calls.append(name))

    assert files == {"main.py": "app = 1"}
    assert calls == []
