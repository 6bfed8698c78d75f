from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, Iterator, List, Optional

from legacy_refactor.errors import ExtractionError
from legacy_refactor.models import FileMap

_REASONING_BLOCK = re.compile(r"<think>.*?</think>", flags=re.DOTALL)
_FENCE_DELIMITER = re.compile(r"```[\w.+-]*")
_HEADED_FILE_BLOCK = re.compile(
    r"###\s+([A-Za-z0-9_\-./]+)\s+```[\w.+-]*[ \t]*\n?(.*?)```",
    flags=re.DOTALL,
)


def strip_reasoning(text: str) -> str:
    return _REASONING_BLOCK.sub("", text)


def strip_code_fences(text: str) -> str:
    return _FENCE_DELIMITER.sub("", text)


def clean_llm_output(text: str) -> str:
    return strip_code_fences(strip_reasoning(text)).strip()


def _snippet(text: str) -> str:
    snippet = text.strip().replace("\n", " ")
    return (snippet[:200] + "...") if len(snippet) > 200 else snippet


def _iter_json_candidates(text: str) -> List[str]:
    candidates: List[str] = [text]
    for match in re.finditer(r"[\[{]", text):
        candidates.append(text[match.start():])
    return candidates


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _iter_json_values(cleaned: str) -> Iterator[Any]:
    """Yield every JSON value found in ``cleaned``, whole candidates first."""
    candidates = _iter_json_candidates(cleaned)
    for candidate in candidates:
        parsed = _try_parse(candidate)
        if parsed is not None:
            yield parsed

    decoder = json.JSONDecoder()
    for candidate in candidates:
        try:
            parsed, _ = decoder.raw_decode(candidate.lstrip())
        except json.JSONDecodeError:
            continue
        yield parsed


def _no_json(raw_text: str) -> ExtractionError:
    return ExtractionError(
        f"No JSON object found in response. Snippet: {_snippet(raw_text)}",
        raw_text=raw_text,
    )


def extract_json(raw_text: str) -> Any:
    for parsed in _iter_json_values(clean_llm_output(raw_text)):
        return parsed
    raise _no_json(raw_text)


def strict_file_map(raw_text: str) -> FileMap:
    """Read ``{"files": [{"filename": ..., "content": ...}]}`` from the response."""
    payload: Optional[Dict[str, Any]] = None
    found = False
    for parsed in _iter_json_values(clean_llm_output(raw_text)):
        found = True
        if isinstance(parsed, dict) and "files" in parsed:
            payload = parsed
            break
    if not found:
        raise _no_json(raw_text)
    if payload is None:
        return {}
    files = payload.get("files")
    file_map: FileMap = {}
    if isinstance(files, list):
        for entry in files:
            if not isinstance(entry, dict):
                continue
            filename = entry.get("filename")
            content = entry.get("content")
            if isinstance(filename, str) and filename and isinstance(content, str) and content:
                file_map[filename] = content
    elif isinstance(files, dict):
        for filename, content in files.items():
            if isinstance(content, str) and content:
                file_map[str(filename)] = content
    return file_map


def tolerant_file_map(raw_text: str) -> FileMap:
    """Collect ``### name`` headings that are followed by a fenced code block."""
    file_map: FileMap = {}
    for match in _HEADED_FILE_BLOCK.finditer(strip_reasoning(raw_text)):
        file_map[match.group(1).strip()] = match.group(2).strip()
    return file_map


FILE_MAP_STRATEGIES: List[Callable[[str], FileMap]] = [strict_file_map, tolerant_file_map]


def extract_file_map(
    raw_text: str,
    on_fallback: Optional[Callable[[str, Exception | None], None]] = None,
) -> FileMap:
    failure: Exception | None = None
    for index, strategy in enumerate(FILE_MAP_STRATEGIES):
        if index > 0 and on_fallback is not None:
            on_fallback(strategy.__name__, failure)
        try:
            file_map = strategy(raw_text)
        except ExtractionError as exc:
            failure = exc
            continue
        if file_map:
            return file_map
    raise ExtractionError(
        "Coder failed to generate files. Neither the JSON parser nor the "
        "heading/code-block scan found any file.",
        raw_text=raw_text,
    )


def extract_object(raw_text: str) -> Dict[str, Any]:
    first: Optional[str] = None
    for parsed in _iter_json_values(clean_llm_output(raw_text)):
        if isinstance(parsed, dict):
            return parsed
        first = first or type(parsed).__name__
    if first is None:
        raise _no_json(raw_text)
    raise ExtractionError(f"Expected a JSON object, got {first}.", raw_text=raw_text)
