from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict

from legacy_refactor.models import AnalystPlan, FileMap
from legacy_refactor.utils.io import read_text

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
ORIGINAL_EXCERPT_CHARS = 500
_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render_template(name: str, values: Dict[str, str]) -> str:
    template = read_text(TEMPLATES_DIR / f"{name}.md")
    # Single pass: substituted text is never rescanned for placeholders.
    return _PLACEHOLDER.sub(lambda match: values.get(match.group(1), match.group(0)), template)


def format_context(files: FileMap) -> str:
    return "\n".join(
        f"--- FILE: {name} ---\n{content}\n" for name, content in files.items()
    )


def analyst_prompt(main_code: str) -> str:
    return render_template("analyst", {"MAIN_CODE": main_code})


def architect_prompt(plan: AnalystPlan, context: FileMap) -> str:
    return render_template(
        "architect",
        {"PLAN_JSON": json.dumps(plan.to_dict()), "CONTEXT": format_context(context)},
    )


def coder_prompt(architecture: str, context: FileMap) -> str:
    return render_template(
        "coder", {"ARCHITECTURE": architecture, "CONTEXT": format_context(context)}
    )


def auditor_prompt(original: FileMap, generated: FileMap) -> str:
    original_str = "\n".join(
        f"{name}: {content[:ORIGINAL_EXCERPT_CHARS]}..." for name, content in original.items()
    )
    generated_str = "\n".join(f"--- {name} ---\n{content}" for name, content in generated.items())
    return render_template("auditor", {"ORIGINAL": original_str, "GENERATED": generated_str})
