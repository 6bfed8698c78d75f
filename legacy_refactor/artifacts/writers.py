from __future__ import annotations

import json
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable, List

from legacy_refactor.models import AnalystPlan, FileMap, LogEntry, RefactorResult
from legacy_refactor.utils.io import write_json, write_text


def render_readme(plan: AnalystPlan) -> str:
    return f"# Migration Report\n\n{plan.summary}\n\n## Strategy\n{plan.migration_strategy}\n"


def render_plan(plan: AnalystPlan) -> str:
    lines: List[str] = ["# Analysis Plan", "", plan.summary, "", "## Migration Strategy", plan.migration_strategy]
    if plan.variables:
        lines.extend(["", "## Variables"])
        lines.extend([f"- {item}" for item in plan.variables])
    if plan.security_concerns:
        lines.extend(["", "## Security Concerns"])
        lines.extend([f"- {item}" for item in plan.security_concerns])
    if plan.required_files:
        lines.extend(["", "## Required Files"])
        lines.extend([f"- {item}" for item in plan.required_files])
    return "\n".join(lines) + "\n"


def render_security_report(result: RefactorResult) -> str:
    lines: List[str] = ["# Security Report", "", result.auditor_comments, ""]
    if not result.security_report:
        lines.append("No findings.")
    for issue in result.security_report:
        lines.extend(
            [
                f"## [{issue.severity.value}] {issue.title}",
                "",
                f"Location: {issue.location}",
                "",
                issue.description,
                "",
            ]
        )
    return "\n".join(lines).strip() + "\n"


def _safe_relative(filename: str) -> PurePosixPath:
    path = PurePosixPath(filename.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        raise ValueError(f"Refusing to write generated file outside the output dir: {filename}")
    return path


def write_generated_files(out_dir: Path, files: FileMap) -> None:
    for filename, content in files.items():
        write_text(out_dir / _safe_relative(filename), content)


def write_logs(path: Path, logs: Iterable[LogEntry]) -> None:
    write_text(path, "".join(json.dumps(entry.to_dict()) + "\n" for entry in logs))


def write_result(run_dir: Path, result: RefactorResult) -> None:
    write_generated_files(run_dir / "generated", result.generated_files)
    write_text(run_dir / "generated" / "README.md", render_readme(result.plan))
    write_text(run_dir / "plan.md", render_plan(result.plan))
    write_json(run_dir / "plan.json", result.plan.to_dict())
    write_json(
        run_dir / "security_report.json",
        {
            "comments": result.auditor_comments,
            "security_issues": [issue.to_dict() for issue in result.security_report],
        },
    )
    write_text(run_dir / "security_report.md", render_security_report(result))


def write_zip(path: Path, result: RefactorResult) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for filename, content in result.generated_files.items():
            archive.writestr(str(_safe_relative(filename)), content)
        archive.writestr("README.md", render_readme(result.plan))
