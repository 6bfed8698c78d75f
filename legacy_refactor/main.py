from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from legacy_refactor.artifacts.writers import write_logs, write_result, write_zip
from legacy_refactor.errors import MigrationError
from legacy_refactor.models import WORK_STAGES, FileMap, ModelConfig, ModelSelection
from legacy_refactor.pipeline import MigrationPipeline
from legacy_refactor.settings import load_model_config
from legacy_refactor.utils.io import read_text
from legacy_refactor.utils.time import run_id

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Migrate a legacy PHP/Python script to modular FastAPI")
    parser.add_argument("--source", required=True, help="Legacy entry point to migrate")
    parser.add_argument("--mode", choices=["mock", "live"], default="live")
    parser.add_argument("--config", help="YAML file mapping stages to provider/model")
    parser.add_argument("--deps-dir", help="Directory searched for files the analysis asks for")
    parser.add_argument("--dep", action="append", default=[], help="Dependency file (repeatable)")
    parser.add_argument("--out", default="runs", help="Directory receiving run outputs")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    parser.add_argument("--zip", action="store_true", help="Also write refactored_project.zip")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def collect_dependencies(
    required: Iterable[str], deps_dir: Optional[Path], dep_paths: List[Path]
) -> FileMap:
    by_name = {path.name: path for path in dep_paths}
    files: FileMap = {}
    for name in required:
        candidate = by_name.get(name) or by_name.get(Path(name).name)
        if candidate is None and deps_dir is not None:
            for option in (deps_dir / name, deps_dir / Path(name).name):
                if option.is_file():
                    candidate = option
                    break
        if candidate is None:
            logger.warning("dependency not found: %s", name)
            continue
        files[name] = read_text(candidate)
    return files


def _model_config(args: argparse.Namespace) -> ModelConfig:
    if args.mode == "mock":
        return ModelConfig({stage: ModelSelection("mock", "mock") for stage in WORK_STAGES})
    return load_model_config(Path(args.config) if args.config else None)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    source_path = Path(args.source)
    if not source_path.is_file():
        logger.error("source file not found: %s", source_path)
        return 2

    run_dir = Path(args.out) / run_id()
    pipeline = MigrationPipeline(
        model_config=_model_config(args),
        on_progress=lambda stage: logger.info("stage: %s", stage.value),
        timeout=args.timeout,
    )

    try:
        result = pipeline.start(read_text(source_path))
        if result is None:
            logger.info("analysis requires: %s", ", ".join(pipeline.missing_files))
            deps = collect_dependencies(
                pipeline.missing_files,
                Path(args.deps_dir) if args.deps_dir else None,
                [Path(item) for item in args.dep],
            )
            result = pipeline.resume(deps)
    except MigrationError as exc:
        logger.error("migration failed: %s", exc)
        return 1
    finally:
        write_logs(run_dir / "logs.jsonl", pipeline.logs)

    try:
        write_result(run_dir, result)
        if args.zip:
            write_zip(run_dir / "refactored_project.zip", result)
    except ValueError as exc:
        logger.error("could not export generated files: %s", exc)
        return 1
    logger.info(
        "wrote %d files and %d findings to %s",
        len(result.generated_files),
        len(result.security_report),
        run_dir,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
