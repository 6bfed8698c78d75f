"""Pipeline orchestration: Analyst -> (wait for files) -> Architect -> Coder -> Auditor.

A ``MigrationPipeline`` instance drives exactly one run. ``start`` runs the
Analyst and either suspends in ``WAITING_FOR_USER`` (the plan names local
files that were not supplied) or carries on to completion. ``resume`` takes
the missing files and continues from the Architect using the plan computed
by ``start``.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from legacy_refactor.adapters.factory import create_llm_client, resolve_credential
from legacy_refactor.adapters.llm_base import LLMClient
from legacy_refactor.errors import ConfigurationError, MigrationError
from legacy_refactor.models import (
    MAIN_FILE,
    WORK_STAGES,
    AnalystPlan,
    AuditReport,
    FileMap,
    LogEntry,
    LogType,
    ModelConfig,
    ModelSelection,
    RefactorResult,
    Stage,
)
from legacy_refactor.settings import CredentialStore
from legacy_refactor.stages import StageContext, run_analyst, run_architect, run_auditor, run_coder

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., LLMClient]


def _with_main_file(source_code: str, *sources: FileMap) -> FileMap:
    """Merge file maps; the legacy entry point always keeps ``MAIN_FILE``."""
    context: FileMap = {MAIN_FILE: source_code}
    for files in sources:
        context.update((name, content) for name, content in files.items() if name != MAIN_FILE)
    return context


class MigrationPipeline:
    def __init__(
        self,
        model_config: Optional[ModelConfig] = None,
        api_keys: Optional[Dict[str, str]] = None,
        store: Optional[CredentialStore] = None,
        preloaded: Optional[FileMap] = None,
        on_progress: Optional[Callable[[Stage], None]] = None,
        on_log: Optional[Callable[[LogEntry], None]] = None,
        timeout: Optional[float] = None,
        client_factory: ClientFactory = create_llm_client,
    ) -> None:
        self.model_config = model_config or ModelConfig()
        self.api_keys = dict(api_keys or {})
        self.store = store or CredentialStore()
        self.preloaded = dict(preloaded or {})
        self.on_progress = on_progress
        self.on_log = on_log
        self.timeout = timeout
        self.client_factory = client_factory

        self.state = Stage.IDLE
        self.logs: List[LogEntry] = []
        self.plan: Optional[AnalystPlan] = None
        self.context: FileMap = {}
        self.architecture: Optional[str] = None
        self.generated_files: Optional[FileMap] = None
        self.audit: Optional[AuditReport] = None
        self._ctx = StageContext(self.model_config, self._client_for, self._append_log)

    @property
    def missing_files(self) -> List[str]:
        if self.plan is None:
            return []
        return [name for name in self.plan.required_files if name not in self.context]

    def start(self, source_code: str) -> Optional[RefactorResult]:
        """Run the Analyst; return the result, or ``None`` when waiting for files."""
        if self.state != Stage.IDLE:
            raise RuntimeError(f"start() requires state IDLE, pipeline is {self.state.value}.")

        self._transition(Stage.ANALYST)
        try:
            self._preflight()
            plan = run_analyst(self._ctx, source_code)
        except MigrationError as exc:
            self._fail(exc)
            raise

        self.plan = plan
        self.context = _with_main_file(source_code, self.preloaded)
        if plan.required_files and self.missing_files:
            self._append_log(
                LogEntry(
                    Stage.ANALYST,
                    LogType.INFO,
                    "Waiting for dependencies: " + ", ".join(self.missing_files),
                )
            )
            self._transition(Stage.WAITING_FOR_USER)
            return None
        return self._complete(plan)

    def resume(self, files: FileMap) -> RefactorResult:
        """Continue a suspended run with the dependency files the plan asked for."""
        if self.state != Stage.WAITING_FOR_USER:
            raise RuntimeError(
                f"resume() requires state WAITING_FOR_USER, pipeline is {self.state.value}."
            )
        plan = self.plan
        self.context = _with_main_file(self.context[MAIN_FILE], self.context, files)
        if self.missing_files:
            self._append_log(
                LogEntry(
                    Stage.WAITING_FOR_USER,
                    LogType.INFO,
                    "Continuing without: " + ", ".join(self.missing_files),
                )
            )
        return self._complete(plan)

    def _complete(self, plan: AnalystPlan) -> RefactorResult:
        try:
            self._transition(Stage.ARCHITECT)
            architecture = run_architect(self._ctx, plan, self.context)
            self.architecture = architecture

            self._transition(Stage.CODER)
            generated = run_coder(self._ctx, architecture, self.context)
            self.generated_files = generated

            self._transition(Stage.AUDITOR)
            audit = run_auditor(self._ctx, self.context, generated)
            self.audit = audit
        except MigrationError as exc:
            self._fail(exc)
            raise

        self._transition(Stage.COMPLETE)
        return RefactorResult(
            plan=plan,
            generated_files=generated,
            security_report=list(audit.security_issues),
            auditor_comments=audit.comments or "Audit completed.",
            model_config=self.model_config,
        )

    def _preflight(self) -> None:
        for stage in WORK_STAGES:
            selection = self.model_config.for_stage(stage)
            credential = resolve_credential(
                selection.provider, self.api_keys.get(selection.provider), self.store
            )
            if not credential:
                raise ConfigurationError(
                    f"Missing API key for {selection.provider} "
                    f"(needed by {stage.value.lower()} stage)."
                )

    def _client_for(self, selection: ModelSelection) -> LLMClient:
        return self.client_factory(
            selection.provider,
            self.api_keys.get(selection.provider),
            self.store,
            self.timeout,
        )

    def _transition(self, stage: Stage) -> None:
        logger.info("pipeline %s -> %s", self.state.value, stage.value)
        self.state = stage
        if self.on_progress is not None:
            self.on_progress(stage)

    def _append_log(self, entry: LogEntry) -> None:
        self.logs.append(entry)
        if self.on_log is not None:
            self.on_log(entry)

    def _fail(self, exc: MigrationError) -> None:
        logger.error("pipeline failed during %s: %s", self.state.value, exc)
        self._append_log(LogEntry(self.state, LogType.ERROR, str(exc)))
        self._transition(Stage.ERROR)
