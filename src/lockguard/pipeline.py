"""Guarded yarn install pipeline.

Stages run strictly in sequence::

    classify -> find root -> snapshot -> dry-run -> analyze -> cache -> build

The dry-run exists only to materialize the would-be ``yarn.lock``; its
effects on ``yarn.lock`` and ``package.json`` are always rolled back before
analysis, whatever the outcome. Any later failure rolls the files back again.
A successful sandboxed build is final: the pipeline is not transactional
beyond the dry-run phase, and the real install's changes stay in place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from lockguard.analysis import AnalysisError, Analyzer, PolicyEvaluationResult
from lockguard.classifier import Classification, UsageError, classify
from lockguard.config import LockguardConfig
from lockguard.lockfile import DependencySet, LockfileError, parse_lockfile
from lockguard.outcome import ExitCode, OutcomeKind, PipelineOutcome
from lockguard.policy import Stage, policy_for
from lockguard.report import emit_report, render_result
from lockguard.root import find_root
from lockguard.sandbox import Sandbox, run_passthrough
from lockguard.snapshot import FileSnapshot, capture, restore_all, restored_on_exit
from lockguard.ui import Spinner, Ui

logger = logging.getLogger(__name__)

MANIFEST = "package.json"
LOCKFILE = "yarn.lock"

DRY_RUN_FLAGS: tuple[str, ...] = ("--mode=skip-build", "--mode=update-lockfile")
CACHE_FLAGS: tuple[str, ...] = ("--mode=skip-build",)
BUILD_ARGS: tuple[str, ...] = ("install", "--immutable", "--immutable-cache")

LockfileParser = Callable[[Path, str], DependencySet]
Passthrough = Callable[..., int]


class InstallPipeline:
    """Run one guarded yarn invocation and report a tagged outcome."""

    def __init__(
        self,
        *,
        config: LockguardConfig,
        sandbox_factory: Callable[[Path], Sandbox],
        analyzer: Analyzer,
        ui: Ui,
        lockfile_parser: LockfileParser = parse_lockfile,
        passthrough: Passthrough = run_passthrough,
    ):
        self.config = config
        self.sandbox_factory = sandbox_factory
        self.analyzer = analyzer
        self.ui = ui
        self.lockfile_parser = lockfile_parser
        self.passthrough = passthrough

    def run(self, argv: Sequence[str], cwd: Path) -> PipelineOutcome:
        try:
            classification = classify(argv)
        except UsageError as exc:
            self.ui.error(str(exc))
            return PipelineOutcome(OutcomeKind.USAGE_FAILURE, ExitCode.USAGE, message=str(exc))

        if classification is Classification.PASSTHROUGH:
            return PipelineOutcome.passthrough(self.passthrough(self.config.package_manager, list(argv), cwd=cwd))

        root = find_root(MANIFEST, cwd)
        if root is None:
            self.ui.error("unable to find yarn project root.")
            self.ui.error("Please change to a yarn project directory and try again.")
            return PipelineOutcome(OutcomeKind.ENVIRONMENT_FAILURE, ExitCode.ROOT_NOT_FOUND)

        logger.debug("project root: %s", root)
        try:
            snapshots = (capture(root / LOCKFILE), capture(root / MANIFEST))
        except OSError as exc:
            self.ui.error(f"unable to snapshot project state: {exc}")
            return PipelineOutcome(OutcomeKind.ENVIRONMENT_FAILURE, ExitCode.USAGE, message=str(exc))
        try:
            outcome = self._run_stages(list(argv), root, snapshots)
        except BaseException:
            restore_all(snapshots)
            raise

        if not outcome.ok:
            restore_all(snapshots)
        return outcome

    def _run_stages(self, argv: list[str], root: Path, snapshots: tuple[FileSnapshot, ...]) -> PipelineOutcome:
        sandbox = self.sandbox_factory(root)
        command = self.config.package_manager

        self.ui.info("Updating lockfile…")
        with restored_on_exit(*snapshots):
            stage = sandbox.run(command, [*argv, *DRY_RUN_FLAGS], policy_for(Stage.DRY_RUN, root, self.config))
            if not stage.succeeded:
                self.ui.error("Lockfile update failed.")
                self.ui.blank(err=True)
                return PipelineOutcome.safe_failure(ExitCode.DRY_RUN_FAILED, stage)

            try:
                dependencies = self.lockfile_parser(root / LOCKFILE, "yarn")
            except LockfileError as exc:
                self.ui.error(f"Lockfile could not be parsed: {exc}")
                return PipelineOutcome.safe_failure(ExitCode.DRY_RUN_FAILED, message=str(exc))

        self.ui.info("Lockfile updated successfully.")
        self.ui.blank()

        verdict = self._analyze(dependencies)
        if verdict is not None:
            return verdict

        self.ui.info("Downloading packages to cache…")
        stage = sandbox.run(command, [*argv, *CACHE_FLAGS], policy_for(Stage.CACHE, root, self.config))
        if not stage.succeeded:
            # Nothing from the downloaded packages has executed yet.
            self.ui.error("Downloading packages to cache failed.")
            self.ui.blank(err=True)
            return PipelineOutcome.safe_failure(ExitCode.CACHE_FAILED, stage)
        self.ui.info("Cache updated successfully.")
        self.ui.blank()

        self.ui.info("Building packages inside sandbox…")
        stage = sandbox.run(command, list(BUILD_ARGS), policy_for(Stage.BUILD, root, self.config))
        if not stage.succeeded:
            self._warn_sandbox_failure()
            return PipelineOutcome.risk_failure(ExitCode.BUILD_FAILED, stage)

        self.ui.info("Packages built successfully.")
        return PipelineOutcome.success()

    def _analyze(self, dependencies: DependencySet) -> PipelineOutcome | None:
        """Return a terminal outcome, or None when installation may proceed."""
        self.ui.info("Analyzing packages…")
        if not dependencies:
            self.ui.info("No packages found in lockfile.")
            self.ui.blank()
            return None

        try:
            result: PolicyEvaluationResult = Spinner("Waiting for analysis…", self.ui.err).run(
                lambda: self.analyzer.check(dependencies)
            )
        except AnalysisError as exc:
            self.ui.error(f"Package analysis failed: {exc}")
            return PipelineOutcome(OutcomeKind.ANALYSIS_FAILURE, ExitCode.ANALYSIS_ERROR, message=str(exc))

        emit_report(render_result(result), self.ui)

        if result.is_failure:
            return PipelineOutcome(OutcomeKind.POLICY_FAILURE, ExitCode.POLICY_FAILURE)
        if result.incomplete_count > 0:
            return PipelineOutcome(OutcomeKind.INCOMPLETE, ExitCode.INCOMPLETE)
        return None

    def _warn_sandbox_failure(self) -> None:
        self.ui.alert("Sandboxed build failed.")
        self.ui.alert("")
        self.ui.alert("This could mean one of your packages attempted to access a restricted resource.")
        self.ui.alert("Do not retry installation without the lockguard sandbox.")
        self.ui.alert("")
        self.ui.alert("Please submit your dependency file(s) for review if this error persists.")
