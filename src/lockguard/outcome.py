"""Exit codes and tagged pipeline outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum


class ExitCode(IntEnum):
    """Process exit codes; each terminal outcome has its own value."""

    OK = 0
    DRY_RUN_FAILED = 120
    CACHE_FAILED = 121
    BUILD_FAILED = 122
    ANALYSIS_ERROR = 123
    ROOT_NOT_FOUND = 124
    USAGE = 125
    INCOMPLETE = 126
    POLICY_FAILURE = 127


class OutcomeKind(StrEnum):
    OK = "ok"
    PASSTHROUGH = "passthrough"
    SAFE_FAILURE = "safe_failure"
    RISK_FAILURE = "risk_failure"
    POLICY_FAILURE = "policy_failure"
    INCOMPLETE = "incomplete"
    ANALYSIS_FAILURE = "analysis_failure"
    USAGE_FAILURE = "usage_failure"
    ENVIRONMENT_FAILURE = "environment_failure"


@dataclass(frozen=True)
class StageOutcome:
    """Result of one sandboxed sub-process."""

    succeeded: bool
    exit_code: int | None = None


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal result of one invocation.

    ``code`` is the lockguard fallback exit code for the outcome; ``native``
    carries the sub-process exit code for stage failures and passthrough runs.
    """

    kind: OutcomeKind
    code: ExitCode
    native: int | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.OK, OutcomeKind.PASSTHROUGH)

    @classmethod
    def success(cls) -> PipelineOutcome:
        return cls(OutcomeKind.OK, ExitCode.OK)

    @classmethod
    def passthrough(cls, returncode: int) -> PipelineOutcome:
        return cls(OutcomeKind.PASSTHROUGH, ExitCode.OK, native=returncode)

    @classmethod
    def safe_failure(cls, code: ExitCode, stage: StageOutcome | None = None, message: str | None = None) -> PipelineOutcome:
        return cls(OutcomeKind.SAFE_FAILURE, code, native=stage.exit_code if stage else None, message=message)

    @classmethod
    def risk_failure(cls, code: ExitCode, stage: StageOutcome) -> PipelineOutcome:
        return cls(OutcomeKind.RISK_FAILURE, code, native=stage.exit_code)


def exit_code_for(outcome: PipelineOutcome, *, preserve_native: bool = False) -> int:
    """Map an outcome to the process exit code.

    Passthrough runs always return yarn's own code. Stage failures return the
    distinct lockguard code unless ``preserve_native`` is set and the
    sub-process reported a non-zero code of its own.
    """
    if outcome.kind is OutcomeKind.PASSTHROUGH:
        return outcome.native if outcome.native is not None else int(ExitCode.OK)

    if (
        preserve_native
        and outcome.kind in (OutcomeKind.SAFE_FAILURE, OutcomeKind.RISK_FAILURE)
        and outcome.native
    ):
        return outcome.native

    return int(outcome.code)
