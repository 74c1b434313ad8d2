"""Rendering of policy evaluation results for the terminal."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from rich.text import Text

from lockguard.analysis import DependencyFinding, PolicyEvaluationResult, Severity
from lockguard.ui import Ui

HEADLINE_TITLE = "Supply Chain Risk Analysis"
EMPTY_DOMAIN = "     "

SEVERITY_STYLES: dict[Severity, str] = {
    Severity.INFO: "green",
    Severity.LOW: "green",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "red",
}


class Status(StrEnum):
    FAILURE = "FAILURE"
    INCOMPLETE = "INCOMPLETE"
    SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class Report:
    """Terminal projection of a ``PolicyEvaluationResult``."""

    status: Status
    headline: str
    incomplete_notice: str | None
    findings: tuple[Text, ...]
    job_link: str | None


def overall_status(result: PolicyEvaluationResult) -> Status:
    if result.is_failure:
        return Status.FAILURE
    if result.incomplete_count > 0:
        return Status.INCOMPLETE
    return Status.SUCCESS


def incomplete_notice(count: int) -> str:
    noun = "package" if count == 1 else "packages"
    return (
        f"The analysis contains {count} unprocessed {noun}, preventing a complete risk analysis. "
        "These packages are still being processed and should complete soon. "
        "Please wait for up to 30 minutes, then re-run the analysis."
    )


def render_finding(finding: DependencyFinding) -> Text | None:
    """Block for one dependency, or None when nothing visible was rejected."""
    visible = [rejection for rejection in finding.rejections if not rejection.suppressed]
    if not visible:
        return None

    block = Text(f"[{finding.registry}] {finding.name}@{finding.version}\n")
    for rejection in visible:
        message = f"[{rejection.domain or EMPTY_DOMAIN}] {rejection.title}"
        block.append(" ")
        block.append(message, style=SEVERITY_STYLES[rejection.severity])
        block.append("\n")
    return block


def render_result(result: PolicyEvaluationResult) -> Report:
    status = overall_status(result)
    findings = tuple(block for block in map(render_finding, result.dependencies) if block is not None)
    return Report(
        status=status,
        headline=f"{HEADLINE_TITLE} - {status.value}",
        incomplete_notice=incomplete_notice(result.incomplete_count) if result.incomplete_count > 0 else None,
        findings=findings,
        job_link=result.job_link,
    )


def emit_report(report: Report, ui: Ui) -> None:
    if report.status is Status.FAILURE:
        ui.error(report.headline)
        ui.blank(err=True)
    elif report.status is Status.INCOMPLETE:
        ui.warn(report.headline)
        ui.blank(err=True)
    else:
        ui.info(report.headline)
        ui.blank()

    if report.incomplete_notice:
        ui.warn(report.incomplete_notice)
        ui.blank(err=True)

    if report.findings:
        for block in report.findings:
            ui.err.print(block, end="", soft_wrap=True)
        ui.blank(err=True)

    if report.job_link:
        ui.out.print(
            f"You can find the interactive report here:\n {report.job_link}\n",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
