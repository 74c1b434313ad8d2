"""Supply-chain risk analysis: result types and the HTTP service client."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

import httpx

from lockguard import __version__
from lockguard.lockfile import Dependency

logger = logging.getLogger(__name__)

EVALUATE_PATH = "/data/jobs/evaluate"


class AnalysisError(RuntimeError):
    """Raised when the analysis service cannot produce a usable result."""


class Severity(StrEnum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Rejection:
    title: str
    suppressed: bool
    severity: Severity
    domain: str | None = None


@dataclass(frozen=True)
class DependencyFinding:
    registry: str
    name: str
    version: str
    rejections: tuple[Rejection, ...] = ()


@dataclass(frozen=True)
class PolicyEvaluationResult:
    """Policy evaluation of a dependency set, as returned by the service."""

    is_failure: bool
    incomplete_count: int
    job_link: str | None
    dependencies: tuple[DependencyFinding, ...]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PolicyEvaluationResult:
        """Decode the service's JSON response body."""
        try:
            dependencies = tuple(_finding(item) for item in payload.get("dependencies", []))
            incomplete = int(payload.get("incomplete_packages_count", 0))
            return cls(
                is_failure=bool(payload["is_failure"]),
                incomplete_count=incomplete,
                job_link=payload.get("job_link") or None,
                dependencies=dependencies,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise AnalysisError(f"Unexpected analysis response: {exc}") from exc


def _finding(item: Mapping[str, Any]) -> DependencyFinding:
    return DependencyFinding(
        registry=str(item["registry"]),
        name=str(item["name"]),
        version=str(item["version"]),
        rejections=tuple(_rejection(raw) for raw in item.get("rejections", [])),
    )


def _rejection(raw: Mapping[str, Any]) -> Rejection:
    source = raw.get("source") or {}
    return Rejection(
        title=str(raw["title"]),
        suppressed=bool(raw.get("suppressed", False)),
        severity=Severity(str(source.get("severity", "info")).lower()),
        domain=source.get("domain") or None,
    )


class Analyzer(Protocol):
    def check(self, dependencies: Sequence[Dependency]) -> PolicyEvaluationResult: ...


class AnalysisClient:
    """Submit dependency sets to the analysis service over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 300.0,
        project: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.project = project
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": f"lockguard/{__version__}", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def check(self, dependencies: Sequence[Dependency]) -> PolicyEvaluationResult:
        payload: dict[str, Any] = {
            "packages": [dependency.to_payload() for dependency in dependencies],
            "is_user": True,
        }
        if self.project:
            payload["project"] = self.project

        url = f"{self.base_url}{EVALUATE_PATH}"
        logger.debug("submitting %d packages to %s", len(dependencies), url)
        try:
            with httpx.Client(timeout=self.timeout, headers=self._headers(), transport=self.transport) as client:
                resp = client.post(url, json=payload)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as e:
            raise AnalysisError(f"HTTP {e.response.status_code} from analysis service") from e
        except httpx.TimeoutException as e:
            raise AnalysisError(f"Analysis timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise AnalysisError(f"Analysis request failed: {e}") from e
        except ValueError as e:
            raise AnalysisError(f"Analysis response is not JSON: {e}") from e

        if not isinstance(body, dict):
            raise AnalysisError("Unexpected analysis response: expected a JSON object")
        return PolicyEvaluationResult.from_payload(body)
