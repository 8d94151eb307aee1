"""remotescan data models for scan jobs and findings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


# ---------------------------------------------------------------------------
# Severity constants & ordering
# ---------------------------------------------------------------------------

CRITICAL: str = "Critical"
HIGH: str = "High"
MEDIUM: str = "Medium"
LOW: str = "Low"
INFO: str = "Info"

SEVERITY_ORDER: dict[str, int] = {
    CRITICAL: 5,
    HIGH: 4,
    MEDIUM: 3,
    LOW: 2,
    INFO: 1,
}


def normalize_severity(value: str) -> str:
    """Map any casing of a severity name onto the service spelling."""
    return value.strip().capitalize()


class CodeAnalysisScope(str, Enum):
    """Whether a scan covers a single open file or a whole project."""

    FILE = "FILE"
    PROJECT = "PROJECT"


# ---------------------------------------------------------------------------
# Upload / job models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UploadTarget:
    """Pre-authorized write location returned by ``createUploadUrl``."""

    upload_id: str
    upload_url: str
    kms_key_arn: str | None = None
    request_headers: dict[str, str] | None = None
    request_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], request_id: str = "") -> UploadTarget:
        return cls(
            upload_id=data["uploadId"],
            upload_url=data["uploadUrl"],
            kms_key_arn=data.get("kmsKeyArn"),
            request_headers=data.get("requestHeaders"),
            request_id=request_id,
        )


@dataclass(frozen=True)
class ScanJob:
    job_id: str
    status: str
    request_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], request_id: str = "") -> ScanJob:
        return cls(
            job_id=data["jobId"],
            status=data["status"],
            request_id=request_id,
        )


# ---------------------------------------------------------------------------
# Findings pages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CodeScanFindingsPage:
    """Page shape of the legacy findings schema (``codeScanFindings``)."""

    findings: str
    next_token: str | None = None
    request_id: str = ""


@dataclass(frozen=True)
class CodeAnalysisFindingsPage:
    """Page shape of the current findings schema (``codeAnalysisFindings``)."""

    findings: str
    next_token: str | None = None
    request_id: str = ""


FindingsPage = Union[CodeScanFindingsPage, CodeAnalysisFindingsPage]


def parse_findings_page(data: dict[str, Any], request_id: str = "") -> FindingsPage:
    """Resolve a ``listCodeScanFindings`` response into its page shape.

    Raises:
        ValueError: If the response carries neither findings field.
    """
    next_token = data.get("nextToken") or None
    if "codeScanFindings" in data:
        return CodeScanFindingsPage(data["codeScanFindings"], next_token, request_id)
    if "codeAnalysisFindings" in data:
        return CodeAnalysisFindingsPage(
            data["codeAnalysisFindings"], next_token, request_id
        )
    raise ValueError("Findings page has no codeScanFindings or codeAnalysisFindings")


# ---------------------------------------------------------------------------
# Raw findings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CodeSnippetLine:
    number: int
    content: str


@dataclass
class RawFinding:
    """A finding exactly as reported by the service.

    ``start_line`` and ``end_line`` are 1-based. ``file_path`` is the
    logical path recorded inside the uploaded artifact, whose first
    segment is the synthetic top-level folder added while zipping.
    """

    file_path: str
    start_line: int
    end_line: int
    title: str
    description: dict[str, str]
    detector_id: str
    detector_name: str
    finding_id: str
    rule_id: str | None
    related_vulnerabilities: list[str]
    severity: str
    remediation: dict[str, Any]
    code_snippet: list[CodeSnippetLine] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawFinding:
        return cls(
            file_path=data["filePath"],
            start_line=int(data["startLine"]),
            end_line=int(data["endLine"]),
            title=data.get("title", ""),
            description=data.get("description") or {"text": "", "markdown": ""},
            detector_id=data.get("detectorId", ""),
            detector_name=data.get("detectorName", ""),
            finding_id=data.get("findingId", ""),
            rule_id=data.get("ruleId"),
            related_vulnerabilities=list(data.get("relatedVulnerabilities") or []),
            severity=data.get("severity", INFO),
            remediation=data.get("remediation") or {},
            code_snippet=[
                CodeSnippetLine(int(line["number"]), line.get("content", ""))
                for line in data.get("codeSnippet") or []
            ],
        )

    def snippet_content(self, line_number: int) -> str | None:
        """Return the snippet content for a 1-based line, if reported."""
        for line in self.code_snippet:
            if line.number == line_number:
                return line.content
        return None


def parse_raw_findings(json_text: str) -> list[RawFinding]:
    """Decode one JSON-encoded batch of findings.

    Raises:
        ValueError: If the batch is not JSON or a finding lacks a required field.
    """
    items = json.loads(json_text)
    try:
        return [RawFinding.from_dict(item) for item in items]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed finding in findings batch: {exc!r}") from exc


# ---------------------------------------------------------------------------
# Resolved findings
# ---------------------------------------------------------------------------


@dataclass
class Finding:
    """A finding normalized for display in an editor.

    Attributes:
        start_line: 0-based start line, never negative.
        end_line: End line as reported by the service.
        comment: ``"<title>: <description>"`` summary.
    """

    start_line: int
    end_line: int
    comment: str
    title: str
    description: dict[str, str]
    detector_id: str
    detector_name: str
    finding_id: str
    rule_id: str | None
    related_vulnerabilities: list[str]
    severity: str
    recommendation: dict[str, Any]
    suggested_fixes: list[Any]

    @classmethod
    def from_raw(cls, raw: RawFinding) -> Finding:
        return cls(
            start_line=max(raw.start_line - 1, 0),
            end_line=raw.end_line,
            comment=f"{raw.title.strip()}: {raw.description.get('text', '').strip()}",
            title=raw.title,
            description=raw.description,
            detector_id=raw.detector_id,
            detector_name=raw.detector_name,
            finding_id=raw.finding_id,
            rule_id=raw.rule_id,
            related_vulnerabilities=raw.related_vulnerabilities,
            severity=raw.severity,
            recommendation=raw.remediation.get("recommendation") or {},
            suggested_fixes=list(raw.remediation.get("suggestedFixes") or []),
        )

    def __str__(self) -> str:
        return f"[{self.severity}] line {self.start_line + 1}: {self.comment}"

    def to_dict(self) -> dict:
        """Return a JSON-serializable dictionary representation."""
        return {
            "start_line": self.start_line,
            "end_line": self.end_line,
            "comment": self.comment,
            "title": self.title,
            "detector_id": self.detector_id,
            "detector_name": self.detector_name,
            "finding_id": self.finding_id,
            "rule_id": self.rule_id,
            "related_vulnerabilities": list(self.related_vulnerabilities),
            "severity": self.severity,
            "recommendation": dict(self.recommendation),
            "suggested_fixes": list(self.suggested_fixes),
        }


@dataclass
class AggregatedFileResult:
    """All findings resolved onto one local file."""

    file_path: str
    issues: list[Finding] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "issues": [issue.to_dict() for issue in self.issues],
        }


# ---------------------------------------------------------------------------
# ScanResult model
# ---------------------------------------------------------------------------


@dataclass
class ScanResult:
    """Aggregated result of one completed remote scan.

    Attributes:
        job_id: Identifier of the remote scan job.
        status: Terminal job status.
        scope: Scope the scan ran with.
        files: Findings grouped per resolved local file.
        total_files: Number of files packed into the uploaded artifact.
        severity_counts: Breakdown of findings by severity level.
    """

    job_id: str
    status: str
    scope: CodeAnalysisScope
    files: list[AggregatedFileResult] = field(default_factory=list)
    total_files: int = 0
    severity_counts: dict[str, int] = field(
        default_factory=lambda: {level: 0 for level in SEVERITY_ORDER}
    )

    @classmethod
    def build(
        cls,
        job_id: str,
        status: str,
        scope: CodeAnalysisScope,
        files: list[AggregatedFileResult],
        total_files: int = 0,
    ) -> ScanResult:
        counts = {level: 0 for level in SEVERITY_ORDER}
        for file_result in files:
            for issue in file_result.issues:
                counts[issue.severity] = counts.get(issue.severity, 0) + 1
        return cls(job_id, status, scope, files, total_files, counts)

    @property
    def issues(self) -> list[Finding]:
        return [issue for file_result in self.files for issue in file_result.issues]

    def has_severity(self, level: str) -> bool:
        """Return ``True`` if any finding meets or exceeds *level*.

        Severity ordering: ``Critical > High > Medium > Low > Info``.
        """
        threshold = SEVERITY_ORDER.get(normalize_severity(level), 0)
        return any(
            SEVERITY_ORDER.get(issue.severity, 0) >= threshold
            for issue in self.issues
        )

    def to_dict(self) -> dict:
        """Return a JSON-serializable dictionary of the full scan result."""
        return {
            "job_id": self.job_id,
            "status": self.status,
            "scope": self.scope.value,
            "total_files": self.total_files,
            "total_issues": len(self.issues),
            "severity": dict(self.severity_counts),
            "files": [file_result.to_dict() for file_result in self.files],
        }
