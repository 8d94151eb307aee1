"""Unit tests for findings, page shapes, and the ScanResult model."""

import json

import pytest

from remotescan.models import (
    CRITICAL,
    HIGH,
    INFO,
    LOW,
    MEDIUM,
    AggregatedFileResult,
    CodeAnalysisFindingsPage,
    CodeAnalysisScope,
    CodeScanFindingsPage,
    Finding,
    RawFinding,
    ScanResult,
    parse_findings_page,
    parse_raw_findings,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _raw(start_line: int = 3, end_line: int = 3, severity: str = HIGH, **overrides) -> dict:
    """Return a service-shaped finding dictionary."""
    data = {
        "filePath": "proj/src/app.py",
        "startLine": start_line,
        "endLine": end_line,
        "title": "  SQL injection ",
        "description": {"text": " Unsanitized input reaches a query. ", "markdown": ""},
        "detectorId": "python/sql-injection@v1.0",
        "detectorName": "SQL injection",
        "findingId": "f-1",
        "ruleId": "python-sqli",
        "relatedVulnerabilities": ["CWE-89"],
        "severity": severity,
        "remediation": {
            "recommendation": {"text": "Use bound parameters.", "url": "https://example.com/sqli"},
            "suggestedFixes": [{"description": "parametrize", "code": "@@ -1 +1 @@"}],
        },
        "codeSnippet": [{"number": start_line, "content": "cursor.execute(q)"}],
    }
    data.update(overrides)
    return data


def _finding(severity: str) -> Finding:
    return Finding.from_raw(RawFinding.from_dict(_raw(severity=severity)))


# ---------------------------------------------------------------------------
# Raw → resolved mapping
# ---------------------------------------------------------------------------


class TestFindingFromRaw:
    """Tests for the raw-to-resolved finding transform."""

    @pytest.mark.parametrize("start_line", [0, 1])
    def test_start_line_clamped_at_zero(self, start_line: int) -> None:
        """Start lines 0 and 1 both map to 0, never negative."""
        finding = Finding.from_raw(RawFinding.from_dict(_raw(start_line=start_line)))
        assert finding.start_line == 0

    def test_start_line_becomes_zero_based(self) -> None:
        """A 1-based start line N maps to N - 1."""
        finding = Finding.from_raw(RawFinding.from_dict(_raw(start_line=42, end_line=44)))
        assert finding.start_line == 41
        assert finding.end_line == 44

    def test_comment_joins_trimmed_title_and_description(self) -> None:
        finding = _finding(HIGH)
        assert finding.comment == "SQL injection: Unsanitized input reaches a query."

    def test_remediation_is_flattened(self) -> None:
        finding = _finding(HIGH)
        assert finding.recommendation["text"] == "Use bound parameters."
        assert finding.suggested_fixes[0]["description"] == "parametrize"

    def test_parse_batch(self) -> None:
        """A JSON batch decodes into RawFinding objects with snippets."""
        batch = json.dumps([_raw(), _raw(start_line=7, end_line=9)])
        issues = parse_raw_findings(batch)
        assert [i.start_line for i in issues] == [3, 7]
        assert issues[1].snippet_content(7) == "cursor.execute(q)"
        assert issues[1].snippet_content(8) is None


# ---------------------------------------------------------------------------
# Findings pages
# ---------------------------------------------------------------------------


class TestParseFindingsPage:
    """Tests for resolving the two accepted page shapes."""

    def test_legacy_field(self) -> None:
        page = parse_findings_page({"codeScanFindings": "[]", "nextToken": "t1"}, "req")
        assert isinstance(page, CodeScanFindingsPage)
        assert page.findings == "[]"
        assert page.next_token == "t1"
        assert page.request_id == "req"

    def test_current_field(self) -> None:
        page = parse_findings_page({"codeAnalysisFindings": "[{}]"})
        assert isinstance(page, CodeAnalysisFindingsPage)
        assert page.findings == "[{}]"
        assert page.next_token is None

    def test_empty_token_ends_pagination(self) -> None:
        page = parse_findings_page({"codeAnalysisFindings": "[]", "nextToken": ""})
        assert page.next_token is None

    def test_unknown_shape_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_findings_page({"findings": "[]"})


# ---------------------------------------------------------------------------
# ScanResult model tests
# ---------------------------------------------------------------------------


class TestScanResult:
    """Tests for the ScanResult dataclass."""

    def _result(self) -> ScanResult:
        files = [
            AggregatedFileResult("/p/a.py", [_finding(HIGH), _finding(MEDIUM)]),
            AggregatedFileResult("/p/b.py", [_finding(MEDIUM)]),
        ]
        return ScanResult.build("job-1", "Completed", CodeAnalysisScope.PROJECT, files, 2)

    def test_severity_counts(self) -> None:
        result = self._result()
        assert result.severity_counts[HIGH] == 1
        assert result.severity_counts[MEDIUM] == 2
        assert result.severity_counts[CRITICAL] == 0

    def test_has_severity(self) -> None:
        result = self._result()
        assert result.has_severity(HIGH) is True
        assert result.has_severity("low") is True
        assert result.has_severity(CRITICAL) is False

    def test_has_severity_empty(self) -> None:
        result = ScanResult.build("job-1", "Completed", CodeAnalysisScope.FILE, [])
        assert result.has_severity(INFO) is False

    def test_to_dict_structure(self) -> None:
        d = self._result().to_dict()
        assert d["job_id"] == "job-1"
        assert d["scope"] == "PROJECT"
        assert d["total_files"] == 2
        assert d["total_issues"] == 3
        assert d["severity"][LOW] == 0
        assert d["files"][0]["file_path"] == "/p/a.py"
        assert d["files"][0]["issues"][0]["start_line"] == 2
        json.dumps(d)
