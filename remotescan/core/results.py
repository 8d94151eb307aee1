"""Findings retrieval and mapping onto local files."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator

from remotescan.client import ScanServiceClient
from remotescan.config import REDACTED_CODE_MARKER
from remotescan.editor import TextDocument
from remotescan.errors import ServiceError
from remotescan.models import (
    AggregatedFileResult,
    CodeAnalysisScope,
    Finding,
    RawFinding,
    parse_raw_findings,
)
from remotescan.utils import get_logger_for_scope


async def iter_findings(
    client: ScanServiceClient,
    job_id: str,
    code_scan_findings_schema: str,
    scope: CodeAnalysisScope,
) -> AsyncIterator[str]:
    """Yield the JSON findings batch of every page, following ``nextToken``."""
    scoped_logger = get_logger_for_scope(scope)
    next_token: str | None = None
    while True:
        page = await client.list_code_scan_findings(
            job_id, code_scan_findings_schema, next_token
        )
        scoped_logger.debug("Request id: %s", page.request_id)
        yield page.findings
        next_token = page.next_token
        if not next_token:
            return


def matches_document(issue: RawFinding, document: TextDocument) -> bool:
    """Check a finding against the live content of the open file.

    Only the first reported line is compared. Redacted snippet content can
    only be compared by length.
    """
    if issue.start_line > issue.end_line:
        return True
    # TODO: confirm with the service owners whether every line of a
    # multi-line finding should be verified instead of the first one.
    line_number = issue.start_line
    line = document.line_at(line_number - 1)
    code_content = issue.snippet_content(line_number)
    if line is None or code_content is None:
        return False
    if REDACTED_CODE_MARKER in code_content:
        return len(line) == len(code_content)
    return line == code_content


def map_to_aggregated_list(
    code_scan_issue_map: dict[str, list[RawFinding]],
    json_text: str,
    document: TextDocument | None,
    scope: CodeAnalysisScope,
) -> None:
    """Parse one findings batch and group the surviving findings by path.

    For file scans with an open document, findings that no longer match
    the live content are dropped.
    """
    issues = parse_raw_findings(json_text)
    if scope == CodeAnalysisScope.FILE and document is not None:
        issues = [issue for issue in issues if matches_document(issue, document)]

    for issue in issues:
        code_scan_issue_map.setdefault(issue.file_path, []).append(issue)


def resolve_aggregated_results(
    code_scan_issue_map: dict[str, list[RawFinding]],
    project_paths: list[str],
) -> list[AggregatedFileResult]:
    """Turn logical paths into local files.

    Each logical path is tried under every project root (minus its first
    segment, the archive's top-level folder) and as an absolute path.
    Every hit is reported, so overlapping roots can yield duplicates.
    """
    aggregated: list[AggregatedFileResult] = []
    for key, issues in code_scan_issue_map.items():
        # Project path example: /Users/username/project
        # Key example: project/src/main/java/com/example/App.java
        relative = "/".join(key.split("/")[1:])
        for project_path in project_paths:
            file_path = os.path.join(project_path, relative)
            if os.path.isfile(file_path):
                aggregated.append(
                    AggregatedFileResult(file_path, [Finding.from_raw(i) for i in issues])
                )

        maybe_absolute_path = f"{os.sep}{key}"
        if os.path.isfile(maybe_absolute_path):
            aggregated.append(
                AggregatedFileResult(
                    maybe_absolute_path, [Finding.from_raw(i) for i in issues]
                )
            )
    return aggregated


async def list_scan_results(
    client: ScanServiceClient,
    job_id: str,
    code_scan_findings_schema: str,
    project_paths: list[str],
    scope: CodeAnalysisScope,
    document: TextDocument | None = None,
) -> list[AggregatedFileResult]:
    """Fetch every findings page, then group and resolve them."""
    batches = [
        batch
        async for batch in iter_findings(client, job_id, code_scan_findings_schema, scope)
    ]
    code_scan_issue_map: dict[str, list[RawFinding]] = {}
    for batch in batches:
        try:
            map_to_aggregated_list(code_scan_issue_map, batch, document, scope)
        except ValueError as exc:
            raise ServiceError(str(exc)) from exc
    return resolve_aggregated_results(code_scan_issue_map, project_paths)
