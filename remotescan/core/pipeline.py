"""End-to-end remote scan pipeline.

Runs the stages strictly in order: upload the archive, create the job,
poll it to a terminal status, then fetch and resolve every finding into
a single :class:`~remotescan.models.ScanResult`.
"""

from __future__ import annotations

import uuid

from remotescan.client import ScanServiceClient
from remotescan.config import COMPLETED_STATUS, Settings
from remotescan.core.jobs import create_scan_job, poll_scan_job_status
from remotescan.core.results import list_scan_results
from remotescan.core.upload import get_presigned_url_and_upload
from remotescan.editor import TextDocument
from remotescan.errors import CodeScanJobFailedError
from remotescan.models import CodeAnalysisScope, ScanResult
from remotescan.state import (
    CodeScanState,
    FileScansState,
    ScanCancellation,
    code_scan_state,
    file_scans_state,
    new_scan_start_time,
)
from remotescan.telemetry import TelemetrySink
from remotescan.utils import ZipMetadata, get_logger_for_scope


async def run_scan(
    client: ScanServiceClient,
    zip_metadata: ZipMetadata,
    scope: CodeAnalysisScope,
    language_id: str,
    *,
    settings: Settings | None = None,
    scan_name: str | None = None,
    document: TextDocument | None = None,
    project_state: CodeScanState | None = None,
    file_state: FileScansState | None = None,
    telemetry: TelemetrySink | None = None,
) -> ScanResult:
    """Execute one remote security scan.

    For file scans the start time is published as the latest file-scan
    time, which stops any older file scan still polling.

    Args:
        client: Service client used for every remote call.
        zip_metadata: The packed source archive and its project roots.
        scope: ``FILE`` or ``PROJECT``.
        language_id: Language identifier sent with the job.
        settings: Polling and schema settings.
        scan_name: Human-readable job name; a random one when omitted.
        document: Live content of the scanned file, for file scans.

    Returns:
        A :class:`ScanResult` with findings grouped per local file.

    Raises:
        RemoteScanError: Any stage failure, as its specific kind.
    """
    settings = settings or Settings()
    project_state = project_state or code_scan_state
    file_state = file_state or file_scans_state
    scoped_logger = get_logger_for_scope(scope)

    code_scan_start_time = new_scan_start_time()
    if scope == CodeAnalysisScope.FILE:
        file_state.set_latest_scan_time(code_scan_start_time)
    cancellation = ScanCancellation(scope, code_scan_start_time, project_state, file_state)
    scan_name = scan_name or uuid.uuid4().hex

    artifact_map = await get_presigned_url_and_upload(client, zip_metadata, scope, scan_name)
    job = await create_scan_job(client, artifact_map, language_id, scope, scan_name, telemetry)
    status = await poll_scan_job_status(
        client,
        job.job_id,
        scope,
        code_scan_start_time,
        settings=settings,
        cancellation=cancellation,
    )
    if status != COMPLETED_STATUS:
        raise CodeScanJobFailedError(status)

    files = await list_scan_results(
        client,
        job.job_id,
        settings.findings_schema,
        zip_metadata.project_paths,
        scope,
        document,
    )
    scoped_logger.info("Resolved findings for %d file(s).", len(files))
    return ScanResult.build(
        job.job_id, status, scope, files, total_files=zip_metadata.scanned_files
    )
