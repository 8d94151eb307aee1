"""Scan job creation and status polling."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from remotescan.client import ScanServiceClient
from remotescan.config import PENDING_STATUS, Settings
from remotescan.errors import CreateCodeScanError, SecurityScanTimedOutError, ServiceError
from remotescan.models import CodeAnalysisScope, ScanJob
from remotescan.state import ScanCancellation, throw_if_cancelled
from remotescan.telemetry import TelemetrySink, default_sink
from remotescan.utils import get_logger_for_scope

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def get_polling_delay_for_scope(scope: CodeAnalysisScope, settings: Settings) -> float:
    if scope == CodeAnalysisScope.FILE:
        return settings.file_scan_polling_delay
    return settings.project_scan_polling_delay


def get_polling_timeout_for_scope(scope: CodeAnalysisScope, settings: Settings) -> float:
    if scope == CodeAnalysisScope.FILE:
        return settings.file_scan_timeout
    return settings.project_scan_timeout


async def create_scan_job(
    client: ScanServiceClient,
    artifact_map: dict[str, str],
    language_id: str,
    scope: CodeAnalysisScope,
    scan_name: str,
    telemetry: TelemetrySink | None = None,
) -> ScanJob:
    """Ask the service to scan the uploaded artifact.

    Raises:
        CreateCodeScanError: If the service rejects the request.
    """
    scoped_logger = get_logger_for_scope(scope)
    scoped_logger.info("Creating scan job...")
    request = {
        "artifacts": artifact_map,
        "programmingLanguage": {"languageName": language_id},
        "scope": scope.value,
        "codeScanName": scan_name,
    }
    try:
        job = await client.create_code_scan(request)
    except ServiceError as exc:
        logger.error("Failed creating scan job. Request id: %s", exc.request_id)
        raise CreateCodeScanError(exc) from exc

    scoped_logger.debug("Request id: %s", job.request_id)
    (telemetry or default_sink).send_code_scan_event(language_id, job.request_id)
    return job


async def poll_scan_job_status(
    client: ScanServiceClient,
    job_id: str,
    scope: CodeAnalysisScope,
    code_scan_start_time: float,
    *,
    settings: Settings | None = None,
    cancellation: ScanCancellation | None = None,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> str:
    """Wait for the job to leave ``Pending`` and return its terminal status.

    Cancellation is checked before every status query and before every
    sleep. The timeout is only checked between iterations, so a slow final
    request can overshoot it.

    Raises:
        CodeScanStoppedError: If the scan was cancelled or superseded.
        SecurityScanTimedOutError: If the scope's polling budget ran out.
        ServiceError: If a status query fails.
    """
    settings = settings or Settings()
    cancellation = cancellation or ScanCancellation(scope, code_scan_start_time)
    polling_start_time = clock()
    # Results are never ready immediately; skip the first pointless calls
    await sleep(get_polling_delay_for_scope(scope, settings))

    scoped_logger = get_logger_for_scope(scope)
    scoped_logger.info("Polling scan job status...")
    status = PENDING_STATUS
    timeout = get_polling_timeout_for_scope(scope, settings)
    while True:
        throw_if_cancelled(cancellation)
        job = await client.get_code_scan(job_id)
        scoped_logger.debug("Request id: %s", job.request_id)
        if job.status != PENDING_STATUS:
            status = job.status
            scoped_logger.info("Scan job status: %s", status)
            return status

        throw_if_cancelled(cancellation)
        await sleep(settings.polling_interval)
        elapsed = clock() - polling_start_time
        if elapsed > timeout:
            scoped_logger.info("Scan job status: %s", status)
            scoped_logger.info("Security scan timed out after %.1fs.", elapsed)
            raise SecurityScanTimedOutError()
