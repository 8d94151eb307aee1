"""Scan-state registers and the cancellation context handed to the poller.

The registers are written by whatever drives scans (the CLI, an editor
integration) and only read by the scan stages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from remotescan.errors import CodeScanStoppedError
from remotescan.models import CodeAnalysisScope

logger = logging.getLogger(__name__)


class CodeScanState:
    """Cancel flag for the (single, foreground) project scan."""

    def __init__(self) -> None:
        self._cancelling = False

    def set_to_cancelling(self) -> None:
        self._cancelling = True

    def set_to_not_started(self) -> None:
        self._cancelling = False

    def is_cancelling(self) -> bool:
        return self._cancelling


class FileScansState:
    """Enabled flag and latest start time shared by file scans."""

    def __init__(self) -> None:
        self._enabled = True
        self._latest_scan_time: float | None = None

    def set_scans_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def is_scans_enabled(self) -> bool:
        return self._enabled

    def set_latest_scan_time(self, start_time: float) -> None:
        self._latest_scan_time = start_time

    def get_latest_scan_time(self) -> float | None:
        return self._latest_scan_time


# Process-wide registers
code_scan_state = CodeScanState()
file_scans_state = FileScansState()


def new_scan_start_time() -> float:
    return time.monotonic()


@dataclass
class ScanCancellation:
    """Answers "should this scan stop?" for one scan invocation.

    Project scans stop when the project cancel flag is raised. File scans
    stop when file scanning is disabled or when a newer file scan has
    started since ``start_time``.
    """

    scope: CodeAnalysisScope
    start_time: float
    project_state: CodeScanState = field(default_factory=lambda: code_scan_state)
    file_state: FileScansState = field(default_factory=lambda: file_scans_state)

    def is_cancelled(self) -> bool:
        if self.scope == CodeAnalysisScope.PROJECT:
            return self.project_state.is_cancelling()
        if self.scope == CodeAnalysisScope.FILE:
            latest = self.file_state.get_latest_scan_time()
            return not self.file_state.is_scans_enabled() or (
                latest is not None and latest > self.start_time
            )
        logger.warning("Unknown code analysis scope: %s", self.scope)
        return False


def throw_if_cancelled(cancellation: ScanCancellation) -> None:
    """Raise :class:`CodeScanStoppedError` if the scan should stop."""
    if cancellation.is_cancelled():
        raise CodeScanStoppedError()
