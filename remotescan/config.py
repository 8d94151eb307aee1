"""remotescan configuration constants and environment settings."""

import os
from dataclasses import dataclass

from remotescan import __app_name__, __version__

APP_NAME: str = __app_name__
VERSION: str = __version__

# ---------------------------------------------------------------------------
# Job polling (seconds)
# ---------------------------------------------------------------------------

CODE_SCAN_JOB_POLLING_INTERVAL: float = 1.0
FILE_SCAN_POLLING_DELAY: float = 2.0
PROJECT_SCAN_POLLING_DELAY: float = 10.0
CODE_FILE_SCAN_JOB_TIMEOUT: float = 60.0 * 10
CODE_SCAN_JOB_TIMEOUT: float = 60.0 * 10

# ---------------------------------------------------------------------------
# Service protocol
# ---------------------------------------------------------------------------

FILE_SCAN_UPLOAD_INTENT: str = "AUTOMATIC_FILE_SECURITY_SCAN"
PROJECT_SCAN_UPLOAD_INTENT: str = "FULL_PROJECT_SECURITY_SCAN"
ARTIFACT_TYPE_SOURCE_CODE: str = "SourceCode"
CODE_SCAN_FINDINGS_SCHEMA: str = "codeanalysis/findings/1.0"
REQUEST_ID_HEADER: str = "x-amzn-requestid"
PENDING_STATUS: str = "Pending"
COMPLETED_STATUS: str = "Completed"

# Masking pattern used by the service for redacted snippet content
REDACTED_CODE_MARKER: str = "***"

DEFAULT_ENDPOINT: str = "http://localhost:8080"
DEFAULT_REQUEST_TIMEOUT: float = 30.0

# ---------------------------------------------------------------------------
# Artifact packaging
# ---------------------------------------------------------------------------

# Directories / files to skip when zipping a project
DEFAULT_IGNORE_DIRS: list[str] = [
    "node_modules",
    ".git",
    ".venv",
    "venv",
    "__pycache__",
    "dist",
    "build",
    "coverage",
    ".next",
    ".idea",
    ".vscode",
]

DEFAULT_IGNORE_FILES: list[str] = [
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".DS_Store",
]

DEFAULT_SCAN_EXTENSIONS: list[str] = [
    ".py",
    ".java",
    ".js",
    ".jsx",
    ".ts",
    ".tsx",
    ".mjs",
    ".cjs",
    ".cs",
    ".go",
    ".rb",
    ".php",
    ".c",
    ".h",
    ".cpp",
    ".kt",
    ".scala",
    ".json",
    ".yaml",
    ".yml",
    ".tf",
    ".hcl",
    ".xml",
]


@dataclass(frozen=True)
class Settings:
    """Runtime settings for talking to the scanning service.

    Attributes:
        endpoint: Base URL of the scanning service.
        token: Bearer token sent with every service call, if any.
        request_timeout: Per-request timeout in seconds.
        polling_interval: Sleep between two status queries.
        file_scan_polling_delay: Initial sleep before polling a file scan.
        project_scan_polling_delay: Initial sleep before polling a project scan.
        file_scan_timeout: Polling budget for file scans.
        project_scan_timeout: Polling budget for project scans.
        findings_schema: Result schema requested when listing findings.
    """

    endpoint: str = DEFAULT_ENDPOINT
    token: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    polling_interval: float = CODE_SCAN_JOB_POLLING_INTERVAL
    file_scan_polling_delay: float = FILE_SCAN_POLLING_DELAY
    project_scan_polling_delay: float = PROJECT_SCAN_POLLING_DELAY
    file_scan_timeout: float = CODE_FILE_SCAN_JOB_TIMEOUT
    project_scan_timeout: float = CODE_SCAN_JOB_TIMEOUT
    findings_schema: str = CODE_SCAN_FINDINGS_SCHEMA


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> Settings:
    """Build :class:`Settings` from ``REMOTESCAN_*`` environment variables.

    Unset variables fall back to the module defaults.

    Raises:
        RuntimeError: If a numeric variable cannot be parsed.
    """
    return Settings(
        endpoint=os.environ.get("REMOTESCAN_ENDPOINT", DEFAULT_ENDPOINT),
        token=os.environ.get("REMOTESCAN_TOKEN", ""),
        request_timeout=_env_float("REMOTESCAN_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        polling_interval=_env_float(
            "REMOTESCAN_POLL_INTERVAL", CODE_SCAN_JOB_POLLING_INTERVAL
        ),
        file_scan_timeout=_env_float(
            "REMOTESCAN_FILE_SCAN_TIMEOUT", CODE_FILE_SCAN_JOB_TIMEOUT
        ),
        project_scan_timeout=_env_float(
            "REMOTESCAN_PROJECT_SCAN_TIMEOUT", CODE_SCAN_JOB_TIMEOUT
        ),
    )
