"""remotescan utility helpers."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from remotescan.config import (
    DEFAULT_IGNORE_DIRS,
    DEFAULT_IGNORE_FILES,
    DEFAULT_SCAN_EXTENSIONS,
)
from remotescan.models import CodeAnalysisScope

DEFAULT_LOGGER_NAME = "remotescan"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool = False, logger_name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Configure and return the package logger.

    Records are rendered on stderr through Rich so they never mix with
    ``--json`` output on stdout.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not logger.handlers:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    return logger


_silent_logger = logging.getLogger(f"{DEFAULT_LOGGER_NAME}.silent")
_silent_logger.addHandler(logging.NullHandler())
_silent_logger.propagate = False


def get_logger_for_scope(scope: CodeAnalysisScope) -> logging.Logger:
    """Return the progress logger for *scope*.

    File scans run on every save, so their progress logging is discarded.
    """
    if scope == CodeAnalysisScope.FILE:
        return _silent_logger
    return logging.getLogger(DEFAULT_LOGGER_NAME)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def get_md5(file_path: str | os.PathLike[str]) -> str:
    """Return the base64-encoded MD5 digest of a file's bytes.

    Raises:
        OSError: If the file cannot be read.
    """
    hasher = hashlib.md5()
    with open(file_path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            hasher.update(chunk)
    return base64.b64encode(hasher.digest()).decode("ascii")


# ---------------------------------------------------------------------------
# Project walking
# ---------------------------------------------------------------------------


def validate_path(path: str) -> Path:
    """Resolve and validate that *path* exists.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    resolved = Path(path).resolve()

    if not resolved.exists():
        raise FileNotFoundError(f"Path does not exist: {resolved}")

    return resolved


class FileWalkResult:
    """Container returned by :func:`walk_project_files`.

    Attributes:
        files: List of absolute file paths that matched the scan criteria.
        files_scanned: Total number of files that were collected.
    """

    __slots__ = ("files", "files_scanned")

    def __init__(self) -> None:
        self.files: list[str] = []
        self.files_scanned: int = 0


def walk_project_files(
    root_path: Path,
    *,
    ignore_dirs: set[str] | None = None,
    scan_extensions: set[str] | None = None,
) -> FileWalkResult:
    """Walk a project directory and collect the files worth uploading.

    Respects ``DEFAULT_IGNORE_DIRS``, ``DEFAULT_IGNORE_FILES``, and
    ``DEFAULT_SCAN_EXTENSIONS`` from config unless overrides are provided.
    """
    _ignore_dirs = (
        ignore_dirs if ignore_dirs is not None else set(DEFAULT_IGNORE_DIRS)
    )
    _extensions = (
        scan_extensions if scan_extensions is not None else set(DEFAULT_SCAN_EXTENSIONS)
    )

    result = FileWalkResult()

    for dirpath, dirnames, filenames in os.walk(root_path):
        # Prune ignored directories in-place so os.walk skips them
        dirnames[:] = sorted(d for d in dirnames if d not in _ignore_dirs)

        for filename in sorted(filenames):
            if filename in DEFAULT_IGNORE_FILES:
                continue

            ext = os.path.splitext(filename)[1]
            if ext not in _extensions:
                continue

            result.files.append(os.path.join(dirpath, filename))
            result.files_scanned += 1

    return result


# ---------------------------------------------------------------------------
# Artifact packaging
# ---------------------------------------------------------------------------


@dataclass
class ZipMetadata:
    """Describes a source archive ready for upload.

    Every entry is stored as ``<root name>/<path relative to root>``; the
    service reports findings against those logical paths.
    """

    zip_file_path: str
    root_dir: str
    project_paths: list[str] = field(default_factory=list)
    scanned_files: int = 0
    src_payload_size_bytes: int = 0

    def cleanup(self) -> None:
        if self.zip_file_path and os.path.exists(self.zip_file_path):
            os.unlink(self.zip_file_path)


def zip_project(
    root: Path,
    *,
    target_file: Path | None = None,
    dest_dir: Path | None = None,
) -> ZipMetadata:
    """Pack *root* (or only *target_file* inside it) into a temporary zip.

    Files that cannot be read are skipped. The archive is removed if
    packing fails part way.

    Raises:
        ValueError: If *target_file* is not inside *root*.
    """
    root = root.resolve()
    if target_file is not None:
        target_file = target_file.resolve()
        if root not in target_file.parents:
            raise ValueError(f"{target_file} is not inside {root}")
        files = [str(target_file)]
    else:
        files = walk_project_files(root).files

    fd, zip_path = tempfile.mkstemp(prefix="remotescan_", suffix=".zip", dir=dest_dir)
    os.close(fd)

    scanned_files = 0
    payload_size = 0
    try:
        with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for filepath in files:
                relative = Path(os.path.relpath(filepath, root)).as_posix()
                try:
                    size = os.path.getsize(filepath)
                    zf.write(filepath, f"{root.name}/{relative}")
                except (OSError, PermissionError):
                    continue
                scanned_files += 1
                payload_size += size
    except BaseException:
        os.unlink(zip_path)
        raise

    return ZipMetadata(
        zip_file_path=zip_path,
        root_dir=str(root),
        project_paths=[str(root)],
        scanned_files=scanned_files,
        src_payload_size_bytes=payload_size,
    )
