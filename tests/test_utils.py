"""Unit tests for project walking, zipping, settings, and scoped logging."""

import logging
import os
import tempfile
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

from remotescan.config import DEFAULT_ENDPOINT, load_settings
from remotescan.models import CodeAnalysisScope
from remotescan.utils import get_logger_for_scope, walk_project_files, zip_project


def _create_test_structure(files: list[str]) -> str:
    """Create a temporary directory with the given file paths."""
    tmpdir = tempfile.mkdtemp(prefix="remotescan_filter_")
    for path in files:
        full_path = os.path.join(tmpdir, path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "w") as f:
            f.write("print('x')\n")
    return tmpdir


class TestFileFiltering:
    """Tests for file walker exclusions."""

    def test_ignores_lockfiles(self) -> None:
        project = _create_test_structure(
            ["package.json", "package-lock.json", "yarn.lock", "src/index.js"]
        )
        result = walk_project_files(Path(project))

        filenames = [os.path.basename(f) for f in result.files]
        assert "index.js" in filenames
        assert "package.json" in filenames
        assert "package-lock.json" not in filenames
        assert "yarn.lock" not in filenames

    def test_ignores_vendor_dirs(self) -> None:
        project = _create_test_structure(
            ["node_modules/pkg/index.js", ".venv/lib/site.py", "src/app.py"]
        )
        result = walk_project_files(Path(project))

        assert any(p.endswith(os.path.join("src", "app.py")) for p in result.files)
        assert not any("node_modules" in p or ".venv" in p for p in result.files)
        assert result.files_scanned == 1

    def test_skips_unknown_extensions(self) -> None:
        project = _create_test_structure(["README.md", "logo.png", "main.go"])
        result = walk_project_files(Path(project))
        assert [os.path.basename(f) for f in result.files] == ["main.go"]


class TestZipProject:
    """Tests for source archive packaging."""

    def test_entries_live_under_root_name(self, tmp_path: Path) -> None:
        root = tmp_path / "proj"
        (root / "src").mkdir(parents=True)
        (root / "src" / "app.py").write_text("x = 1\n")
        (root / "main.py").write_text("y = 2\n")

        metadata = zip_project(root)
        try:
            with zipfile.ZipFile(metadata.zip_file_path) as zf:
                names = sorted(zf.namelist())
        finally:
            metadata.cleanup()

        assert names == ["proj/main.py", "proj/src/app.py"]
        assert metadata.project_paths == [str(root.resolve())]
        assert metadata.scanned_files == 2
        assert metadata.src_payload_size_bytes == 12

    def test_single_file(self, tmp_path: Path) -> None:
        root = tmp_path / "proj"
        (root / "pkg").mkdir(parents=True)
        target = root / "pkg" / "mod.py"
        target.write_text("z = 3\n")
        (root / "other.py").write_text("w = 4\n")

        metadata = zip_project(root, target_file=target)
        try:
            with zipfile.ZipFile(metadata.zip_file_path) as zf:
                assert zf.namelist() == ["proj/pkg/mod.py"]
        finally:
            metadata.cleanup()

        assert metadata.scanned_files == 1
        assert not os.path.exists(metadata.zip_file_path)

    def test_file_outside_root_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "proj").mkdir()
        outside = tmp_path / "elsewhere.py"
        outside.write_text("")
        with pytest.raises(ValueError):
            zip_project(tmp_path / "proj", target_file=outside)

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_unreadable_file_is_skipped(self, tmp_path: Path) -> None:
        root = tmp_path / "proj"
        root.mkdir()
        (root / "ok.py").write_text("x = 1\n")
        os.symlink(tmp_path / "missing.py", root / "dangling.py")
        dest = tmp_path / "out"
        dest.mkdir()

        metadata = zip_project(root, dest_dir=dest)
        try:
            with zipfile.ZipFile(metadata.zip_file_path) as zf:
                assert zf.namelist() == ["proj/ok.py"]
        finally:
            metadata.cleanup()

        assert metadata.scanned_files == 1
        assert metadata.src_payload_size_bytes == 6
        assert os.listdir(dest) == []

    def test_archive_removed_when_packing_fails(self, tmp_path: Path) -> None:
        root = tmp_path / "proj"
        root.mkdir()
        (root / "ok.py").write_text("x = 1\n")
        dest = tmp_path / "out"
        dest.mkdir()

        with patch.object(zipfile.ZipFile, "write", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                zip_project(root, dest_dir=dest)

        assert os.listdir(dest) == []


class _RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class TestScopedLogging:
    """Tests for scope-scaled log verbosity."""

    def test_file_scope_is_silent(self) -> None:
        silent = get_logger_for_scope(CodeAnalysisScope.FILE)
        assert silent.propagate is False
        assert all(isinstance(h, logging.NullHandler) for h in silent.handlers)

        parent = logging.getLogger("remotescan")
        handler = _RecordingHandler()
        parent.addHandler(handler)
        try:
            silent.warning("per-save noise")
        finally:
            parent.removeHandler(handler)

        assert handler.records == []

    def test_project_scope_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG)
        get_logger_for_scope(CodeAnalysisScope.PROJECT).warning("project progress")
        assert "project progress" in caplog.text


class TestLoadSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("REMOTESCAN_ENDPOINT", "REMOTESCAN_TOKEN", "REMOTESCAN_POLL_INTERVAL"):
            monkeypatch.delenv(name, raising=False)
        settings = load_settings()
        assert settings.endpoint == DEFAULT_ENDPOINT
        assert settings.token == ""
        assert settings.file_scan_polling_delay < settings.project_scan_polling_delay

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REMOTESCAN_ENDPOINT", "https://scan.example.com")
        monkeypatch.setenv("REMOTESCAN_POLL_INTERVAL", "0.5")
        settings = load_settings()
        assert settings.endpoint == "https://scan.example.com"
        assert settings.polling_interval == 0.5

    def test_bad_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REMOTESCAN_FILE_SCAN_TIMEOUT", "soon")
        with pytest.raises(RuntimeError):
            load_settings()
