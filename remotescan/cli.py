"""remotescan CLI: entry point for remote security scans."""

import asyncio
import json
import signal
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from remotescan import __app_name__, __version__
from remotescan.client import ScanServiceClient
from remotescan.config import Settings, load_settings
from remotescan.core.pipeline import run_scan
from remotescan.editor import FileDocument
from remotescan.errors import CodeScanStoppedError, RemoteScanError
from remotescan.models import (
    CRITICAL,
    HIGH,
    INFO,
    LOW,
    MEDIUM,
    SEVERITY_ORDER,
    CodeAnalysisScope,
    ScanResult,
    normalize_severity,
)
from remotescan.state import code_scan_state
from remotescan.utils import configure_logging, validate_path, zip_project

# ---------------------------------------------------------------------------
# App & Console
# ---------------------------------------------------------------------------

app = typer.Typer(
    name=__app_name__,
    help="🔒 remotescan: run security scans on a remote analysis service.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

# ---------------------------------------------------------------------------
# Severity → Rich color mapping
# ---------------------------------------------------------------------------

_SEVERITY_COLORS: dict[str, str] = {
    CRITICAL: "magenta",
    HIGH: "red",
    MEDIUM: "yellow",
    LOW: "blue",
    INFO: "dim",
}

_STOPPED_EXIT_CODE = 130

# ---------------------------------------------------------------------------
# Version callback
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    version: Optional[bool] = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-v",
        help="Show the application version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """remotescan: upload your code to a scanning service and map findings back."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def scan(
    path: str = typer.Argument(
        ...,
        help="Project directory (project scope) or file (file scope) to scan.",
    ),
    scope: CodeAnalysisScope = typer.Option(
        CodeAnalysisScope.PROJECT,
        "--scope",
        case_sensitive=False,
        help="Scan a whole project or a single file.",
    ),
    root: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--root",
        help="Project root for file scans (defaults to the file's directory).",
    ),
    language: str = typer.Option(
        "python",
        "--language",
        help="Programming language reported to the service.",
    ),
    endpoint: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--endpoint",
        envvar="REMOTESCAN_ENDPOINT",
        help="Base URL of the scanning service.",
    ),
    token: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--token",
        envvar="REMOTESCAN_TOKEN",
        help="Bearer token for the scanning service.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON instead of Rich tables.",
    ),
    fail_on: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--fail-on",
        help="Exit with code 1 if any finding meets this severity "
        "(CRITICAL, HIGH, MEDIUM, LOW, INFO).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging on stderr.",
    ),
) -> None:
    """Scan a project or a single file with the remote analysis service."""

    configure_logging(verbose=verbose)

    # --- Validate path ---
    try:
        target = validate_path(path)
    except FileNotFoundError:
        console.print(f"[bold red]✗[/bold red] Path does not exist: {Path(path).resolve()}")
        raise typer.Exit(code=1)

    if scope == CodeAnalysisScope.PROJECT and not target.is_dir():
        console.print(f"[bold red]✗[/bold red] Path is not a directory: {target}")
        raise typer.Exit(code=1)

    if scope == CodeAnalysisScope.FILE and not target.is_file():
        console.print(f"[bold red]✗[/bold red] Path is not a file: {target}")
        raise typer.Exit(code=1)

    # --- Validate --fail-on value ---
    if fail_on is not None:
        fail_on = normalize_severity(fail_on)
        if fail_on not in SEVERITY_ORDER:
            console.print(
                f"[bold red]✗[/bold red] Invalid --fail-on value: {fail_on.upper()}. "
                f"Must be one of: CRITICAL, HIGH, MEDIUM, LOW, INFO"
            )
            raise typer.Exit(code=1)

    settings = load_settings()
    settings = replace(
        settings,
        endpoint=endpoint or settings.endpoint,
        token=token or settings.token,
    )

    if not output_json:
        console.print(
            Panel(
                "[bold green]remotescan initialized[/bold green]",
                title="🔒 remotescan",
                subtitle=f"v{__version__}",
                border_style="cyan",
            )
        )
        console.print(f"[dim]Target:[/dim] {target}")
        console.print(f"[dim]Service:[/dim] {settings.endpoint}\n")
        console.print("[bold]Scanning…[/bold]\n")

    try:
        result = asyncio.run(_run(target, scope, root, language, settings))
    except CodeScanStoppedError as exc:
        console.print(f"[bold yellow]■[/bold yellow] {exc}")
        raise typer.Exit(code=_STOPPED_EXIT_CODE)
    except asyncio.CancelledError:
        console.print(f"[bold yellow]■[/bold yellow] {CodeScanStoppedError()}")
        raise typer.Exit(code=_STOPPED_EXIT_CODE)
    except RemoteScanError as exc:
        console.print(f"[bold red]✗ {exc.code}:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except (ValueError, OSError) as exc:
        console.print(f"[bold red]✗[/bold red] {exc}")
        raise typer.Exit(code=1)

    # --- Output ---
    if output_json:
        _print_json(result)
    else:
        _print_rich(result)

    # --- Fail-on check ---
    if fail_on and result.has_severity(fail_on):
        if not output_json:
            console.print(
                f"\n[bold red]✗ Scan failed:[/bold red] "
                f"Findings at severity [bold]{fail_on}[/bold] or above were found."
            )
        raise typer.Exit(code=1)


async def _run(
    target: Path,
    scope: CodeAnalysisScope,
    root: Optional[str],  # noqa: UP007
    language: str,
    settings: Settings,
) -> ScanResult:
    """Zip the target, run the pipeline, and always remove the archive."""
    if scope == CodeAnalysisScope.FILE:
        project_root = Path(root).resolve() if root else target.parent
        document = FileDocument.load(target)
        zip_metadata = zip_project(project_root, target_file=target)
    else:
        zip_metadata = zip_project(target)
        document = None

    _install_cancel_handler(scope)
    try:
        async with ScanServiceClient.from_settings(settings) as client:
            return await run_scan(
                client,
                zip_metadata,
                scope,
                language,
                settings=settings,
                document=document,
            )
    finally:
        zip_metadata.cleanup()
        code_scan_state.set_to_not_started()


def _interrupt_handler(task: Optional[asyncio.Task]) -> Callable[[], None]:  # noqa: UP007
    """First Ctrl-C raises the cancel flag; a second one cancels *task*."""

    def on_interrupt() -> None:
        if code_scan_state.is_cancelling() and task is not None:
            task.cancel()
        else:
            code_scan_state.set_to_cancelling()

    return on_interrupt


def _install_cancel_handler(scope: CodeAnalysisScope) -> None:
    """Let Ctrl-C stop a project scan at its next cancellation check.

    A second Ctrl-C cancels the run outright, covering stages that never
    check the flag.
    """
    if scope != CodeAnalysisScope.PROJECT:
        return
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, _interrupt_handler(asyncio.current_task()))
    except (NotImplementedError, RuntimeError):
        # Not supported on this platform / thread
        pass


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_json(result: ScanResult) -> None:
    """Print scan results as structured JSON."""
    print(json.dumps(result.to_dict(), indent=2))


def _print_rich(result: ScanResult) -> None:
    """Render scan results using Rich tables and panels."""
    if result.files:
        _print_issues_table(result)
    else:
        console.print(
            Panel(
                "[bold green]✔ No security issues found[/bold green]",
                border_style="green",
            )
        )
    _print_summary(result)


def _print_issues_table(result: ScanResult) -> None:
    """Render detected findings as a Rich table."""
    table = Table(
        title="🔍 Detected Issues",
        show_lines=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("File", style="cyan", max_width=40)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Detector", style="bold")
    table.add_column("Severity", justify="center")
    table.add_column("Message", max_width=50)

    idx = 0
    for file_result in result.files:
        for issue in file_result.issues:
            idx += 1
            color = _SEVERITY_COLORS.get(issue.severity, "white")
            table.add_row(
                str(idx),
                file_result.file_path,
                str(issue.start_line + 1),
                issue.detector_name or issue.detector_id,
                f"[bold {color}]{issue.severity}[/bold {color}]",
                issue.comment,
            )

    console.print(table)
    console.print()


def _print_summary(result: ScanResult) -> None:
    """Print a scan summary with severity breakdown."""
    sc = result.severity_counts

    summary_lines = [
        f"[bold]Job:[/bold]           {result.job_id} ({result.status})",
        f"[bold]Files uploaded:[/bold] {result.total_files}",
        f"[bold]Total issues:[/bold]  {len(result.issues)}",
        "",
    ]
    for level in SEVERITY_ORDER:
        color = _SEVERITY_COLORS[level]
        summary_lines.append(f"[bold {color}]{level}:[/bold {color}] {sc.get(level, 0)}")

    console.print(
        Panel(
            "\n".join(summary_lines),
            title="📊 Scan Summary",
            border_style="cyan",
        )
    )
