"""Shared utility functions for qcli.

Provides the Rich console and its output helpers, JSON file I/O, and
repository-root detection used by configuration auto-detection.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()

logger = logging.getLogger(__name__)

# Directory entries that mark the root of a repository or solution workspace.
VCS_MARKERS: tuple[str, ...] = (".git", ".hg", ".svn")
WORKSPACE_GLOBS: tuple[str, ...] = ("*.sln",)


# ---------------------------------------------------------------------------
# Repository root detection
# ---------------------------------------------------------------------------


def is_repository_root(directory: Path) -> bool:
    """Return ``True`` if *directory* holds a VCS or solution marker."""
    if any((directory / marker).exists() for marker in VCS_MARKERS):
        return True
    return any(next(directory.glob(pattern), None) is not None for pattern in WORKSPACE_GLOBS)


def git_toplevel(cwd: str | Path | None = None, timeout: int = 5) -> Path | None:
    """Ask git for the top-level directory of the work tree containing *cwd*.

    Returns ``None`` when git is not installed, the directory is not inside a
    work tree, or the command fails for any other reason.
    """
    if shutil.which("git") is None:
        return None
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("git rev-parse failed: %s", exc)
        return None

    if result.returncode != 0:
        return None
    top = result.stdout.strip()
    if top and Path(top).is_dir():
        return Path(top)
    return None


def find_repository_root(start: str | Path | None = None) -> Path | None:
    """Locate the repository root at or above *start* (default: cwd).

    Walks upward looking for a marker from ``VCS_MARKERS`` or
    ``WORKSPACE_GLOBS`` first, then falls back to ``git rev-parse``.

    Returns:
        The detected root, or ``None`` when nothing recognisable was found.
    """
    origin = Path(start) if start is not None else Path.cwd()
    origin = origin.resolve()

    for directory in (origin, *origin.parents):
        try:
            if is_repository_root(directory):
                return directory
        except OSError:
            # Unreadable ancestor; keep climbing.
            continue

    return git_toplevel(origin)


def find_upwards(filename: str, start: str | Path | None = None) -> Path | None:
    """Return the first ``<dir>/<filename>`` that exists at or above *start*."""
    origin = Path(start) if start is not None else Path.cwd()
    origin = origin.resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file that must contain a top-level object.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the top-level value is not an object.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}, got {type(data).__name__}")
    return data


def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> Path:
    """Save data as pretty-printed JSON, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False)
    file_path.write_text(content + "\n", encoding="utf-8")
    return file_path


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
