from __future__ import annotations

from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from finalsentinel import __version__
from finalsentinel.engine.types import ScanSummary, Violation
from finalsentinel.utils import safe_relpath, split_source_lines

_SEVERITY_ICON = {"error": "✖", "warn": "⚠", "info": "ℹ"}
_SEVERITY_STYLE = {"error": "bold red", "warn": "yellow", "info": "dim"}


def render_terminal(summary: ScanSummary, *, project_root: Path, console: Console, show_details: bool = True) -> None:
    header = Text()
    header.append("FinalSentinel ", style="bold")
    header.append(f"v{__version__}", style="dim")
    header.append(" · final parameter audit", style="dim")

    console.print(
        Panel(
            header,
            subtitle=f"Scanned {summary.files_scanned} files",
            border_style="cyan",
        )
    )

    if not show_details:
        _print_summary(summary, console=console)
        return

    by_file: dict[str, list[Violation]] = defaultdict(list)
    for v in summary.violations:
        path = v.location.path if v.location is not None else None
        key = safe_relpath(path, project_root) if path is not None else "<unknown>"
        by_file[key].append(v)

    for file_path in sorted(by_file):
        console.print(Text(file_path, style="bold"))
        file_lines = _read_lines(project_root / file_path)
        for v in sorted(by_file[file_path], key=_sort_key):
            _print_violation(console, v, file_lines=file_lines)
        console.print()

    for failure in summary.parse_errors:
        line = Text()
        line.append("  ✖ ", style="bold red")
        line.append(safe_relpath(failure.path, project_root), style="bold")
        line.append(f"  {failure.message}", style="dim")
        console.print(line)
    if summary.parse_errors:
        console.print()

    _print_summary(summary, console=console)


def _print_violation(console: Console, v: Violation, *, file_lines: list[str]) -> None:
    icon = _SEVERITY_ICON.get(v.severity, "•")
    style = _SEVERITY_STYLE.get(v.severity, "")

    loc = ""
    if v.location is not None and v.location.start_line is not None:
        loc = f"{v.location.start_line}"
        if v.location.start_col is not None:
            loc += f":{v.location.start_col}"

    line = Text()
    line.append(f"  {icon} ", style=style)
    line.append(v.check_name, style="bold")
    if loc:
        line.append(f"  ({loc})", style="dim")
    line.append(f"  {v.message}")
    console.print(line)

    if v.location is not None and v.location.start_line is not None:
        idx = v.location.start_line - 1
        if 0 <= idx < len(file_lines):
            snippet = file_lines[idx].rstrip("\n")
            console.print(f"     {v.location.start_line:>4} │ {snippet}", style="dim", markup=False)


def _print_summary(summary: ScanSummary, *, console: Console) -> None:
    counts = summary.counts_by_severity
    console.print(Text("─" * 60, style="dim"))
    style = "bold red" if summary.violations else "bold green"
    console.print(Text(f"Violations: {len(summary.violations)}", style=style))
    console.print(
        Text(
            f"error={counts['error']} warn={counts['warn']} info={counts['info']}",
            style="dim",
        )
    )
    if summary.parse_errors:
        console.print(Text(f"Unparsed files: {len(summary.parse_errors)}", style="yellow"))
    console.print(Text("─" * 60, style="dim"))


def _sort_key(v: Violation) -> tuple[int, int, str]:
    line = v.location.start_line if v.location and v.location.start_line else 10**9
    col = v.location.start_col if v.location and v.location.start_col else 0
    return line, col, v.rule_id


def _read_lines(path: Path) -> list[str]:
    try:
        return list(split_source_lines(path.read_text(encoding="utf-8", errors="replace")))
    except OSError:
        return []
