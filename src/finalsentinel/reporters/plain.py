from __future__ import annotations

from pathlib import Path

from finalsentinel.engine.types import ScanSummary
from finalsentinel.utils import safe_relpath


def render_plain(summary: ScanSummary, *, project_root: Path) -> str:
    """One `path:line:col: severity: message [Check]` line per violation, compiler style."""

    out: list[str] = []
    for v in summary.violations:
        loc = v.location
        path = safe_relpath(loc.path, project_root) if loc is not None and loc.path is not None else "<unknown>"
        line = loc.start_line if loc is not None and loc.start_line is not None else 0
        col = loc.start_col if loc is not None and loc.start_col is not None else 0
        out.append(f"{path}:{line}:{col}: {v.severity}: {v.message} [{v.check_name}]")
    for failure in summary.parse_errors:
        out.append(f"{safe_relpath(failure.path, project_root)}: error: {failure.message}")
    return "\n".join(out)
