from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from finalsentinel import __version__
from finalsentinel.engine.types import ScanSummary, Violation
from finalsentinel.utils import safe_relpath

REPORT_SCHEMA_VERSION = 1


def render_json(summary: ScanSummary, *, project_root: Path) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "FinalSentinel", "version": __version__},
        "files_scanned": summary.files_scanned,
        "counts": summary.counts_by_severity,
        "violations": [_violation_to_dict(v, project_root=project_root) for v in summary.violations],
        "parse_errors": [
            {"path": safe_relpath(f.path, project_root), "message": f.message} for f in summary.parse_errors
        ],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def _violation_to_dict(v: Violation, *, project_root: Path) -> dict[str, Any]:
    loc = None
    if v.location is not None:
        loc = {
            "path": safe_relpath(v.location.path, project_root) if v.location.path is not None else None,
            "line": v.location.start_line,
            "column": v.location.start_col,
        }

    return {
        "rule_id": v.rule_id,
        "check": v.check_name,
        "severity": v.severity,
        "key": v.message_key,
        "args": list(v.args),
        "message": v.message,
        "location": loc,
    }
