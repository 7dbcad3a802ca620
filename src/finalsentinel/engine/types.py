from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Severity = Literal["info", "warn", "error"]


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Violation:
    rule_id: str
    check_name: str
    severity: Severity
    message_key: str
    message: str
    args: tuple[str, ...] = ()
    location: Location | None = None


@dataclass(frozen=True, slots=True)
class ParseFailure:
    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class ScanSummary:
    files_scanned: int
    violations: tuple[Violation, ...]
    parse_errors: tuple[ParseFailure, ...] = ()

    @property
    def counts_by_severity(self) -> dict[str, int]:
        counts = {"error": 0, "warn": 0, "info": 0}
        for v in self.violations:
            counts[v.severity] = counts.get(v.severity, 0) + 1
        return counts
