from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from finalsentinel.config import FinalSentinelConfig
from finalsentinel.engine.nodes import SyntaxNode
from finalsentinel.engine.types import ParseFailure
from finalsentinel.suppressions import Suppressions


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: FinalSentinelConfig


@dataclass(frozen=True, slots=True)
class FileContext:
    project_root: Path
    path: Path
    relative_path: str
    text: str
    lines: tuple[str, ...]
    suppressions: Suppressions
    syntax_tree: SyntaxNode | None = None
    parse_error: ParseFailure | None = None
