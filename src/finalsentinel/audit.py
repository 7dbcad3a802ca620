from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from finalsentinel.engine import tree_sitter
from finalsentinel.engine.detection import ConfiguredCheck, build_checks, detect
from finalsentinel.engine.types import ScanSummary
from finalsentinel.scanner import (
    ScanTarget,
    build_file_contexts,
    build_project_context,
    discover_files,
    prepare_target,
    worker_count_from_env,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    checks: tuple[ConfiguredCheck, ...]
    summary: ScanSummary


@dataclass(frozen=True, slots=True)
class AuditCallbacks:
    on_context_built: Callable[[Path], None] | None = None
    on_file_contexts_ready: Callable[[int], None] | None = None
    on_file_scanned: Callable[[Path], None] | None = None


def audit_path(scan_path: Path, *, callbacks: AuditCallbacks | None = None) -> AuditResult:
    target = prepare_target(scan_path)
    files = discover_files(target)
    return audit_files(target, files=files, callbacks=callbacks)


def audit_files(
    target: ScanTarget,
    *,
    files: list[Path],
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    """
    Parse `files` and run every enabled check over them.

    Checks are built (and their configuration validated) before any file is
    read, so a ConfigError aborts the run without partial output.
    """

    checks = build_checks(target.config)
    if files and not tree_sitter.is_available():
        raise tree_sitter.TreeSitterError(tree_sitter.MISSING_DEPS_MESSAGE)

    project = build_project_context(target, files)
    workers = worker_count_from_env()
    file_contexts = build_file_contexts(
        project,
        files,
        workers=workers,
        on_path_done=callbacks.on_context_built if callbacks else None,
    )
    if callbacks is not None and callbacks.on_file_contexts_ready is not None:
        callbacks.on_file_contexts_ready(len(file_contexts))

    violations = detect(
        file_contexts,
        checks,
        workers=workers,
        on_file_done=callbacks.on_file_scanned if callbacks else None,
    )
    parse_errors = tuple(ctx.parse_error for ctx in file_contexts if ctx.parse_error is not None)
    if parse_errors:
        logger.warning("%d file(s) could not be parsed", len(parse_errors))

    summary = ScanSummary(
        files_scanned=len(file_contexts),
        violations=tuple(violations),
        parse_errors=parse_errors,
    )
    return AuditResult(target=target, files=tuple(files), checks=tuple(checks), summary=summary)
