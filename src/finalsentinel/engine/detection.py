from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from finalsentinel.config import ConfigError, FinalSentinelConfig
from finalsentinel.engine.context import FileContext
from finalsentinel.engine.types import Location, Severity, Violation
from finalsentinel.engine.walker import walk
from finalsentinel.messages import format_message
from finalsentinel.rules.base import BaseCheck
from finalsentinel.rules.registry import builtin_checks, check_by_key
from finalsentinel.suppressions import NO_SUPPRESSIONS, Suppressions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConfiguredCheck:
    check: BaseCheck
    severity: Severity


def build_checks(config: FinalSentinelConfig) -> list[ConfiguredCheck]:
    """
    Instantiate every enabled built-in check from the configuration.

    Raises ConfigError for unknown check keys or invalid per-check settings,
    before any file is visited.
    """

    for key in config.checks:
        if check_by_key(key) is None:
            raise ConfigError(f"`tool.finalsentinel.checks.{key}` does not name a known check.")

    configured: list[ConfiguredCheck] = []
    for check_cls in builtin_checks():
        check_cfg = config.check_config(check_cls.meta.name, check_cls.meta.rule_id)
        if not check_cfg.enabled:
            logger.debug("check %s disabled by configuration", check_cls.meta.name)
            continue
        check = check_cls.from_config(check_cfg)
        severity = check_cfg.severity or check_cls.meta.default_severity
        configured.append(ConfiguredCheck(check=check, severity=severity))
    return configured


class ViolationCollector:
    """
    Receives diagnostics from one check for one file and records them as Violations.

    Columns arrive 0-based from the tree and are stored 1-based in `Location`.
    Diagnostics on suppressed lines are dropped; nothing else is filtered.
    """

    def __init__(
        self,
        check: BaseCheck,
        *,
        severity: Severity,
        path: Path | None = None,
        suppressions: Suppressions = NO_SUPPRESSIONS,
    ) -> None:
        self._check = check
        self._severity = severity
        self._path = path
        self._suppressions = suppressions
        self.violations: list[Violation] = []

    @property
    def check(self) -> BaseCheck:
        return self._check

    def report(self, line: int, column: int, key: str, args: tuple[str, ...]) -> None:
        meta = self._check.meta
        if self._suppressions.is_suppressed(meta.rule_id, meta.name, line=line):
            return
        self.violations.append(
            Violation(
                rule_id=meta.rule_id,
                check_name=meta.name,
                severity=self._severity,
                message_key=key,
                message=format_message(key, args),
                args=tuple(args),
                location=Location(path=self._path, start_line=line, start_col=column + 1),
            )
        )


def detect_file(file_ctx: FileContext, checks: Iterable[ConfiguredCheck]) -> list[Violation]:
    if file_ctx.syntax_tree is None:
        return []

    collectors = [
        ViolationCollector(
            configured.check,
            severity=configured.severity,
            path=file_ctx.path,
            suppressions=file_ctx.suppressions,
        )
        for configured in checks
    ]
    walk(file_ctx.syntax_tree, [(c.check, c) for c in collectors])

    violations: list[Violation] = []
    for collector in collectors:
        violations.extend(collector.violations)
    logger.debug("%s: %d violation(s)", file_ctx.relative_path, len(violations))
    return violations


def detect(
    files: Iterable[FileContext],
    checks: list[ConfiguredCheck],
    *,
    workers: int | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> list[Violation]:
    """
    Run the configured checks over every parsed file.

    Checks hold no per-file state, so files may be visited from several
    threads; results keep the input file order.
    """

    file_list = list(files)
    effective_workers = workers or 1
    violations: list[Violation] = []

    if effective_workers <= 1 or len(file_list) <= 1:
        for file_ctx in file_list:
            violations.extend(detect_file(file_ctx, checks))
            if on_file_done is not None:
                on_file_done(file_ctx.path)
        return violations

    max_workers = min(max(1, effective_workers), len(file_list))
    run = partial(detect_file, checks=checks)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for file_ctx, file_violations in zip(file_list, executor.map(run, file_list), strict=True):
            violations.extend(file_violations)
            if on_file_done is not None:
                on_file_done(file_ctx.path)
    return violations
