from __future__ import annotations

import re
from functools import lru_cache

from finalsentinel.rules.base import BaseCheck
from finalsentinel.rules.final_parameters import FinalParametersCheck

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")


@lru_cache(maxsize=1)
def builtin_checks() -> tuple[type[BaseCheck], ...]:
    checks: list[type[BaseCheck]] = [FinalParametersCheck]

    by_id: dict[str, type[BaseCheck]] = {}
    names: set[str] = set()
    for check in checks:
        rule_id = check.meta.rule_id
        if not _RULE_ID_RE.match(rule_id):  # pragma: no cover
            raise RuntimeError(f"Rule id must match {_RULE_ID_RE.pattern}: {rule_id!r}")
        if rule_id in by_id:  # pragma: no cover
            raise RuntimeError(f"Duplicate rule id: {rule_id}")
        if check.meta.name.lower() in names:  # pragma: no cover
            raise RuntimeError(f"Duplicate check name: {check.meta.name}")
        if not check.default_tokens <= check.acceptable_tokens:  # pragma: no cover
            raise RuntimeError(f"{check.meta.name}: default tokens must be acceptable tokens")
        by_id[rule_id] = check
        names.add(check.meta.name.lower())

    return tuple(by_id[k] for k in sorted(by_id))


def check_by_key(key: str) -> type[BaseCheck] | None:
    """Look up a check by rule id (`F01`) or name (`FinalParameters`), case-insensitively."""

    normalized = key.strip()
    for check in builtin_checks():
        if check.meta.rule_id == normalized.upper() or check.meta.name.lower() == normalized.lower():
            return check
    return None
