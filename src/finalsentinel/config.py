from __future__ import annotations

import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, cast

from finalsentinel.engine.nodes import NodeKind
from finalsentinel.engine.types import Severity


class ConfigError(ValueError):
    """Raised when a FinalSentinel configuration file or check setting is invalid."""


DEFAULT_FAIL_ON_VIOLATION = True


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def _validate_severity(value: Any, *, field_name: str) -> Severity:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = value.strip().lower()
    if normalized == "warning":
        normalized = "warn"
    if normalized not in {"info", "warn", "error"}:
        raise ConfigError(f"`{field_name}` must be one of: info, warn, error.")
    return cast(Severity, normalized)


def _validate_bool(value: Any, *, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"`{field_name}` must be a boolean.")
    return value


@dataclass(frozen=True, slots=True)
class CheckConfig:
    """
    Settings for one check, as written in `[tool.finalsentinel.checks.<name>]`.

    `tokens = None` means "use the check's default scope". Whether the tokens
    are acceptable for the check is decided when the check is built.
    """

    enabled: bool = True
    severity: Severity | None = None
    tokens: tuple[str, ...] | None = None
    ignore_primitive_types: bool = False


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FinalSentinelConfig:
    fail_on_violation: bool = DEFAULT_FAIL_ON_VIOLATION
    checks: Mapping[str, CheckConfig] = field(default_factory=lambda: MappingProxyType({}))
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)

    def check_config(self, *keys: str) -> CheckConfig:
        """Return the settings stored under any of `keys` (id or name, case-insensitive)."""

        for key in keys:
            found = self.checks.get(key.strip().lower())
            if found is not None:
                return found
        return CheckConfig()

    def with_check_settings(self, name: str, *aliases: str, **changes: Any) -> FinalSentinelConfig:
        """Return a copy whose settings for check `name` have `changes` applied."""

        key = name.strip().lower()
        current = self.check_config(name, *aliases)
        checks = {k: v for k, v in self.checks.items() if k not in {a.strip().lower() for a in aliases}}
        checks[key] = replace(current, **changes)
        return replace(self, checks=MappingProxyType(checks))


def load_config(project_dir: Path | str = ".") -> FinalSentinelConfig:
    """
    Load FinalSentinel configuration from `pyproject.toml` within `project_dir`.

    If no file / no `[tool.finalsentinel]` table exists, returns defaults.
    """

    project_dir_path = Path(project_dir)
    pyproject_path = project_dir_path / "pyproject.toml"
    if not pyproject_path.exists():
        return FinalSentinelConfig()

    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject_path}: {exc}") from exc

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return FinalSentinelConfig()

    table = tool_table.get("finalsentinel", {})
    if not isinstance(table, dict) or not table:
        return FinalSentinelConfig()

    return _parse_finalsentinel_table(table)


def _parse_finalsentinel_table(table: dict[str, Any]) -> FinalSentinelConfig:
    fail_on_violation = _validate_bool(
        table.get("fail-on-violation", table.get("fail_on_violation", DEFAULT_FAIL_ON_VIOLATION)),
        field_name="tool.finalsentinel.fail-on-violation",
    )
    checks = _parse_checks_table(table.get("checks", {}))
    ignore = _parse_ignore_config(table.get("ignore", {}))
    return FinalSentinelConfig(fail_on_violation=fail_on_violation, checks=checks, ignore=ignore)


def _parse_checks_table(value: Any) -> Mapping[str, CheckConfig]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, dict):
        raise ConfigError("`tool.finalsentinel.checks` must be a table.")

    out: dict[str, CheckConfig] = {}
    for raw_key, sub in value.items():
        field_name = f"tool.finalsentinel.checks.{raw_key}"
        if not isinstance(sub, dict):
            raise ConfigError(f"`{field_name}` must be a table.")
        key = str(raw_key).strip().lower()
        if key in out:
            raise ConfigError(f"`{field_name}` duplicates another check entry.")
        out[key] = _parse_check_config(sub, field_name=field_name)
    return MappingProxyType(out)


def _parse_check_config(value: dict[str, Any], *, field_name: str) -> CheckConfig:
    enabled = _validate_bool(value.get("enabled", True), field_name=f"{field_name}.enabled")

    severity_raw = value.get("severity")
    severity = _validate_severity(severity_raw, field_name=f"{field_name}.severity") if severity_raw is not None else None

    tokens: tuple[str, ...] | None = None
    if "tokens" in value:
        tokens_raw = value["tokens"]
        if isinstance(tokens_raw, str):
            tokens = split_tokens(tokens_raw)
        else:
            tokens = tuple(t for t in _validate_str_list(tokens_raw, field_name=f"{field_name}.tokens") if t)
        validate_token_names(tokens, field_name=f"{field_name}.tokens")

    ignore_primitive_types = _validate_bool(
        value.get("ignore-primitive-types", value.get("ignore_primitive_types", False)),
        field_name=f"{field_name}.ignore-primitive-types",
    )

    return CheckConfig(
        enabled=enabled,
        severity=severity,
        tokens=tokens,
        ignore_primitive_types=ignore_primitive_types,
    )


def split_tokens(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.replace(";", ",").split(",") if part.strip())


def validate_token_names(tokens: Iterable[str], *, field_name: str) -> None:
    tokens = tuple(tokens)
    if not tokens:
        raise ConfigError(f"`{field_name}` must not be empty.")
    for token in tokens:
        try:
            NodeKind.from_name(token)
        except KeyError:
            raise ConfigError(f"`{field_name}` contains unknown token: {token!r}.") from None


def _parse_ignore_config(value: Any) -> IgnoreConfig:
    if value is None:
        return IgnoreConfig()
    if not isinstance(value, dict):
        raise ConfigError("`tool.finalsentinel.ignore` must be a table.")
    paths = _validate_str_list(value.get("paths", []), field_name="tool.finalsentinel.ignore.paths")
    return IgnoreConfig(paths=paths)


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore patterns.

    Patterns are evaluated against the POSIX-style relative path from `project_root`.

    Supported patterns:
    - Directory prefixes: "generated/" matches "generated/..." under root.
    - Globs without slashes: "*Test.java" matches basenames.
    - Globs with slashes: "src/**/gen/*.java" matches full relative paths.
    """

    import fnmatch

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        # If the path isn't under root (or can't be resolved), don't ignore it implicitly.
        return False

    rel_posix = relative.as_posix()
    basename = relative.name

    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if not pattern:
            continue
        if pattern.startswith("./"):
            pattern = pattern[2:]

        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
            continue

        if "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        else:
            if fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(rel_posix, pattern):
                return True

    return False
