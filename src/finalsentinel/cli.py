from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console

from finalsentinel import __version__
from finalsentinel.audit import AuditCallbacks, AuditResult, audit_files
from finalsentinel.config import ConfigError, split_tokens, validate_token_names
from finalsentinel.engine.tree_sitter import TreeSitterError
from finalsentinel.engine.types import ScanSummary
from finalsentinel.logging_utils import configure_logging
from finalsentinel.reporters.json_reporter import render_json
from finalsentinel.reporters.plain import render_plain
from finalsentinel.reporters.terminal import render_terminal
from finalsentinel.rules.final_parameters import FinalParametersCheck
from finalsentinel.rules.registry import builtin_checks, check_by_key
from finalsentinel.scanner import ScanTarget, discover_files, prepare_target

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="FinalSentinel: flags Java parameters that are not declared final.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for long scans.", show_default=True),
    ] = True,
) -> None:
    """FinalSentinel CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    verbose = bool(ctx.obj.get("verbose", False))
    quiet = bool(ctx.obj.get("quiet", False))
    progress = bool(ctx.obj.get("progress", True))
    return {"verbose": verbose, "quiet": quiet, "progress": progress}


def _emit_output(
    fmt: str,
    *,
    summary: ScanSummary,
    project_root: Path,
    console: Console,
    show_details: bool = True,
) -> None:
    normalized = fmt.strip().lower()
    if normalized == "terminal":
        render_terminal(summary, project_root=project_root, console=console, show_details=show_details)
        return
    if normalized == "json":
        typer.echo(render_json(summary, project_root=project_root))
        return
    if normalized == "plain":
        rendered = render_plain(summary, project_root=project_root)
        if rendered:
            typer.echo(rendered)
        return
    raise typer.BadParameter("Unsupported format. Use: terminal, json, plain.")


def _apply_overrides(
    target: ScanTarget,
    *,
    tokens: str | None,
    ignore_primitive_types: bool | None,
    fail_on_violation: bool | None,
) -> ScanTarget:
    config = target.config
    name = FinalParametersCheck.meta.name
    rule_id = FinalParametersCheck.meta.rule_id

    if tokens is not None:
        names = split_tokens(tokens)
        validate_token_names(names, field_name="--tokens")
        config = config.with_check_settings(name, rule_id, tokens=names)
    if ignore_primitive_types is not None:
        config = config.with_check_settings(name, rule_id, ignore_primitive_types=ignore_primitive_types)
    if fail_on_violation is not None:
        config = replace(config, fail_on_violation=fail_on_violation)
    return replace(target, config=config)


def _audit_with_optional_progress(target: ScanTarget, *, show_progress: bool) -> AuditResult:
    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    files = discover_files(target)
    logger.debug("discovered %d candidate file(s)", len(files))

    if not show_progress or not files:
        return audit_files(target, files=files)

    progress_console = Console(stderr=True)
    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=progress_console,
        transient=True,
    )

    ctx_task = progress.add_task("Parse", total=len(files))
    scan_task = progress.add_task("Check", total=1)

    def _on_context_built(_path: Path) -> None:
        progress.advance(ctx_task, 1)

    def _on_ready(total: int) -> None:
        progress.update(scan_task, total=total, completed=0)

    def _on_scanned(_path: Path) -> None:
        progress.advance(scan_task, 1)

    callbacks = AuditCallbacks(
        on_context_built=_on_context_built,
        on_file_contexts_ready=_on_ready,
        on_file_scanned=_on_scanned,
    )

    with progress:
        return audit_files(target, files=files, callbacks=callbacks)


@app.command()
def scan(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="Java file or directory to scan (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json, plain.", show_default=True),
    ] = "terminal",
    tokens: Annotated[
        str | None,
        typer.Option(
            "--tokens",
            help="Comma-separated node kinds to check: METHOD_DEF, CTOR_DEF, LITERAL_CATCH, FOR_EACH_CLAUSE.",
            show_default=False,
        ),
    ] = None,
    ignore_primitive_types: Annotated[
        bool | None,
        typer.Option(
            "--ignore-primitive-types/--no-ignore-primitive-types",
            help="Accept non-final parameters of primitive type (default: use config).",
            show_default=False,
        ),
    ] = None,
    fail_on_violation: Annotated[
        bool | None,
        typer.Option(
            "--fail-on-violation/--no-fail-on-violation",
            help="Exit 1 when violations are found (default: use config).",
            show_default=False,
        ),
    ] = None,
) -> None:
    """Scan Java sources for parameters that should be final."""

    settings = _cli_settings()
    normalized_format = output_format.strip().lower()
    if normalized_format not in {"terminal", "json", "plain"}:
        raise typer.BadParameter("Unsupported format. Use: terminal, json, plain.")

    try:
        target = _apply_overrides(
            prepare_target(path),
            tokens=tokens,
            ignore_primitive_types=ignore_primitive_types,
            fail_on_violation=fail_on_violation,
        )
        result = _audit_with_optional_progress(
            target,
            show_progress=settings["progress"] and not settings["quiet"] and normalized_format == "terminal",
        )
    except ConfigError as exc:
        err_console.print(f"Invalid configuration: {exc}", markup=False)
        raise typer.Exit(code=2) from exc
    except TreeSitterError as exc:
        err_console.print(str(exc), markup=False)
        raise typer.Exit(code=2) from exc

    _emit_output(
        normalized_format,
        summary=result.summary,
        project_root=result.target.project_root,
        console=console,
        show_details=not settings["quiet"],
    )

    if result.summary.violations and result.target.config.fail_on_violation:
        raise typer.Exit(code=1)


@app.command()
def checks(
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List the available checks and their metadata.
    """

    from rich.table import Table

    rows = []
    for check in builtin_checks():
        meta = check.meta
        rows.append(
            {
                "rule_id": meta.rule_id,
                "name": meta.name,
                "title": meta.title,
                "description": meta.description,
                "default_severity": meta.default_severity,
                "default_tokens": sorted(k.name for k in check.default_tokens),
                "acceptable_tokens": sorted(k.name for k in check.acceptable_tokens),
            }
        )

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="FinalSentinel Checks")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Severity")
    table.add_column("Default tokens")
    table.add_column("Title")
    for row in rows:
        table.add_row(
            str(row["rule_id"]),
            str(row["name"]),
            str(row["default_severity"]),
            ", ".join(row["default_tokens"]),
            str(row["title"]),
        )
    console.print(table)


@app.command()
def explain(
    check_key: Annotated[
        str,
        typer.Argument(help="Check id or name to explain (e.g. F01, FinalParameters)."),
    ],
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    Explain a single check (metadata + suppression/config hints).
    """

    from rich.panel import Panel
    from rich.syntax import Syntax
    from rich.text import Text

    check = check_by_key(check_key)
    if check is None:
        raise typer.BadParameter(f"Unknown check: {check_key!r}. Use `finalsentinel checks` to list available checks.")

    meta = check.meta
    normalized = output_format.strip().lower()
    if normalized == "json":
        payload = {
            "rule_id": meta.rule_id,
            "name": meta.name,
            "title": meta.title,
            "description": meta.description,
            "default_severity": meta.default_severity,
            "default_tokens": sorted(k.name for k in check.default_tokens),
            "acceptable_tokens": sorted(k.name for k in check.acceptable_tokens),
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    header = Text()
    header.append(meta.rule_id, style="bold")
    header.append(" ", style="dim")
    header.append(meta.name, style="bold")
    header.append(f": {meta.title}")

    details = "\n".join(
        [
            meta.description,
            "",
            f"Default severity: {meta.default_severity}",
            f"Default tokens: {', '.join(sorted(k.name for k in check.default_tokens))}",
            f"Acceptable tokens: {', '.join(sorted(k.name for k in check.acceptable_tokens))}",
        ]
    )
    console.print(Panel(details, title=header, border_style="cyan"))

    console.print(Text("Config override (pyproject.toml):", style="bold"))
    console.print(
        Syntax(
            "\n".join(
                [
                    f"[tool.finalsentinel.checks.{meta.name}]",
                    'severity = "error"  # or warn/info',
                    'tokens = ["METHOD_DEF", "CTOR_DEF", "LITERAL_CATCH"]',
                    "ignore-primitive-types = true",
                    "",
                ]
            ),
            "toml",
            word_wrap=True,
        )
    )
    console.print(Text("Suppressions (in-file):", style="bold"))
    console.print(
        Syntax(
            "\n".join(
                [
                    f"// finalsentinel: disable-file={meta.rule_id}",
                    f"void run(int x) {{ }}  // finalsentinel: disable={meta.rule_id}",
                    f"// finalsentinel: disable-next-line={meta.rule_id}",
                    "void stop(int y) { }",
                    "",
                ]
            ),
            "java",
            word_wrap=True,
        )
    )
