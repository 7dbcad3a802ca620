from __future__ import annotations

from pathlib import Path


def safe_relpath(path: Path, root: Path) -> str:
    """
    Return a POSIX-style path for reports, relative to `root` when possible.

    Paths outside `root`, or that cannot be resolved, are returned as given.
    """

    try:
        resolved_path = path.resolve()
        resolved_root = root.resolve()
    except OSError:
        return path.as_posix()

    try:
        return resolved_path.relative_to(resolved_root).as_posix()
    except ValueError:
        return path.as_posix()


def split_source_lines(text: str) -> tuple[str, ...]:
    """
    Split Java source into lines numbered the way the parser numbers rows.

    Only `\\n` ends a line (a preceding `\\r` is dropped). Form feeds, `\\x85`,
    `\\u2028` and the other separators `str.splitlines` honours stay inside
    their line.
    """

    if not text:
        return ()
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return tuple(line[:-1] if line.endswith("\r") else line for line in lines)
