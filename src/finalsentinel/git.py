from __future__ import annotations

import subprocess
from pathlib import Path


def git_root(*, cwd: Path) -> Path | None:
    """
    Return the root of the git work tree containing `cwd`, or None.

    A missing `git` binary or a directory outside any repository is not an
    error here; project root detection just moves on to its fallback.
    """

    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd),
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError, PermissionError):
        return None
    return Path(out) if out else None
