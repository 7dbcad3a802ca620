from __future__ import annotations

from pathlib import Path

import pytest

from finalsentinel.config import FinalSentinelConfig
from finalsentinel.engine.context import ProjectContext
from finalsentinel.engine.tree_sitter import is_available


@pytest.fixture()
def project_ctx(tmp_path: Path) -> ProjectContext:
    return ProjectContext(
        project_root=tmp_path,
        scan_path=tmp_path,
        files=(),
        config=FinalSentinelConfig(),
    )


@pytest.fixture()
def requires_tree_sitter() -> None:
    if not is_available():
        pytest.skip("tree-sitter Java grammar not installed")
