from __future__ import annotations

from collections.abc import Sequence

from finalsentinel.engine.nodes import SyntaxNode, iter_nodes
from finalsentinel.rules.base import BaseCheck, DiagnosticSink


def walk(root: SyntaxNode, visitors: Sequence[tuple[BaseCheck, DiagnosticSink]]) -> None:
    """
    Visit every node of `root` in document order.

    Each check sees only the nodes whose kind is in its configured `tokens`,
    and reports into the sink paired with it.
    """

    if not visitors:
        return
    for node in iter_nodes(root):
        for check, sink in visitors:
            if node.kind in check.tokens:
                check.visit(node, sink)
