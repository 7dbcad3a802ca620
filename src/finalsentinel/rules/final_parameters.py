from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace

from finalsentinel.config import CheckConfig
from finalsentinel.engine.nodes import (
    PRIMITIVE_TYPES,
    NodeKind,
    PreconditionError,
    SyntaxNode,
    first_node,
    grandparent,
)
from finalsentinel.rules.base import BaseCheck, CheckMeta, DiagnosticSink

logger = logging.getLogger(__name__)

MSG_KEY = "final.parameter"


@dataclass(frozen=True, slots=True)
class FinalParametersOptions:
    tokens: frozenset[NodeKind] = frozenset({NodeKind.METHOD_DEF, NodeKind.CTOR_DEF})
    ignore_primitive_types: bool = False


class FinalParametersCheck(BaseCheck):
    """
    Check that method, constructor, catch and for-each parameters are final.

    The default scope is METHOD_DEF and CTOR_DEF; LITERAL_CATCH and
    FOR_EACH_CLAUSE can be added. With `ignore_primitive_types` a parameter
    whose declared type is one of the eight primitive types is accepted
    without `final`, e.g. `void foo(int x)`.

    Parameters of abstract methods and of methods declared in an interface
    are never reported: there is no body in which a reassignment could happen.
    """

    meta = CheckMeta(
        rule_id="F01",
        name="FinalParameters",
        title="Parameters should be final",
        description=(
            "Method, constructor, catch and for-each parameters must be declared `final` "
            "so they cannot be reassigned in the body."
        ),
        default_severity="warn",
    )
    default_tokens = frozenset({NodeKind.METHOD_DEF, NodeKind.CTOR_DEF})
    acceptable_tokens = frozenset(
        {
            NodeKind.METHOD_DEF,
            NodeKind.CTOR_DEF,
            NodeKind.LITERAL_CATCH,
            NodeKind.FOR_EACH_CLAUSE,
        }
    )

    def __init__(self, options: FinalParametersOptions | None = None) -> None:
        options = options or FinalParametersOptions()
        # tokens must stay within acceptable_tokens, however the options were built
        self._options = replace(options, tokens=self.resolve_scope(options.tokens))

    @classmethod
    def from_settings(
        cls,
        *,
        tokens: Iterable[str | NodeKind] | None = None,
        ignore_primitive_types: bool = False,
    ) -> FinalParametersCheck:
        return cls(
            FinalParametersOptions(
                tokens=cls.resolve_scope(tokens),
                ignore_primitive_types=ignore_primitive_types,
            )
        )

    @classmethod
    def from_config(cls, config: CheckConfig) -> FinalParametersCheck:
        return cls.from_settings(tokens=config.tokens, ignore_primitive_types=config.ignore_primitive_types)

    @property
    def options(self) -> FinalParametersOptions:
        return self._options

    @property
    def tokens(self) -> frozenset[NodeKind]:
        return self._options.tokens

    def configure(self, *, ignore_primitive_types: bool) -> FinalParametersCheck:
        """Return a check with the primitive-type option set; this instance is unchanged."""

        return FinalParametersCheck(replace(self._options, ignore_primitive_types=ignore_primitive_types))

    def visit(self, node: SyntaxNode, sink: DiagnosticSink) -> None:
        # don't flag interfaces
        container = grandparent(node)
        if container is None:
            raise PreconditionError(f"{node.kind.name} at {node.line}:{node.column} has no enclosing container")
        if container.kind is NodeKind.INTERFACE_DEF:
            logger.debug("skipping %s at line %d: interface member", node.kind.name, node.line)
            return

        if node.kind is NodeKind.LITERAL_CATCH:
            self._visit_catch(node, sink)
        elif node.kind is NodeKind.FOR_EACH_CLAUSE:
            self._visit_for_each_clause(node, sink)
        elif node.kind in (NodeKind.METHOD_DEF, NodeKind.CTOR_DEF):
            self._visit_method(node, sink)
        else:
            raise PreconditionError(f"{self.meta.name} cannot visit {node.kind.name}")

    def _visit_method(self, method: SyntaxNode, sink: DiagnosticSink) -> None:
        # exit on fast lane if there is nothing to check here
        if not method.branch_contains(NodeKind.PARAMETER_DEF):
            return

        modifiers = method.require_child(NodeKind.MODIFIERS)
        if modifiers.branch_contains(NodeKind.ABSTRACT):
            logger.debug("skipping abstract %s at line %d", method.kind.name, method.line)
            return

        # children are PARAMETER_DEF and COMMA
        parameters = method.require_child(NodeKind.PARAMETERS)
        for child in parameters.children:
            if child.kind is NodeKind.PARAMETER_DEF:
                self._check_param(child, sink)

    def _visit_catch(self, catch: SyntaxNode, sink: DiagnosticSink) -> None:
        self._check_param(catch.require_child(NodeKind.PARAMETER_DEF), sink)

    def _visit_for_each_clause(self, clause: SyntaxNode, sink: DiagnosticSink) -> None:
        self._check_param(clause.require_child(NodeKind.VARIABLE_DEF), sink)

    def _check_param(self, param: SyntaxNode, sink: DiagnosticSink) -> None:
        if self._is_ignored_param(param):
            return
        if param.branch_contains(NodeKind.FINAL):
            return

        name = param.require_child(NodeKind.IDENT)
        first = first_node(param)
        sink.report(first.line, first.column, MSG_KEY, (name.text,))

    def _is_ignored_param(self, param: SyntaxNode) -> bool:
        if not self._options.ignore_primitive_types:
            return False
        param_type = param.require_child(NodeKind.TYPE).first_child
        if param_type is None:
            raise PreconditionError(f"TYPE of parameter at {param.line}:{param.column} is empty")
        return param_type.kind in PRIMITIVE_TYPES
