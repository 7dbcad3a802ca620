from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, Self

from finalsentinel.config import CheckConfig, ConfigError
from finalsentinel.engine.nodes import NodeKind, SyntaxNode
from finalsentinel.engine.types import Severity


@dataclass(frozen=True, slots=True)
class CheckMeta:
    rule_id: str
    name: str
    title: str
    description: str
    default_severity: Severity


class DiagnosticSink(Protocol):
    def report(self, line: int, column: int, key: str, args: tuple[str, ...]) -> None: ...


class BaseCheck(ABC):
    """
    A check visited by the tree walker.

    Subclasses declare which node kinds they can handle (`acceptable_tokens`),
    which they handle when not configured (`default_tokens`) and the kinds
    they were configured with (`tokens`). `visit` is only ever called with
    nodes whose kind is in `tokens`.
    """

    meta: CheckMeta
    default_tokens: frozenset[NodeKind]
    acceptable_tokens: frozenset[NodeKind]

    @classmethod
    @abstractmethod
    def from_config(cls, config: CheckConfig) -> Self: ...

    @property
    @abstractmethod
    def tokens(self) -> frozenset[NodeKind]: ...

    @abstractmethod
    def visit(self, node: SyntaxNode, sink: DiagnosticSink) -> None: ...

    @classmethod
    def default_scope(cls) -> frozenset[NodeKind]:
        return cls.default_tokens

    @classmethod
    def acceptable_scope(cls) -> frozenset[NodeKind]:
        return cls.acceptable_tokens

    @classmethod
    def resolve_scope(cls, names: Iterable[str | NodeKind] | None) -> frozenset[NodeKind]:
        """
        Turn configured token names into a scope, validated against `acceptable_tokens`.

        None selects the default scope. Raises ConfigError for unknown names,
        names outside the acceptable set, or an empty selection.
        """

        if names is None:
            return cls.default_tokens

        resolved: set[NodeKind] = set()
        for raw in names:
            if isinstance(raw, NodeKind):
                kind = raw
            else:
                try:
                    kind = NodeKind.from_name(raw)
                except KeyError:
                    raise ConfigError(f"{cls.meta.name}: unknown token {raw!r}.") from None
            if kind not in cls.acceptable_tokens:
                valid = ", ".join(sorted(k.name for k in cls.acceptable_tokens))
                raise ConfigError(f"{cls.meta.name}: token {kind.name} is not acceptable (valid: {valid}).")
            resolved.add(kind)

        if not resolved:
            raise ConfigError(f"{cls.meta.name}: tokens must not be empty.")
        return frozenset(resolved)
