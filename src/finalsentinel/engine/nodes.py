from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field


class NodeKind(enum.Enum):
    # Definitions and containers
    COMPILATION_UNIT = "COMPILATION_UNIT"
    CLASS_DEF = "CLASS_DEF"
    INTERFACE_DEF = "INTERFACE_DEF"
    ENUM_DEF = "ENUM_DEF"
    RECORD_DEF = "RECORD_DEF"
    ANNOTATION_DEF = "ANNOTATION_DEF"
    OBJBLOCK = "OBJBLOCK"
    METHOD_DEF = "METHOD_DEF"
    CTOR_DEF = "CTOR_DEF"
    SLIST = "SLIST"

    # Parameter structure
    PARAMETERS = "PARAMETERS"
    PARAMETER_DEF = "PARAMETER_DEF"
    VARIABLE_DEF = "VARIABLE_DEF"
    MODIFIERS = "MODIFIERS"
    FINAL = "FINAL"
    ABSTRACT = "ABSTRACT"
    MODIFIER = "MODIFIER"
    ANNOTATION = "ANNOTATION"
    TYPE = "TYPE"
    ARRAY_DECLARATOR = "ARRAY_DECLARATOR"
    ELLIPSIS = "ELLIPSIS"
    IDENT = "IDENT"
    COMMA = "COMMA"

    # Primitive types
    LITERAL_BYTE = "LITERAL_BYTE"
    LITERAL_SHORT = "LITERAL_SHORT"
    LITERAL_INT = "LITERAL_INT"
    LITERAL_LONG = "LITERAL_LONG"
    LITERAL_FLOAT = "LITERAL_FLOAT"
    LITERAL_DOUBLE = "LITERAL_DOUBLE"
    LITERAL_BOOLEAN = "LITERAL_BOOLEAN"
    LITERAL_CHAR = "LITERAL_CHAR"

    # Statements
    LITERAL_TRY = "LITERAL_TRY"
    LITERAL_CATCH = "LITERAL_CATCH"
    LITERAL_FOR = "LITERAL_FOR"
    FOR_EACH_CLAUSE = "FOR_EACH_CLAUSE"

    # Anything the checks do not need to tell apart
    SYNTAX = "SYNTAX"
    TOKEN = "TOKEN"

    @classmethod
    def from_name(cls, name: str) -> NodeKind:
        """Resolve a token name case-insensitively; raises KeyError if unknown."""

        return cls[name.strip().upper()]


PRIMITIVE_TYPES: frozenset[NodeKind] = frozenset(
    {
        NodeKind.LITERAL_BYTE,
        NodeKind.LITERAL_SHORT,
        NodeKind.LITERAL_INT,
        NodeKind.LITERAL_LONG,
        NodeKind.LITERAL_FLOAT,
        NodeKind.LITERAL_DOUBLE,
        NodeKind.LITERAL_BOOLEAN,
        NodeKind.LITERAL_CHAR,
    }
)


class PreconditionError(AssertionError):
    """Raised when a syntax tree breaks a structural invariant the checks rely on."""


@dataclass(eq=False, slots=True)
class SyntaxNode:
    """
    One node of a parsed Java source tree.

    Nodes are built once by the parser front end and only read afterwards.
    `line` is 1-based and `column` is 0-based, counted in characters.
    `parent` is a back-reference and is None only for the root.
    """

    kind: NodeKind
    line: int
    column: int
    text: str = ""
    children: list[SyntaxNode] = field(default_factory=list)
    parent: SyntaxNode | None = field(default=None, repr=False)

    def add(self, child: SyntaxNode) -> SyntaxNode:
        child.parent = self
        self.children.append(child)
        return child

    @property
    def first_child(self) -> SyntaxNode | None:
        return self.children[0] if self.children else None

    def find_first_token(self, kind: NodeKind) -> SyntaxNode | None:
        """Return the first direct child of the given kind, or None."""

        for child in self.children:
            if child.kind is kind:
                return child
        return None

    def require_child(self, kind: NodeKind) -> SyntaxNode:
        child = self.find_first_token(kind)
        if child is None:
            raise PreconditionError(f"{self.kind.name} at {self.line}:{self.column} has no {kind.name} child")
        return child

    def branch_contains(self, kind: NodeKind) -> bool:
        """True if this node or any descendant has the given kind."""

        return any(node.kind is kind for node in iter_nodes(self))


def iter_nodes(node: SyntaxNode) -> Iterator[SyntaxNode]:
    """Yield `node` and its descendants in document (pre-)order."""

    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        stack.extend(reversed(n.children))


def grandparent(node: SyntaxNode) -> SyntaxNode | None:
    parent = node.parent
    return parent.parent if parent is not None else None


def first_node(node: SyntaxNode) -> SyntaxNode:
    """Return the node of the subtree that starts earliest in the source."""

    best = node
    for candidate in iter_nodes(node):
        if (candidate.line, candidate.column) < (best.line, best.column):
            best = candidate
    return best
