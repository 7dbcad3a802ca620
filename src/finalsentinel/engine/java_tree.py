from __future__ import annotations

from collections.abc import Callable
from typing import Any

from finalsentinel.engine import tree_sitter as ts
from finalsentinel.engine.nodes import NodeKind, SyntaxNode


class JavaSyntaxError(ValueError):
    """Raised when Java source does not parse cleanly."""

    def __init__(self, message: str, *, line: int, column: int) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


_SIMPLE_KINDS: dict[str, NodeKind] = {
    "program": NodeKind.COMPILATION_UNIT,
    "class_body": NodeKind.OBJBLOCK,
    "interface_body": NodeKind.OBJBLOCK,
    "annotation_type_body": NodeKind.OBJBLOCK,
    "block": NodeKind.SLIST,
    "constructor_body": NodeKind.SLIST,
    "try_statement": NodeKind.LITERAL_TRY,
    "try_with_resources_statement": NodeKind.LITERAL_TRY,
    "identifier": NodeKind.IDENT,
    "marker_annotation": NodeKind.ANNOTATION,
    "annotation": NodeKind.ANNOTATION,
    ",": NodeKind.COMMA,
    "...": NodeKind.ELLIPSIS,
}

_DECLARATION_KINDS: dict[str, NodeKind] = {
    "class_declaration": NodeKind.CLASS_DEF,
    "interface_declaration": NodeKind.INTERFACE_DEF,
    "enum_declaration": NodeKind.ENUM_DEF,
    "record_declaration": NodeKind.RECORD_DEF,
    "annotation_type_declaration": NodeKind.ANNOTATION_DEF,
    "method_declaration": NodeKind.METHOD_DEF,
    "constructor_declaration": NodeKind.CTOR_DEF,
}

_PRIMITIVE_KEYWORDS: dict[str, NodeKind] = {
    "byte": NodeKind.LITERAL_BYTE,
    "short": NodeKind.LITERAL_SHORT,
    "int": NodeKind.LITERAL_INT,
    "long": NodeKind.LITERAL_LONG,
    "char": NodeKind.LITERAL_CHAR,
    "float": NodeKind.LITERAL_FLOAT,
    "double": NodeKind.LITERAL_DOUBLE,
    "boolean": NodeKind.LITERAL_BOOLEAN,
}

_MODIFIER_KEYWORDS: dict[str, NodeKind] = {
    "final": NodeKind.FINAL,
    "abstract": NodeKind.ABSTRACT,
}

_TYPE_NODE_TYPES = frozenset(
    {
        "integral_type",
        "floating_point_type",
        "boolean_type",
        "void_type",
        "type_identifier",
        "scoped_type_identifier",
        "generic_type",
        "array_type",
    }
)


def parse_java(text: str) -> SyntaxNode:
    """Parse Java source text into a `SyntaxNode` tree rooted at COMPILATION_UNIT."""

    source = text.encode("utf-8", errors="replace")
    tree = ts.parse(source, language=ts.JAVA)
    return build_tree(tree.root_node, source)


def build_tree(root: Any, source: bytes) -> SyntaxNode:
    """
    Convert a tree-sitter Java tree into the checker's node model.

    The result always satisfies the structural invariants the checks rely on:
    every definition and binding owns a MODIFIERS child (possibly empty),
    PARAMETERS holds only PARAMETER_DEF and COMMA nodes, LITERAL_CATCH owns one
    PARAMETER_DEF and FOR_EACH_CLAUSE owns one VARIABLE_DEF.
    """

    if root.has_error:
        bad = _first_error(root)
        line, column = _TreeBuilder(source).position(bad)
        raise JavaSyntaxError(f"syntax error at line {line}, column {column + 1}", line=line, column=column)
    return _TreeBuilder(source).convert(root)


def _first_error(node: Any) -> Any:
    stack = [node]
    while stack:
        n = stack.pop()
        if n.type == "ERROR" or n.is_missing:
            return n
        stack.extend(reversed(n.children))
    return node


class _TreeBuilder:
    def __init__(self, source: bytes) -> None:
        self._source = source
        self._lines = source.split(b"\n")
        self._handlers: dict[str, Callable[[Any], SyntaxNode]] = {
            "formal_parameters": self._parameters,
            "formal_parameter": self._formal_parameter,
            "spread_parameter": self._spread_parameter,
            "catch_clause": self._catch_clause,
            "catch_formal_parameter": self._catch_formal_parameter,
            "enhanced_for_statement": self._enhanced_for,
            "modifiers": self._modifiers,
            "enum_body": self._enum_body,
        }

    def position(self, node: Any) -> tuple[int, int]:
        row, col = node.start_point
        line_bytes = self._lines[row] if row < len(self._lines) else b""
        return row + 1, len(line_bytes[:col].decode("utf-8", errors="replace"))

    def text(self, node: Any) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def new(self, kind: NodeKind, node: Any, *, text: str = "") -> SyntaxNode:
        line, column = self.position(node)
        return SyntaxNode(kind=kind, line=line, column=column, text=text)

    def convert(self, node: Any) -> SyntaxNode:
        handler = self._handlers.get(node.type)
        if handler is not None:
            return handler(node)
        declaration_kind = _DECLARATION_KINDS.get(node.type)
        if declaration_kind is not None:
            return self._declaration(node, declaration_kind)
        return self._generic(node)

    def _generic(self, node: Any) -> SyntaxNode:
        kind = _SIMPLE_KINDS.get(node.type)
        if kind is None:
            kind = NodeKind.SYNTAX if node.is_named else NodeKind.TOKEN
        out = self.new(kind, node, text=self.text(node) if not node.children else "")
        for child in node.children:
            out.add(self.convert(child))
        return out

    def _declaration(self, node: Any, kind: NodeKind) -> SyntaxNode:
        out = self.new(kind, node)
        if not node.children or node.children[0].type != "modifiers":
            out.add(self.new(NodeKind.MODIFIERS, node))
        type_node = node.child_by_field_name("type") if kind is NodeKind.METHOD_DEF else None
        for child in node.children:
            if type_node is not None and child == type_node:
                out.add(self._type(child))
            else:
                out.add(self.convert(child))
        return out

    def _enum_body(self, node: Any) -> SyntaxNode:
        # Members declared after the constants belong directly to the body.
        out = self.new(NodeKind.OBJBLOCK, node)
        for child in node.children:
            if child.type == "enum_body_declarations":
                for member in child.children:
                    out.add(self.convert(member))
            else:
                out.add(self.convert(child))
        return out

    def _modifiers(self, node: Any) -> SyntaxNode:
        out = self.new(NodeKind.MODIFIERS, node)
        for child in node.children:
            if child.is_named:
                out.add(self.convert(child))
                continue
            kind = _MODIFIER_KEYWORDS.get(child.type, NodeKind.MODIFIER)
            out.add(self.new(kind, child, text=child.type))
        return out

    def _parameters(self, node: Any) -> SyntaxNode:
        # Receiver parameters and comments are not bindings; parentheses are dropped.
        out = self.new(NodeKind.PARAMETERS, node)
        for child in node.children:
            if child.type in {"formal_parameter", "spread_parameter", ","}:
                out.add(self.convert(child))
        return out

    def _type(self, node: Any, *, array: bool = False) -> SyntaxNode:
        """Wrap a type in TYPE; its first child is the primitive keyword kind when there is one."""

        out = self.new(NodeKind.TYPE, node)
        inner = self._type_child(node)
        if array:
            wrapper = self.new(NodeKind.ARRAY_DECLARATOR, node)
            wrapper.add(inner)
            inner = wrapper
        out.add(inner)
        return out

    def _type_child(self, node: Any) -> SyntaxNode:
        if node.type in {"integral_type", "floating_point_type", "boolean_type"}:
            keyword = node.children[0].type if node.children else self.text(node)
            kind = _PRIMITIVE_KEYWORDS.get(keyword)
            if kind is not None:
                return self.new(kind, node, text=keyword)
        if node.type == "array_type":
            out = self.new(NodeKind.ARRAY_DECLARATOR, node)
            for child in node.children:
                out.add(self._type_child(child) if child.type in _TYPE_NODE_TYPES else self.convert(child))
            return out
        return self.convert(node)

    def _binding(
        self,
        node: Any,
        kind: NodeKind,
        *,
        type_node: Any | None,
        name_node: Any | None,
        array: bool,
        anchor: Any | None = None,
    ) -> SyntaxNode:
        """
        Build a PARAMETER_DEF / VARIABLE_DEF as MODIFIERS, TYPE, [ELLIPSIS], IDENT.

        `anchor` positions the binding and an empty MODIFIERS; it defaults to
        `node`. Other children of `node` are dropped, except annotations
        between the type and `...`, which are kept.
        """

        anchor = anchor if anchor is not None else node
        out = self.new(kind, anchor)
        modifiers = next((c for c in node.children if c.type == "modifiers"), None)
        out.add(self._modifiers(modifiers) if modifiers is not None else self.new(NodeKind.MODIFIERS, anchor))
        if type_node is not None:
            out.add(self._catch_type(type_node) if type_node.type == "catch_type" else self._type(type_node, array=array))
        for child in node.children:
            if child.type == "...":
                out.add(self.new(NodeKind.ELLIPSIS, child, text="..."))
            elif child.type in {"marker_annotation", "annotation"}:
                out.add(self.convert(child))
        if name_node is not None:
            out.add(self.new(NodeKind.IDENT, name_node, text=self.text(name_node)))
        return out

    def _formal_parameter(self, node: Any) -> SyntaxNode:
        return self._binding(
            node,
            NodeKind.PARAMETER_DEF,
            type_node=node.child_by_field_name("type"),
            name_node=node.child_by_field_name("name"),
            array=node.child_by_field_name("dimensions") is not None,
        )

    def _spread_parameter(self, node: Any) -> SyntaxNode:
        type_node = next((c for c in node.children if c.type in _TYPE_NODE_TYPES), None)
        declarator = next((c for c in node.children if c.type == "variable_declarator"), None)
        name_node = declarator.child_by_field_name("name") if declarator is not None else None
        array = declarator is not None and declarator.child_by_field_name("dimensions") is not None
        return self._binding(node, NodeKind.PARAMETER_DEF, type_node=type_node, name_node=name_node, array=array)

    def _catch_formal_parameter(self, node: Any) -> SyntaxNode:
        type_node = next((c for c in node.children if c.type == "catch_type"), None)
        return self._binding(
            node,
            NodeKind.PARAMETER_DEF,
            type_node=type_node,
            name_node=node.child_by_field_name("name"),
            array=False,
        )

    def _catch_type(self, node: Any) -> SyntaxNode:
        out = self.new(NodeKind.TYPE, node)
        types = [c for c in node.children if c.is_named]
        if len(types) == 1:
            out.add(self._type_child(types[0]))
            return out
        # multi-catch: `A | B`
        union = self.new(NodeKind.SYNTAX, node, text="|")
        for child in node.children:
            union.add(self._type_child(child) if child.is_named else self.convert(child))
        out.add(union)
        return out

    def _catch_clause(self, node: Any) -> SyntaxNode:
        out = self.new(NodeKind.LITERAL_CATCH, node)
        for child in node.children:
            out.add(self.convert(child))
        return out

    def _enhanced_for(self, node: Any) -> SyntaxNode:
        """
        Rebuild `for (T x : xs) body` as LITERAL_FOR > FOR_EACH_CLAUSE > VARIABLE_DEF.

        tree-sitter keeps the loop variable's parts as direct children of the
        statement; they are regrouped into one VARIABLE_DEF binding.
        """

        out = self.new(NodeKind.LITERAL_FOR, node)
        type_node = node.child_by_field_name("type")
        name_node = node.child_by_field_name("name")
        value_node = node.child_by_field_name("value")
        body_node = node.child_by_field_name("body")

        # The binding starts at its modifiers or type, not at the `for` keyword.
        binding_start = next((c for c in node.children if c.type == "modifiers"), type_node)
        if binding_start is None:
            binding_start = node
        clause = self.new(NodeKind.FOR_EACH_CLAUSE, binding_start)
        clause.add(
            self._binding(
                node,
                NodeKind.VARIABLE_DEF,
                type_node=type_node,
                name_node=name_node,
                array=node.child_by_field_name("dimensions") is not None,
                anchor=binding_start,
            )
        )

        for child in node.children:
            if child.type == ":":
                clause.add(self.new(NodeKind.TOKEN, child, text=":"))
            elif value_node is not None and child == value_node:
                clause.add(self.convert(child))

        for child in node.children:
            if child.type in {"for", "("}:
                out.add(self.new(NodeKind.TOKEN, child, text=child.type))
        out.add(clause)
        for child in node.children:
            if child.type == ")":
                out.add(self.new(NodeKind.TOKEN, child, text=")"))
            elif body_node is not None and child == body_node:
                out.add(self.convert(child))
        return out
