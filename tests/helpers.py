from __future__ import annotations

from finalsentinel.engine.context import FileContext, ProjectContext
from finalsentinel.engine.nodes import NodeKind, SyntaxNode
from finalsentinel.scanner import build_file_context


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str) -> FileContext:
    path = project_ctx.project_root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    ctx = build_file_context(project_ctx, path)
    assert ctx is not None
    return ctx


class RecordingSink:
    def __init__(self) -> None:
        self.reports: list[tuple[int, int, str, tuple[str, ...]]] = []

    def report(self, line: int, column: int, key: str, args: tuple[str, ...]) -> None:
        self.reports.append((line, column, key, args))

    @property
    def names(self) -> list[str]:
        return [args[0] for _, _, _, args in self.reports]


def node(kind: NodeKind, *children: SyntaxNode, line: int = 1, column: int = 0, text: str = "") -> SyntaxNode:
    out = SyntaxNode(kind=kind, line=line, column=column, text=text)
    for child in children:
        out.add(child)
    return out


def binding(
    name: str,
    *,
    type_kind: NodeKind = NodeKind.IDENT,
    final: bool = False,
    array: bool = False,
    varargs: bool = False,
    annotation: bool = False,
    kind: NodeKind = NodeKind.PARAMETER_DEF,
    line: int = 1,
    column: int = 0,
) -> SyntaxNode:
    """
    Build a binding laid out like `[@Ann] [final] Type[[]] [...] name` starting at `column`.
    """

    col = column
    modifiers = node(NodeKind.MODIFIERS, line=line, column=col)
    if annotation:
        modifiers.add(node(NodeKind.ANNOTATION, line=line, column=col, text="@Ann"))
        col += 5
    if final:
        modifiers.add(node(NodeKind.FINAL, line=line, column=col, text="final"))
        col += 6

    type_text = "String" if type_kind is NodeKind.IDENT else "int"
    inner = node(type_kind, line=line, column=col, text=type_text)
    if array:
        inner = node(NodeKind.ARRAY_DECLARATOR, inner, line=line, column=col)
    out = node(kind, modifiers, node(NodeKind.TYPE, inner, line=line, column=col), line=line, column=column)
    col += len(type_text)
    if varargs:
        out.add(node(NodeKind.ELLIPSIS, line=line, column=col, text="..."))
        col += 3
    out.add(node(NodeKind.IDENT, line=line, column=col + 1, text=name))
    return out


def parameters(*bindings: SyntaxNode) -> SyntaxNode:
    out = node(NodeKind.PARAMETERS)
    for idx, b in enumerate(bindings):
        if idx:
            out.add(node(NodeKind.COMMA, text=","))
        out.add(b)
    return out


def method(
    *params: SyntaxNode,
    kind: NodeKind = NodeKind.METHOD_DEF,
    abstract: bool = False,
    body: SyntaxNode | None = None,
) -> SyntaxNode:
    modifiers = node(NodeKind.MODIFIERS)
    if abstract:
        modifiers.add(node(NodeKind.ABSTRACT, text="abstract"))
    children = [modifiers]
    if kind is NodeKind.METHOD_DEF:
        children.append(node(NodeKind.TYPE, node(NodeKind.TOKEN, text="void")))
    children.append(node(NodeKind.IDENT, text="f"))
    children.append(parameters(*params))
    if body is not None:
        children.append(body)
    return node(kind, *children)


def in_container(member: SyntaxNode, *, container: NodeKind = NodeKind.CLASS_DEF) -> SyntaxNode:
    """Place `member` as CONTAINER > OBJBLOCK > member and return the container."""

    return node(container, node(NodeKind.MODIFIERS), node(NodeKind.OBJBLOCK, member))


def try_catch(param: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
    """Return `(try_statement, catch_clause)` with `param` as the caught binding."""

    catch = node(NodeKind.LITERAL_CATCH, node(NodeKind.TOKEN, text="catch"), param, node(NodeKind.SLIST))
    return node(NodeKind.LITERAL_TRY, node(NodeKind.SLIST), catch), catch


def for_each(variable: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
    """Return `(for_statement, for_each_clause)` looping `variable` over `xs`."""

    clause = node(NodeKind.FOR_EACH_CLAUSE, variable, node(NodeKind.TOKEN, text=":"), node(NodeKind.IDENT, text="xs"))
    return node(NodeKind.LITERAL_FOR, node(NodeKind.TOKEN, text="for"), clause, node(NodeKind.SLIST)), clause


def in_method_body(*statements: SyntaxNode) -> SyntaxNode:
    """Return an enclosing METHOD_DEF whose body SLIST holds `statements`."""

    return method(body=node(NodeKind.SLIST, *statements))
