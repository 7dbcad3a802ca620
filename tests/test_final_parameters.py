from __future__ import annotations

import pytest

from finalsentinel.config import CheckConfig, ConfigError
from finalsentinel.engine.nodes import NodeKind, PreconditionError
from finalsentinel.engine.walker import walk
from finalsentinel.rules.final_parameters import MSG_KEY, FinalParametersCheck
from helpers import (
    RecordingSink,
    binding,
    for_each,
    in_container,
    in_method_body,
    method,
    node,
    try_catch,
)

ALL_TOKENS = ("METHOD_DEF", "CTOR_DEF", "LITERAL_CATCH", "FOR_EACH_CLAUSE")


def _run(check: FinalParametersCheck, root) -> RecordingSink:
    sink = RecordingSink()
    walk(root, [(check, sink)])
    return sink


def test_method_without_parameters_reports_nothing() -> None:
    sink = _run(FinalParametersCheck(), in_container(method()))
    assert sink.reports == []


def test_constructor_without_parameters_reports_nothing() -> None:
    sink = _run(FinalParametersCheck(), in_container(method(kind=NodeKind.CTOR_DEF)))
    assert sink.reports == []


def test_two_non_final_parameters_are_reported_in_order() -> None:
    root = in_container(
        method(
            binding("x", type_kind=NodeKind.LITERAL_INT, column=7),
            binding("y", column=14),
        )
    )

    sink = _run(FinalParametersCheck(), root)

    assert sink.names == ["x", "y"]
    assert [key for _, _, key, _ in sink.reports] == [MSG_KEY, MSG_KEY]
    assert [col for _, col, _, _ in sink.reports] == [7, 14]


def test_final_parameter_is_not_reported() -> None:
    root = in_container(
        method(
            binding("x", type_kind=NodeKind.LITERAL_INT, final=True),
            binding("y"),
        )
    )

    sink = _run(FinalParametersCheck(), root)

    assert sink.names == ["y"]


@pytest.mark.parametrize("ignore_primitive_types", [False, True])
def test_final_parameter_is_never_reported_under_any_configuration(ignore_primitive_types: bool) -> None:
    check = FinalParametersCheck.from_settings(tokens=ALL_TOKENS, ignore_primitive_types=ignore_primitive_types)
    try_stmt, _ = try_catch(binding("e", final=True))
    for_stmt, _ = for_each(binding("s", final=True, kind=NodeKind.VARIABLE_DEF))
    root = in_container(
        method(
            binding("a", final=True),
            binding("b", type_kind=NodeKind.LITERAL_LONG, final=True, annotation=True),
            body=node(NodeKind.SLIST, try_stmt, for_stmt),
        )
    )

    assert _run(check, root).reports == []


@pytest.mark.parametrize(
    "primitive",
    [
        NodeKind.LITERAL_BYTE,
        NodeKind.LITERAL_SHORT,
        NodeKind.LITERAL_INT,
        NodeKind.LITERAL_LONG,
        NodeKind.LITERAL_FLOAT,
        NodeKind.LITERAL_DOUBLE,
        NodeKind.LITERAL_BOOLEAN,
        NodeKind.LITERAL_CHAR,
    ],
)
@pytest.mark.parametrize("ignore_primitive_types", [False, True])
def test_primitive_parameter_reported_iff_not_ignored(primitive: NodeKind, ignore_primitive_types: bool) -> None:
    check = FinalParametersCheck.from_settings(ignore_primitive_types=ignore_primitive_types)
    root = in_container(method(binding("x", type_kind=primitive)))

    sink = _run(check, root)

    assert sink.names == ([] if ignore_primitive_types else ["x"])


def test_ignore_primitive_types_still_reports_reference_types() -> None:
    check = FinalParametersCheck.from_settings(ignore_primitive_types=True)
    root = in_container(method(binding("x", type_kind=NodeKind.LITERAL_INT), binding("y")))

    assert _run(check, root).names == ["y"]


def test_primitive_varargs_is_exempt_when_ignoring_primitives() -> None:
    check = FinalParametersCheck.from_settings(ignore_primitive_types=True)
    root = in_container(method(binding("xs", type_kind=NodeKind.LITERAL_INT, varargs=True)))

    assert _run(check, root).reports == []


def test_primitive_array_is_not_exempt() -> None:
    check = FinalParametersCheck.from_settings(ignore_primitive_types=True)
    root = in_container(method(binding("xs", type_kind=NodeKind.LITERAL_INT, array=True)))

    assert _run(check, root).names == ["xs"]


@pytest.mark.parametrize("kind", [NodeKind.METHOD_DEF, NodeKind.CTOR_DEF])
def test_abstract_definition_is_skipped(kind: NodeKind) -> None:
    root = in_container(method(binding("x"), binding("y", type_kind=NodeKind.LITERAL_INT), kind=kind, abstract=True))

    assert _run(FinalParametersCheck(), root).reports == []


@pytest.mark.parametrize("ignore_primitive_types", [False, True])
def test_interface_members_are_skipped(ignore_primitive_types: bool) -> None:
    check = FinalParametersCheck.from_settings(tokens=ALL_TOKENS, ignore_primitive_types=ignore_primitive_types)
    root = in_container(
        method(binding("x", type_kind=NodeKind.LITERAL_INT), binding("y")),
        container=NodeKind.INTERFACE_DEF,
    )

    assert _run(check, root).reports == []


def test_class_nested_in_interface_is_checked() -> None:
    nested = in_container(method(binding("x")))
    root = in_container(nested, container=NodeKind.INTERFACE_DEF)

    assert _run(FinalParametersCheck(), root).names == ["x"]


@pytest.mark.parametrize("container", [NodeKind.ENUM_DEF, NodeKind.RECORD_DEF, NodeKind.ANNOTATION_DEF])
def test_other_containers_are_checked(container: NodeKind) -> None:
    root = in_container(method(binding("x")), container=container)

    assert _run(FinalParametersCheck(), root).names == ["x"]


def test_catch_parameter_reported_when_in_scope() -> None:
    try_stmt, _ = try_catch(binding("e"))
    root = in_container(in_method_body(try_stmt))

    default_sink = _run(FinalParametersCheck(), root)
    scoped_sink = _run(FinalParametersCheck.from_settings(tokens=["LITERAL_CATCH"]), root)

    assert default_sink.reports == []
    assert scoped_sink.names == ["e"]


def test_multi_catch_is_never_primitive_exempt() -> None:
    param = binding("e")
    param_type = param.require_child(NodeKind.TYPE)
    param_type.children.clear()
    param_type.add(node(NodeKind.SYNTAX, node(NodeKind.IDENT, text="A"), node(NodeKind.IDENT, text="B"), text="|"))
    try_stmt, _ = try_catch(param)
    root = in_container(in_method_body(try_stmt))

    check = FinalParametersCheck.from_settings(tokens=["LITERAL_CATCH"], ignore_primitive_types=True)

    assert _run(check, root).names == ["e"]


def test_for_each_variable_reported_when_in_scope() -> None:
    non_final, _ = for_each(binding("s", kind=NodeKind.VARIABLE_DEF))
    final, _ = for_each(binding("t", kind=NodeKind.VARIABLE_DEF, final=True))
    root = in_container(in_method_body(non_final, final))

    sink = _run(FinalParametersCheck.from_settings(tokens=["for_each_clause"]), root)

    assert sink.names == ["s"]


def test_for_each_parameters_of_enclosing_method_use_their_own_scope() -> None:
    loop, _ = for_each(binding("s", kind=NodeKind.VARIABLE_DEF))
    root = in_container(method(binding("x"), body=node(NodeKind.SLIST, loop)))

    sink = _run(FinalParametersCheck.from_settings(tokens=ALL_TOKENS), root)

    assert sink.names == ["x", "s"]


def test_violation_is_positioned_at_earliest_token_of_binding() -> None:
    param = binding("x", annotation=True, column=4, line=3)
    # The binding node itself starts later than its annotation.
    param.column = 10
    root = in_container(method(param))

    sink = _run(FinalParametersCheck(), root)

    assert sink.reports == [(3, 4, MSG_KEY, ("x",))]


def test_same_name_is_reported_at_each_position() -> None:
    first = in_container(method(binding("x", line=2)))
    second = in_container(method(binding("x", line=5)))
    root = node(NodeKind.COMPILATION_UNIT, first, second)

    sink = _run(FinalParametersCheck(), root)

    assert [(line, args) for line, _, _, args in sink.reports] == [(2, ("x",)), (5, ("x",))]


def test_default_and_acceptable_scope() -> None:
    assert FinalParametersCheck.default_scope() == frozenset({NodeKind.METHOD_DEF, NodeKind.CTOR_DEF})
    assert FinalParametersCheck.acceptable_scope() == frozenset(NodeKind.from_name(t) for t in ALL_TOKENS)
    assert FinalParametersCheck().tokens == FinalParametersCheck.default_scope()


def test_scope_names_are_case_insensitive() -> None:
    check = FinalParametersCheck.from_settings(tokens=["method_def", " Literal_Catch "])

    assert check.tokens == frozenset({NodeKind.METHOD_DEF, NodeKind.LITERAL_CATCH})


@pytest.mark.parametrize(
    ("tokens", "match"),
    [
        (["NOT_A_KIND"], "unknown token"),
        (["CLASS_DEF"], "not acceptable"),
        ([], "must not be empty"),
    ],
)
def test_invalid_scope_is_a_config_error(tokens: list[str], match: str) -> None:
    with pytest.raises(ConfigError, match=match):
        FinalParametersCheck.from_settings(tokens=tokens)


def test_from_config_uses_check_settings() -> None:
    check = FinalParametersCheck.from_config(CheckConfig(tokens=("CTOR_DEF",), ignore_primitive_types=True))

    assert check.tokens == frozenset({NodeKind.CTOR_DEF})
    assert check.options.ignore_primitive_types is True


def test_configure_returns_new_instance() -> None:
    check = FinalParametersCheck.from_settings(tokens=["CTOR_DEF"])

    configured = check.configure(ignore_primitive_types=True)

    assert configured is not check
    assert check.options.ignore_primitive_types is False
    assert configured.options.ignore_primitive_types is True
    assert configured.tokens == check.tokens


def test_node_without_container_is_a_precondition_error() -> None:
    with pytest.raises(PreconditionError):
        FinalParametersCheck().visit(method(binding("x")), RecordingSink())


def test_definition_without_modifiers_is_a_precondition_error() -> None:
    bad = method(binding("x"))
    bad.children.pop(0)
    in_container(bad)

    with pytest.raises(PreconditionError, match="MODIFIERS"):
        FinalParametersCheck().visit(bad, RecordingSink())


def test_binding_without_identifier_is_a_precondition_error() -> None:
    param = binding("x")
    param.children.pop()
    bad = method(param)
    in_container(bad)

    with pytest.raises(PreconditionError, match="IDENT"):
        FinalParametersCheck().visit(bad, RecordingSink())


def test_catch_without_parameter_is_a_precondition_error() -> None:
    catch = node(NodeKind.LITERAL_CATCH, node(NodeKind.SLIST))
    in_container(in_method_body(node(NodeKind.LITERAL_TRY, catch)))

    with pytest.raises(PreconditionError, match="PARAMETER_DEF"):
        FinalParametersCheck().visit(catch, RecordingSink())


def test_unsupported_kind_is_a_precondition_error() -> None:
    member = node(NodeKind.SYNTAX)
    in_container(member)

    with pytest.raises(PreconditionError, match="cannot visit"):
        FinalParametersCheck().visit(member, RecordingSink())
