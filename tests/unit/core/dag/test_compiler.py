# tests/unit/core/dag/test_compiler.py
"""Tests for compiling build requests into plans."""

import pytest

from trellis import Graph
from trellis.contracts import GraphCycleError, InjectorError, NodeDefinitionError, NodeKind, NodeNotFoundError, Visibility
from trellis.core.dag.compiler import JOIN_KEY


class TestResolution:
    """Where each argument is resolved from."""

    def test_undefined_node_named(self, graph: Graph) -> None:
        with pytest.raises(NodeNotFoundError, match="Node 'missing' was not found") as exc_info:
            graph.new_builder("page").builds("missing").compile()

        assert exc_info.value.builder_name == "page"

    def test_undefined_dependency_reports_chain(self, graph: Graph) -> None:
        graph.add("profile", lambda avatar: avatar)

        with pytest.raises(NodeNotFoundError, match="while compiling profile") as exc_info:
            graph.new_builder("page").builds("profile").compile()

        assert exc_info.value.name == "avatar"
        assert exc_info.value.chain == ("profile",)

    def test_registry_fallback_nests_key(self, graph: Graph) -> None:
        graph.add("avatar", "pic.png")
        graph.add("profile", lambda avatar: avatar)

        plan = graph.new_builder("page").builds("profile").compile()

        assert "profile/avatar" in plan.nodes
        assert plan.get_node("profile/avatar").chain == ("profile", "avatar")

    def test_sibling_step_preferred_over_registry(self, graph: Graph) -> None:
        graph.add("avatar", "pic.png")
        graph.add("profile", lambda avatar: avatar)

        plan = graph.new_builder("page").builds({"avatar": 5}).builds("profile").compile()

        profile = plan.get_node("profile")
        assert profile.dependencies[0].node is plan.get_node("avatar")
        assert "profile/avatar" not in plan.nodes

    def test_input_preferred_over_registry(self, graph: Graph) -> None:
        graph.add("avatar", "pic.png")
        graph.add("profile", lambda avatar: avatar)

        plan = graph.new_builder("page").builds("profile").compile(input_names=["avatar"])

        assert plan.get_node("profile").dependencies[0].node.kind is NodeKind.INPUT

    def test_binding_preferred_over_scope(self, graph: Graph) -> None:
        graph.add("profile", lambda avatar: avatar)

        plan = graph.new_builder("page").builds({"avatar": 1}).builds("profile").using({"avatar": 2}).compile()

        assert plan.get_node("profile").dependencies[0].node.value == 2

    def test_configured_step_compiled_only_when_referenced(self, graph: Graph) -> None:
        graph.add("profile", lambda avatar: avatar)

        plan = (
            graph.new_builder("page")
            .configure({"avatar": 1, "unused": "does-not-exist"})
            .builds("profile")
            .compile()
        )

        assert plan.get_node("avatar").value == 1
        assert "unused" not in plan.nodes
        assert [dep.arg_name for dep in plan.join.dependencies] == ["profile"]

    def test_remapped_binding_resolved_in_scope(self, graph: Graph) -> None:
        graph.add("num", lambda n: n)
        graph.add("sum", lambda one, two: one + two)

        plan = (
            graph.new_builder("page")
            .builds({"one-fromNum": "num"})
            .using({"n": 1})
            .builds({"two-fromNum": "num"})
            .using({"n": 2})
            .builds("sum")
            .using("one-fromNum", "two-fromNum")
            .compile()
        )

        deps = plan.get_node("sum").dependencies
        assert [(dep.arg_name, dep.node.key) for dep in deps] == [("one", "one-fromNum"), ("two", "two-fromNum")]

    def test_never_requested_definitions_not_compiled(self, graph: Graph) -> None:
        graph.add("broken", lambda missing: missing)
        graph.add("fine", 1)

        plan = graph.new_builder("page").builds("fine").compile()

        assert set(plan.nodes) == {"fine", JOIN_KEY}
        assert graph.get("broken").frozen is False  # type: ignore[union-attr]


class TestMemberAccess:
    """Dotted references become projection nodes."""

    def test_requested_member_projected(self, user_graph: Graph) -> None:
        plan = user_graph.new_builder("page").builds("user.name").compile()

        projection = plan.get_node("user.name")
        assert projection.kind is NodeKind.PROJECTION
        assert projection.member == "name"
        assert projection.dependencies[0].node.key == "user"

    def test_argument_member_projected(self, user_graph: Graph) -> None:
        user_graph.add("greet", lambda name: name).builds("user.name")

        plan = user_graph.new_builder("page").builds("greet").compile()

        assert plan.get_node("greet").dependencies[0].node.kind is NodeKind.PROJECTION

    def test_same_member_projected_once(self, user_graph: Graph) -> None:
        user_graph.add("greet", lambda name: name)

        plan = user_graph.new_builder("page").builds({"?user": "user"}).builds("greet").using({"name": "user.name"}).builds(
            {"again": "greet"}
        ).using({"name": "user.name"}).compile()

        first = plan.get_node("greet").dependencies[0].node
        second = plan.get_node("again").dependencies[0].node
        assert first is second


class TestSignatures:
    """Structural signatures drive deduplication."""

    def test_same_work_shares_signature(self, user_graph: Graph) -> None:
        plan = user_graph.new_builder("page").builds({"a": "num", "b": "num"}).using({"n": 1}).compile()

        assert plan.get_node("a").signature == plan.get_node("b").signature
        assert plan.node_count == 5
        assert plan.execution_count == 3

    def test_different_bindings_differ(self, user_graph: Graph) -> None:
        plan = (
            user_graph.new_builder("page")
            .builds({"a": "num"})
            .using({"n": 1})
            .builds({"b": "num"})
            .using({"n": 2})
            .compile()
        )

        assert plan.get_node("a").signature != plan.get_node("b").signature

    def test_signature_independent_of_alias_and_nesting(self, user_graph: Graph) -> None:
        user_graph.add("wrapper").builds({"inner": "num"}).using({"n": 1})

        plan = user_graph.new_builder("page").builds("wrapper").builds({"outer": "num"}).using({"n": 1}).compile()

        assert plan.get_node("wrapper/inner").signature == plan.get_node("outer").signature

    def test_swapped_name_matched_bindings_differ(self, graph: Graph) -> None:
        class Pair:
            def __init__(self, a: int, b: int) -> None:
                self.a = a
                self.b = b

        graph.add("pair", Pair)

        plan = (
            graph.new_builder("page")
            .builds({"x": "pair"})
            .using({"a": 1, "b": 2})
            .builds({"y": "pair"})
            .using({"a": 2, "b": 1})
            .compile()
        )

        assert plan.get_node("x").signature != plan.get_node("y").signature


class TestJoin:
    """The synthetic join over requested outputs."""

    def test_join_depends_on_requested_outputs(self, user_graph: Graph) -> None:
        plan = user_graph.new_builder("page").builds("user").builds("?password").builds({"!side": "num"}).using({"n": 1}).compile()

        assert [(dep.arg_name, dep.visibility) for dep in plan.join.dependencies] == [
            ("user", Visibility.NORMAL),
            ("password", Visibility.VOID),
            ("side", Visibility.SILENT),
        ]
        assert plan.join.key == JOIN_KEY
        assert plan.join.kind is NodeKind.JOIN


class TestCompileErrors:
    """Failures raised before anything executes."""

    def test_direct_cycle(self, graph: Graph) -> None:
        graph.add("a", lambda a: a)

        with pytest.raises(GraphCycleError):
            graph.new_builder("page").builds({"x": "a"}).compile()

    def test_definition_building_itself_is_a_cycle(self, graph: Graph) -> None:
        graph.add("a").builds("a")

        with pytest.raises(GraphCycleError):
            graph.new_builder("page").builds("a").compile()

    def test_same_definition_with_other_bindings_is_not_a_cycle(self, graph: Graph) -> None:
        """A registry node may feed another instance of itself built from different bindings."""
        graph.add("inc", lambda n: n + 1)

        result = graph.new_builder("page").builds({"two": "inc"}).using({"n": "inc"}).run_sync({"n": 0})

        assert dict(result) == {"two": 2}

    def test_mutual_cycle(self, graph: Graph) -> None:
        graph.add("a", lambda b: b)
        graph.add("b", lambda a: a)

        with pytest.raises(GraphCycleError):
            graph.new_builder("page").builds("a").compile()

    def test_constructor_validated_at_compile(self, graph: Graph) -> None:
        class Needs:
            def __init__(self, name: str, missing: str) -> None:
                pass

        graph.add("needs").args("name").ctor(Needs)

        with pytest.raises(InjectorError, match="missing"):
            graph.new_builder("page").builds("needs").using({"name": "x"}).compile()

    def test_alias_built_twice_rejected(self, user_graph: Graph) -> None:
        with pytest.raises(NodeDefinitionError, match="built twice"):
            user_graph.new_builder("page").builds("user").builds({"user": "password"}).compile()
