# tests/unit/core/test_injection.py
"""Tests for reflection-based argument binding."""

from typing import Any

import pytest

from trellis.contracts import InjectorError, NodeDefinitionError
from trellis.core.injection import bind_arguments, inspect_parameters, plan_injection


class Widget:
    def __init__(self, a: int, b: int, label: str = "widget") -> None:
        self.a = a
        self.b = b
        self.label = label


class TestInspectParameters:
    """Parameter discovery for functions and classes."""

    def test_function_parameters_in_order(self) -> None:
        names, accepts_extra, defaults = inspect_parameters(lambda x, y, z=3: None)

        assert names == ("x", "y", "z")
        assert accepts_extra is False
        assert defaults == {"z": 3}

    def test_var_positional_detected(self) -> None:
        def collect(first: Any, *rest: Any) -> None:
            pass

        names, accepts_extra, _ = inspect_parameters(collect)

        assert names == ("first",)
        assert accepts_extra is True

    def test_class_parameters_exclude_self(self) -> None:
        names, _, defaults = inspect_parameters(Widget)

        assert names == ("a", "b", "label")
        assert defaults == {"label": "widget"}

    def test_keyword_only_parameters_ignored(self) -> None:
        def keyed(a: Any, *, flag: bool = False) -> None:
            pass

        names, _, _ = inspect_parameters(keyed)

        assert names == ("a",)

    def test_uninspectable_callable_raises(self) -> None:
        with pytest.raises(NodeDefinitionError, match="Cannot inspect parameters"):
            inspect_parameters(42)  # type: ignore[arg-type]


class TestPlanInjection:
    """Validation of parameter names against available values."""

    def test_all_parameters_matched(self) -> None:
        plan = plan_injection(lambda name, email: None, ["email", "name", "extra"])

        assert plan.parameters == ("name", "email")
        assert plan.placeholders == frozenset()

    def test_unmatched_parameter_names_it(self) -> None:
        with pytest.raises(InjectorError, match="No injector found for parameter: missing"):
            plan_injection(lambda name, missing: None, ["name"])

    def test_fallback_names_become_placeholders(self) -> None:
        plan = plan_injection(lambda name, request: None, ["name"], fallback_names=["request"])

        assert plan.placeholders == frozenset({"request"})

    def test_defaulted_parameter_not_required(self) -> None:
        plan = plan_injection(Widget, ["a", "b"])

        assert plan.parameters == ("a", "b", "label")
        assert plan.placeholders == frozenset()

    def test_uninspectable_callable_without_values_takes_no_arguments(self) -> None:
        plan = plan_injection(dict, [])

        assert plan.parameters == ()
        assert bind_arguments(plan, []) == []

    def test_uninspectable_callable_with_values_raises(self) -> None:
        with pytest.raises(NodeDefinitionError, match="Cannot inspect parameters"):
            plan_injection(42, ["a"])  # type: ignore[arg-type]


class TestBindArguments:
    """Building positional argument lists from planned injections."""

    def test_values_reordered_to_parameters(self) -> None:
        plan = plan_injection(lambda b, a: None, ["a", "b"])

        assert bind_arguments(plan, [("a", 1), ("b", 2)]) == [2, 1]

    def test_first_value_with_a_name_wins(self) -> None:
        plan = plan_injection(lambda a: None, ["a"])

        assert bind_arguments(plan, [("a", 1), ("a", 2)]) == [1]

    def test_extras_fill_placeholders_in_order(self) -> None:
        plan = plan_injection(lambda first, name, second: None, ["name"], fallback_names=["first", "second"])

        assert bind_arguments(plan, [("name", "Jeremy")], ["x", "y"]) == ["x", "Jeremy", "y"]

    def test_missing_extra_falls_back_to_default(self) -> None:
        def handler(name: str, page: int = 1) -> None:
            pass

        plan = plan_injection(handler, ["name"], fallback_names=["page"])

        assert bind_arguments(plan, [("name", "Jeremy")]) == ["Jeremy", 1]

    def test_unmatched_default_bound_without_consuming_extras(self) -> None:
        def handler(name: str, page: int = 1, request: Any = None) -> None:
            pass

        plan = plan_injection(handler, ["name"], fallback_names=["request"])

        assert bind_arguments(plan, [("name", "Jeremy")], ["req"]) == ["Jeremy", 1, "req"]

    def test_missing_extra_without_default_is_none(self) -> None:
        plan = plan_injection(lambda name, page: None, ["name"], fallback_names=["page"])

        assert bind_arguments(plan, [("name", "Jeremy")]) == ["Jeremy", None]

    def test_unclaimed_values_appended_for_var_positional(self) -> None:
        def collect(b: Any, *rest: Any) -> None:
            pass

        plan = plan_injection(collect, ["a", "b", "c"])

        assert bind_arguments(plan, [("a", 1), ("b", 2), ("c", 3)]) == [2, 1, 3]

    def test_unclaimed_values_dropped_without_var_positional(self) -> None:
        plan = plan_injection(lambda b: None, ["a", "b"])

        assert bind_arguments(plan, [("a", 1), ("b", 2)]) == [2]
