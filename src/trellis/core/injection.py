# src/trellis/core/injection.py
"""Reflection-based argument binding.

Injection matches a callable's declared parameter names against the names
of values that will be available at call time. The match is planned up
front so an unmatched parameter fails when the callback is declared, not
when it is finally invoked.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from trellis.contracts.errors import InjectorError, NodeDefinitionError

_POSITIONAL_KINDS = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True, slots=True)
class InjectionPlan:
    """How to build a positional argument list for one callable.

    Attributes:
        parameters: Positional parameter names, in declaration order
        placeholders: Parameters filled from caller-supplied extras instead of built values
        accepts_extra: Whether unmatched values may be appended (``*args``)
        defaults: Declared defaults, used for unmatched parameters and for placeholders the caller does not supply
    """

    parameters: tuple[str, ...]
    placeholders: frozenset[str] = frozenset()
    accepts_extra: bool = False
    defaults: Mapping[str, Any] = field(default_factory=dict)


def has_signature(target: Callable[..., Any]) -> bool:
    """Whether inspect can read ``target``'s parameters (false for builtins like ``dict``)."""
    try:
        inspect.signature(target)
    except (TypeError, ValueError):
        return False
    return True


def inspect_parameters(target: Callable[..., Any]) -> tuple[tuple[str, ...], bool, dict[str, Any]]:
    """Return (positional parameter names, accepts *args, defaults) for a callable or class."""
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError) as exc:
        raise NodeDefinitionError(f"Cannot inspect parameters of {target!r}: {exc}") from exc

    names: list[str] = []
    defaults: dict[str, Any] = {}
    accepts_extra = False
    for parameter in signature.parameters.values():
        if parameter.kind in _POSITIONAL_KINDS:
            names.append(parameter.name)
            if parameter.default is not inspect.Parameter.empty:
                defaults[parameter.name] = parameter.default
        elif parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            accepts_extra = True
    return tuple(names), accepts_extra, defaults


def plan_injection(
    target: Callable[..., Any],
    available: Iterable[str],
    fallback_names: Iterable[str] = (),
) -> InjectionPlan:
    """Match every positional parameter of ``target`` to an available name.

    Unmatched parameters with a declared default are bound to that default.

    A callable without an inspectable signature is planned as taking no
    arguments when nothing would be passed to it, so ``dict`` and ``list``
    work as constructors.

    Raises:
        InjectorError: A parameter matches neither an available name nor a fallback name
        NodeDefinitionError: Values would be passed to a callable whose parameters cannot be inspected
    """
    available_names = set(available)
    fallbacks = set(fallback_names)
    if not available_names and not fallbacks and not has_signature(target):
        return InjectionPlan(parameters=())
    names, accepts_extra, defaults = inspect_parameters(target)
    placeholders: set[str] = set()
    for name in names:
        if name in available_names:
            continue
        if name in fallbacks:
            placeholders.add(name)
            continue
        if name in defaults:
            continue
        raise InjectorError(name)
    return InjectionPlan(
        parameters=names,
        placeholders=frozenset(placeholders),
        accepts_extra=accepts_extra,
        defaults=defaults,
    )


def bind_arguments(
    plan: InjectionPlan,
    values: Sequence[tuple[str, Any]],
    extras: Sequence[Any] = (),
) -> list[Any]:
    """Build the positional argument list described by ``plan``.

    Args:
        plan: Result of plan_injection()
        values: Ordered (name, value) pairs; the first pair with a given name wins
        extras: Values for placeholder parameters, consumed in parameter order

    Returns:
        Matched values in parameter order, followed by the values no parameter
        claimed when the callable accepts ``*args``.
    """
    first_index: dict[str, int] = {}
    for index, (name, _) in enumerate(values):
        first_index.setdefault(name, index)

    remaining_extras = iter(extras)
    claimed: set[int] = set()
    arguments: list[Any] = []
    for name in plan.parameters:
        if name in plan.placeholders:
            arguments.append(next(remaining_extras, plan.defaults.get(name)))
            continue
        if name not in first_index:
            # Planned as unmatched, so it has a declared default
            arguments.append(plan.defaults[name])
            continue
        index = first_index[name]
        claimed.add(index)
        arguments.append(values[index][1])

    if plan.accepts_extra:
        arguments.extend(value for index, (_, value) in enumerate(values) if index not in claimed)
    return arguments
