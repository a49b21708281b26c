# src/trellis/contracts/enums.py
"""Visibility levels, node kinds and modes used across subsystem boundaries."""

from enum import StrEnum


class Visibility(StrEnum):
    """How a built node is exposed to its requester.

    Spelled as a name prefix wherever a node is referenced:
    no prefix for NORMAL, ``?`` for VOID, ``!`` for SILENT.
    """

    NORMAL = "normal"
    VOID = "void"
    SILENT = "silent"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]

    @property
    def is_passed(self) -> bool:
        """Whether values of this visibility are handed to the consuming computation."""
        return self is Visibility.NORMAL

    @property
    def tolerates_errors(self) -> bool:
        """Whether a failure at this visibility leaves the consumer unaffected."""
        return self is Visibility.SILENT


_PREFIXES = {
    Visibility.NORMAL: "",
    Visibility.VOID: "?",
    Visibility.SILENT: "!",
}


class ComputationKind(StrEnum):
    """How a node definition turns its inputs into a value.

    FUNCTION receives passed arguments positionally in declaration order.
    INJECTED and CONSTRUCTOR receive them matched by parameter name.
    CONSTANT ignores its inputs.
    """

    FUNCTION = "function"
    INJECTED = "injected"
    CONSTRUCTOR = "constructor"
    CONSTANT = "constant"


class NodeKind(StrEnum):
    """Kind of a compiled plan entry."""

    COMPUTATION = "computation"
    LITERAL = "literal"
    INPUT = "input"
    PROJECTION = "projection"
    JOIN = "join"


class ErrorMode(StrEnum):
    """Enforcement level for registry-wide policies (e.g. builder names)."""

    NONE = "none"
    WARN = "warn"
    ERROR = "error"
