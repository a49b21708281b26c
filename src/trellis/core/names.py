# src/trellis/core/names.py
"""Node-name micro-syntax.

    name            build, expose under ``name``
    ?name           build, usable internally, excluded from results and arguments
    !name           build for ordering/side effects only
    a.b             build ``a``, then project member ``b``

The argument name of a reference is the last dotted segment with any
``-suffix`` dropped, so ``two-fromNum`` satisfies a parameter called ``two``
and ``config.secret`` one called ``secret``.
"""

from __future__ import annotations

from dataclasses import dataclass

from trellis.contracts.enums import Visibility
from trellis.contracts.errors import InvalidNodeNameError

_PREFIX_VISIBILITY = {
    "?": Visibility.VOID,
    "!": Visibility.SILENT,
}


@dataclass(frozen=True, slots=True)
class NodeName:
    """A parsed node reference."""

    name: str
    visibility: Visibility = Visibility.NORMAL

    @classmethod
    def parse(cls, raw: str) -> NodeName:
        if not isinstance(raw, str):
            raise InvalidNodeNameError(repr(raw), "node names must be strings")
        visibility = _PREFIX_VISIBILITY.get(raw[:1], Visibility.NORMAL)
        name = raw[1:] if visibility is not Visibility.NORMAL else raw
        if not name:
            raise InvalidNodeNameError(raw, "name is empty")
        if name[0] in _PREFIX_VISIBILITY:
            raise InvalidNodeNameError(raw, "only one visibility prefix is allowed")
        if any(not segment for segment in name.split(".")):
            raise InvalidNodeNameError(raw, "empty member segment")
        return cls(name=name, visibility=visibility)

    @property
    def spelled(self) -> str:
        """The reference as the caller wrote it, prefix included."""
        return f"{self.visibility.prefix}{self.name}"

    @property
    def path(self) -> tuple[str, ...]:
        return tuple(self.name.split("."))

    @property
    def head(self) -> str:
        return self.path[0]

    @property
    def members(self) -> tuple[str, ...]:
        return self.path[1:]

    @property
    def arg_name(self) -> str:
        return arg_name_of(self.name)


def arg_name_of(reference: str) -> str:
    """Argument name satisfied by a reference ('two-fromNum' -> 'two')."""
    bare = reference.lstrip("?!")
    return bare.rsplit(".", 1)[-1].split("-", 1)[0]


def plain_name(raw: str, *, site: str) -> NodeName:
    """Parse a name that must be addressable as written (no prefix)."""
    parsed = NodeName.parse(raw)
    if parsed.visibility is not Visibility.NORMAL:
        raise InvalidNodeNameError(raw, f"{site} targets must be plain names")
    return parsed
