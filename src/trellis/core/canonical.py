# src/trellis/core/canonical.py
"""
Canonical JSON serialization for structural signatures.

Two-phase approach:
1. Normalize: reduce computations and literal values to identity strings
2. Serialize: produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

Identity strings for primitives are value-based, so two build sites binding
the literal 1 share a signature. Any other object is identified by id(),
which is only stable for the lifetime of the object; signatures are scoped
to a single run, so that is enough.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Sequence
from typing import Any

import rfc8785

from trellis.contracts.types import Signature

# Version string mixed into every signature
CANONICAL_VERSION = "sha256-rfc8785-v1"

_VALUE_TYPES: tuple[type, ...] = (str, int, float, bool, bytes, type(None))


def literal_identity(value: Any) -> str:
    """Identity string of a literal or input value.

    Primitives (and tuples/frozensets of primitives) are identified by type
    and repr. Everything else by type and object id.
    """
    if isinstance(value, _VALUE_TYPES):
        return f"{type(value).__qualname__}:{value!r}"
    if isinstance(value, tuple) and all(isinstance(item, _VALUE_TYPES) for item in value):
        return f"tuple:({','.join(literal_identity(item) for item in value)})"
    if isinstance(value, frozenset) and all(isinstance(item, _VALUE_TYPES) for item in value):
        return f"frozenset:{{{','.join(sorted(literal_identity(item) for item in value))}}}"
    return f"{type(value).__module__}.{type(value).__qualname__}@{id(value):x}"


def callable_identity(kind: str, target: Callable[..., Any]) -> str:
    """Identity string of a callable computation.

    Qualified name keeps the digest readable in debug output; id() keeps two
    lambdas defined on the same line apart.
    """
    module = getattr(target, "__module__", None) or "<unknown>"
    qualname = getattr(target, "__qualname__", None) or type(target).__qualname__
    return f"{kind}:{module}.{qualname}@{id(target):x}"


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON for hashing.

    Args:
        obj: Structure of strings, lists and dicts

    Returns:
        Canonical JSON string (no whitespace, sorted keys)
    """
    result: bytes = rfc8785.dumps(obj)
    return result.decode("utf-8")


def stable_hash(obj: Any, version: str = CANONICAL_VERSION) -> str:
    """Compute stable hash of object.

    Args:
        obj: Data structure to hash
        version: Hash algorithm version

    Returns:
        SHA-256 hex digest of canonical JSON
    """
    canonical = canonical_json({"version": version, "payload": obj})
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_signature(identity: str, dependencies: Sequence[tuple[str, str, str]]) -> Signature:
    """Structural signature of a compiled node.

    Args:
        identity: Computation identity string
        dependencies: Ordered (edge visibility, argument name, dependency
            signature) triples

    Returns:
        Signature shared by every node with the same computation over the
        same resolved dependencies, whatever its alias.
    """
    payload = {
        "computation": identity,
        "dependencies": [list(dependency) for dependency in dependencies],
    }
    return Signature(stable_hash(payload))
