"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from typing import NewType

NodeKey = NewType("NodeKey", str)
"""Plan-unique key of a compiled node (e.g. 'driver/one')"""

Signature = NewType("Signature", str)
"""Structural signature shared by nodes computing the same thing (SHA-256 hex digest)"""
