# src/trellis/core/__init__.py
"""Core infrastructure: names, injection, canonical signatures, configuration, DAG, logging."""

from trellis.core.canonical import CANONICAL_VERSION, compute_signature, stable_hash
from trellis.core.config import EngineSettings, load_settings
from trellis.core.logging import configure_from_settings, configure_logging, get_logger
from trellis.core.names import NodeName, arg_name_of

__all__ = [
    "CANONICAL_VERSION",
    "EngineSettings",
    "NodeName",
    "arg_name_of",
    "compute_signature",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "stable_hash",
]
