# src/trellis/core/config.py
"""
Engine settings and loading.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from trellis.contracts.enums import ErrorMode


class EngineSettings(BaseModel):
    """Registry-wide engine behaviour.

    Example YAML:
        builder_names: error
        enable_profiling: true
        profiling_frequency: 0.1
        default_trace_depth: 2
    """

    model_config = {"frozen": True, "extra": "forbid"}

    builder_names: ErrorMode = Field(
        default=ErrorMode.NONE,
        description="What to do when a builder is created without a debug name",
    )
    enable_profiling: bool = Field(
        default=False,
        description="Log per-node wall-clock durations for sampled runs",
    )
    profiling_frequency: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Fraction of runs sampled when profiling is enabled",
    )
    default_trace_depth: int = Field(
        default=2,
        ge=0,
        description="Caller depth surfaced by a Tracer created without an explicit depth",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Level passed to configure_logging()",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of console output",
    )


def load_settings(config_path: Path) -> EngineSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (TRELLIS_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated EngineSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="TRELLIS",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys and its own bookkeeping entries
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return EngineSettings(**raw_config)
