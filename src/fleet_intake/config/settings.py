"""Intake settings schema and loader.

Settings are loaded from a YAML file (``fleet_intake.yaml`` in the working
directory unless an explicit path is given) and may be overridden by
``FLEET_INTAKE_*`` environment variables. Environment variables from a
``.env`` file are loaded by :func:`fleet_intake.startup.ensure_initialized`.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "fleet_intake.yaml"
ENV_PREFIX = "FLEET_INTAKE_"


class LaborAllocation(str, Enum):
    """How a single labor figure is spread across flagged service categories."""

    SPLIT = "split"          # divide evenly across categories
    DUPLICATE = "duplicate"  # record the full figure on every category


class IntakeSettings(BaseModel):
    """Runtime configuration for the intake pipeline.

    Attributes:
        database_url: SQLAlchemy URL of the relational store.
        min_text_length: Minimum extracted characters before a document is
            considered readable.
        max_pages: Optional cap on pages read from a document.
        candidate_model: Model or deployment name used for candidate extraction.
        candidate_timeout_seconds: Timeout for one candidate extraction call.
        candidate_max_input_chars: Raw text is truncated to this many characters.
        labor_allocation: Labor hours allocation across flagged categories.
        impersonation_ttl_minutes: Lifetime of an impersonation override.
        home_tenant_id: Default home tenant for CLI callers.
    """

    database_url: str = Field(
        default="sqlite:///fleet_intake.db",
        description="SQLAlchemy database URL",
    )
    min_text_length: int = Field(default=50, ge=1)
    max_pages: Optional[int] = Field(default=None, ge=1)
    candidate_model: Optional[str] = Field(
        default=None,
        description="Model override; falls back to the prompt/default model",
    )
    candidate_timeout_seconds: float = Field(default=120.0, gt=0)
    candidate_max_input_chars: int = Field(default=30000, ge=1000)
    labor_allocation: LaborAllocation = Field(default=LaborAllocation.SPLIT)
    impersonation_ttl_minutes: int = Field(default=60, ge=1)
    home_tenant_id: Optional[str] = Field(default=None)

    @field_validator("home_tenant_id")
    @classmethod
    def validate_home_tenant(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank tenant ids as unset."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


def _env_overrides() -> Dict[str, Any]:
    """Collect FLEET_INTAKE_* environment variables matching settings fields."""
    overrides: Dict[str, Any] = {}
    for name in IntakeSettings.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if value is not None and value != "":
            overrides[name] = value
    return overrides


def load_settings(config_path: Optional[Path] = None) -> IntakeSettings:
    """Load intake settings from YAML plus environment overrides.

    Args:
        config_path: Optional explicit path to a YAML file. If not provided,
            uses ./fleet_intake.yaml when it exists.

    Returns:
        Validated IntakeSettings.

    Raises:
        ValueError: If the file exists but contains invalid configuration.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

    data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in settings file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {config_path} must contain a mapping")
        logger.debug(f"Loaded settings from {config_path}")
    elif explicit:
        raise ValueError(f"Settings file not found: {config_path}")

    data.update(_env_overrides())

    try:
        return IntakeSettings.model_validate(data)
    except Exception as e:
        raise ValueError(f"Invalid intake settings: {e}") from e


_cached_settings: Optional[IntakeSettings] = None


def get_settings(force_reload: bool = False) -> IntakeSettings:
    """Get the current intake settings (cached)."""
    global _cached_settings

    if force_reload or _cached_settings is None:
        _cached_settings = load_settings()

    return _cached_settings


def reset_settings_cache() -> None:
    """Reset the settings cache (tests, config file switches)."""
    global _cached_settings
    _cached_settings = None
