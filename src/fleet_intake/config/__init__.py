"""Intake configuration management."""

from fleet_intake.config.settings import (
    IntakeSettings,
    LaborAllocation,
    load_settings,
    get_settings,
    reset_settings_cache,
)

__all__ = [
    "IntakeSettings",
    "LaborAllocation",
    "load_settings",
    "get_settings",
    "reset_settings_cache",
]
