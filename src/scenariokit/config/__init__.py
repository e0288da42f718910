"""Config module exports."""

from scenariokit.config.loader import load_config
from scenariokit.config.models import (
    LoggingConfig,
    MXConfig,
    ScenarioKitConfig,
    StudyParameters,
)

__all__ = [
    "load_config",
    "ScenarioKitConfig",
    "LoggingConfig",
    "MXConfig",
    "StudyParameters",
]
