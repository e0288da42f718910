"""Core module exports."""

from scenariokit.core.errors import (
    ConfigError,
    DerivationError,
    ErrorCode,
    IdentityError,
    InternalError,
    ScenarioError,
    ScenarioKitError,
)
from scenariokit.core.logging import (
    clear_session_id,
    configure_logging,
    get_logger,
    get_session_id,
    set_session_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "DerivationError",
    "ErrorCode",
    "IdentityError",
    "InternalError",
    "ScenarioError",
    "ScenarioKitError",
    # Logging
    "clear_session_id",
    "configure_logging",
    "get_logger",
    "get_session_id",
    "set_session_id",
]
