"""Core module exports."""

from brxm_inspect.core.errors import (
    ConfigError,
    ErrorCode,
    InspectError,
    InternalError,
    ParseException,
    RegistrationError,
)
from brxm_inspect.core.logging import (
    bind_run,
    configure_logging,
    current_run_id,
    new_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "InspectError",
    "InternalError",
    "ParseException",
    "RegistrationError",
    # Logging
    "bind_run",
    "configure_logging",
    "current_run_id",
    "new_run_id",
]
