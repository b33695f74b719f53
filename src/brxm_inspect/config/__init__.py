"""Config module exports."""

from brxm_inspect.config.loader import (
    generate_default_yaml,
    load_config,
    load_config_from_string,
    write_default_config,
)
from brxm_inspect.config.models import (
    InspectionConfig,
    InspectionSettings,
    LoggingConfig,
    LogOutputConfig,
)

__all__ = [
    "generate_default_yaml",
    "load_config",
    "load_config_from_string",
    "write_default_config",
    "InspectionConfig",
    "InspectionSettings",
    "LoggingConfig",
    "LogOutputConfig",
]
