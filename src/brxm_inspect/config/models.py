"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (BRXM_INSPECT__SECTION__KEY)
3. Project YAML (.brxm-inspections.yaml, then brxm-inspections.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    BRXM_INSPECT__<KEY>=<VALUE>
    BRXM_INSPECT__<SECTION>__<KEY>=<VALUE>

Examples:
    BRXM_INSPECT__MIN_SEVERITY=ERROR
    BRXM_INSPECT__MAX_THREADS=4
    BRXM_INSPECT__LOGGING__LEVEL=DEBUG

YAML keys may be written in camelCase (``minSeverity``) or snake_case
(``min_severity``). Inspection ids and option names are kept verbatim.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from brxm_inspect.engine.models import Severity

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_EXCLUDE_PATHS: tuple[str, ...] = (
    "**target/**",
    "**build/**",
    "**node_modules/**",
    "**.git/**",
)

DEFAULT_INCLUDE_PATHS: tuple[str, ...] = (
    "**/*.java",
    "**/*.xml",
    "**/*.yaml",
    "**/*.yml",
    "**/*.json",
)


def _default_threads() -> int:
    return os.cpu_count() or 1


def _parse_severity(value: Any) -> Any:
    if value is None or isinstance(value, Severity):
        return value
    return Severity.parse(str(value))


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        BRXM_INSPECT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every inspection run per file.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class InspectionSettings(_CamelModel):
    """Per-inspection overrides. Unset fields fall back to the inspection's defaults."""

    enabled: bool = True
    severity: Severity | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("severity", mode="before")
    @classmethod
    def validate_severity(cls, v: Any) -> Any:
        return _parse_severity(v)


class InspectionConfig(_CamelModel):
    """Effective configuration for an inspection run.

    ``min_severity`` filters the final issue list; it never stops an
    inspection from running.
    """

    enabled: bool = Field(
        default=True,
        description="Master switch. When false a run returns no issues.",
    )
    min_severity: Severity = Field(
        default=Severity.INFO,
        description="Lowest severity kept in the report.",
    )
    parallel: bool = Field(
        default=True,
        description="Process files on a worker pool.",
    )
    max_threads: int = Field(
        default_factory=_default_threads,
        description="Worker pool size. Values below 1 are treated as 1.",
    )
    cache_enabled: bool = Field(
        default=True,
        description="Share parse results across inspections and runs in a session.",
    )
    include_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INCLUDE_PATHS),
        description="Globs selecting files to analyze. Applied by the host's scanner.",
    )
    exclude_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATHS),
        description="Globs removing files from analysis. Applied by the host's scanner.",
    )
    inspections: dict[str, InspectionSettings] = Field(
        default_factory=dict,
        description="Overrides keyed by inspection id.",
    )
    extra_providers: list[str] = Field(
        default_factory=list,
        description="Additional inspection providers as 'package.module:attribute'.",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("min_severity", mode="before")
    @classmethod
    def validate_min_severity(cls, v: Any) -> Any:
        return _parse_severity(v)

    @field_validator("inspections", mode="before")
    @classmethod
    def validate_inspections(cls, v: Any) -> Any:
        # ``id: null`` in YAML means "all defaults"
        if isinstance(v, dict):
            return {str(k): ({} if s is None else s) for k, s in v.items()}
        return v

    @field_validator("extra_providers")
    @classmethod
    def validate_extra_providers(cls, v: list[str]) -> list[str]:
        for entry in v:
            module, _, attr = entry.partition(":")
            if not module or not attr:
                raise ValueError(f"Provider must look like 'package.module:attribute': {entry}")
        return v

    @property
    def thread_count(self) -> int:
        return max(1, self.max_threads)

    def is_enabled(self, inspection_id: str) -> bool:
        if not self.enabled:
            return False
        settings = self.inspections.get(inspection_id)
        return settings.enabled if settings is not None else True

    def severity_for(self, inspection_id: str) -> Severity | None:
        """Severity override for an inspection, or None to keep its default."""
        settings = self.inspections.get(inspection_id)
        return settings.severity if settings is not None else None

    def options_for(self, inspection_id: str) -> dict[str, Any]:
        settings = self.inspections.get(inspection_id)
        return dict(settings.options) if settings is not None else {}

    @classmethod
    def default(cls) -> InspectionConfig:
        return cls()

    @classmethod
    def minimal(cls) -> InspectionConfig:
        """Errors only."""
        return cls(min_severity=Severity.ERROR)

    @classmethod
    def strict(cls) -> InspectionConfig:
        """Everything, down to hints."""
        return cls(min_severity=Severity.HINT)
