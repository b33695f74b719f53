"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (BRXM_INSPECT__SECTION__KEY)
3. Project YAML (.brxm-inspections.yaml, falling back to brxm-inspections.yaml)
4. Built-in defaults (lowest priority)

The settings class only collects raw values from those sources; the merged
result is validated once by ``InspectionConfig`` so that every source goes
through the same severity parsing and provider checks.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from brxm_inspect.config.models import (
    DEFAULT_EXCLUDE_PATHS,
    DEFAULT_INCLUDE_PATHS,
    InspectionConfig,
)
from brxm_inspect.core.errors import ConfigError
from brxm_inspect.engine.models import Severity

CONFIG_FILE_NAMES: tuple[str, ...] = (".brxm-inspections.yaml", "brxm-inspections.yaml")


def _parse_yaml(text: str, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(source, str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(source, "top-level value must be a mapping")
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    return _parse_yaml(path.read_text(encoding="utf-8"), str(path))


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Top-level keys to snake_case; nested keys (inspection ids, options) are untouched."""
    return {to_snake(str(key)): value for key, value in data.items()}


def find_config_file(project_root: Path) -> Path | None:
    for name in CONFIG_FILE_NAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._yaml_config.items() if k in self.settings_cls.model_fields}


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class BrxmInspectSettings(BaseSettings):
        """Raw config values. Env vars: BRXM_INSPECT__MIN_SEVERITY, BRXM_INSPECT__LOGGING__LEVEL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="BRXM_INSPECT__",
            env_nested_delimiter="__",
            case_sensitive=False,
            extra="ignore",
        )

        enabled: bool | None = None
        min_severity: Severity | str | None = None
        parallel: bool | None = None
        max_threads: int | None = None
        cache_enabled: bool | None = None
        include_paths: list[str] | None = None
        exclude_paths: list[str] | None = None
        inspections: dict[str, Any] | None = None
        extra_providers: list[str] | None = None
        logging: dict[str, Any] | None = None

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return BrxmInspectSettings


def _validation_to_config_error(e: ValidationError) -> ConfigError:
    err = e.errors()[0]
    field = ".".join(str(loc) for loc in err["loc"])
    return ConfigError.invalid_value(field, err.get("input"), err["msg"])


def _build(yaml_config: dict[str, Any], overrides: dict[str, Any]) -> InspectionConfig:
    settings_cls = _make_settings_class(_normalize_keys(yaml_config))
    try:
        settings = settings_cls(**_normalize_keys(overrides))
        return InspectionConfig.model_validate(settings.model_dump(exclude_none=True))
    except ValidationError as e:
        raise _validation_to_config_error(e) from e


def load_config(
    project_root: Path | None = None,
    *,
    config_path: Path | None = None,
    **overrides: Any,
) -> InspectionConfig:
    """Load config: defaults < project YAML < env vars < kwargs.

    Args:
        project_root: Directory searched for a config file.
                      Defaults to current working directory.
        config_path: Explicit config file; must exist when given.
        **overrides: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On a missing explicit file, invalid YAML syntax or
            validation errors.
    """
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError.file_not_found(str(config_path))
        yaml_config = _load_yaml(config_path)
    else:
        found = find_config_file(project_root or Path.cwd())
        yaml_config = _load_yaml(found) if found is not None else {}
    return _build(yaml_config, overrides)


def load_config_from_string(text: str, **overrides: Any) -> InspectionConfig:
    """Load config from YAML text; env vars and kwargs still apply."""
    return _build(_parse_yaml(text, "<string>"), overrides)


def _yaml_list(items: tuple[str, ...]) -> list[str]:
    return [f'  - "{item}"' for item in items]


def generate_default_yaml() -> str:
    """Commented YAML equivalent of the built-in defaults."""
    from brxm_inspect.inspections.definitions import create_default_registry

    lines = [
        "# Bloomreach CMS Inspections Configuration",
        "# This file controls how inspections are executed in your project.",
        "",
        "# Enable/disable inspections globally",
        "enabled: true",
        "",
        "# Process files on a worker pool",
        "parallel: true",
        "",
        "# Share parse results between inspections",
        "cacheEnabled: true",
        "",
        "# Minimum severity to report (ERROR, WARNING, INFO, HINT)",
        "minSeverity: INFO",
        "",
        "# Worker pool size (defaults to the number of CPUs)",
        "# maxThreads: 4",
        "",
        "# File patterns to exclude from analysis",
        "excludePaths:",
        *_yaml_list(DEFAULT_EXCLUDE_PATHS),
        "",
        "# File patterns to include in analysis",
        "includePaths:",
        *_yaml_list(DEFAULT_INCLUDE_PATHS),
        "",
        "# Per-inspection configuration",
        "inspections:",
    ]

    registry = create_default_registry()
    for category, ids in registry.ids_by_category().items():
        lines.append(f"  # {category.display_name}")
        for inspection_id in ids:
            inspection = registry.get(inspection_id)
            if inspection is None:
                continue
            lines.append(f"  {inspection_id}:")
            lines.append("    enabled: true")
            lines.append(f"    severity: {inspection.severity.name}")
            defaults = getattr(inspection, "default_options", None)
            if defaults:
                lines.append("    options:")
                for key, value in defaults.items():
                    lines.append(f"      {key}: {value}")
        lines.append("")

    return "\n".join(lines)


def write_default_config(path: Path) -> Path:
    """Write the default config. A directory gets ``.brxm-inspections.yaml`` inside it."""
    target = path / CONFIG_FILE_NAMES[0] if path.is_dir() else path
    target.write_text(generate_default_yaml(), encoding="utf-8")
    return target
