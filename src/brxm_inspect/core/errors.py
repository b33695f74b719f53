"""brxm-inspect error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Parse
- 4xxx: Inspection / registration
- 9xxx: Internal

Only configuration errors propagate out of an inspection run. Parse failures,
inspection faults and registration failures are recorded as data on the
results (see ``engine.results``) rather than raised.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Parse (3xxx)
    PARSE_FAILED = 3001

    # Inspection (4xxx)
    INSPECTION_REGISTRATION_FAILED = 4001
    INSPECTION_DUPLICATE_ID = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class InspectError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reports."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(InspectError):
    """Configuration-related errors. Fatal to starting a run."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ParseException(InspectError):
    """Raised by ``ParseResult.get_or_raise()`` on a failed parse."""

    @classmethod
    def from_errors(cls, errors: list[Any]) -> "ParseException":
        first = errors[0].message if errors else "unknown error"
        return cls(
            code=ErrorCode.PARSE_FAILED,
            message=f"Parse failed with {len(errors)} error(s): {first}",
            details={"error_count": len(errors)},
        )


class RegistrationError(InspectError):
    """A single inspection could not be registered.

    Raised inside the registry and converted into a recorded failure; never
    escapes ``InspectionRegistry.discover``.
    """

    @classmethod
    def malformed(cls, provider: str, missing: list[str]) -> "RegistrationError":
        return cls(
            code=ErrorCode.INSPECTION_REGISTRATION_FAILED,
            message=f"Provider {provider} produced an object missing: {', '.join(missing)}",
            details={"provider": provider, "missing": missing},
        )

    @classmethod
    def invalid(cls, provider: str, problems: list[str]) -> "RegistrationError":
        return cls(
            code=ErrorCode.INSPECTION_REGISTRATION_FAILED,
            message=f"Provider {provider} produced an object with invalid: {', '.join(problems)}",
            details={"provider": provider, "invalid": problems},
        )

    @classmethod
    def provider_failed(cls, provider: str, reason: str) -> "RegistrationError":
        return cls(
            code=ErrorCode.INSPECTION_REGISTRATION_FAILED,
            message=f"Provider {provider} failed: {reason}",
            details={"provider": provider, "reason": reason},
        )

    @classmethod
    def duplicate_id(cls, inspection_id: str) -> "RegistrationError":
        return cls(
            code=ErrorCode.INSPECTION_DUPLICATE_ID,
            message=f"Inspection with ID '{inspection_id}' already registered",
            details={"inspection_id": inspection_id},
        )


class InternalError(InspectError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
