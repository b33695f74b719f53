"""Helpers shared by the built-in inspections."""

from __future__ import annotations

import textwrap
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from brxm_inspect.engine.models import Inspection, Issue, TextRange

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext

log = structlog.get_logger()


def doc(text: str) -> str:
    """Dedent a triple-quoted description."""
    return textwrap.dedent(text).strip()


def new_issue(
    inspection: Inspection,
    context: InspectionContext,
    *,
    message: str,
    description: str,
    range: TextRange,  # noqa: A002
    metadata: Mapping[str, Any] | None = None,
) -> Issue:
    return Issue(
        inspection_id=inspection.id,
        file=context.file,
        severity=inspection.severity,
        message=message,
        description=description,
        range=range,
        category=inspection.category,
        metadata={k: str(v) for k, v in (metadata or {}).items()},
    )


def int_option(options: Mapping[str, Any], key: str, default: int, *, minimum: int = 0) -> int:
    """Read an integer option, falling back to ``default`` on junk values."""
    raw = options.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        log.warning("invalid_inspection_option", option=key, value=str(raw), default=default)
        return default
    return max(minimum, value)
