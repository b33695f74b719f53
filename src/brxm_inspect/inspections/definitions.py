"""Built-in inspections and the default registry.

Each provider is a zero-argument callable (here, the inspection classes);
``create_default_registry`` adds any ``module:attr`` providers listed in
the configuration's ``extra_providers``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from brxm_inspect.engine.registry import InspectionRegistry, Provider
from brxm_inspect.inspections.config.bootstrap_uuid_conflict import BootstrapUuidConflictInspection
from brxm_inspect.inspections.config.system_out_calls import SystemOutCallsInspection
from brxm_inspect.inspections.performance.unbounded_query import UnboundedQueryInspection
from brxm_inspect.inspections.repository.session_leak import SessionLeakInspection
from brxm_inspect.inspections.security.hardcoded_credentials import HardcodedCredentialsInspection

if TYPE_CHECKING:
    from brxm_inspect.config.models import InspectionConfig

log = structlog.get_logger()

DEFAULT_PROVIDERS: tuple[Provider, ...] = (
    SessionLeakInspection,
    UnboundedQueryInspection,
    BootstrapUuidConflictInspection,
    SystemOutCallsInspection,
    HardcodedCredentialsInspection,
)


def create_default_registry(config: InspectionConfig | None = None) -> InspectionRegistry:
    """Registry holding the built-in inspections plus configured extra providers."""
    registry = InspectionRegistry()
    providers: list[Provider] = list(DEFAULT_PROVIDERS)
    if config is not None:
        providers.extend(config.extra_providers)
    added = registry.discover(providers)
    log.debug("default_registry_created", inspections=added, failures=len(registry.failures))
    return registry
