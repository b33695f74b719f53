"""Built-in inspections."""

from brxm_inspect.inspections.definitions import DEFAULT_PROVIDERS, create_default_registry

__all__ = ["DEFAULT_PROVIDERS", "create_default_registry"]
