"""Cross-file project index."""

from brxm_inspect.index.extractors import (
    DEFAULT_EXTRACTORS,
    BootstrapUuidExtractor,
    IndexExtractor,
    JavaTypeExtractor,
    uuid_occurrences,
)
from brxm_inspect.index.project import ClassInfo, ProjectIndex, UuidDefinition

__all__ = [
    "DEFAULT_EXTRACTORS",
    "BootstrapUuidExtractor",
    "ClassInfo",
    "IndexExtractor",
    "JavaTypeExtractor",
    "ProjectIndex",
    "UuidDefinition",
    "uuid_occurrences",
]
