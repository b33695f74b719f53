"""Engine exports: the output contract, files, cache, registry and results.

The orchestrator lives in ``brxm_inspect.engine.ops``.
"""

from brxm_inspect.engine.cache import CacheKey, CacheStats, InspectionCache, cache_key_for, fingerprint
from brxm_inspect.engine.files import (
    FileSystemVirtualFile,
    InMemoryVirtualFile,
    VirtualFile,
    normalize_path,
)
from brxm_inspect.engine.models import (
    FileType,
    Inspection,
    InspectionCategory,
    Issue,
    QuickFix,
    QuickFixContext,
    Severity,
    TextRange,
    is_applicable,
)
from brxm_inspect.engine.registry import InspectionRegistry, RegistrationFailure, RegistryStatistics
from brxm_inspect.engine.results import (
    FileFailure,
    InspectionFault,
    InspectionResults,
    IssueStatistics,
)

__all__ = [
    # Models
    "FileType",
    "Inspection",
    "InspectionCategory",
    "Issue",
    "QuickFix",
    "QuickFixContext",
    "Severity",
    "TextRange",
    "is_applicable",
    # Files
    "FileSystemVirtualFile",
    "InMemoryVirtualFile",
    "VirtualFile",
    "normalize_path",
    # Cache
    "CacheKey",
    "CacheStats",
    "InspectionCache",
    "cache_key_for",
    "fingerprint",
    # Registry
    "InspectionRegistry",
    "RegistrationFailure",
    "RegistryStatistics",
    # Results
    "FileFailure",
    "InspectionFault",
    "InspectionResults",
    "IssueStatistics",
]
