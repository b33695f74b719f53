"""brxm-inspect - static inspections for Bloomreach Experience Manager projects."""

from brxm_inspect.config import InspectionConfig, load_config
from brxm_inspect.engine import InspectionRegistry, InspectionResults, Issue, Severity
from brxm_inspect.engine.ops import CancellationToken, InspectionExecutor, run
from brxm_inspect.inspections import create_default_registry

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "InspectionConfig",
    "InspectionExecutor",
    "InspectionRegistry",
    "InspectionResults",
    "Issue",
    "Severity",
    "__version__",
    "create_default_registry",
    "load_config",
    "run",
]
