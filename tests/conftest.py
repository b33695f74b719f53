"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides the in-memory files and session objects most tests share.
"""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of brxm_inspect modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("brxm_inspect"):
        del sys.modules[module_name]

from brxm_inspect.config.models import InspectionConfig  # noqa: E402
from brxm_inspect.engine.cache import InspectionCache  # noqa: E402
from brxm_inspect.engine.files import InMemoryVirtualFile, normalize_path  # noqa: E402
from brxm_inspect.index.project import ProjectIndex  # noqa: E402

PROJECT_ROOT = normalize_path("/workspace/site")


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def make_file() -> Callable[[str, str], InMemoryVirtualFile]:
    """Factory for in-memory files under the fake project root."""

    def _make(relative: str, content: str) -> InMemoryVirtualFile:
        return InMemoryVirtualFile(PROJECT_ROOT / relative, content)

    return _make


@pytest.fixture
def cache() -> InspectionCache:
    return InspectionCache()


@pytest.fixture
def project_index() -> ProjectIndex:
    return ProjectIndex(PROJECT_ROOT)


@pytest.fixture
def sequential_config() -> InspectionConfig:
    return InspectionConfig(parallel=False)


@pytest.fixture
def parallel_config() -> InspectionConfig:
    return InspectionConfig(parallel=True, max_threads=4)
