"""Fixtures for running individual inspections end to end."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from brxm_inspect.engine.files import VirtualFile
from brxm_inspect.engine.ops import run
from brxm_inspect.engine.registry import InspectionRegistry
from brxm_inspect.engine.results import InspectionResults


@pytest.fixture
def analyze(project_root: Path) -> Callable[..., InspectionResults]:
    """Run the given inspection (class) over files, sequentially."""

    def _analyze(inspection: Any, files: list[VirtualFile], **config: Any) -> InspectionResults:
        registry = InspectionRegistry()
        registry.discover([inspection])
        assert not registry.failures
        return run(files, registry, {"parallel": False, "minSeverity": "HINT", **config}, project_root=project_root)

    return _analyze
