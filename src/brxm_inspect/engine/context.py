"""Per-file execution context handed to every inspection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from brxm_inspect.config.models import InspectionConfig
    from brxm_inspect.engine.cache import InspectionCache
    from brxm_inspect.engine.files import VirtualFile
    from brxm_inspect.engine.models import FileType
    from brxm_inspect.index.project import ProjectIndex
    from brxm_inspect.parsing.base import ParseResult


@dataclass(frozen=True)
class InspectionContext:
    """Everything one inspection run sees for one file.

    Built once per file and shared by the inspections that run on it.
    ``parse_result`` is None for kinds without a parser (properties, CND);
    those inspections work from ``content``.
    """

    project_root: Path
    file: VirtualFile
    content: str
    file_type: FileType
    parse_result: ParseResult | None
    config: InspectionConfig
    cache: InspectionCache | None
    project_index: ProjectIndex

    @property
    def ast(self) -> Any | None:
        """The parsed tree, or None if parsing failed or no parser exists."""
        if self.parse_result is None:
            return None
        return self.parse_result.get_or_none()

    @property
    def lines(self) -> list[str]:
        return self.content.splitlines()

    def find_related_files(self, pattern: str) -> list[VirtualFile]:
        return self.project_index.find_files(pattern)

    def relative_path(self) -> str:
        if self.file.path.is_relative_to(self.project_root):
            return self.file.path.relative_to(self.project_root).as_posix()
        return self.file.path.as_posix()

    def is_inspection_enabled(self, inspection_id: str) -> bool:
        return self.config.is_enabled(inspection_id)

    def options_for(self, inspection_id: str) -> dict[str, Any]:
        return self.config.options_for(inspection_id)

    def is_test_source(self) -> bool:
        """Heuristic for test code: ``src/test`` trees and ``*Test``/``*Tests`` files."""
        posix = self.file.path.as_posix()
        stem = self.file.path.stem
        return "/src/test/" in posix or stem.endswith(("Test", "Tests", "IT"))
