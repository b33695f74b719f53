"""Duplicate ``jcr:uuid`` values across bootstrap content.

Reads the project index, which the executor fills for the whole file set
before any inspection runs; every occurrence of a shared UUID is reported
once, in the file that declares it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from brxm_inspect.engine.models import FileType, InspectionCategory, Issue, QuickFix, Severity, TextRange
from brxm_inspect.index.extractors import uuid_occurrences
from brxm_inspect.inspections.support import doc, new_issue

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext

_DESCRIPTION = doc(
    """
    Every JCR node needs a unique ``jcr:uuid``. When two bootstrap files (or two
    nodes in one file) declare the same UUID, bootstrap fails or one node
    silently replaces the other, usually after content was copied between
    files.

    Generate a fresh UUID for one of the nodes, or drop the ``jcr:uuid``
    property and let the repository assign one.
    """
)


class BootstrapUuidConflictInspection:
    id = "config.bootstrap-uuid-conflict"
    name = "Bootstrap UUID Conflict"
    description = _DESCRIPTION
    category = InspectionCategory.CONFIGURATION
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.XML, FileType.YAML})

    def inspect(self, context: InspectionContext) -> list[Issue]:
        issues = []
        for occurrence in uuid_occurrences(context.ast):
            definitions = context.project_index.find_uuid_conflicts(occurrence.uuid)
            if not definitions:
                continue
            others = sorted(
                {d.file.path.as_posix() for d in definitions if d.file.path != context.file.path}
            )
            if others:
                conflict_type = "cross-file"
                message = f"UUID '{occurrence.uuid}' conflicts with {len(others)} other file(s)"
            else:
                conflict_type = "same-file"
                message = f"Duplicate UUID '{occurrence.uuid}' in same file"
            issues.append(
                new_issue(
                    self,
                    context,
                    message=message,
                    description=self.description,
                    range=TextRange.whole_line(occurrence.line),
                    metadata={
                        "uuid": occurrence.uuid,
                        "nodePath": occurrence.node_path,
                        "conflictType": conflict_type,
                        "conflictingFiles": ", ".join(others),
                        "occurrences": len(definitions),
                    },
                )
            )
        return issues

    def quick_fixes(self, issue: Issue) -> list[QuickFix]:
        return []
