"""Tests for the bootstrap UUID conflict inspection."""

from __future__ import annotations

from brxm_inspect.engine.models import Severity
from brxm_inspect.engine.ops import InspectionExecutor
from brxm_inspect.engine.registry import InspectionRegistry
from brxm_inspect.inspections.config.bootstrap_uuid_conflict import BootstrapUuidConflictInspection

SHARED = "8a7b6c5d-1234-4abc-9def-000000000001"
UNIQUE = "8a7b6c5d-1234-4abc-9def-000000000002"


def _xml(name: str, uuid: str) -> str:
    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<sv:node sv:name="{name}" xmlns:sv="http://www.jcp.org/jcr/sv/1.0">
  <sv:property sv:name="jcr:primaryType" sv:type="Name">
    <sv:value>hippostd:folder</sv:value>
  </sv:property>
  <sv:property sv:name="jcr:uuid" sv:type="String">
    <sv:value>{uuid}</sv:value>
  </sv:property>
</sv:node>
"""


def _yaml(uuid: str) -> str:
    return f"definitions:\n  content:\n    /content/documents/events:\n      jcr:uuid: {uuid}\n"


class TestBootstrapUuidConflict:
    """Duplicate UUIDs across the project."""

    def test_two_records_with_same_uuid_yield_two_errors(self, make_file, analyze) -> None:
        """Each conflicting occurrence is reported once; the unique record is clean."""
        # Given
        files = [
            make_file("bootstrap/news.xml", _xml("news", SHARED)),
            make_file("bootstrap/events.yaml", _yaml(SHARED)),
            make_file("bootstrap/blog.xml", _xml("blog", UNIQUE)),
        ]

        # When
        results = analyze(BootstrapUuidConflictInspection, files)

        # Then
        assert len(results.issues) == 2
        assert {i.path.name for i in results.issues} == {"news.xml", "events.yaml"}
        assert all(i.severity is Severity.ERROR for i in results.issues)
        by_name = {i.path.name: i for i in results.issues}
        news = by_name["news.xml"]
        assert news.range.start_line == 6
        assert news.message == f"UUID '{SHARED}' conflicts with 1 other file(s)"
        assert news.metadata["conflictType"] == "cross-file"
        assert news.metadata["nodePath"] == "/news"
        assert news.metadata["conflictingFiles"].endswith("bootstrap/events.yaml")
        assert by_name["events.yaml"].range.start_line == 4

    def test_duplicate_within_one_file(self, make_file, analyze) -> None:
        content = (
            "definitions:\n"
            "  content:\n"
            "    /content/a:\n"
            f"      jcr:uuid: {SHARED}\n"
            "    /content/b:\n"
            f"      jcr:uuid: {SHARED}\n"
        )

        results = analyze(BootstrapUuidConflictInspection, [make_file("content.yaml", content)])

        assert [i.range.start_line for i in results.issues] == [4, 6]
        assert results.issues[0].message == f"Duplicate UUID '{SHARED}' in same file"
        assert {i.metadata["conflictType"] for i in results.issues} == {"same-file"}

    def test_results_do_not_depend_on_file_order(self, make_file, analyze) -> None:
        files = [
            make_file("a.xml", _xml("a", SHARED)),
            make_file("b.xml", _xml("b", SHARED)),
            make_file("c.xml", _xml("c", SHARED)),
        ]

        forward = analyze(BootstrapUuidConflictInspection, files, parallel=True, maxThreads=3)
        backward = analyze(BootstrapUuidConflictInspection, list(reversed(files)))

        assert [i.sort_key() for i in forward.issues] == [i.sort_key() for i in backward.issues]
        assert len(forward.issues) == 3
        assert forward.issues[0].message == f"UUID '{SHARED}' conflicts with 2 other file(s)"

    def test_rerunning_a_session_does_not_double_count(self, make_file, project_root) -> None:
        registry = InspectionRegistry()
        registry.discover([BootstrapUuidConflictInspection])
        files = [make_file("a.xml", _xml("a", SHARED)), make_file("b.xml", _xml("b", UNIQUE))]

        with InspectionExecutor(registry, {"parallel": False}) as executor:
            assert executor.execute(files, project_root=project_root).issues == []
            second = executor.execute(files, project_root=project_root)

        assert second.issues == []

    def test_editing_a_file_resolves_the_conflict(self, make_file, project_root) -> None:
        registry = InspectionRegistry()
        registry.discover([BootstrapUuidConflictInspection])
        a = make_file("a.xml", _xml("a", SHARED))
        b = make_file("b.xml", _xml("b", SHARED))

        with InspectionExecutor(registry, {"parallel": False}) as executor:
            assert len(executor.execute([a, b], project_root=project_root).issues) == 2
            b.update(_xml("b", UNIQUE))
            executor.execute_incremental(b, project_root=project_root)
            rerun = executor.execute_incremental(a, project_root=project_root)

        assert rerun.issues == []

    def test_file_left_out_of_a_full_run_stops_conflicting(self, make_file, project_root) -> None:
        """A full run only sees records from the files it was given."""
        # Given
        registry = InspectionRegistry()
        registry.discover([BootstrapUuidConflictInspection])
        a = make_file("a.yaml", _yaml(SHARED))
        b = make_file("b.yaml", _yaml(SHARED))

        with InspectionExecutor(registry, {"parallel": False}) as executor:
            assert len(executor.execute([a, b], project_root=project_root).issues) == 2

            # When
            rerun = executor.execute([a], project_root=project_root)

            # Then
            assert rerun.issues == []
            assert executor.project_index.get_file(b.path) is None
            assert [d.file.path for d in executor.project_index.find_uuid_conflicts(SHARED)] == [a.path]

    def test_incremental_run_keeps_the_rest_of_the_session(self, make_file, project_root) -> None:
        registry = InspectionRegistry()
        registry.discover([BootstrapUuidConflictInspection])
        a = make_file("a.yaml", _yaml(SHARED))
        b = make_file("b.yaml", _yaml(SHARED))

        with InspectionExecutor(registry, {"parallel": False}) as executor:
            executor.execute([a, b], project_root=project_root)
            incremental = executor.execute_incremental(a, project_root=project_root)

        assert [i.path.name for i in incremental.issues] == ["a.yaml"]
        assert incremental.issues[0].metadata["conflictType"] == "cross-file"
