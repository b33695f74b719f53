"""Tests for engine/registry.py."""

from __future__ import annotations

import sys
import types

import pytest

from brxm_inspect.core.errors import ErrorCode
from brxm_inspect.engine.models import FileType, InspectionCategory, Severity
from brxm_inspect.engine.registry import InspectionRegistry, provider_name, resolve_provider


class _Rule:
    name = "Rule"
    description = "A rule"
    category = InspectionCategory.CODE_QUALITY
    severity = Severity.INFO
    applicable_file_types = frozenset({FileType.JAVA})

    def __init__(self, rule_id: str = "quality.rule", category: InspectionCategory | None = None) -> None:
        self.id = rule_id
        if category is not None:
            self.category = category

    def inspect(self, context):
        return []

    def quick_fixes(self, issue):
        return []


class _NoId:
    name = "Broken"

    def inspect(self, context):
        return []


@pytest.fixture
def provider_module(monkeypatch: pytest.MonkeyPatch) -> str:
    """A throwaway module importable by name."""
    module = types.ModuleType("brxm_test_providers")
    module.make_rules = lambda: [_Rule("ext.one"), _Rule("ext.two")]
    module.single = _Rule("ext.single")
    monkeypatch.setitem(sys.modules, "brxm_test_providers", module)
    return "brxm_test_providers"


class TestRegister:
    """Direct registration."""

    def test_register_and_lookup(self) -> None:
        registry = InspectionRegistry()

        assert registry.register(_Rule("a.rule")) is True
        assert registry.is_registered("a.rule")
        assert registry.get("a.rule").id == "a.rule"
        assert registry.get("missing") is None

    def test_duplicate_id_keeps_first(self) -> None:
        registry = InspectionRegistry()
        first = _Rule("a.rule")
        registry.register(first)

        assert registry.register(_Rule("a.rule")) is False
        assert registry.get("a.rule") is first
        assert registry.size() == 1

    def test_malformed_object_is_recorded_not_raised(self) -> None:
        registry = InspectionRegistry()

        assert registry.register(_NoId()) is False

        failure = registry.failures[0]
        assert "id" in failure.reason
        assert failure.error.code is ErrorCode.INSPECTION_REGISTRATION_FAILED

    @pytest.mark.parametrize(
        ("attribute", "value", "problem"),
        [
            ("applicable_file_types", FileType.JAVA, "applicable_file_types"),
            ("applicable_file_types", ["java"], "applicable_file_types"),
            ("applicable_file_types", "java", "applicable_file_types"),
            ("applicable_file_types", (t for t in [FileType.JAVA]), "applicable_file_types"),
            ("severity", "warning", "severity"),
            ("category", "security", "category"),
            ("id", "", "id"),
            ("id", 42, "id"),
            ("inspect", None, "inspect"),
        ],
    )
    def test_wrongly_typed_attribute_is_recorded(self, attribute: str, value, problem: str) -> None:
        """Present but wrongly typed attributes are rejected at registration."""
        # Given
        rule = _Rule("bad.rule")
        setattr(rule, attribute, value)
        registry = InspectionRegistry()

        # When
        added = registry.register(rule)

        # Then
        assert added is False
        assert registry.size() == 0
        failure = registry.failures[0]
        assert problem in failure.reason
        assert failure.error.code is ErrorCode.INSPECTION_REGISTRATION_FAILED

    def test_raising_attribute_is_recorded(self) -> None:
        class _Raising(_Rule):
            @property
            def category(self):
                raise RuntimeError("not ready")

        registry = InspectionRegistry()

        assert registry.register(_Raising("bad.rule")) is False
        assert "not ready" in registry.failures[0].reason

    def test_list_of_file_types_is_accepted(self) -> None:
        rule = _Rule("list.rule")
        rule.applicable_file_types = [FileType.JAVA, FileType.XML]
        registry = InspectionRegistry()

        assert registry.register(rule) is True
        assert registry.for_file_type(FileType.XML) == [rule]


class TestDiscover:
    """Provider-driven discovery with per-provider fault isolation."""

    def test_classes_are_instantiated(self) -> None:
        registry = InspectionRegistry()

        added = registry.discover([_Rule])

        assert added == 1
        assert registry.is_registered("quality.rule")

    def test_failing_provider_does_not_stop_others(self) -> None:
        """A provider that raises is recorded; the rest still register."""

        # Given
        def broken():
            raise RuntimeError("cannot build")

        registry = InspectionRegistry()

        # When
        added = registry.discover([broken, lambda: _Rule("b.rule"), lambda: _NoId()])

        # Then
        assert added == 1
        assert registry.is_registered("b.rule")
        reasons = [f.reason for f in registry.failures]
        assert len(reasons) == 2
        assert any("cannot build" in r for r in reasons)

    def test_string_providers_resolve_callables_and_instances(self, provider_module: str) -> None:
        registry = InspectionRegistry()

        added = registry.discover([f"{provider_module}:make_rules", f"{provider_module}:single"])

        assert added == 3
        assert [i.id for i in registry.all()] == ["ext.one", "ext.single", "ext.two"]

    def test_unimportable_provider_is_recorded(self) -> None:
        registry = InspectionRegistry()

        registry.discover(["no_such_module_anywhere:rules"])

        assert registry.failures[0].provider == "no_such_module_anywhere:rules"


class TestQueries:
    """Lookups by kind and category."""

    def test_for_file_type_and_category(self) -> None:
        registry = InspectionRegistry()
        registry.register(_Rule("q.one"))
        registry.register(_Rule("r.two", category=InspectionCategory.REPOSITORY_TIER))

        assert [i.id for i in registry.for_file_type(FileType.JAVA)] == ["q.one", "r.two"]
        assert registry.for_file_type(FileType.XML) == []
        assert registry.for_file_type(None) == []
        assert list(registry.ids_by_category()) == [
            InspectionCategory.REPOSITORY_TIER,
            InspectionCategory.CODE_QUALITY,
        ]

    def test_statistics(self) -> None:
        registry = InspectionRegistry()
        registry.register(_Rule("q.one"))
        registry.register(_Rule("q.two"))

        stats = registry.get_statistics()

        assert stats.total == 2
        assert stats.by_severity == {Severity.INFO: 2}
        assert stats.by_file_type == {FileType.JAVA: 2}

    def test_clear(self) -> None:
        registry = InspectionRegistry()
        registry.register(_Rule())

        registry.clear()

        assert registry.size() == 0


class TestProviderHelpers:
    def test_provider_name_for_callable(self) -> None:
        assert provider_name(_Rule).endswith(":_Rule")

    def test_resolve_provider_rejects_bad_spec(self) -> None:
        with pytest.raises(ValueError, match="package.module:attribute"):
            resolve_provider("just_a_module")
