"""Tests for the JCR session leak inspection."""

from __future__ import annotations

import pytest

from brxm_inspect.engine.files import memory_writer
from brxm_inspect.engine.models import QuickFixContext, Severity
from brxm_inspect.inspections.fixes import AddFinallyBlockFix
from brxm_inspect.inspections.repository.session_leak import SessionLeakInspection

LEAKING = """\
package org.example;

public class Importer {
    public void importAll(Repository repository, Credentials credentials) throws Exception {
        Session session = repository.login(credentials);
        Node root = session.getRootNode();
        root.addNode("imported");
        session.save();
    }
}
"""

CLOSED_IN_FINALLY = """\
package org.example;

public class Importer {
    public void importAll(Repository repository, Credentials credentials) throws Exception {
        Session session = repository.login(credentials);
        try {
            session.getRootNode().addNode("imported");
            session.save();
        } finally {
            session.logout();
        }
    }
}
"""

TRY_WITH_RESOURCES = """\
package org.example;

public class Importer {
    public void importAll(SessionFactory factory) throws Exception {
        try (Session session = factory.getSession()) {
            session.save();
        }
    }
}
"""


class TestSessionLeak:
    """Resource acquisition without a release in finally."""

    def test_unreleased_session_is_one_error_at_the_call(self, make_file, analyze) -> None:
        """A login with no finally release yields exactly one ERROR on ``login``."""
        # Given
        file = make_file("src/main/java/org/example/Importer.java", LEAKING)

        # When
        results = analyze(SessionLeakInspection, [file])

        # Then
        [issue] = results.issues
        assert issue.severity is Severity.ERROR
        assert issue.inspection_id == "repository.session-leak"
        assert issue.message == "JCR Session 'session' is not closed in finally block"
        line = LEAKING.splitlines()[4]
        start = line.index("login") + 1
        assert (issue.range.start_line, issue.range.start_column) == (5, start)
        assert (issue.range.end_line, issue.range.end_column) == (5, start + len("login") - 1)
        assert issue.metadata["variableName"] == "session"

    @pytest.mark.parametrize("content", [CLOSED_IN_FINALLY, TRY_WITH_RESOURCES])
    def test_released_session_is_clean(self, make_file, analyze, content: str) -> None:
        file = make_file("src/main/java/org/example/Importer.java", content)

        results = analyze(SessionLeakInspection, [file])

        assert results.issues == []

    def test_release_of_another_session_does_not_count(self, make_file, analyze) -> None:
        content = CLOSED_IN_FINALLY.replace("session.logout()", "other.logout()")

        results = analyze(SessionLeakInspection, [make_file("Importer.java", content)])

        assert len(results.issues) == 1

    def test_each_method_is_checked_separately(self, make_file, analyze) -> None:
        content = """\
class Jobs {
    void first(Repository repo) throws Exception {
        Session a = repo.login();
        try { a.save(); } finally { a.logout(); }
    }
    void second(Repository repo) throws Exception {
        Session b = repo.impersonate(null);
        b.save();
    }
    Session third(Repository repo) throws Exception {
        return repo.login();
    }
}
"""
        results = analyze(SessionLeakInspection, [make_file("Jobs.java", content)])

        assert [i.metadata["variableName"] for i in results.issues] == ["b"]

    def test_unparseable_java_yields_no_issues(self, make_file, analyze) -> None:
        results = analyze(SessionLeakInspection, [make_file("Broken.java", "class Broken { void m( { }")])

        assert results.issues == []
        assert len(results.parse_failures) == 1


class TestAddFinallyBlockFix:
    def test_fix_wraps_remaining_statements(self, make_file, analyze) -> None:
        # Given
        file = make_file("src/main/java/org/example/Importer.java", LEAKING)
        [issue] = analyze(SessionLeakInspection, [file]).issues
        [fix] = SessionLeakInspection().quick_fixes(issue)
        assert isinstance(fix, AddFinallyBlockFix)

        # When
        fix.apply(QuickFixContext(file=file, range=issue.range, issue=issue, writer=memory_writer))

        # Then
        fixed = file.read_text()
        assert "        try {\n            Node root = session.getRootNode();" in fixed
        assert "        } finally {\n            if (session != null) {\n                session.logout();" in fixed
        assert analyze(SessionLeakInspection, [file]).issues == []
