"""Tests for the System.out/err inspection."""

from __future__ import annotations

from brxm_inspect.engine.models import Severity
from brxm_inspect.inspections.config.system_out_calls import SystemOutCallsInspection

SOURCE = """\
package org.example;

public class Printer {
    void report(Exception e) {
        System.out.println("starting");
        System.err.printf("failed: %s%n", e);
        System.out.flush();
        log.info("fine");
    }
}
"""


class TestSystemOutCalls:
    def test_print_calls_are_flagged(self, make_file, analyze) -> None:
        results = analyze(SystemOutCallsInspection, [make_file("src/main/java/org/example/Printer.java", SOURCE)])

        assert [(i.range.start_line, i.message) for i in results.issues] == [
            (5, "System.out.println() should use logging framework instead"),
            (6, "System.err.printf() should use logging framework instead"),
        ]
        assert {i.severity for i in results.issues} == {Severity.INFO}

    def test_test_sources_are_skipped(self, make_file, analyze) -> None:
        files = [
            make_file("src/test/java/org/example/Printer.java", SOURCE),
            make_file("src/main/java/org/example/PrinterTest.java", SOURCE),
        ]

        assert analyze(SystemOutCallsInspection, files).issues == []

    def test_min_severity_can_hide_info(self, make_file, analyze) -> None:
        results = analyze(
            SystemOutCallsInspection,
            [make_file("Printer.java", SOURCE)],
            minSeverity="WARNING",
        )

        assert results.issues == []
