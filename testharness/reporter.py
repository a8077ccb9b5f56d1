"""Line-oriented rendering of a run and its exit status.

The block written to stdout for each suite is stable for tooling::

    running 2 tests
    test shapes.area ... ok
    test shapes.perimeter ... FAILED

    test result: FAILED. 1 passed; 1 failed; 0 ignored; 0 measured

Suite headers and harness faults go to stderr.
"""

import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TextIO

from testharness.aggregator import RunSummary
from testharness.models.result import UnitOutcome
from testharness.models.unit import Suite, TestUnit

EXIT_SUCCESS = 0
EXIT_FAILURE = 101

STATUS_TAGS = {
    "passed": "ok",
    "failed": "FAILED",
    "ignored": "ignored",
}


def exit_status(summary: RunSummary) -> int:
    """Process exit status for a run."""
    return EXIT_SUCCESS if summary.ok else EXIT_FAILURE


def format_summary(summary: RunSummary) -> str:
    """Render the ``test result:`` line of a suite."""
    return (
        f"test result: {'ok' if summary.ok else 'FAILED'}. "
        f"{summary.passed} passed; {summary.failed} failed; "
        f"{summary.ignored} ignored; {summary.measured} measured"
    )


def suite_header(suite: Suite) -> str:
    """Describe which suite is about to run."""
    if suite.kind == "doc":
        return f"   {suite.name}"
    if suite.kind == "integration":
        return f"     Running tests/{suite.name}.py"
    return f"     Running unittests {suite.name}"


@dataclass(kw_only=True)
class Reporter:
    """Writes the per-unit stream and suite summaries."""

    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)

    def suite_started(self, suite: Suite, count: int) -> None:
        """Announce a suite and how many units it will report."""
        print(suite_header(suite), file=self.err, flush=True)
        print(f"\nrunning {count} tests", file=self.out, flush=True)

    def unit_finished(self, outcome: UnitOutcome) -> None:
        """Report one completed unit."""
        print(
            f"test {outcome.name} ... {STATUS_TAGS[outcome.status]}",
            file=self.out,
            flush=True,
        )

    def harness_fault(self, suite: Suite, message: str) -> None:
        """Report that a suite's isolation broke down."""
        print(f"error: {message}", file=self.err, flush=True)
        print(
            f"error: remaining results of {suite.name} are marked failed",
            file=self.err,
            flush=True,
        )

    def suite_finished(
        self, summary: RunSummary, failures: Sequence[UnitOutcome] = ()
    ) -> None:
        """Report failure details, then the suite's summary line."""
        if failures:
            ordered = sorted(failures, key=lambda outcome: outcome.name)
            print("\nfailures:\n", file=self.out)
            for outcome in ordered:
                print(f"---- {outcome.name} stdout ----", file=self.out)
                print(failure_details(outcome), file=self.out)
                print(file=self.out)
            print("\nfailures:", file=self.out)
            for outcome in ordered:
                print(f"    {outcome.name}", file=self.out)
        print(f"\n{format_summary(summary)}\n", file=self.out, flush=True)

    def list_suite(self, suite: Suite, units: Sequence[TestUnit]) -> None:
        """List the units a run would execute, without running them."""
        print(suite_header(suite), file=self.err, flush=True)
        for unit in units:
            print(f"{unit.name}: test", file=self.out)
        print(f"\n{len(units)} tests, 0 benchmarks", file=self.out, flush=True)


def failure_details(outcome: UnitOutcome) -> str:
    """Captured output of a failed unit followed by its failure message."""
    body = outcome.output.rstrip()
    message = (outcome.message or "").rstrip()
    if message and not body.endswith(message):
        body = f"{body}\n{message}" if body else message
    return body
