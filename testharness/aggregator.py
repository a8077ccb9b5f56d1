"""Reduction of unit outcomes into run summaries."""

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from testharness.models.result import UnitOutcome


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """Outcome counts of a suite or of a whole run.

    ``measured`` stays 0: benchmarks are not run by the harness. ``faulted``
    marks a summary covering a suite whose test process broke down; it fails
    even when every reported unit passed.
    """

    passed: int = 0
    failed: int = 0
    ignored: int = 0
    measured: int = 0
    faulted: bool = False

    @property
    def ok(self) -> bool:
        """Whether nothing failed and no suite faulted."""
        return self.failed == 0 and not self.faulted

    @property
    def total(self) -> int:
        """Number of units accounted for."""
        return self.passed + self.failed + self.ignored

    def __add__(self, other: "RunSummary") -> "RunSummary":
        return RunSummary(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            ignored=self.ignored + other.ignored,
            measured=self.measured + other.measured,
            faulted=self.faulted or other.faulted,
        )


def summarize(outcomes: Iterable[UnitOutcome]) -> RunSummary:
    """Count outcomes by status; the order of ``outcomes`` is irrelevant."""
    counts = Counter(outcome.status for outcome in outcomes)
    return RunSummary(
        passed=counts["passed"],
        failed=counts["failed"],
        ignored=counts["ignored"],
    )


@dataclass(kw_only=True)
class Aggregator:
    """Accumulates outcomes per suite as they arrive."""

    _outcomes: dict[str, list[UnitOutcome]] = field(default_factory=dict)
    _faulted: set[str] = field(default_factory=set)

    def record(self, suite: str, outcome: UnitOutcome) -> None:
        """Add the outcome of a unit of ``suite``."""
        self._outcomes.setdefault(suite, []).append(outcome)

    def mark_faulted(self, suite: str) -> None:
        """Record that the test process of ``suite`` broke down."""
        self._outcomes.setdefault(suite, [])
        self._faulted.add(suite)

    def outcomes(self, suite: str) -> Sequence[UnitOutcome]:
        """Outcomes recorded for ``suite``, in arrival order."""
        return list(self._outcomes.get(suite, ()))

    def suite_summary(self, suite: str) -> RunSummary:
        """Summary of one suite."""
        summary = summarize(self._outcomes.get(suite, ()))
        if suite in self._faulted:
            return replace(summary, faulted=True)
        return summary

    def total(self) -> RunSummary:
        """Summary across every suite."""
        return sum(
            (self.suite_summary(suite) for suite in self._outcomes),
            RunSummary(),
        )
