"""Abstract base for suite executors."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from testharness.models.expectation import evaluate
from testharness.models.result import UnitOutcome
from testharness.models.unit import Suite, TestUnit
from testharness.selection import RunFilter


def judge(
    unit: TestUnit,
    panicked: bool,
    message: str | None,
    output: str = "",
    duration: float = 0.0,
) -> UnitOutcome:
    """Apply a unit's expectation to what happened when it was invoked."""
    verdict = evaluate(unit.expectation, panicked, message)
    return UnitOutcome(
        name=unit.name,
        status="passed" if verdict.passed else "failed",
        message=verdict.message,
        output=output,
        duration=duration,
    )


@dataclass(frozen=True, kw_only=True)
class SuiteExecutor(ABC):
    """Runs the selected units of a suite under some isolation policy.

    Outcomes are yielded in completion order. Implementations raise
    ``HarnessFault`` when their isolation mechanism fails, after yielding
    whatever results were trustworthy.
    """

    test_threads: int = 1

    async def execute(
        self,
        suite: Suite,
        units: Sequence[TestUnit],
        run_filter: RunFilter,
    ) -> AsyncIterator[UnitOutcome]:
        """Yield one outcome per unit; skipped ignored units are never invoked.

        Args:
            suite: Suite the units belong to
            units: Units selected for this run
            run_filter: Filter deciding whether ignored units are invoked

        """
        invoked: list[TestUnit] = []
        for unit in units:
            if run_filter.should_invoke(unit):
                invoked.append(unit)
            else:
                yield UnitOutcome.ignored(unit.name)

        if invoked:
            async for outcome in self.run_units(suite, invoked):
                yield outcome

    @abstractmethod
    def run_units(
        self, suite: Suite, units: Sequence[TestUnit]
    ) -> AsyncIterator[UnitOutcome]:
        """Invoke ``units`` and yield their outcomes as they complete."""
