"""Test orchestrator running suites as consecutive phases."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from testharness.aggregator import Aggregator, RunSummary
from testharness.engine.base import SuiteExecutor
from testharness.errors import HarnessFault
from testharness.models.result import UnitOutcome
from testharness.models.unit import Suite, SuiteKind
from testharness.reporter import Reporter
from testharness.selection import RunFilter

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TestOrchestrator:
    """Runs suites one after another and reports each as it completes."""

    __test__ = False

    executors: Mapping[SuiteKind, SuiteExecutor]
    reporter: Reporter = field(default_factory=Reporter)

    async def run_tests(
        self,
        suites: Sequence[Suite],
        run_filter: RunFilter,
    ) -> RunSummary:
        """Run every suite and return the summary of the whole run.

        Args:
            suites: Suites in phase order
            run_filter: Selection applied to each suite's units

        Returns:
            Combined summary; it has failures if any suite had one

        """
        aggregator = Aggregator()
        for suite in suites:
            await self._run_suite(suite, run_filter, aggregator)

        total = aggregator.total()
        log.info(
            "Run completed: %d passed, %d failed, %d ignored",
            total.passed,
            total.failed,
            total.ignored,
        )
        return total

    async def _run_suite(
        self, suite: Suite, run_filter: RunFilter, aggregator: Aggregator
    ) -> None:
        units = run_filter.select(suite.units)
        key = f"{suite.kind}/{suite.name}"
        log.info("Running %s (%d of %d units)", suite.name, len(units), len(suite.units))
        self.reporter.suite_started(suite, len(units))

        executor = self.executors[suite.kind]
        try:
            async for outcome in executor.execute(suite, units, run_filter):
                aggregator.record(key, outcome)
                self.reporter.unit_finished(outcome)
        except HarnessFault as e:
            log.error("Suite %s aborted: %s", suite.name, e)
            self.reporter.harness_fault(suite, str(e))
            aggregator.mark_faulted(key)
            reported = {outcome.name for outcome in aggregator.outcomes(key)}
            for unit in units:
                if unit.name not in reported:
                    aggregator.record(
                        key,
                        UnitOutcome(name=unit.name, status="failed", message=str(e)),
                    )

        failures = [
            outcome
            for outcome in aggregator.outcomes(key)
            if outcome.status == "failed"
        ]
        self.reporter.suite_finished(aggregator.suite_summary(key), failures)
