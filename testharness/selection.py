"""Selection of the units and suites taking part in a run."""

from collections.abc import Sequence
from dataclasses import dataclass

from testharness.models.unit import Suite, TestUnit


@dataclass(frozen=True, kw_only=True)
class RunFilter:
    """Criteria applied to discovered units.

    ``ignored_only`` runs exactly the ignored units and drops the rest from
    the run; ``include_ignored`` runs ignored units alongside the others.
    """

    pattern: str = ""
    exact: bool = False
    skip: Sequence[str] = ()
    ignored_only: bool = False
    include_ignored: bool = False

    def matches(self, unit: TestUnit) -> bool:
        """Whether ``unit`` takes part in the run."""
        if self.pattern:
            if self.exact and unit.name != self.pattern:
                return False
            if not self.exact and self.pattern not in unit.name:
                return False
        if any(pattern in unit.name for pattern in self.skip):
            return False
        if self.ignored_only and not unit.ignored:
            return False
        return True

    def select(self, units: Sequence[TestUnit]) -> Sequence[TestUnit]:
        """Units taking part in the run, in declaration order."""
        return [unit for unit in units if self.matches(unit)]

    def should_invoke(self, unit: TestUnit) -> bool:
        """Whether a selected unit's body runs, rather than reporting it ignored."""
        return not unit.ignored or self.ignored_only or self.include_ignored


@dataclass(frozen=True, kw_only=True)
class SuiteSelection:
    """Which suites run; an empty selection means all of them."""

    lib: bool = False
    doc: bool = False
    tests: Sequence[str] = ()

    def is_empty(self) -> bool:
        """Whether no suite was named explicitly."""
        return not (self.lib or self.doc or self.tests)

    def select(self, suites: Sequence[Suite]) -> Sequence[Suite]:
        """Suites taking part in the run, in phase order."""
        if self.is_empty():
            return list(suites)
        return [
            suite
            for suite in suites
            if (suite.kind == "unit" and self.lib)
            or (suite.kind == "doc" and self.doc)
            or (suite.kind == "integration" and suite.name in self.tests)
        ]
