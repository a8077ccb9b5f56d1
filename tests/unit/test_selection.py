"""Tests for run filtering and suite selection."""

from testharness.models.unit import Suite
from testharness.selection import RunFilter, SuiteSelection
from testharness.testing.factories import TestUnitFactory

UNITS = [
    TestUnitFactory.build(name="shapes.area"),
    TestUnitFactory.build(name="shapes.perimeter", ignored=True),
    TestUnitFactory.build(name="parse.tokens"),
]


def names(run_filter: RunFilter) -> list[str]:
    """Names selected by ``run_filter`` from UNITS."""
    return [unit.name for unit in run_filter.select(UNITS)]


class TestRunFilter:
    """Tests for RunFilter."""

    def test_empty_filter_selects_everything(self) -> None:
        """No pattern keeps every unit, ignored ones included."""
        assert names(RunFilter()) == ["shapes.area", "shapes.perimeter", "parse.tokens"]

    def test_substring_filter(self) -> None:
        """Keeps units whose name contains the pattern."""
        assert names(RunFilter(pattern="shapes")) == ["shapes.area", "shapes.perimeter"]

    def test_exact_filter(self) -> None:
        """Exact mode matches whole names only."""
        assert names(RunFilter(pattern="shapes", exact=True)) == []
        assert names(RunFilter(pattern="parse.tokens", exact=True)) == ["parse.tokens"]

    def test_skip_patterns(self) -> None:
        """Drops units matching any skip pattern."""
        assert names(RunFilter(skip=("area", "tokens"))) == ["shapes.perimeter"]

    def test_ignored_only_excludes_other_units(self) -> None:
        """Ignored-only mode keeps exactly the ignored units."""
        assert names(RunFilter(ignored_only=True)) == ["shapes.perimeter"]

    def test_ignored_units_are_not_invoked_by_default(self) -> None:
        """Default runs report ignored units without invoking them."""
        run_filter = RunFilter()

        assert run_filter.should_invoke(UNITS[0])
        assert not run_filter.should_invoke(UNITS[1])

    def test_ignored_modes_invoke_ignored_units(self) -> None:
        """Both ignored modes invoke ignored units."""
        assert RunFilter(ignored_only=True).should_invoke(UNITS[1])
        assert RunFilter(include_ignored=True).should_invoke(UNITS[1])


class TestSuiteSelection:
    """Tests for SuiteSelection."""

    SUITES = [
        Suite(name="mylib", kind="unit"),
        Suite(name="api", kind="integration"),
        Suite(name="cli", kind="integration"),
        Suite(name="Doc-tests mylib", kind="doc"),
    ]

    def test_empty_selection_keeps_all(self) -> None:
        """Without flags every suite runs."""
        assert SuiteSelection().select(self.SUITES) == self.SUITES

    def test_selects_named_suites_in_phase_order(self) -> None:
        """Keeps only requested suites, preserving order."""
        selection = SuiteSelection(doc=True, tests=("cli",))

        assert [s.name for s in selection.select(self.SUITES)] == [
            "cli",
            "Doc-tests mylib",
        ]

    def test_lib_only(self) -> None:
        """--lib keeps the library suite."""
        assert [s.kind for s in SuiteSelection(lib=True).select(self.SUITES)] == [
            "unit"
        ]
