"""Discovery of test units by static inspection of source files.

Nothing is imported here: test functions are recognized by their decorators
in the syntax tree, and every unit carries a reference that the worker
process resolves when it runs the suite.
"""

import ast
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from testharness.config import ProjectLayout
from testharness.errors import DiscoveryError
from testharness.models.expectation import (
    Expectation,
    MustPanic,
    MustPanicContaining,
    MustPass,
)
from testharness.models.unit import (
    FunctionTarget,
    IntegrationProvenance,
    Suite,
    SuiteKind,
    TestUnit,
    UnitProvenance,
)
from testharness.snippets import collect_doc_blocks, register_doc_units

log = logging.getLogger(__name__)

MARK_NAMES = frozenset({"test", "ignore", "should_panic"})
EXCLUDED_SUITE_FILES = frozenset({"__init__.py", "conftest.py"})


@dataclass(frozen=True, kw_only=True)
class DeclaredTest:
    """Test function as declared in source."""

    function: str
    line: int
    ignored: bool = False
    expectation: Expectation = field(default_factory=MustPass)


def doc_suite_name(library: str) -> str:
    """Name of the suite holding a library's doc-tests."""
    return f"Doc-tests {library}"


def discover(layout: ProjectLayout) -> Sequence[Suite]:
    """Discover every suite of a project in phase order.

    The library's own suite comes first, then one suite per integration
    file, then the doc-test suite when enabled.
    """
    suites = [discover_unit_suite(layout), *discover_integration_suites(layout)]
    if layout.doctests:
        suites.append(discover_doc_suite(layout))

    log.info(
        "Discovered %d suite(s) with %d unit(s)",
        len(suites),
        sum(len(suite.units) for suite in suites),
    )
    return suites


def discover_unit_suite(layout: ProjectLayout) -> Suite:
    """Collect the inline tests of every module in the library package."""
    units: list[TestUnit] = []
    for module_name, path in library_modules(layout):
        relative = module_name.removeprefix(layout.library).lstrip(".")
        for declared in declared_tests(read_source(path), str(path)):
            units.append(
                TestUnit(
                    name=f"{relative}.{declared.function}"
                    if relative
                    else declared.function,
                    provenance=UnitProvenance(),
                    expectation=declared.expectation,
                    ignored=declared.ignored,
                    body=FunctionTarget(module=module_name, function=declared.function),
                )
            )
    return _suite(layout.library, "unit", units)


def discover_integration_suites(layout: ProjectLayout) -> Sequence[Suite]:
    """Collect one suite per Python file directly inside the tests directory."""
    if not layout.tests_dir.is_dir():
        log.debug("No integration test directory at %s", layout.tests_dir)
        return []

    suites: list[Suite] = []
    for path in sorted(layout.tests_dir.glob("*.py")):
        if path.name in EXCLUDED_SUITE_FILES:
            continue
        units = [
            TestUnit(
                name=declared.function,
                provenance=IntegrationProvenance(file_name=path.name),
                expectation=declared.expectation,
                ignored=declared.ignored,
                body=FunctionTarget(
                    module=path.stem, function=declared.function, path=str(path)
                ),
            )
            for declared in declared_tests(read_source(path), str(path))
        ]
        suites.append(_suite(path.stem, "integration", units))
    return suites


def discover_doc_suite(layout: ProjectLayout) -> Suite:
    """Collect doc-tests from the docstrings of every public module."""
    counters: dict[str, int] = {}
    units: list[TestUnit] = []
    for module_name, path in library_modules(layout):
        if not is_public_module(module_name):
            continue
        try:
            blocks = collect_doc_blocks(
                read_source(path),
                module_name,
                str(path.relative_to(layout.root)),
            )
        except SyntaxError as e:
            raise DiscoveryError(f"Cannot parse {path}: {e}") from e
        units.extend(register_doc_units(blocks, layout.library, counters))
    return _suite(doc_suite_name(layout.library), "doc", units)


def library_modules(layout: ProjectLayout) -> Iterator[tuple[str, Path]]:
    """Yield ``(module name, path)`` for the library's modules in a stable order."""
    package_dir = layout.package_dir
    paths = sorted(
        package_dir.rglob("*.py"),
        key=lambda p: p.relative_to(package_dir).parts,
    )
    for path in paths:
        parts = path.relative_to(package_dir).with_suffix("").parts
        if not all(part.isidentifier() for part in parts):
            continue
        if parts[-1] == "__init__":
            parts = parts[:-1]
        yield ".".join([layout.library, *parts]), path


def is_public_module(module_name: str) -> bool:
    """Whether no component of a dotted module name is private."""
    return not any(part.startswith("_") for part in module_name.split("."))


def read_source(path: Path) -> str:
    """Read a source file."""
    return path.read_text(encoding="utf-8")


def declared_tests(source: str, filename: str) -> Sequence[DeclaredTest]:
    """Find module-level functions decorated as tests.

    Raises:
        DiscoveryError: If the module cannot be parsed or a declaration is
            malformed

    """
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise DiscoveryError(f"Cannot parse {filename}: {e}") from e

    tests: list[DeclaredTest] = []
    for node in tree.body:
        if not isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
            continue
        marks = {
            name: call
            for name, call in map(_mark_of, node.decorator_list)
            if name is not None
        }
        if not marks:
            continue
        where = f"{filename}:{node.lineno}"
        if "test" not in marks:
            log.warning(
                "%s: %s is marked %s but not as a test, skipping",
                where,
                node.name,
                ", ".join(sorted(marks)),
            )
            continue
        if _has_required_parameters(node.args):
            raise DiscoveryError(f"{where}: test {node.name} must not take arguments")

        tests.append(
            DeclaredTest(
                function=node.name,
                line=node.lineno,
                ignored="ignore" in marks,
                expectation=_expectation_of(marks, where),
            )
        )
    return tests


def _mark_of(decorator: ast.expr) -> tuple[str | None, ast.Call | None]:
    call = decorator if isinstance(decorator, ast.Call) else None
    target = call.func if call is not None else decorator
    match target:
        case ast.Name(id=name) | ast.Attribute(attr=name) if name in MARK_NAMES:
            return name, call
    return None, None


def _has_required_parameters(args: ast.arguments) -> bool:
    positional = [*args.posonlyargs, *args.args]
    if len(positional) > len(args.defaults):
        return True
    return any(default is None for default in args.kw_defaults)


def _expectation_of(marks: dict[str, ast.Call | None], where: str) -> Expectation:
    if "should_panic" not in marks:
        return MustPass()
    call = marks["should_panic"]
    if call is None:
        return MustPanic()
    if call.args:
        raise DiscoveryError(f"{where}: should_panic takes only expected=...")

    for keyword in call.keywords:
        if keyword.arg != "expected":
            raise DiscoveryError(
                f"{where}: unknown should_panic argument {keyword.arg!r}"
            )
        match keyword.value:
            case ast.Constant(value=str(expected)):
                return MustPanicContaining(expected)
            case ast.Constant(value=None):
                return MustPanic()
        raise DiscoveryError(f"{where}: should_panic expected must be a string literal")
    return MustPanic()


def _suite(name: str, kind: SuiteKind, units: Sequence[TestUnit]) -> Suite:
    seen: set[str] = set()
    for unit in units:
        if unit.name in seen:
            raise DiscoveryError(f"Duplicate test name {unit.name!r} in suite {name}")
        seen.add(unit.name)
    return Suite(name=name, kind=kind, units=list(units))
