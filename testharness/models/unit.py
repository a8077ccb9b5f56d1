"""Models for discovered test units and the suites that own them."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from testharness.models.expectation import Expectation, MustPass

SuiteKind = Literal["unit", "integration", "doc"]
DocMode = Literal["run", "no_run", "compile_fail"]


@dataclass(frozen=True)
class UnitProvenance:
    """Inline test declared inside the library package."""


@dataclass(frozen=True)
class IntegrationProvenance:
    """Test declared in an integration suite file."""

    file_name: str


@dataclass(frozen=True)
class DocProvenance:
    """Test synthesized from a fenced block in a docstring."""

    owner: str
    index: int


Provenance = UnitProvenance | IntegrationProvenance | DocProvenance


@dataclass(frozen=True, kw_only=True)
class FunctionTarget:
    """Reference to a test function, resolved inside the worker process.

    ``path`` is set for integration files, which are loaded by location
    rather than imported by module name.
    """

    module: str
    function: str
    path: str | None = None


@dataclass(frozen=True, kw_only=True)
class DocProgram:
    """Standalone program synthesized from a documentation snippet."""

    source: str
    mode: DocMode = "run"
    origin: str = "<doc>"


UnitBody = FunctionTarget | DocProgram


@dataclass(frozen=True, kw_only=True)
class TestUnit:
    """A single invokable test with an attached expectation."""

    __test__ = False

    name: str
    provenance: Provenance
    body: UnitBody
    expectation: Expectation = field(default_factory=MustPass)
    ignored: bool = False


@dataclass(frozen=True, kw_only=True)
class Suite:
    """Ordered collection of units sharing a provenance and isolation boundary."""

    name: str
    kind: SuiteKind
    units: Sequence[TestUnit] = ()
