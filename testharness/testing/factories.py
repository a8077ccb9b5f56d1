"""Test factories for generating test data."""

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from testharness.config import HarnessConfig
from testharness.models.expectation import MustPass
from testharness.models.result import UnitOutcome
from testharness.models.unit import FunctionTarget, TestUnit, UnitProvenance


class UnitOutcomeFactory(DataclassFactory[UnitOutcome]):
    """Factory for UnitOutcome."""

    __model__ = UnitOutcome

    message = None
    output = ""


class FunctionTargetFactory(DataclassFactory[FunctionTarget]):
    """Factory for FunctionTarget."""

    __model__ = FunctionTarget

    path = None


class TestUnitFactory(DataclassFactory[TestUnit]):
    """Factory for inline TestUnit with a passing expectation."""

    __test__ = False
    __model__ = TestUnit

    provenance = UnitProvenance()
    expectation = MustPass()
    ignored = False
    body = Use(FunctionTargetFactory.build)


class HarnessConfigFactory(ModelFactory[HarnessConfig]):
    """Factory for HarnessConfig."""

    library = "mylib"
    source_root = None
    tests_dir = "tests"
