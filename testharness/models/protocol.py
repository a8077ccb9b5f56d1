"""Wire models exchanged between the harness and its worker processes.

The harness writes one ``SuitePlan`` document to the worker's stdin. The
worker answers with one JSON event per line: a ``UnitFinished`` for every
planned unit in completion order, then a single ``SuiteFinished``.
"""

from collections.abc import Sequence
from typing import Annotated, Literal

from pydantic import Field, TypeAdapter

from testharness.models.base import Model


class PlannedUnit(Model):
    """Unit the worker must invoke."""

    name: str = Field(..., description="Qualified test name")
    module: str = Field(..., description="Importable module name")
    function: str = Field(..., description="Test function name within the module")
    path: str | None = Field(
        default=None, description="Source file to load the module from"
    )


class SuitePlan(Model):
    """Everything a worker needs to run one suite."""

    suite: str = Field(..., description="Suite name, used in diagnostics")
    sys_path: Sequence[str] = Field(
        default_factory=list, description="Entries prepended to sys.path"
    )
    units: Sequence[PlannedUnit] = Field(default_factory=list)
    test_threads: int = Field(default=1, ge=1, description="Worker pool size")


class UnitFinished(Model):
    """Raw invocation result of one unit, before expectations are applied."""

    event: Literal["unit"] = "unit"
    name: str
    panicked: bool
    message: str | None = None
    output: str = ""
    duration: float = 0.0


class SuiteFinished(Model):
    """Marks a clean end of the worker's run."""

    event: Literal["done"] = "done"


WorkerEvent = Annotated[UnitFinished | SuiteFinished, Field(discriminator="event")]

WORKER_EVENT_ADAPTER: TypeAdapter[UnitFinished | SuiteFinished] = TypeAdapter(
    WorkerEvent
)
